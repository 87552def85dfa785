"""mDNS/DNS-SD discovery of the Clubscore LAN core."""

from .announcer import ServiceAnnouncer
from .browser import DEFAULT_TIMEOUT_MS, POLL_INTERVAL_MS, SERVICE_TYPE, discover
from .errors import AnnounceError, BrowseError, DiscoveryError, SessionInitError
from .events import (
    DiscoveryResult,
    InstanceInfo,
    ResolutionEvent,
    SearchStarted,
    ServiceFound,
    ServiceRemoved,
    ServiceResolved,
)
from .session import EventReceiver, MulticastSession, ZeroconfSession

__all__ = [
    "AnnounceError",
    "BrowseError",
    "DEFAULT_TIMEOUT_MS",
    "DiscoveryError",
    "DiscoveryResult",
    "EventReceiver",
    "InstanceInfo",
    "MulticastSession",
    "POLL_INTERVAL_MS",
    "ResolutionEvent",
    "SERVICE_TYPE",
    "SearchStarted",
    "ServiceAnnouncer",
    "ServiceFound",
    "ServiceRemoved",
    "ServiceResolved",
    "SessionInitError",
    "ZeroconfSession",
    "discover",
]
