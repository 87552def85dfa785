"""Bounded-time discovery of the Clubscore LAN core."""

import logging
import time
from typing import Callable

from .errors import BrowseError, DiscoveryError, SessionInitError
from .events import DiscoveryResult, ServiceResolved
from .session import EventReceiver, MulticastSession, ZeroconfSession

logger = logging.getLogger(__name__)

SERVICE_TYPE = "_clubscore._tcp.local."
DEFAULT_TIMEOUT_MS = 2500
POLL_INTERVAL_MS = 300


def discover(
    timeout_ms: int | None = None,
    *,
    service_type: str = SERVICE_TYPE,
    poll_interval_ms: int = POLL_INTERVAL_MS,
    session_factory: Callable[[], MulticastSession] = ZeroconfSession,
) -> DiscoveryResult | None:
    """Look for one instance of ``service_type`` on the local network.

    Blocks until the first instance resolves or the deadline passes. The
    call returns at most one poll interval after the deadline.

    Args:
        timeout_ms: Overall deadline in milliseconds (default 2500).
        service_type: Fully qualified DNS-SD service type to browse.
        poll_interval_ms: Cap on each wait for the next event.
        session_factory: Callable returning a fresh, started session.

    Returns:
        The first resolved (host, port), or None if nothing answered in time.

    Raises:
        ValueError: If timeout_ms is not a non-negative integer.
        SessionInitError: If the mDNS subsystem could not be started.
        BrowseError: If the browse query could not be issued.
    """
    if timeout_ms is None:
        timeout_ms = DEFAULT_TIMEOUT_MS
    if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int):
        raise ValueError(f"timeout_ms must be an integer, got {timeout_ms!r}")
    if timeout_ms < 0:
        raise ValueError(f"timeout_ms must be non-negative, got {timeout_ms}")

    try:
        session = session_factory()
    except DiscoveryError:
        raise
    except Exception as e:
        raise SessionInitError(str(e)) from e

    with session:
        try:
            receiver = session.browse(service_type)
        except DiscoveryError:
            raise
        except Exception as e:
            raise BrowseError(str(e)) from e

        result = _wait_for_first(receiver, timeout_ms / 1000, poll_interval_ms / 1000)

    if result is None:
        logger.info(f"No {service_type} instance answered within {timeout_ms}ms")
    return result


def _wait_for_first(
    receiver: EventReceiver, timeout: float, poll_interval: float
) -> DiscoveryResult | None:
    deadline = time.monotonic() + timeout

    while (remaining := deadline - time.monotonic()) > 0:
        event = receiver.recv_timeout(min(poll_interval, remaining))
        if event is None:
            continue

        if isinstance(event, ServiceResolved):
            result = DiscoveryResult.from_info(event.info)
            logger.info(
                f"Resolved {event.info.name} at {result.host}:{result.port}"
            )
            return result

        logger.debug(f"Ignoring event: {event}")

    return None
