"""Resolution events delivered by a multicast session.

A session turns the raw mDNS browse traffic into an ordered stream of
these events. Only ``ServiceResolved`` carries data the discovery loop
consumes; everything else is informational.
"""

import ipaddress
from dataclasses import dataclass, field


@dataclass(frozen=True)
class InstanceInfo:
    """A resolved service instance (SRV + address records)."""

    name: str
    hostname: str
    port: int
    addresses: tuple[str, ...] = ()
    properties: dict[str, str | None] = field(default_factory=dict)

    @property
    def host(self) -> str:
        """First advertised address, or the hostname when none was sent."""
        if self.addresses:
            return self.addresses[0]
        return self.hostname


class ResolutionEvent:
    """Base for everything a session can deliver."""


@dataclass(frozen=True)
class SearchStarted(ResolutionEvent):
    service_type: str


@dataclass(frozen=True)
class ServiceFound(ResolutionEvent):
    """An instance name was seen but not yet resolved."""

    name: str


@dataclass(frozen=True)
class ServiceResolved(ResolutionEvent):
    info: InstanceInfo


@dataclass(frozen=True)
class ServiceRemoved(ResolutionEvent):
    name: str


@dataclass(frozen=True)
class DiscoveryResult:
    """The outcome handed back to the caller of ``discover``."""

    host: str
    port: int

    @classmethod
    def from_info(cls, info: InstanceInfo) -> "DiscoveryResult":
        return cls(host=info.host, port=info.port)

    @property
    def base_url(self) -> str:
        """HTTP base URL of the discovered server (IPv6 literals bracketed)."""
        host = self.host
        try:
            if ipaddress.ip_address(host.split("%")[0]).version == 6:
                host = f"[{host}]"
        except ValueError:
            pass  # hostname, not an address literal
        return f"http://{host}:{self.port}"

    def to_dict(self) -> dict:
        return {"host": self.host, "port": self.port, "url": self.base_url}
