"""Advertise the Clubscore LAN core via mDNS."""

import logging
import socket

from zeroconf import ServiceInfo
from zeroconf.asyncio import AsyncZeroconf

from .browser import SERVICE_TYPE
from .errors import AnnounceError, SessionInitError

logger = logging.getLogger(__name__)


class ServiceAnnouncer:
    """Announces a LAN core instance so ``discover`` can find it."""

    def __init__(
        self,
        name: str,
        port: int,
        service_type: str = SERVICE_TYPE,
        properties: dict[str, str] | None = None,
        address: str | None = None,
    ):
        """Initialize the service announcer.

        Args:
            name: Instance name (e.g. "clubscore-lan").
            port: Port the LAN core HTTP server listens on.
            service_type: Fully qualified mDNS service type.
            properties: TXT record key/values.
            address: IPv4 address to advertise. Defaults to the address the
                local hostname resolves to.
        """
        self.name = name
        self.port = port
        self.service_type = service_type
        self.properties = dict(properties or {})
        self.address = address
        self._zeroconf: AsyncZeroconf | None = None
        self._service_info: ServiceInfo | None = None

    @property
    def service_name(self) -> str:
        return f"{self.name}.{self.service_type}"

    def build_service_info(self) -> ServiceInfo:
        hostname = socket.gethostname()
        local_ip = self.address or socket.gethostbyname(hostname)

        return ServiceInfo(
            self.service_type,
            self.service_name,
            addresses=[socket.inet_aton(local_ip)],
            port=self.port,
            properties=self.properties,
            server=f"{hostname}.local.",
        )

    async def start(self) -> None:
        """Register the service on the network."""
        self._service_info = self.build_service_info()

        try:
            self._zeroconf = AsyncZeroconf()
        except Exception as e:
            raise SessionInitError(f"Failed to start mDNS responder: {e}") from e

        try:
            await self._zeroconf.async_register_service(self._service_info)
        except Exception as e:
            zeroconf, self._zeroconf = self._zeroconf, None
            self._service_info = None
            await zeroconf.async_close()
            raise AnnounceError(
                f"Failed to register {self.service_name}: {type(e).__name__}: {e}"
            ) from e

        address = socket.inet_ntoa(self._service_info.addresses[0])
        logger.info(f"Announcing service: {self.service_name} at {address}:{self.port}")

    async def stop(self) -> None:
        """Unregister and close; safe to call more than once."""
        zeroconf, info = self._zeroconf, self._service_info
        self._zeroconf = None
        self._service_info = None

        if zeroconf is None:
            return
        try:
            if info is not None:
                await zeroconf.async_unregister_service(info)
        finally:
            await zeroconf.async_close()
        logger.info("Service announcement stopped")
