"""Ask a discovered LAN core to describe itself over HTTP."""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)


@dataclass
class ServerDescription:
    """Payload of the LAN core's discovery endpoint."""

    name: str
    host: str
    port: int
    ws_path: str = "/ws"
    api_base: str = "/api"
    mdns_service: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ServerDescription":
        return cls(
            name=data["name"],
            host=data["host"],
            port=int(data["port"]),
            ws_path=data.get("wsPath", "/ws"),
            api_base=data.get("apiBase", "/api"),
            mdns_service=data.get("mdnsService"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "host": self.host,
            "port": self.port,
            "wsPath": self.ws_path,
            "apiBase": self.api_base,
            "mdnsService": self.mdns_service,
        }


async def probe_server(
    base_url: str,
    path: str = "/api/discovery",
    timeout: float = 2.5,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[ServerDescription | None, str | None]:
    """Fetch the discovery payload from a LAN core.

    Args:
        base_url: Server base URL (e.g., "http://10.0.0.5:7310").
        path: Discovery endpoint path.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (used by tests).

    Returns:
        Tuple of (description, error_message).
    """
    url = f"{base_url.rstrip('/')}{path}"

    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        try:
            response = await client.get(url)
        except httpx.ConnectError:
            logger.warning(f"Connection to {url} failed")
            return None, f"Connection failed: {url}"
        except httpx.TimeoutException:
            logger.warning(f"Request to {url} timed out")
            return None, f"Request timeout: {url}"
        except httpx.HTTPError as e:
            logger.error(f"Request error: {e}")
            return None, str(e)

    if response.status_code != 200:
        return None, f"HTTP {response.status_code}: {response.text}"

    try:
        return ServerDescription.from_dict(response.json()), None
    except (ValueError, KeyError, TypeError) as e:
        logger.debug(f"Unexpected discovery payload from {url}: {e}")
        return None, f"Invalid discovery payload: {e}"
