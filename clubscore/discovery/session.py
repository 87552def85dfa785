"""Multicast sessions: the process's handle on the local mDNS subsystem.

A session is acquired once per discovery attempt, browses a single
service type and delivers ``ResolutionEvent`` objects through an
``EventReceiver`` until it is closed.
"""

import asyncio
import logging
import queue
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future

from zeroconf import (
    BadTypeInNameException,
    ServiceBrowser,
    ServiceInfo,
    ServiceStateChange,
    Zeroconf,
)

from .errors import BrowseError, SessionInitError
from .events import (
    InstanceInfo,
    ResolutionEvent,
    SearchStarted,
    ServiceFound,
    ServiceRemoved,
    ServiceResolved,
)

logger = logging.getLogger(__name__)


class EventReceiver:
    """In-order channel of resolution events, read with a per-wait timeout."""

    def __init__(self) -> None:
        self._queue: queue.Queue[ResolutionEvent] = queue.Queue()

    def send(self, event: ResolutionEvent) -> None:
        """Deliver an event. Safe to call from any thread."""
        self._queue.put(event)

    def recv_timeout(self, timeout: float) -> ResolutionEvent | None:
        """Wait up to ``timeout`` seconds for the next event.

        Returns:
            The next event, or None if nothing arrived in time.
        """
        try:
            return self._queue.get(timeout=max(timeout, 0.0))
        except queue.Empty:
            return None


class MulticastSession(ABC):
    """A scoped mDNS session.

    Use as a context manager; the session is shut down exactly once when
    the block exits, whichever way it exits.
    """

    def __init__(self) -> None:
        self._closed = False

    @abstractmethod
    def browse(self, service_type: str) -> EventReceiver:
        """Start browsing ``service_type`` and return the event channel.

        Raises:
            BrowseError: If the query could not be issued.
        """

    @abstractmethod
    def shutdown(self) -> None:
        """Release sockets and listener threads."""

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Shut down once; later calls and shutdown failures are ignored."""
        if self._closed:
            return
        self._closed = True
        try:
            self.shutdown()
        except Exception as e:
            logger.debug(f"Ignoring error while shutting down mDNS session: {e}")

    def __enter__(self) -> "MulticastSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ZeroconfSession(MulticastSession):
    """Multicast session backed by python-zeroconf."""

    def __init__(self, resolve_timeout_ms: int = 1000):
        """Start the zeroconf responder.

        Args:
            resolve_timeout_ms: How long to wait for SRV/address records
                after an instance name is seen.

        Raises:
            SessionInitError: If no usable interface or socket is available.
        """
        super().__init__()
        self.resolve_timeout_ms = resolve_timeout_ms
        self._browser: ServiceBrowser | None = None
        self._receiver: EventReceiver | None = None
        self._pending: dict[str, Future] = {}
        self._lock = threading.Lock()

        try:
            self._zeroconf = Zeroconf()
        except Exception as e:
            raise SessionInitError(f"Failed to start mDNS responder: {e}") from e

    def browse(self, service_type: str) -> EventReceiver:
        if self._browser is not None:
            raise BrowseError("Session is already browsing")

        receiver = EventReceiver()
        self._receiver = receiver
        receiver.send(SearchStarted(service_type))

        try:
            self._browser = ServiceBrowser(
                self._zeroconf,
                service_type,
                handlers=[self._on_service_state_change],
            )
        except BadTypeInNameException as e:
            raise BrowseError(f"Invalid service type {service_type!r}: {e}") from e
        except Exception as e:
            raise BrowseError(f"Failed to browse {service_type}: {e}") from e

        logger.info(f"Browsing for {service_type} services")
        return receiver

    def _on_service_state_change(
        self,
        zeroconf: Zeroconf,
        service_type: str,
        name: str,
        state_change: ServiceStateChange,
    ) -> None:
        """Translate browser callbacks into resolution events."""
        receiver = self._receiver
        if receiver is None or self.closed:
            return

        if state_change is ServiceStateChange.Removed:
            receiver.send(ServiceRemoved(name))
            return

        if state_change is ServiceStateChange.Added:
            receiver.send(ServiceFound(name))

        # Added or Updated: resolve without blocking the browser thread
        self._start_resolve(zeroconf, service_type, name)

    def _start_resolve(self, zeroconf: Zeroconf, service_type: str, name: str) -> None:
        with self._lock:
            if name in self._pending or self.closed:
                return
            info = ServiceInfo(service_type, name)
            future = asyncio.run_coroutine_threadsafe(
                info.async_request(zeroconf, self.resolve_timeout_ms), zeroconf.loop
            )
            self._pending[name] = future

        future.add_done_callback(
            lambda f: self._on_resolve_done(name, info, f)
        )

    def _on_resolve_done(self, name: str, info: ServiceInfo, future: Future) -> None:
        with self._lock:
            self._pending.pop(name, None)

        if future.cancelled() or self.closed or self._receiver is None:
            return
        if future.exception() is not None:
            logger.debug(f"Could not resolve {name}: {future.exception()}")
            return
        if not future.result() or info.port is None:
            logger.debug(f"No SRV record for {name} within {self.resolve_timeout_ms}ms")
            return

        self._receiver.send(ServiceResolved(instance_from_service_info(info)))

    def shutdown(self) -> None:
        with self._lock:
            pending = list(self._pending.values())
            self._pending.clear()
        for future in pending:
            future.cancel()

        try:
            if self._browser is not None:
                self._browser.cancel()
        finally:
            self._zeroconf.close()
        logger.info("Service browsing stopped")


def instance_from_service_info(info: ServiceInfo) -> InstanceInfo:
    """Build an ``InstanceInfo`` from a resolved zeroconf ``ServiceInfo``."""
    properties = {}
    for key, value in (info.properties or {}).items():
        properties[key.decode("utf-8", "replace")] = (
            value.decode("utf-8", "replace") if value is not None else None
        )

    return InstanceInfo(
        name=info.name,
        hostname=(info.server or "").rstrip("."),
        port=info.port,
        addresses=tuple(info.parsed_scoped_addresses()),
        properties=properties,
    )
