"""Tests for the bounded-time discovery loop."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from clubscore.discovery import (
    SERVICE_TYPE,
    BrowseError,
    DiscoveryResult,
    EventReceiver,
    InstanceInfo,
    MulticastSession,
    SearchStarted,
    ServiceFound,
    ServiceRemoved,
    ServiceResolved,
    SessionInitError,
    discover,
)


class ScriptedSession(MulticastSession):
    """Session double that replays a fixed list of events."""

    def __init__(
        self,
        events=(),
        browse_error: Exception | None = None,
        shutdown_error: Exception | None = None,
    ):
        super().__init__()
        self.events = list(events)
        self.browse_error = browse_error
        self.shutdown_error = shutdown_error
        self.browsed: list[str] = []
        self.shutdown_calls = 0
        self.receiver: EventReceiver | None = None

    def browse(self, service_type: str) -> EventReceiver:
        self.browsed.append(service_type)
        if self.browse_error:
            raise self.browse_error
        self.receiver = EventReceiver()
        for event in self.events:
            self.receiver.send(event)
        return self.receiver

    def shutdown(self) -> None:
        self.shutdown_calls += 1
        if self.shutdown_error:
            raise self.shutdown_error


def resolved(addresses=(), hostname="scoreboard.local", port=4123, name="clubscore-lan"):
    return ServiceResolved(
        InstanceInfo(
            name=f"{name}.{SERVICE_TYPE}",
            hostname=hostname,
            port=port,
            addresses=tuple(addresses),
        )
    )


class TestDiscover:
    """Tests for discover()."""

    def test_resolves_first_address(self):
        """Test resolves first address."""
        session = ScriptedSession([
            SearchStarted(SERVICE_TYPE),
            ServiceFound("clubscore-lan"),
            resolved(addresses=["10.0.0.5", "fe80::1"]),
        ])

        result = discover(1000, session_factory=lambda: session)

        assert result == DiscoveryResult("10.0.0.5", 4123)
        assert session.browsed == [SERVICE_TYPE]
        assert session.shutdown_calls == 1

    def test_falls_back_to_hostname(self):
        """Test falls back to hostname."""
        session = ScriptedSession([resolved(addresses=[], hostname="scoreboard.local")])

        result = discover(1000, session_factory=lambda: session)

        assert result == DiscoveryResult("scoreboard.local", 4123)

    def test_first_resolved_wins(self):
        """Test first resolved wins."""
        session = ScriptedSession([
            resolved(addresses=["10.0.0.7"], port=5000, name="second-core"),
            resolved(addresses=["10.0.0.5"], port=4123),
        ])

        result = discover(1000, session_factory=lambda: session)

        assert result == DiscoveryResult("10.0.0.7", 5000)
        # The second event is left unconsumed
        assert session.receiver.recv_timeout(0) == session.events[1]

    def test_ignores_other_events(self):
        """Test ignores other events."""
        session = ScriptedSession([
            ServiceRemoved("old-core"),
            ServiceFound("clubscore-lan"),
            resolved(addresses=["10.0.0.5"]),
        ])

        result = discover(1000, session_factory=lambda: session)

        assert result == DiscoveryResult("10.0.0.5", 4123)

    def test_no_responder_returns_none(self):
        """Test no responder returns none."""
        session = ScriptedSession([SearchStarted(SERVICE_TYPE)])

        start = time.monotonic()
        result = discover(100, session_factory=lambda: session)
        elapsed = time.monotonic() - start

        assert result is None
        assert elapsed >= 0.09
        assert elapsed < 0.1 + 0.3 + 0.2
        assert session.shutdown_calls == 1

    def test_returns_within_one_poll_slice_of_deadline(self):
        """Test returns within one poll slice of deadline."""
        start = time.monotonic()
        result = discover(
            250, poll_interval_ms=300, session_factory=lambda: ScriptedSession()
        )
        elapsed = time.monotonic() - start

        assert result is None
        assert elapsed < 0.25 + 0.3 + 0.2

    def test_zero_timeout(self):
        """Test a zero timeout returns None without reading events."""
        session = ScriptedSession([resolved(addresses=["10.0.0.5"])])

        assert discover(0, session_factory=lambda: session) is None
        assert session.shutdown_calls == 1

    def test_event_after_deadline_is_not_used(self):
        """Test event after deadline is not used."""
        session = ScriptedSession()

        def late_answer():
            time.sleep(0.4)
            session.receiver.send(resolved(addresses=["10.0.0.5"]))

        def factory():
            threading.Thread(target=late_answer, daemon=True).start()
            return session

        assert discover(100, session_factory=factory) is None

    def test_event_during_wait_is_used(self):
        """Test event during wait is used."""
        session = ScriptedSession()

        def factory():
            timer = threading.Timer(
                0.05, lambda: session.receiver.send(resolved(addresses=["10.0.0.5"]))
            )
            timer.daemon = True
            timer.start()
            return session

        result = discover(2000, session_factory=factory)

        assert result == DiscoveryResult("10.0.0.5", 4123)

    def test_default_timeout(self):
        """Test default timeout."""
        session = ScriptedSession([resolved(addresses=["10.0.0.5"])])

        assert discover(session_factory=lambda: session) == DiscoveryResult("10.0.0.5", 4123)

    def test_custom_service_type(self):
        """Test custom service type."""
        session = ScriptedSession([resolved(addresses=["10.0.0.5"])])

        discover(500, service_type="_other._tcp.local.", session_factory=lambda: session)

        assert session.browsed == ["_other._tcp.local."]


class TestDiscoverErrors:
    """Tests for failure paths of discover()."""

    def test_session_init_failure(self):
        """Test session init failure."""
        def factory():
            raise OSError("no usable interface")

        with pytest.raises(SessionInitError, match="no usable interface"):
            discover(1000, session_factory=factory)

    def test_session_init_error_passes_through(self):
        """Test session init error passes through."""
        error = SessionInitError("networking disabled")

        def factory():
            raise error

        with pytest.raises(SessionInitError) as exc_info:
            discover(1000, session_factory=factory)
        assert exc_info.value is error

    def test_browse_failure_releases_session(self):
        """Test browse failure releases session."""
        session = ScriptedSession(browse_error=RuntimeError("query rejected"))

        with pytest.raises(BrowseError, match="query rejected"):
            discover(1000, session_factory=lambda: session)

        assert session.shutdown_calls == 1
        assert session.closed

    def test_browse_error_passes_through(self):
        """Test browse error passes through."""
        session = ScriptedSession(browse_error=BrowseError("bad type"))

        with pytest.raises(BrowseError, match="bad type"):
            discover(1000, session_factory=lambda: session)
        assert session.shutdown_calls == 1

    def test_shutdown_failure_is_ignored(self):
        """Test shutdown failure is ignored."""
        session = ScriptedSession(
            [resolved(addresses=["10.0.0.5"])],
            shutdown_error=OSError("socket already closed"),
        )

        result = discover(1000, session_factory=lambda: session)

        assert result == DiscoveryResult("10.0.0.5", 4123)
        assert session.shutdown_calls == 1

    @pytest.mark.parametrize("timeout_ms", [-1, "100", 1.5, True])
    def test_invalid_timeout(self, timeout_ms):
        """Test invalid timeout."""
        calls = []

        def factory():
            calls.append(1)
            return ScriptedSession()

        with pytest.raises(ValueError):
            discover(timeout_ms, session_factory=factory)
        assert calls == []


class TestDiscoverIsolation:
    """Independent calls must not share state."""

    def test_repeated_calls_never_return_stale_result(self):
        """Test repeated calls never return stale result."""
        first = ScriptedSession([resolved(addresses=["10.0.0.5"])])
        assert discover(200, session_factory=lambda: first) is not None

        for _ in range(3):
            assert discover(50, session_factory=ScriptedSession) is None

    def test_concurrent_calls_are_independent(self):
        """Test concurrent calls are independent."""
        answering = ScriptedSession([resolved(addresses=["10.0.0.5"])])
        silent = ScriptedSession()

        with ThreadPoolExecutor(max_workers=2) as pool:
            found = pool.submit(discover, 500, session_factory=lambda: answering)
            missing = pool.submit(discover, 200, session_factory=lambda: silent)

            assert found.result() == DiscoveryResult("10.0.0.5", 4123)
            assert missing.result() is None

        assert answering.shutdown_calls == 1
        assert silent.shutdown_calls == 1


class TestDiscoveryResult:
    """Tests for DiscoveryResult helpers."""

    def test_base_url_ipv4(self):
        """Test base url ipv4."""
        assert DiscoveryResult("10.0.0.5", 7310).base_url == "http://10.0.0.5:7310"

    def test_base_url_hostname(self):
        """Test base url hostname."""
        result = DiscoveryResult("scoreboard.local", 7310)
        assert result.base_url == "http://scoreboard.local:7310"

    def test_base_url_ipv6(self):
        """Test base url ipv6."""
        result = DiscoveryResult("fe80::1%eth0", 7310)
        assert result.base_url == "http://[fe80::1%eth0]:7310"

    def test_to_dict(self):
        """Test serializing a DiscoveryResult to a dict."""
        assert DiscoveryResult("10.0.0.5", 4123).to_dict() == {
            "host": "10.0.0.5",
            "port": 4123,
            "url": "http://10.0.0.5:4123",
        }
