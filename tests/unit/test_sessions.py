"""Tests for the in-memory vault session registry."""
from clubvault.dependencies import SessionRegistry


class FakeClock:

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestSessionRegistry:

    def test_known_session_is_reused(self):
        registry = SessionRegistry()

        session = registry.get_or_create(None)

        assert registry.get_or_create(session.id) is session
        assert len(registry) == 1

    def test_unknown_id_gets_a_fresh_session(self):
        registry = SessionRegistry()

        session = registry.get_or_create("made-up")

        assert session.id != "made-up"
        assert len(registry) == 1

    def test_headerless_calls_stay_under_the_cap(self):
        registry = SessionRegistry(max_sessions=3)

        sessions = [registry.get_or_create(None) for _ in range(10)]

        assert len(registry) == 3
        assert registry.get_or_create(sessions[-1].id) is sessions[-1]
        assert registry.get_or_create(sessions[0].id) is not sessions[0]

    def test_recent_use_protects_from_eviction(self):
        registry = SessionRegistry(max_sessions=2)
        first = registry.get_or_create(None)
        registry.get_or_create(None)

        registry.get_or_create(first.id)
        registry.get_or_create(None)

        assert registry.get_or_create(first.id) is first

    def test_idle_sessions_expire(self):
        clock = FakeClock()
        registry = SessionRegistry(idle_timeout=60, clock=clock)
        stale = registry.get_or_create(None)
        stale.mark_shown("club-1-pro-limit")
        clock.now += 30
        active = registry.get_or_create(None)

        clock.now += 45
        registry.get_or_create(active.id)

        assert len(registry) == 1
        assert registry.get_or_create(stale.id) is not stale
        assert stale.closed

    def test_discard_and_clear(self):
        registry = SessionRegistry()
        session = registry.get_or_create(None)
        registry.get_or_create(None)

        assert registry.discard(session.id) is True
        assert session.closed
        assert registry.discard(session.id) is False
        assert registry.discard(None) is False
        registry.clear()
        assert len(registry) == 0
