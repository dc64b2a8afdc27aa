"""Tests for LiveQueryRegistry."""

from types import SimpleNamespace

from livequery import LiveQueryRegistry


def factory(key):
    def _create(lq_id):
        return SimpleNamespace(id=lq_id, key=key, stopped=False)
    return _create


class TestLiveQueryRegistry:
    """Tests for id assignment, dedup and eviction."""

    def test_ids_start_at_one(self):
        registry = LiveQueryRegistry("todo")

        lq, created = registry.claim("q1", factory("q1"))

        assert created
        assert lq.id == 1
        assert registry.get(1) is lq
        assert registry.last_id == 1

    def test_identical_descriptor_is_reused(self):
        registry = LiveQueryRegistry("todo")

        first, _ = registry.claim("q1", factory("q1"))
        second, created = registry.claim("q1", factory("q1"))

        assert second is first
        assert not created
        assert len(registry) == 1

    def test_ids_are_never_reused(self):
        registry = LiveQueryRegistry("todo")

        first, _ = registry.claim("q1", factory("q1"))
        registry.discard(first.id)
        second, _ = registry.claim("q1", factory("q1"))

        assert second.id == 2
        assert 1 not in registry

    def test_stopped_entry_is_evicted_on_lookup(self):
        """A stopped entry is treated as absent, yet stays routable by id."""
        registry = LiveQueryRegistry("todo")
        first, _ = registry.claim("q1", factory("q1"))
        first.stopped = True

        assert registry.find_by_descriptor("q1") is None
        assert registry.get(first.id) is first

        second, created = registry.claim("q1", factory("q1"))
        assert created
        assert second.id == 2

    def test_discard_keeps_newer_descriptor_entry(self):
        """Discarding an old id does not drop the entry that replaced it."""
        registry = LiveQueryRegistry("todo")
        old, _ = registry.claim("q1", factory("q1"))
        old.stopped = True
        new, _ = registry.claim("q1", factory("q1"))

        assert registry.discard(old.id)
        assert registry.find_by_descriptor("q1") is new

    def test_discard_unknown_id(self):
        registry = LiveQueryRegistry("todo")
        assert registry.discard(7) is False

    def test_reinstate_after_resume(self):
        registry = LiveQueryRegistry("todo")
        lq, _ = registry.claim("q1", factory("q1"))
        lq.stopped = True
        assert registry.find_by_descriptor("q1") is None

        lq.stopped = False
        assert registry.reinstate(lq.id)
        assert registry.find_by_descriptor("q1") is lq

    def test_reinstate_refused_when_claimed_by_other(self):
        registry = LiveQueryRegistry("todo")
        old, _ = registry.claim("q1", factory("q1"))
        old.stopped = True
        new, _ = registry.claim("q1", factory("q1"))

        old.stopped = False
        assert not registry.reinstate(old.id)
        assert registry.find_by_descriptor("q1") is new

    def test_ids_listing(self):
        registry = LiveQueryRegistry("todo")
        registry.claim("q1", factory("q1"))
        registry.claim("q2", factory("q2"))

        assert registry.ids() == [1, 2]
