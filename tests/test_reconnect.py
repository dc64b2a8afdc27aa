"""
Tests for reconnection replay.

Tests cover:
- Replay policy selection
- Anonymous replay on reconnect
- Authenticated replay on re-authentication
- Stopped live queries never replay
"""

import pytest

from livequery import ReconnectPolicy, SessionKind, TransportSignal

LIVE = "MR.todo.liveQuery"


class TestReconnectPolicy:
    """Tests for ReconnectPolicy."""

    def test_anonymous_replays_on_reconnect(self):
        policy = ReconnectPolicy.for_session(authenticated=False)

        assert policy.session == SessionKind.ANONYMOUS
        assert policy.replay_signal == TransportSignal.RECONNECT

    def test_authenticated_replays_on_auth_success(self):
        policy = ReconnectPolicy.for_session(authenticated=True)

        assert policy.session == SessionKind.AUTHENTICATED
        assert policy.replay_signal == TransportSignal.AUTH_SUCCESS

    def test_bind_registers_handlers(self, transport):
        policy = ReconnectPolicy(SessionKind.ANONYMOUS)
        on_disconnect = lambda: None  # noqa: E731
        on_replay = lambda: None  # noqa: E731

        policy.bind(transport, on_disconnect, on_replay)

        assert transport.signal_handlers["disconnect"] == [on_disconnect]
        assert transport.signal_handlers["reconnect"] == [on_replay]

    def test_unbind_removes_handlers(self, transport):
        policy = ReconnectPolicy(SessionKind.AUTHENTICATED)
        on_disconnect = lambda: None  # noqa: E731
        on_replay = lambda: None  # noqa: E731
        policy.bind(transport, on_disconnect, on_replay)

        policy.unbind(transport, on_disconnect, on_replay)

        assert "disconnect" not in transport.signal_handlers
        assert "authSuccess" not in transport.signal_handlers


class TestReplay:
    """Tests for live query replay after reconnection."""

    @pytest.mark.asyncio
    async def test_disconnect_marks_stopped(self, model, transport):
        transport.respond(LIVE, {"docs": [{"_id": 1}]})
        lq = await model.live_query().find()

        transport.fire("disconnect")

        assert lq.stopped
        assert not lq.live

    @pytest.mark.asyncio
    async def test_anonymous_replay_on_reconnect(self, model, transport):
        responses = iter([{"docs": [{"_id": 1}]}, {"docs": [{"_id": 2}, {"_id": 3}]}])
        transport.respond(LIVE, lambda *args: next(responses))
        lq = await model.live_query().find()
        docs = lq.docs

        transport.fire("disconnect")
        transport.fire("reconnect")
        await lq.wait_synced()

        calls = transport.calls_to(LIVE)
        assert len(calls) == 2
        assert calls[1].args[1] == lq.id
        assert lq.docs is docs
        assert [d["_id"] for d in lq.docs] == [2, 3]
        assert lq.count == 2
        assert not lq.stopped
        assert lq.live

    @pytest.mark.asyncio
    async def test_replay_reseeds_count_from_zero(self, model, transport):
        transport.respond(LIVE, {"count": 3})
        lq = await model.live_query().count()

        transport.fire("reconnect")
        await lq.wait_synced()

        assert lq.count == 3

    @pytest.mark.asyncio
    async def test_authenticated_waits_for_auth_success(self, client, model, transport):
        transport.respond("MR.authorize", {"name": "ann"})
        transport.respond(LIVE, {"docs": []})
        await client.authorize("token")
        lq = await model.live_query().find()

        transport.fire("disconnect")
        transport.fire("reconnect")
        assert len(transport.calls_to(LIVE)) == 1
        assert lq.stopped

        transport.fire("authSuccess")
        await lq.wait_synced()

        assert len(transport.calls_to(LIVE)) == 2
        assert lq.live

    @pytest.mark.asyncio
    async def test_policy_fixed_at_creation(self, client, model, transport):
        """Authorizing later does not change how an earlier query replays."""
        transport.respond("MR.authorize", {"name": "ann"})
        transport.respond(LIVE, {"docs": []})
        lq = await model.live_query().find()
        await client.authorize("token")

        assert lq.policy.session == SessionKind.ANONYMOUS

    @pytest.mark.asyncio
    async def test_stopped_query_does_not_replay(self, model, transport):
        transport.respond(LIVE, {"docs": []})
        transport.respond("MR.todo.unsubLQ", True)
        lq = await model.live_query().find()
        await lq.stop()

        assert transport.fire("reconnect") == []
        assert len(transport.calls_to(LIVE)) == 1

    @pytest.mark.asyncio
    async def test_stop_releases_transport_handlers(self, model, transport):
        """Stopped live queries leave nothing registered on the transport."""
        transport.respond(LIVE, {"docs": []})
        transport.respond("MR.todo.unsubLQ", True)
        first = await model.live_query().find()
        second = await model.live_query().count()
        assert len(transport.signal_handlers["disconnect"]) == 2

        await first.stop()
        assert transport.signal_handlers["disconnect"] == [second._on_disconnect]
        assert transport.signal_handlers["reconnect"] == [second._on_replay]

        await second.stop()
        assert "disconnect" not in transport.signal_handlers
        assert "reconnect" not in transport.signal_handlers

    @pytest.mark.asyncio
    async def test_replayed_query_is_reused(self, model, transport):
        """After replay the descriptor resolves to the resumed query again."""
        transport.respond(LIVE, {"docs": []})
        lq = await model.live_query().find()

        transport.fire("disconnect")
        transport.fire("reconnect")
        await lq.wait_synced()

        assert model.live_query().find().exec() is lq

    @pytest.mark.asyncio
    async def test_lookup_while_disconnected_creates_new_query(self, model, transport):
        transport.respond(LIVE, {"docs": []})
        lq = await model.live_query().find()

        transport.fire("disconnect")
        fresh = model.live_query().find().exec()

        assert fresh is not lq
        assert fresh.id == 2
