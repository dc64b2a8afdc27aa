"""
Reconnection replay policy.

A live query created by an anonymous session is replayed as soon as the
transport reconnects. One created by an authenticated session waits for
the transport to confirm re-authentication, otherwise the replayed query
would run without the identity it was created under.
"""

import logging
from enum import Enum
from typing import Any, Callable

from .transport import Transport, TransportSignal

logger = logging.getLogger(__name__)


class SessionKind(Enum):
    """Identity of the session a live query was created in."""
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


class ReconnectPolicy:
    """Decides which transport signal triggers a live query replay."""

    def __init__(self, session: SessionKind = SessionKind.ANONYMOUS):
        self.session = session

    @classmethod
    def for_session(cls, authenticated: bool) -> "ReconnectPolicy":
        return cls(SessionKind.AUTHENTICATED if authenticated else SessionKind.ANONYMOUS)

    @property
    def replay_signal(self) -> TransportSignal:
        if self.session == SessionKind.AUTHENTICATED:
            return TransportSignal.AUTH_SUCCESS
        return TransportSignal.RECONNECT

    def bind(
        self,
        transport: Transport,
        on_disconnect: Callable[[], Any],
        on_replay: Callable[[], Any],
    ) -> None:
        """Register the disconnect and replay handlers on the transport."""
        transport.on(TransportSignal.DISCONNECT.value, on_disconnect)
        transport.on(self.replay_signal.value, on_replay)
        logger.debug(
            f"Bound replay to '{self.replay_signal.value}' "
            f"({self.session.value} session)"
        )

    def unbind(
        self,
        transport: Transport,
        on_disconnect: Callable[[], Any],
        on_replay: Callable[[], Any],
    ) -> None:
        """Remove the handlers registered by ``bind``."""
        transport.off(TransportSignal.DISCONNECT.value, on_disconnect)
        transport.off(self.replay_signal.value, on_replay)

    def __repr__(self) -> str:
        return f"ReconnectPolicy({self.session.value})"


__all__ = [
    "SessionKind",
    "ReconnectPolicy",
]
