"""
Transport collaborator interface.

The live query engine never talks to a socket directly. It consumes an
RPC-capable transport that can call remote methods, report connection
lifecycle signals, and expose this client's push handlers to the peer.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, Dict


class TransportSignal(str, Enum):
    """Connection lifecycle signals emitted by the transport."""
    DISCONNECT = "disconnect"
    RECONNECT = "reconnect"
    AUTH_SUCCESS = "authSuccess"


PushHandler = Callable[..., Awaitable[Any]]


class Transport(ABC):
    """Interface for the RPC channel to the remote peer."""

    @abstractmethod
    def call(self, method: str, *args: Any) -> Awaitable[Any]:
        """Invoke a remote method. The awaitable resolves with its result."""
        pass

    @abstractmethod
    def on(self, signal: str, handler: Callable[[], Any]) -> None:
        """Register a handler for a connection lifecycle signal."""
        pass

    @abstractmethod
    def off(self, signal: str, handler: Callable[[], Any]) -> None:
        """Remove a handler registered with ``on``. Unknown handlers are ignored."""
        pass

    @abstractmethod
    def expose_handlers(self, mapping: Dict[str, Any]) -> None:
        """Make nested push handlers callable by the remote peer."""
        pass


__all__ = [
    "Transport",
    "TransportSignal",
    "PushHandler",
]
