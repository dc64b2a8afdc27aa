"""
Listener registry for live query events.

Each live query owns one dispatcher. Listeners are grouped by event kind
and invoked newest first; the ``any`` listeners run after the
event-specific ones.
"""

import logging
from typing import Any, Callable, Dict, List, Union

from .events import EventKind

logger = logging.getLogger(__name__)

Listener = Callable[[EventKind, Any], Any]
Unsubscribe = Callable[[], bool]


class EventDispatcher:
    """
    Registry and executor for live query listeners.

    A listener that raises aborts the remaining listeners of that dispatch
    pass; the exception is logged and re-raised to the caller.
    """

    def __init__(self):
        self._listeners: Dict[EventKind, List[Listener]] = {
            kind: [] for kind in EventKind
        }

    def on(self, kind: Union[EventKind, str], listener: Listener) -> Unsubscribe:
        """
        Register a listener.

        Args:
            kind: Event kind or its wire name.
            listener: Called as ``listener(kind, payload)``.

        Returns:
            A callable removing the listener. It returns True when the
            listener was removed and False on any later call.
        """
        kind = EventKind(kind)
        # Wrapped so that registering the same function twice yields two entries
        entry = _Entry(listener)
        self._listeners[kind].append(entry)

        def unsubscribe() -> bool:
            listeners = self._listeners[kind]
            for i, candidate in enumerate(listeners):
                if candidate is entry:
                    del listeners[i]
                    return True
            return False

        return unsubscribe

    def dispatch(self, kind: Union[EventKind, str], payload: Any = None) -> None:
        """Invoke listeners for ``kind``, then the ``any`` listeners."""
        kind = EventKind(kind)
        logger.debug(f"Dispatching '{kind.value}' with payload {payload!r}")

        self._invoke(self._listeners[kind], kind, payload)
        if kind != EventKind.ANY:
            self._invoke(self._listeners[EventKind.ANY], kind, payload)

    def _invoke(self, listeners: List[Listener], kind: EventKind, payload: Any) -> None:
        # Snapshot, listeners may unsubscribe while being called
        for listener in reversed(list(listeners)):
            try:
                listener(kind, payload)
            except Exception as exc:
                logger.error(
                    f"Listener {listener!r} failed on '{kind.value}': {exc}",
                    exc_info=True,
                )
                raise

    def listener_count(self, kind: Union[EventKind, str]) -> int:
        return len(self._listeners[EventKind(kind)])

    def clear(self) -> None:
        """Remove all listeners."""
        for kind in EventKind:
            self._listeners[kind] = []


class _Entry:
    """Identity-carrying wrapper around a registered listener."""

    __slots__ = ("callback",)

    def __init__(self, callback: Listener):
        self.callback = callback

    def __call__(self, kind: EventKind, payload: Any) -> Any:
        return self.callback(kind, payload)

    def __repr__(self) -> str:
        return getattr(self.callback, "__name__", repr(self.callback))


__all__ = [
    "EventDispatcher",
    "Listener",
    "Unsubscribe",
]
