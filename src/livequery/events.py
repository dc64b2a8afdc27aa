"""
Inbound live query events.

The remote peer pushes four kinds of events, each addressed to a
subscription id. They are decoded into a closed set of typed events so the
synchronization engine can dispatch them with a single ``match``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple, Union


class EventKind(str, Enum):
    """Event names, shared by the wire protocol and listener registration."""
    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"
    DISTINCT_SYNC = "distinctSync"

    # Local only, never pushed by the peer
    INIT = "init"
    ANY = "any"


PUSH_EVENT_KINDS = (
    EventKind.ADD,
    EventKind.UPDATE,
    EventKind.REMOVE,
    EventKind.DISTINCT_SYNC,
)


def is_position(value: Any) -> bool:
    """True for a usable list position. Booleans are flags, not positions."""
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class AddEvent:
    """A document entered the result set, at ``index`` when known."""
    doc: Dict[str, Any]
    index: Any = None
    kind: EventKind = field(default=EventKind.ADD, init=False)


@dataclass(frozen=True)
class UpdateEvent:
    """
    A document changed.

    ``result_index`` is the new position in the result, ``False`` when the
    document left the result, and for count queries only a sign
    (``-1`` decrements, anything else increments).
    """
    doc: Dict[str, Any]
    result_index: Any = None
    kind: EventKind = field(default=EventKind.UPDATE, init=False)


@dataclass(frozen=True)
class RemoveEvent:
    """A document was deleted."""
    doc_id: Any
    kind: EventKind = field(default=EventKind.REMOVE, init=False)


@dataclass(frozen=True)
class DistinctSyncEvent:
    """Delta for a distinct value set."""
    add: Tuple[Any, ...] = ()
    remove: Tuple[Any, ...] = ()
    kind: EventKind = field(default=EventKind.DISTINCT_SYNC, init=False)


LiveQueryEvent = Union[AddEvent, UpdateEvent, RemoveEvent, DistinctSyncEvent]


def parse_push_event(kind: Union[EventKind, str], *args: Any) -> LiveQueryEvent:
    """
    Build a typed event from wire arguments (without the subscription id).

    Raises:
        ValueError: Unknown event kind or missing payload.
    """
    kind = EventKind(kind)
    if kind not in PUSH_EVENT_KINDS:
        raise ValueError(f"'{kind.value}' is not a push event")
    if not args:
        raise ValueError(f"'{kind.value}' event without payload")

    if kind == EventKind.ADD:
        return AddEvent(doc=args[0], index=args[1] if len(args) > 1 else None)
    if kind == EventKind.UPDATE:
        return UpdateEvent(doc=args[0], result_index=args[1] if len(args) > 1 else None)
    if kind == EventKind.REMOVE:
        return RemoveEvent(doc_id=args[0])

    delta = args[0] or {}
    return DistinctSyncEvent(
        add=tuple(delta.get("add") or ()),
        remove=tuple(delta.get("remove") or ()),
    )


__all__ = [
    "EventKind",
    "PUSH_EVENT_KINDS",
    "AddEvent",
    "UpdateEvent",
    "RemoveEvent",
    "DistinctSyncEvent",
    "LiveQueryEvent",
    "parse_push_event",
    "is_position",
]
