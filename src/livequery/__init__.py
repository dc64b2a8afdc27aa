"""
Live query client.

Keeps local mirrors of remote query results current through push events
instead of re-fetching them.

Components:
- query: immutable query descriptors and their mode flags
- events: typed push events (add, update, remove, distinctSync)
- dispatcher: per live query listener registry
- live_query: the synchronization engine
- registry: per-model id and descriptor index
- reconnect: replay policy after a transport reconnect
- model / client: facades used by application code
"""

from .client import LiveQueryClient
from .dispatcher import EventDispatcher
from .errors import (
    ConfigurationError,
    LiveQueryError,
    StopBeforeExecutionError,
    UnknownSubscriptionError,
)
from .events import (
    AddEvent,
    DistinctSyncEvent,
    EventKind,
    RemoveEvent,
    UpdateEvent,
    parse_push_event,
)
from .live_query import LiveQuery
from .model import Model
from .query import ModeFlags, QueryBuilder, QueryDescriptor, QueryMode, QueryOperation
from .query.chainable import ChainableLiveQuery, ChainableQuery
from .reconnect import ReconnectPolicy, SessionKind
from .registry import LiveQueryRegistry
from .transport import Transport, TransportSignal

__version__ = "0.1.0"

__all__ = [
    # Client
    "LiveQueryClient",
    "Model",
    "Transport",
    "TransportSignal",
    # Queries
    "QueryBuilder",
    "QueryDescriptor",
    "QueryOperation",
    "ModeFlags",
    "QueryMode",
    "ChainableQuery",
    "ChainableLiveQuery",
    # Engine
    "LiveQuery",
    "LiveQueryRegistry",
    "EventDispatcher",
    "ReconnectPolicy",
    "SessionKind",
    # Events
    "EventKind",
    "AddEvent",
    "UpdateEvent",
    "RemoveEvent",
    "DistinctSyncEvent",
    "parse_push_event",
    # Errors
    "LiveQueryError",
    "ConfigurationError",
    "StopBeforeExecutionError",
    "UnknownSubscriptionError",
]
