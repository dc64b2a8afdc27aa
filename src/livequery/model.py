"""
Model facade.

A Model groups the remote methods of one server-side collection: direct
CRUD calls, one-shot queries and live queries. It also owns the push
handler table the remote peer uses to deliver live query events, and the
registry those events are routed through.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Dict, Optional, Union

from .errors import UnknownSubscriptionError
from .events import PUSH_EVENT_KINDS, EventKind, parse_push_event
from .live_query import LiveQuery
from .query.chainable import ChainableLiveQuery, ChainableQuery
from .query.descriptor import QueryBuilder
from .registry import LiveQueryRegistry
from .transport import PushHandler

if TYPE_CHECKING:
    from .client import LiveQueryClient

logger = logging.getLogger(__name__)


class Model:
    """
    Client-side facade of one remote model.

    Usage:
        todos = client.model("todo")
        await todos.create({"title": "write tests"})
        lq = todos.live_query().find({"done": False}).exec()
        await lq.wait_synced()
    """

    def __init__(self, client: "LiveQueryClient", name: str):
        self.client = client
        self.name = name
        self.registry = LiveQueryRegistry(name)
        self.push_handlers: Dict[str, PushHandler] = {
            kind.value: self._make_push_handler(kind) for kind in PUSH_EVENT_KINDS
        }

    def rpc_name(self, method: str) -> str:
        return f"{self.client.namespace}.{self.name}.{method}"

    def call(self, method: str, *args: Any) -> Awaitable[Any]:
        """Call ``<namespace>.<model>.<method>`` on the remote peer."""
        return self.client.transport.call(self.rpc_name(method), *args)

    # ------------------------------------------------------------------
    # Direct calls
    # ------------------------------------------------------------------

    def save(self, doc: Dict[str, Any]) -> Awaitable[Any]:
        return self.call("save", doc)

    def update(self, query: Dict[str, Any], expression: Dict[str, Any]) -> Awaitable[Any]:
        """
        Update one document.

        Update options are not accepted, a single call never edits
        multiple documents.
        """
        return self.call("update", query, expression)

    def create(self, doc: Dict[str, Any]) -> Awaitable[Any]:
        return self.call("create", doc)

    def remove(self, doc: Dict[str, Any]) -> Awaitable[Any]:
        """Remove a document. Only its ``_id`` is sent."""
        return self.call("remove", doc["_id"])

    def list_paths(self) -> Awaitable[Any]:
        """Property paths defined in the model's schema."""
        return self.call("listPaths")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query(self) -> ChainableQuery:
        return ChainableQuery(self)

    def live_query(
        self,
        previous: Optional[Union[LiveQuery, ChainableLiveQuery]] = None,
    ) -> ChainableLiveQuery:
        """
        Start a live query.

        Args:
            previous: A running live query to rebuild. It is stopped first
                and its operations become the starting point of the new one.

        Raises:
            StopBeforeExecutionError: ``previous`` was never executed.
        """
        if previous is None:
            return ChainableLiveQuery(self)

        previous.stop()
        if isinstance(previous, ChainableLiveQuery):
            operations = previous.builder.operations
        else:
            operations = previous.descriptor.operations
        return ChainableLiveQuery(self, QueryBuilder(operations))

    # ------------------------------------------------------------------
    # Push events
    # ------------------------------------------------------------------

    def _make_push_handler(self, kind: EventKind) -> PushHandler:
        async def handler(lq_id: int, *payload: Any) -> Any:
            return await self.handle_push(kind, lq_id, *payload)

        handler.__name__ = f"on_{kind.value}"
        return handler

    async def handle_push(self, kind: Union[EventKind, str], lq_id: int, *payload: Any) -> Any:
        """
        Route one push event to its live query.

        Waits for the target's pending synchronization so the event is
        applied on top of the seeded cache. Events for one live query are
        applied one at a time, in the order the handlers were entered.

        Returns:
            The result of ``LiveQuery.apply``, None when the event was dropped.
        """
        kind = EventKind(kind)
        lq = self.registry.get(lq_id)
        if lq is None:
            logger.warning(
                f"Dropping '{kind.value}': {UnknownSubscriptionError(self.name, lq_id)}"
            )
            return None

        event = parse_push_event(kind, *payload)

        async with lq.push_lock:
            if lq.promise is not None:
                try:
                    await asyncio.shield(lq.promise)
                except Exception as exc:
                    logger.warning(
                        f"Dropping '{kind.value}' for live query {lq_id}, "
                        f"synchronization failed: {exc}"
                    )
                    return None

            return lq.apply(event)

    def __repr__(self) -> str:
        return f"Model({self.name!r}, live_queries={len(self.registry)})"


__all__ = [
    "Model",
]
