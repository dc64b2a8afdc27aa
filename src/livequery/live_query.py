"""
Live query synchronization engine.

A LiveQuery mirrors one server-side query result. It is seeded by the
initial ``liveQuery`` response and then kept current by push events
(add, update, remove, distinctSync), applied one at a time in arrival
order. Depending on the query's mode only one part of the cache is
authoritative:

- normal / findOne: ``docs`` (``count`` is derived from it)
- count: ``count``
- distinct: ``values``

Cached documents are mutated in place on update, so code holding a
reference to a document observes the change instead of a replacement.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from .dispatcher import EventDispatcher, Listener, Unsubscribe
from .errors import StopBeforeExecutionError
from .events import (
    AddEvent,
    DistinctSyncEvent,
    EventKind,
    LiveQueryEvent,
    RemoveEvent,
    UpdateEvent,
    is_position,
)
from .query.descriptor import ModeFlags, QueryDescriptor, QueryMode
from .reconnect import ReconnectPolicy

if TYPE_CHECKING:
    from .model import Model

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


def _is_excluded(result_index: Any) -> bool:
    """False and negative positions mean the document is not in the result."""
    return result_index is False or (is_position(result_index) and result_index < 0)


class LiveQuery:
    """
    Client-held, server-synchronized mirror of one query's result set.

    Attributes:
        id: Subscription id, unique per model and never reused.
        descriptor: Finalized query descriptor.
        flags: Validated mode flags of the descriptor.
        docs: Cached documents (normal and findOne modes).
        count: Result cardinality.
        values: Distinct values (distinct mode).
        stopped: True after stop() or while disconnected.
        live: True while the subscription is known to be active.
        promise: Future of the current (re)synchronization.
    """

    def __init__(
        self,
        model: "Model",
        lq_id: int,
        descriptor: QueryDescriptor,
        flags: ModeFlags,
    ):
        self.model = model
        self.id = lq_id
        self.descriptor = descriptor
        self.flags = flags
        self.key = descriptor.serialize()

        self.docs: List[Document] = []
        self.count = 0
        self.values: List[Any] = []
        self.stopped = False
        self.live = False

        self.promise: Optional[asyncio.Future] = None
        self.policy: Optional[ReconnectPolicy] = None
        self.dispatcher = EventDispatcher()
        # Held while a push event waits for the sync and is applied
        self.push_lock = asyncio.Lock()

        self._bound = False
        self._unsubscribing = False
        self._unsubscribe_future: Optional[asyncio.Future] = None

    @property
    def mode(self) -> QueryMode:
        return self.flags.mode

    @property
    def doc(self) -> Optional[Document]:
        """First cached document, the result of a findOne query."""
        return self.docs[0] if self.docs else None

    def on(self, kind: Union[EventKind, str], listener: Listener) -> Unsubscribe:
        """Register a listener, see ``EventDispatcher.on``."""
        return self.dispatcher.on(kind, listener)

    def get_doc_by_id(self, doc_id: Any) -> Optional[Document]:
        i = self._index_of(doc_id)
        return self.docs[i] if i != -1 else None

    def _index_of(self, doc_id: Any) -> int:
        i = len(self.docs)
        while i:
            i -= 1
            if self.docs[i].get("_id") == doc_id:
                return i
        return -1

    def _recount(self) -> None:
        if self.mode != QueryMode.COUNT:
            self.count = len(self.docs)

    def _insert(self, doc: Document, position: Any) -> None:
        """Insert at an occupied position or append, then trim to the window."""
        if is_position(position) and 0 <= position < len(self.docs):
            self.docs.insert(position, doc)
        else:
            self.docs.append(doc)

        window = self.flags.window
        if window is not None and len(self.docs) > window:
            self.docs.pop()

    # ------------------------------------------------------------------
    # Event application
    # ------------------------------------------------------------------

    def apply(self, event: LiveQueryEvent) -> Any:
        """
        Apply one inbound event to the cache, then notify listeners.

        Returns:
            The handler result; for remove events True when a document was
            removed and False when it was not cached.
        """
        match event:
            case AddEvent(doc=doc, index=index):
                result = self._on_add(doc, index)
            case UpdateEvent(doc=doc, result_index=result_index):
                result = self._on_update(doc, result_index)
            case RemoveEvent(doc_id=doc_id):
                result = self._on_remove(doc_id)
            case DistinctSyncEvent(add=add, remove=remove):
                result = self._on_distinct_sync(add, remove)
            case _:
                raise TypeError(f"Unsupported live query event: {event!r}")

        self.dispatcher.dispatch(event.kind, event)
        return result

    def _on_add(self, doc: Document, index: Any) -> None:
        mode = self.mode
        if mode == QueryMode.DISTINCT:
            logger.debug(f"LQ {self.id}: add ignored in distinct mode")
            return
        if mode == QueryMode.COUNT:
            self.count += 1
            return

        if mode == QueryMode.FIND_ONE:
            self.docs[:] = [doc]
        else:
            self._insert(doc, index)
        self._recount()

    def _on_update(self, doc: Document, result_index: Any) -> None:
        logger.debug(f"LQ {self.id}: update {doc!r} at {result_index!r}")
        mode = self.mode
        if mode == QueryMode.DISTINCT:
            logger.debug(f"LQ {self.id}: update ignored in distinct mode")
            return
        if mode == QueryMode.COUNT:
            # result_index is only a sign here
            if is_position(result_index) and result_index == -1:
                self.count -= 1
            else:
                self.count += 1
            return

        i = self._index_of(doc.get("_id"))
        if i == -1:
            if _is_excluded(result_index):
                logger.debug(f"LQ {self.id}: updated doc {doc.get('_id')!r} is not in result")
            else:
                self._insert(doc, result_index)
        elif _is_excluded(result_index):
            del self.docs[i]
        elif not is_position(result_index) or result_index == i:
            self.docs[i].update(doc)
        else:
            # result_index is the position once the old slot is gone
            cached = self.docs.pop(i)
            cached.update(doc)
            if result_index < len(self.docs):
                self.docs.insert(result_index, cached)
            else:
                self.docs.append(cached)

        self._recount()

    def _on_remove(self, doc_id: Any) -> bool:
        mode = self.mode
        if mode == QueryMode.COUNT:
            self.count -= 1
            return True
        if mode == QueryMode.DISTINCT:
            logger.debug(f"LQ {self.id}: remove ignored in distinct mode")
            return False

        i = self._index_of(doc_id)
        if i == -1:
            logger.debug(f"LQ {self.id}: failed to find deleted document {doc_id!r}")
            return False

        del self.docs[i]
        self._recount()
        return True

    def _on_distinct_sync(self, add: Any, remove: Any) -> None:
        values = list(self.values)
        for value in add:
            if value not in values:
                values.append(value)
        self.values[:] = [value for value in values if value not in remove]
        logger.debug(f"LQ {self.id}: distinctSync has run, values now {self.values!r}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def execute(self) -> "LiveQuery":
        """
        Subscribe on the remote peer and seed the cache.

        Returns immediately; ``promise`` resolves with this live query once
        the initial response has been applied.
        """
        if self.policy is None:
            self.policy = ReconnectPolicy.for_session(self.model.client.authenticated)
        self.promise = self._start_sync()
        return self

    def _start_sync(self) -> asyncio.Future:
        future = asyncio.ensure_future(self._sync())
        future.add_done_callback(self._log_sync_failure)
        return future

    async def _sync(self) -> "LiveQuery":
        logger.debug(f"LQ {self.id}: subscribing on '{self.model.name}'")
        response = await self.model.call("liveQuery", self.descriptor.to_wire(), self.id)
        self._seed(response)

        if not self._unsubscribing:
            self.stopped = False
            self.live = True
            if not self._bound:
                self._bound = True
                self.policy.bind(
                    self.model.client.transport,
                    self._on_disconnect,
                    self._on_replay,
                )

        self.dispatcher.dispatch(EventKind.INIT, response)
        return self

    def _seed(self, response: Dict[str, Any]) -> None:
        mode = self.mode
        if mode == QueryMode.COUNT:
            server_count = response.get("count", 0)
            logger.debug(f"LQ {self.id}: server count is {server_count}")
            # Addition, not assignment: deltas applied before the initial
            # response arrived are already counted
            self.count += server_count
        elif mode == QueryMode.DISTINCT:
            self.values[:] = list(response.get("values") or [])
        else:
            self.docs[:] = list(response.get("docs") or [])
            self._recount()

    def _log_sync_failure(self, future: asyncio.Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning(f"LQ {self.id}: synchronization failed: {exc}")

    async def wait_synced(self) -> "LiveQuery":
        """Wait for the pending (re)synchronization to finish."""
        if self.promise is None:
            raise StopBeforeExecutionError(f"Live query {self.id} was never executed")
        return await self.promise

    def __await__(self):
        return self.wait_synced().__await__()

    def stop(self) -> asyncio.Future:
        """
        Ask the remote peer to stop sending updates.

        Local bookkeeping is dropped once the peer answers; events
        arriving before that are still applied. A failed unsubscribe is
        logged and the live query is forgotten locally all the same.
        Stopping again while the first request is pending returns the
        same future.

        Raises:
            StopBeforeExecutionError: The live query is not registered.
        """
        pending = self._unsubscribe_future
        if pending is not None and not pending.done():
            return pending

        if self.id is None or self.model.registry.get(self.id) is not self:
            raise StopBeforeExecutionError(
                "There must be a valid id property, when stop is called"
            )

        logger.info(f"Stopping live query {self.id} on '{self.model.name}'")
        self.stopped = True
        self.live = False
        self._unsubscribing = True
        self._unsubscribe_future = asyncio.ensure_future(self._unsubscribe())
        self._unsubscribe_future.add_done_callback(self._log_unsubscribe_failure)
        return self._unsubscribe_future

    async def _unsubscribe(self) -> None:
        try:
            await self.model.call("unsubLQ", self.id)
        finally:
            self.model.registry.discard(self.id)
            if self._bound:
                self._bound = False
                self.policy.unbind(
                    self.model.client.transport,
                    self._on_disconnect,
                    self._on_replay,
                )

    def _log_unsubscribe_failure(self, future: asyncio.Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning(f"LQ {self.id}: unsubscribe failed, dropped locally: {exc}")

    def _on_disconnect(self) -> None:
        if self._unsubscribing:
            return
        self.stopped = True
        self.live = False
        logger.debug(f"LQ {self.id}: transport disconnected")

    def _on_replay(self) -> Optional[asyncio.Future]:
        if self._unsubscribing or self.model.registry.get(self.id) is not self:
            return None

        logger.info(f"Replaying live query {self.id} on '{self.model.name}'")
        self.docs.clear()
        self.count = 0
        self.values.clear()
        self.promise = self._start_sync()
        self.promise.add_done_callback(self._reinstate)
        return self.promise

    def _reinstate(self, future: asyncio.Future) -> None:
        if not future.cancelled() and future.exception() is None:
            self.model.registry.reinstate(self.id)

    def __repr__(self) -> str:
        return (
            f"LiveQuery(id={self.id}, model={self.model.name!r}, "
            f"mode={self.mode.value}, stopped={self.stopped})"
        )


__all__ = [
    "LiveQuery",
    "Document",
]
