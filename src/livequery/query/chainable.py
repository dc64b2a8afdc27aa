"""
Chainable query handles returned by the model facade.

Both handles accept the mongoose-style builder methods and are executed
either explicitly with ``exec()`` or by awaiting them:

    docs = await model.query().find({"done": False}).limit(5)
    lq = model.live_query().find().sort("name").exec()
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional

from ..errors import StopBeforeExecutionError
from ..live_query import LiveQuery
from .descriptor import ModeFlags, QueryBuilder, QueryDescriptor, QueryMode, QueryOperations

if TYPE_CHECKING:
    from ..model import Model

logger = logging.getLogger(__name__)


class ChainableQuery(QueryOperations):
    """
    One-shot query. ``exec()`` returns a future with the result.

    After resolution the result is also stored on the handle as ``result``
    and, depending on the mode, as ``doc``, ``values``, ``count`` or ``docs``.
    """

    def __init__(self, model: "Model", builder: Optional[QueryBuilder] = None):
        self.model = model
        self.builder = builder or QueryBuilder()
        self.promise: Optional[asyncio.Future] = None
        self.result: Any = None
        self.doc: Any = None
        self.values: Any = None
        self.count: Any = None
        self.docs: Any = None

    def _chain(self, method: str, *args: Any) -> "ChainableQuery":
        return ChainableQuery(self.model, self.builder._chain(method, *args))

    def exec(self) -> asyncio.Future:
        """
        Run the query once.

        Raises:
            ConfigurationError: Invalid descriptor, raised before any call.
        """
        descriptor, flags = self.builder.finalize()
        self.promise = asyncio.ensure_future(self._run(descriptor, flags))
        return self.promise

    async def _run(self, descriptor: QueryDescriptor, flags: ModeFlags) -> Any:
        result = await self.model.call("query", descriptor.to_wire())
        logger.debug(f"query result {result!r}")

        self.result = result
        mode = flags.mode
        if mode == QueryMode.FIND_ONE:
            self.doc = result
        elif mode == QueryMode.DISTINCT:
            self.values = result
        elif mode == QueryMode.COUNT:
            self.count = result
        else:
            self.docs = result
        return result

    def __await__(self):
        return self.exec().__await__()


class ChainableLiveQuery(QueryOperations):
    """
    Live query handle. ``exec()`` returns the LiveQuery immediately.

    Executing registers the live query with the model, or returns the
    active one already subscribed with an identical descriptor.
    """

    def __init__(self, model: "Model", builder: Optional[QueryBuilder] = None):
        self.model = model
        self.builder = builder or QueryBuilder()
        self.live_query: Optional[LiveQuery] = None

    def _chain(self, method: str, *args: Any) -> "ChainableLiveQuery":
        return ChainableLiveQuery(self.model, self.builder._chain(method, *args))

    def exec(self) -> LiveQuery:
        """
        Execute the live query.

        Raises:
            ConfigurationError: Invalid descriptor, raised before any call.
        """
        descriptor, flags = self.builder.finalize()

        def create(lq_id: int) -> LiveQuery:
            return LiveQuery(self.model, lq_id, descriptor, flags)

        lq, created = self.model.registry.claim(descriptor.serialize(), create)
        if created:
            lq.execute()

        self.live_query = lq
        return lq

    def stop(self) -> asyncio.Future:
        """Stop the executed live query, see ``LiveQuery.stop``."""
        if self.live_query is None:
            raise StopBeforeExecutionError(
                "There must be a valid id property, when stop is called"
            )
        return self.live_query.stop()

    def __await__(self):
        return self.exec().wait_synced().__await__()


__all__ = [
    "ChainableQuery",
    "ChainableLiveQuery",
]
