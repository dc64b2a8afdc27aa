"""Per-model index of live queries."""

import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from .live_query import LiveQuery

logger = logging.getLogger(__name__)


class LiveQueryRegistry:
    """
    Owns every live query of one model.

    The id index routes inbound events; the descriptor index, derived from
    it, deduplicates identical subscriptions. Both are only changed here.
    Ids come from a per-model counter and are never reused.

    Usage:
        lq, created = registry.claim(descriptor.serialize(), make_live_query)
        registry.get(lq.id)
        registry.discard(lq.id)
    """

    def __init__(self, model_name: str = ""):
        self.model_name = model_name
        self._by_id: Dict[int, "LiveQuery"] = {}
        self._by_descriptor: Dict[str, int] = {}
        self._last_id = 0

    @property
    def last_id(self) -> int:
        """Most recently assigned id, 0 before the first one."""
        return self._last_id

    def get(self, lq_id: int) -> Optional["LiveQuery"]:
        return self._by_id.get(lq_id)

    def find_by_descriptor(self, key: str) -> Optional["LiveQuery"]:
        """
        Return the active live query for a serialized descriptor.

        A stopped entry is evicted from the descriptor index here and
        reported as absent; its id stays routable until discarded.
        """
        lq_id = self._by_descriptor.get(key)
        if lq_id is None:
            return None

        lq = self._by_id.get(lq_id)
        if lq is None or lq.stopped:
            del self._by_descriptor[key]
            logger.debug(f"Evicted stopped live query {lq_id} from descriptor index")
            return None
        return lq

    def claim(
        self,
        key: str,
        factory: Callable[[int], "LiveQuery"],
    ) -> Tuple["LiveQuery", bool]:
        """
        Reuse the active live query for ``key`` or register a new one.

        Args:
            key: Serialized descriptor.
            factory: Builds the live query for a freshly assigned id.

        Returns:
            (live query, True if it was created by this call)
        """
        existing = self.find_by_descriptor(key)
        if existing is not None:
            logger.debug(f"Reusing live query {existing.id} for {key}")
            return existing, False

        lq_id = self._last_id + 1
        lq = factory(lq_id)
        self._last_id = lq_id
        self._by_id[lq_id] = lq
        self._by_descriptor[key] = lq_id

        logger.info(f"Registered live query {lq_id} on model '{self.model_name}'")
        return lq, True

    def reinstate(self, lq_id: int) -> bool:
        """Point the descriptor index back at a live query that resumed.

        Returns False when another live query claimed the descriptor meanwhile.
        """
        lq = self._by_id.get(lq_id)
        if lq is None:
            return False
        current = self.find_by_descriptor(lq.key)
        if current is not None and current is not lq:
            return False
        self._by_descriptor[lq.key] = lq_id
        return True

    def discard(self, lq_id: int) -> bool:
        """Forget a live query. Returns True if it was registered."""
        lq = self._by_id.pop(lq_id, None)
        if lq is None:
            return False

        if self._by_descriptor.get(lq.key) == lq_id:
            del self._by_descriptor[lq.key]

        logger.info(f"Discarded live query {lq_id} on model '{self.model_name}'")
        return True

    def ids(self) -> List[int]:
        return list(self._by_id)

    def __contains__(self, lq_id: object) -> bool:
        return lq_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)


__all__ = [
    "LiveQueryRegistry",
]
