"""
Immutable query descriptors.

A query is built as an ordered sequence of mongoose-style operations.
Building never mutates: every operation returns a new builder, and
``finalize()`` produces the frozen ``QueryDescriptor`` sent over the wire
together with the validated ``ModeFlags`` that select how a live query
maintains its cache.

Usage:
    descriptor, flags = (
        QueryBuilder().find({"owner": "me"}).sort("-created").limit(10).finalize()
    )
    key = descriptor.serialize()
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..errors import ConfigurationError

_MISSING = object()


class QueryMode(Enum):
    """Which part of a live query's cache is authoritative."""
    NORMAL = "normal"
    FIND_ONE = "findOne"
    COUNT = "count"
    DISTINCT = "distinct"


@dataclass(frozen=True)
class QueryOperation:
    """A single builder step: a wire method name and its arguments."""
    method: str
    args: Tuple[Any, ...] = ()

    def to_wire(self) -> Dict[str, Any]:
        return {"mN": self.method, "args": list(self.args)}


@dataclass(frozen=True)
class ModeFlags:
    """
    Mode flags derived from the terminal operations of a descriptor.

    Attributes:
        find_one: Query resolves to a single document.
        distinct: Query resolves to a set of scalar values.
        count: Query resolves to a cardinality only.
        sort: Query carries a sort specification.
        limit: Maximum result length, honored only in normal mode.
    """
    find_one: bool = False
    distinct: bool = False
    count: bool = False
    sort: bool = False
    limit: Optional[int] = None

    @classmethod
    def from_operations(cls, operations: Iterable[QueryOperation]) -> "ModeFlags":
        """Derive and validate flags from an operation sequence."""
        seen = {}
        for op in operations:
            seen[op.method] = op.args

        limit = None
        if "limit" in seen:
            args = seen["limit"]
            value = args[0] if args else None
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigurationError(f"limit must be a non-negative integer, got {value!r}")
            # limit(0) means no limit, as on the server
            limit = value or None

        if "count" in seen and "sort" in seen:
            raise ConfigurationError("count and sort must NOT be used on the same query")

        return cls(
            find_one="findOne" in seen,
            distinct="distinct" in seen,
            count="count" in seen,
            sort="sort" in seen,
            limit=limit,
        )

    @property
    def mode(self) -> QueryMode:
        if self.count:
            return QueryMode.COUNT
        if self.distinct:
            return QueryMode.DISTINCT
        if self.find_one:
            return QueryMode.FIND_ONE
        return QueryMode.NORMAL

    @property
    def window(self) -> Optional[int]:
        """Maximum number of cached documents, None when unbounded."""
        mode = self.mode
        if mode == QueryMode.FIND_ONE:
            return 1
        if mode == QueryMode.NORMAL:
            return self.limit
        return None


@dataclass(frozen=True)
class QueryDescriptor:
    """Finalized, serializable identity of a query."""
    operations: Tuple[QueryOperation, ...] = ()

    def to_wire(self) -> List[Dict[str, Any]]:
        return [op.to_wire() for op in self.operations]

    def serialize(self) -> str:
        """Canonical JSON form, used as the dedup key."""
        return json.dumps(
            self.to_wire(),
            sort_keys=True,
            separators=(",", ":"),
            default=str,
        )


class QueryOperations:
    """
    Mongoose-style query methods shared by builders and chainables.

    Subclasses implement ``_chain(method, *args)`` and return a new
    instance carrying the extra operation.
    """

    def _chain(self, method: str, *args: Any):
        raise NotImplementedError

    def _chain_optional(self, method: str, *args: Any):
        trimmed = list(args)
        while trimmed and trimmed[-1] is None:
            trimmed.pop()
        return self._chain(method, *trimmed)

    def find(self, conditions: Optional[Dict[str, Any]] = None, projection: Any = None):
        return self._chain_optional("find", conditions, projection)

    def find_one(self, conditions: Optional[Dict[str, Any]] = None, projection: Any = None):
        return self._chain_optional("findOne", conditions, projection)

    def where(self, path: Any, value: Any = _MISSING):
        if value is _MISSING:
            return self._chain("where", path)
        return self._chain("where", path, value)

    def equals(self, value: Any):
        return self._chain("equals", value)

    def gt(self, value: Any):
        return self._chain("gt", value)

    def gte(self, value: Any):
        return self._chain("gte", value)

    def lt(self, value: Any):
        return self._chain("lt", value)

    def lte(self, value: Any):
        return self._chain("lte", value)

    def ne(self, value: Any):
        return self._chain("ne", value)

    def in_(self, values: Iterable[Any]):
        return self._chain("in", list(values))

    def nin(self, values: Iterable[Any]):
        return self._chain("nin", list(values))

    def exists(self, flag: bool = True):
        return self._chain("exists", flag)

    def regex(self, pattern: str):
        return self._chain("regex", pattern)

    def or_(self, conditions: List[Dict[str, Any]]):
        return self._chain("or", list(conditions))

    def and_(self, conditions: List[Dict[str, Any]]):
        return self._chain("and", list(conditions))

    def sort(self, spec: Any):
        return self._chain("sort", spec)

    def limit(self, value: int):
        return self._chain("limit", value)

    def skip(self, value: int):
        return self._chain("skip", value)

    def select(self, spec: Any):
        return self._chain("select", spec)

    def populate(self, path: Any):
        return self._chain("populate", path)

    def distinct(self, field: str, conditions: Optional[Dict[str, Any]] = None):
        return self._chain_optional("distinct", field, conditions)

    def count(self, conditions: Optional[Dict[str, Any]] = None):
        return self._chain_optional("count", conditions)


class QueryBuilder(QueryOperations):
    """Immutable query builder."""

    def __init__(self, operations: Iterable[QueryOperation] = ()):
        self._operations: Tuple[QueryOperation, ...] = tuple(operations)

    @property
    def operations(self) -> Tuple[QueryOperation, ...]:
        return self._operations

    def _chain(self, method: str, *args: Any) -> "QueryBuilder":
        return QueryBuilder(self._operations + (QueryOperation(method, args),))

    def finalize(self) -> Tuple[QueryDescriptor, ModeFlags]:
        """
        Produce the frozen descriptor and its validated mode flags.

        Raises:
            ConfigurationError: count and sort are combined, or limit is invalid.
        """
        flags = ModeFlags.from_operations(self._operations)
        return QueryDescriptor(self._operations), flags

    def __repr__(self) -> str:
        methods = ".".join(op.method for op in self._operations)
        return f"QueryBuilder({methods or '<empty>'})"


__all__ = [
    "QueryMode",
    "QueryOperation",
    "ModeFlags",
    "QueryDescriptor",
    "QueryOperations",
    "QueryBuilder",
]
