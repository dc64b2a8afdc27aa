"""Query descriptors and the builder that produces them."""
from .descriptor import (
    ModeFlags,
    QueryBuilder,
    QueryDescriptor,
    QueryMode,
    QueryOperation,
)

__all__ = [
    "ModeFlags",
    "QueryBuilder",
    "QueryDescriptor",
    "QueryMode",
    "QueryOperation",
]
