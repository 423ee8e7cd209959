from sqlcompose.core.cache import CacheStats, StatementCache
from sqlcompose.core.compiler import ParameterStyle, count_placeholders, renumber_placeholders
from sqlcompose.core.statement import ComposedQuery

__all__ = (
    "CacheStats",
    "ComposedQuery",
    "ParameterStyle",
    "StatementCache",
    "count_placeholders",
    "renumber_placeholders",
)
