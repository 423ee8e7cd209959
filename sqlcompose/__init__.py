"""sqlcompose: dialect-aware SQL composition with cached prepared statements."""

from sqlcompose import builder, core, driver, exceptions, utils
from sqlcompose._sql import SQLFactory, sql
from sqlcompose.base import Database
from sqlcompose.builder import (
    BatchInsertQuery,
    BatchUpdateQuery,
    DeleteQuery,
    InsertQuery,
    SelectQuery,
    StatementBuilder,
    UpdateQuery,
    UpsertQuery,
)
from sqlcompose.config import DatabaseConfig
from sqlcompose.core.cache import CacheStats, StatementCache
from sqlcompose.core.compiler import ParameterStyle
from sqlcompose.core.statement import ComposedQuery
from sqlcompose.dialects import MYSQL, POSTGRES, SQLITE, Dialect, get_dialect, register_dialect
from sqlcompose.driver import IsolationLevel, Query, Transaction, TransactionOptions
from sqlcompose.exceptions import (
    ExecutionError,
    ImproperConfigurationError,
    NotFoundError,
    QueryCancelledError,
    SQLBuilderError,
    SQLComposeError,
    TransactionClosedError,
    UnsupportedFeatureError,
)
from sqlcompose.expressions import (
    and_,
    between,
    eq,
    exists,
    gt,
    gte,
    hash_eq,
    in_,
    like,
    lt,
    lte,
    not_,
    not_between,
    not_eq,
    not_exists,
    not_in,
    not_like,
    or_,
    or_like,
    or_not_like,
    raw,
)
from sqlcompose.functions import case, case_when, coalesce, concat, greatest, least, nullif

__version__ = "0.1.0"

__all__ = (
    "MYSQL",
    "POSTGRES",
    "SQLITE",
    "BatchInsertQuery",
    "BatchUpdateQuery",
    "CacheStats",
    "ComposedQuery",
    "Database",
    "DatabaseConfig",
    "DeleteQuery",
    "Dialect",
    "ExecutionError",
    "ImproperConfigurationError",
    "InsertQuery",
    "IsolationLevel",
    "NotFoundError",
    "ParameterStyle",
    "Query",
    "QueryCancelledError",
    "SQLBuilderError",
    "SQLComposeError",
    "SQLFactory",
    "SelectQuery",
    "StatementBuilder",
    "StatementCache",
    "Transaction",
    "TransactionClosedError",
    "TransactionOptions",
    "UnsupportedFeatureError",
    "UpdateQuery",
    "UpsertQuery",
    "__version__",
    "and_",
    "between",
    "builder",
    "case",
    "case_when",
    "coalesce",
    "concat",
    "core",
    "driver",
    "eq",
    "exceptions",
    "exists",
    "get_dialect",
    "greatest",
    "gt",
    "gte",
    "hash_eq",
    "in_",
    "least",
    "like",
    "lt",
    "lte",
    "not_",
    "not_between",
    "not_eq",
    "not_exists",
    "not_in",
    "not_like",
    "nullif",
    "or_",
    "or_like",
    "or_not_like",
    "raw",
    "register_dialect",
    "sql",
    "utils",
)
