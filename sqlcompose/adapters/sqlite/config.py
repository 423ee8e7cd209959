"""SQLite database configuration."""

import sqlite3
from typing import TYPE_CHECKING, Any, ClassVar, Optional, TypedDict, Union

from typing_extensions import NotRequired

from sqlcompose.adapters.sqlite.driver import SqliteConnection, SqliteDriver
from sqlcompose.config import DatabaseConfig
from sqlcompose.core.cache import DEFAULT_STATEMENT_CACHE_SIZE
from sqlcompose.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlcompose.dialects import DialectLike

__all__ = ("SqliteConfig", "SqliteConnectionParams")

logger = get_logger("adapters.sqlite.config")


class SqliteConnectionParams(TypedDict, total=False):
    """SQLite connection parameters."""

    database: NotRequired[str]
    timeout: NotRequired[float]
    detect_types: NotRequired[int]
    cached_statements: NotRequired[int]
    uri: NotRequired[bool]


class SqliteConfig(DatabaseConfig[SqliteDriver]):
    """SQLite configuration backed by a single shared connection.

    The connection is opened in autocommit mode with ``check_same_thread=False``;
    transactions are controlled by the driver.
    """

    __slots__ = ("connection_config",)
    driver_type: "ClassVar[type[SqliteDriver]]" = SqliteDriver
    driver_name: "ClassVar[str]" = "sqlite"

    def __init__(
        self,
        *,
        connection_config: "Optional[Union[SqliteConnectionParams, dict[str, Any]]]" = None,
        dialect: "Optional[DialectLike]" = None,
        statement_cache_size: int = DEFAULT_STATEMENT_CACHE_SIZE,
    ) -> None:
        """Initialize SQLite configuration.

        Args:
            connection_config: Parameters for :func:`sqlite3.connect`; defaults to an in-memory database.
            dialect: Dialect override; defaults to ``"sqlite"``.
            statement_cache_size: Prepared statement cache capacity.
        """
        super().__init__(dialect=dialect, statement_cache_size=statement_cache_size)
        self.connection_config: dict[str, Any] = dict(connection_config or {})
        self.connection_config.setdefault("database", ":memory:")

    def create_connection(self) -> SqliteConnection:
        """Open a new SQLite connection."""
        params = {**self.connection_config, "check_same_thread": False, "isolation_level": None}
        logger.debug("Opening SQLite connection", extra={"extra_fields": {"database": params["database"]}})
        return sqlite3.connect(**params)

    def create_driver(self) -> SqliteDriver:
        return self.driver_type(self.create_connection())
