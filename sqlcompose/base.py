"""Database handle.

:class:`Database` ties a driver to a dialect and a shared prepared statement cache.
Statements executed directly on the database borrow cached handles; statements executed
inside a :class:`~sqlcompose.driver.Transaction` are prepared on the transaction's
connection and bypass the cache.
"""

import copy
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar, Union

from sqlcompose._sql import BuilderFactoryMixin, SQLFactory
from sqlcompose.builder import StatementBuilder
from sqlcompose.core.cache import DEFAULT_STATEMENT_CACHE_SIZE, CacheStats, StatementCache
from sqlcompose.core.statement import ComposedQuery
from sqlcompose.dialects import get_dialect
from sqlcompose.driver import Transaction, TransactionOptions
from sqlcompose.utils.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

    from sqlcompose.dialects import Dialect, DialectLike
    from sqlcompose.protocols import DriverProtocol

__all__ = ("Database", "StatementLike")

logger = get_logger("base")

T = TypeVar("T")

StatementLike = Union[str, ComposedQuery, StatementBuilder]


def _statement_sql(statement: StatementLike) -> str:
    if isinstance(statement, StatementBuilder):
        return statement.build().sql
    if isinstance(statement, ComposedQuery):
        return statement.sql
    return statement


class Database(BuilderFactoryMixin):
    """Entry point for running composed statements against one driver.

    Example:
        ```python
        db = Database(driver, dialect="postgres")
        users = db.select("id", "name").from_("users").where("status = ?", 1).all()
        ```

    Args:
        driver: Execution collaborator.
        dialect: Dialect or registered dialect name; defaults to ``driver.driver_name``.
        statement_cache_size: Prepared statement cache capacity. Values ``<= 0`` use the default.
        context: Default cancellation token for statements run through this handle.
    """

    __slots__ = ("_cache", "_context", "_dialect", "_driver")

    def __init__(
        self,
        driver: "DriverProtocol",
        dialect: "Optional[DialectLike]" = None,
        statement_cache_size: int = DEFAULT_STATEMENT_CACHE_SIZE,
        context: Optional[Any] = None,
    ) -> None:
        self._driver = driver
        self._dialect = get_dialect(dialect if dialect is not None else driver.driver_name)
        self._cache = StatementCache(driver.prepare, driver.close_handle, statement_cache_size)
        self._context = context

    def __repr__(self) -> str:
        return f"Database(driver={self._driver.driver_name!r}, dialect={self._dialect.name!r})"

    @property
    def dialect(self) -> "Dialect":
        return self._dialect

    @property
    def driver(self) -> "DriverProtocol":
        return self._driver

    @property
    def statement_cache(self) -> StatementCache:
        return self._cache

    def builder(self) -> SQLFactory:
        """Return a builder factory whose statements run on this database."""
        return SQLFactory(self._dialect, executor=self, context=self._context)

    def with_context(self, context: Optional[Any]) -> "Database":
        """Return a handle sharing this database's driver and cache that passes ``context``."""
        view = copy.copy(self)
        view._context = context
        return view

    def execute_statement(self, statement: ComposedQuery, context: Optional[Any] = None) -> int:
        with self._cache.lease(statement.sql) as handle:
            logger.debug(
                "Executing statement",
                extra={"extra_fields": {"sql": statement.sql, "parameter_count": len(statement.parameters)}},
            )
            return self._driver.execute(handle, statement.parameters, context or self._context)

    def query_statement(self, statement: ComposedQuery, context: Optional[Any] = None) -> "list[dict[str, Any]]":
        with self._cache.lease(statement.sql) as handle:
            logger.debug(
                "Querying",
                extra={"extra_fields": {"sql": statement.sql, "parameter_count": len(statement.parameters)}},
            )
            return [dict(row) for row in self._driver.query(handle, statement.parameters, context or self._context)]

    def begin(self, options: Optional[TransactionOptions] = None, context: Optional[Any] = None) -> Transaction:
        """Start a transaction.

        The caller owns the returned transaction and must commit or roll it back.
        """
        options = options or TransactionOptions()
        context = context or self._context
        handle = self._driver.begin_transaction(options, context)
        logger.debug(
            "Transaction started",
            extra={
                "extra_fields": {"isolation_level": options.isolation_level.value, "read_only": options.read_only}
            },
        )
        return Transaction(self._driver, handle, self._dialect, options, context)

    @contextmanager
    def transaction(
        self, options: Optional[TransactionOptions] = None, context: Optional[Any] = None
    ) -> "Generator[Transaction, None, None]":
        """Run a ``with`` block in a transaction; commit on success and roll back on error."""
        with self.begin(options, context) as tx:
            yield tx

    def transactional(self, fn: "Callable[[Transaction], T]", options: Optional[TransactionOptions] = None) -> T:
        """Run ``fn`` inside a new transaction.

        Commits when ``fn`` returns and propagates a commit failure. When ``fn`` raises,
        or a ``BaseException`` such as ``KeyboardInterrupt`` unwinds through it, the transaction is rolled
        back and the original exception is re-raised; a rollback failure is logged
        rather than masking it.

        Returns:
            Whatever ``fn`` returned.
        """
        tx = self.begin(options)
        try:
            result = fn(tx)
        except BaseException:
            try:
                tx.rollback()
            except Exception:
                logger.warning("Rollback failed after transactional callback error", exc_info=True)
            raise
        tx.commit()
        return result

    def warm_cache(self, statements: "Iterable[StatementLike]") -> int:
        """Prepare statements ahead of time.

        Returns:
            The number of statements that were not already cached.
        """
        return self._cache.warm(_statement_sql(statement) for statement in statements)

    def pin_query(self, statement: StatementLike) -> bool:
        """Prepare ``statement`` if needed and exempt it from eviction."""
        self._cache.prepare_and_pin(_statement_sql(statement))
        return True

    def unpin_query(self, statement: StatementLike) -> bool:
        return self._cache.unpin(_statement_sql(statement))

    def is_query_pinned(self, statement: StatementLike) -> bool:
        return self._cache.is_pinned(_statement_sql(statement))

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()

    def clear_cache(self) -> None:
        self._cache.clear()

    def close(self) -> None:
        """Release every cached statement and close the driver."""
        self._cache.clear()
        self._driver.close()
        logger.debug("Database closed", extra={"extra_fields": {"driver": self._driver.driver_name}})

    def __enter__(self) -> "Database":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: Optional[BaseException],
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.close()
