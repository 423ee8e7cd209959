"""Reference synchronous SQLite driver.

The driver owns one connection opened in autocommit mode; transactions are started with
explicit ``BEGIN`` statements. An open transaction holds the driver lock until it is
committed or rolled back, so statements issued outside it from other threads wait
instead of silently joining it.
"""

import contextlib
import sqlite3
import threading
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, ClassVar, Final, Optional

from sqlcompose.driver._transaction import IsolationLevel, TransactionOptions
from sqlcompose.exceptions import ExecutionError, QueryCancelledError, wrap_exceptions
from sqlcompose.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlcompose.protocols import CancellationToken

__all__ = ("SqliteConnection", "SqliteDriver", "SqlitePreparedStatement", "SqliteTransaction")

logger = get_logger("adapters.sqlite")

SqliteConnection = sqlite3.Connection

BEGIN_STATEMENTS: Final = {
    IsolationLevel.DEFAULT: "BEGIN",
    IsolationLevel.READ_UNCOMMITTED: "BEGIN DEFERRED",
    IsolationLevel.READ_COMMITTED: "BEGIN DEFERRED",
    IsolationLevel.REPEATABLE_READ: "BEGIN IMMEDIATE",
    IsolationLevel.SERIALIZABLE: "BEGIN IMMEDIATE",
}
COMMIT: Final = "COMMIT"
ROLLBACK: Final = "ROLLBACK"
QUERY_ONLY_ON: Final = "PRAGMA query_only = ON"
QUERY_ONLY_OFF: Final = "PRAGMA query_only = OFF"


class SqliteTransaction:
    """Driver-side transaction handle."""

    __slots__ = ("active", "options")

    def __init__(self, options: TransactionOptions) -> None:
        self.options = options
        self.active = True


class SqlitePreparedStatement:
    """Prepared statement handle.

    ``sqlite3`` compiles statements through its own per-connection cache, so the handle
    records the SQL text and whether it was released.
    """

    __slots__ = ("closed", "sql", "transaction")

    def __init__(self, sql: str, transaction: Optional[SqliteTransaction] = None) -> None:
        self.sql = sql
        self.transaction = transaction
        self.closed = False

    def __repr__(self) -> str:
        return f"SqlitePreparedStatement(sql={self.sql!r}, closed={self.closed!r})"


class SqliteDriver:
    """Reference implementation for a synchronous SQLite driver."""

    driver_name: ClassVar[str] = "sqlite"

    __slots__ = ("_closed", "_connection", "_lock")

    def __init__(self, connection: SqliteConnection) -> None:
        self._connection = connection
        self._lock = threading.RLock()
        self._closed = False

    @property
    def connection(self) -> SqliteConnection:
        return self._connection

    def prepare(self, sql: str, transaction: Optional[SqliteTransaction] = None) -> SqlitePreparedStatement:
        if self._closed:
            msg = "SQLite driver is closed"
            raise ExecutionError(msg, sql=sql)
        if transaction is not None and not transaction.active:
            msg = "Cannot prepare a statement on a finished transaction"
            raise ExecutionError(msg, sql=sql)
        return SqlitePreparedStatement(sql, transaction)

    def execute(
        self,
        handle: SqlitePreparedStatement,
        parameters: "Sequence[Any]",
        context: "Optional[CancellationToken]" = None,
    ) -> int:
        self._check_handle(handle, context)
        with self._lock, wrap_exceptions(sql=handle.sql):
            cursor = self._connection.execute(handle.sql, tuple(parameters))
            try:
                return max(cursor.rowcount, 0)
            finally:
                cursor.close()

    def query(
        self,
        handle: SqlitePreparedStatement,
        parameters: "Sequence[Any]",
        context: "Optional[CancellationToken]" = None,
    ) -> "list[dict[str, Any]]":
        self._check_handle(handle, context)
        with self._lock, wrap_exceptions(sql=handle.sql):
            cursor = self._connection.execute(handle.sql, tuple(parameters))
            try:
                names = [column[0] for column in cursor.description or ()]
                return [dict(zip(names, row)) for row in cursor.fetchall()]
            finally:
                cursor.close()

    def close_handle(self, handle: SqlitePreparedStatement) -> None:
        handle.closed = True

    def begin_transaction(
        self, options: TransactionOptions, context: "Optional[CancellationToken]" = None
    ) -> SqliteTransaction:
        """Start a transaction and hold the driver lock until it finishes.

        The lock is reentrant and owned by the calling thread, so the transaction must be
        finished on the thread that started it.
        """
        begin = BEGIN_STATEMENTS[options.isolation_level]
        self._check_cancelled(context, begin)
        self._lock.acquire()
        try:
            with wrap_exceptions(sql=begin):
                if options.read_only:
                    self._connection.execute(QUERY_ONLY_ON)
                self._connection.execute(begin)
        except Exception:
            if options.read_only:
                with contextlib.suppress(sqlite3.Error):
                    self._connection.execute(QUERY_ONLY_OFF)
            self._lock.release()
            raise
        return SqliteTransaction(options)

    def commit(self, transaction: SqliteTransaction) -> None:
        self._finish(transaction, COMMIT)

    def rollback(self, transaction: SqliteTransaction) -> None:
        self._finish(transaction, ROLLBACK)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._connection.close()

    def _finish(self, transaction: SqliteTransaction, statement: str) -> None:
        if not transaction.active:
            msg = "Transaction is no longer active"
            raise ExecutionError(msg, sql=statement)
        try:
            with wrap_exceptions(sql=statement):
                self._connection.execute(statement)
        except ExecutionError:
            # a failed COMMIT can leave the transaction open
            if statement == COMMIT and self._connection.in_transaction:
                with contextlib.suppress(sqlite3.Error):
                    self._connection.execute(ROLLBACK)
            raise
        finally:
            transaction.active = False
            if transaction.options.read_only:
                with contextlib.suppress(sqlite3.Error):
                    self._connection.execute(QUERY_ONLY_OFF)
            self._lock.release()

    def _check_handle(self, handle: SqlitePreparedStatement, context: "Optional[CancellationToken]") -> None:
        if handle.closed:
            msg = "Prepared statement has been closed"
            raise ExecutionError(msg, sql=handle.sql)
        if handle.transaction is not None and not handle.transaction.active:
            msg = "Statement belongs to a finished transaction"
            raise ExecutionError(msg, sql=handle.sql)
        self._check_cancelled(context, handle.sql)

    def _check_cancelled(self, context: "Optional[CancellationToken]", sql: Optional[str]) -> None:
        if context is not None and context.is_set():
            logger.debug("Statement cancelled before execution", extra={"extra_fields": {"sql": sql}})
            msg = "Statement cancelled before execution"
            raise QueryCancelledError(msg, sql=sql)
