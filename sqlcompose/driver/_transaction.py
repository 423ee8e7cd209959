"""Transactions bound to a single driver connection.

A :class:`Transaction` runs every statement on the connection that started it. Its
statements are prepared per execution on that connection and released right after, so
they never enter the shared statement cache.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from sqlcompose._sql import BuilderFactoryMixin, SQLFactory
from sqlcompose.exceptions import TransactionClosedError
from sqlcompose.utils.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

    from sqlcompose.core.statement import ComposedQuery
    from sqlcompose.dialects import Dialect
    from sqlcompose.protocols import DriverProtocol

__all__ = ("IsolationLevel", "Transaction", "TransactionOptions", "TransactionState")

logger = get_logger("driver.transaction")


class IsolationLevel(str, Enum):
    """Transaction isolation levels; ``DEFAULT`` leaves the choice to the database."""

    DEFAULT = "DEFAULT"
    READ_UNCOMMITTED = "READ UNCOMMITTED"
    READ_COMMITTED = "READ COMMITTED"
    REPEATABLE_READ = "REPEATABLE READ"
    SERIALIZABLE = "SERIALIZABLE"


@dataclass(frozen=True)
class TransactionOptions:
    """Options passed to the driver when a transaction begins."""

    isolation_level: IsolationLevel = IsolationLevel.DEFAULT
    read_only: bool = False


class TransactionState(str, Enum):
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class Transaction(BuilderFactoryMixin):
    """An open transaction.

    Not safe for concurrent use: callers sharing a transaction across threads must
    serialize their calls. Used as a context manager it commits when the block exits
    normally and rolls back when it raises.

    Args:
        driver: Driver that began the transaction.
        handle: Driver-specific transaction handle.
        dialect: Dialect used by the builders created from this transaction.
        options: Options the transaction was started with.
        context: Default cancellation token for statements run in this transaction.
    """

    __slots__ = ("_context", "_dialect", "_driver", "_handle", "_state", "options")

    def __init__(
        self,
        driver: "DriverProtocol",
        handle: Any,
        dialect: "Dialect",
        options: Optional[TransactionOptions] = None,
        context: Optional[Any] = None,
    ) -> None:
        self._driver = driver
        self._handle = handle
        self._dialect = dialect
        self._context = context
        self._state = TransactionState.ACTIVE
        self.options = options or TransactionOptions()

    def __repr__(self) -> str:
        return f"Transaction(dialect={self._dialect.name!r}, state={self._state.value!r})"

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is TransactionState.ACTIVE

    @property
    def handle(self) -> Any:
        return self._handle

    @property
    def dialect(self) -> "Dialect":
        return self._dialect

    def builder(self) -> "SQLFactory":
        """Return a builder factory whose statements execute inside this transaction."""
        return SQLFactory(self._dialect, executor=self, context=self._context)

    def commit(self) -> None:
        """Commit the transaction.

        Raises:
            TransactionClosedError: If the transaction was already committed or rolled back.
        """
        self._ensure_active()
        try:
            self._driver.commit(self._handle)
        except Exception:
            self._state = TransactionState.ROLLED_BACK
            raise
        self._state = TransactionState.COMMITTED
        logger.debug("Transaction committed")

    def rollback(self) -> None:
        """Roll the transaction back; a no-op once the transaction is closed."""
        if not self.is_active:
            return
        try:
            self._driver.rollback(self._handle)
        finally:
            self._state = TransactionState.ROLLED_BACK
        logger.debug("Transaction rolled back")

    def execute_statement(self, statement: "ComposedQuery", context: Optional[Any] = None) -> int:
        self._ensure_active()
        handle = self._driver.prepare(statement.sql, transaction=self._handle)
        try:
            logger.debug(
                "Executing statement in transaction",
                extra={"extra_fields": {"sql": statement.sql, "parameter_count": len(statement.parameters)}},
            )
            return self._driver.execute(handle, statement.parameters, context or self._context)
        finally:
            self._driver.close_handle(handle)

    def query_statement(self, statement: "ComposedQuery", context: Optional[Any] = None) -> "list[dict[str, Any]]":
        self._ensure_active()
        handle = self._driver.prepare(statement.sql, transaction=self._handle)
        try:
            logger.debug(
                "Querying in transaction",
                extra={"extra_fields": {"sql": statement.sql, "parameter_count": len(statement.parameters)}},
            )
            return [dict(row) for row in self._driver.query(handle, statement.parameters, context or self._context)]
        finally:
            self._driver.close_handle(handle)

    def _ensure_active(self) -> None:
        if not self.is_active:
            msg = f"Transaction has already been {self._state.value.replace('_', ' ')}"
            raise TransactionClosedError(msg)

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: Optional[BaseException],
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        if exc_type is not None:
            try:
                self.rollback()
            except Exception:
                logger.warning("Rollback failed while handling an exception", exc_info=True)
            return
        if self.is_active:
            self.commit()
