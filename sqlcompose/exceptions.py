from collections.abc import Generator
from contextlib import contextmanager
from typing import Any, Optional

__all__ = (
    "ExecutionError",
    "ImproperConfigurationError",
    "NotFoundError",
    "QueryCancelledError",
    "SQLBuilderError",
    "SQLComposeError",
    "TransactionClosedError",
    "UnsupportedFeatureError",
    "wrap_exceptions",
)


class SQLComposeError(Exception):
    """Base exception class from which all sqlcompose exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``SQLComposeError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class SQLBuilderError(SQLComposeError):
    """Issues building or generating SQL statements.

    Raised at the builder call that introduces a malformed expression or statement,
    before any SQL reaches the database driver.
    """

    def __init__(self, message: Optional[str] = None) -> None:
        if message is None:
            message = "Issues building SQL statement."
        super().__init__(message)


class UnsupportedFeatureError(SQLBuilderError):
    """The active dialect cannot express the requested SQL feature."""

    feature: str
    dialect: str

    def __init__(self, feature: str, dialect: str) -> None:
        self.feature = feature
        self.dialect = dialect
        super().__init__(f"{feature} is not supported by the {dialect!r} dialect")


class ImproperConfigurationError(SQLComposeError):
    """Improper Configuration error.

    Raised for unknown dialect or driver names and for statements that are executed
    without an executor bound to their builder.
    """


class ExecutionError(SQLComposeError):
    """The database driver reported a failure while preparing or running a statement."""

    sql: Optional[str]

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        detail_message = message
        if sql:
            detail_message = f"{message}\nSQL: {sql}"
        super().__init__(detail=detail_message)
        self.sql = sql


class QueryCancelledError(ExecutionError):
    """The cancellation token passed with a statement was triggered before it ran."""


class NotFoundError(SQLComposeError):
    """A single row was required but the statement matched none."""


class TransactionClosedError(SQLComposeError):
    """The transaction has already been committed or rolled back."""

    def __init__(self, message: Optional[str] = None) -> None:
        if message is None:
            message = "Transaction has already been committed or rolled back."
        super().__init__(message)


@contextmanager
def wrap_exceptions(wrap_exceptions: bool = True, sql: Optional[str] = None) -> Generator[None, None, None]:
    try:
        yield

    except SQLComposeError:
        raise
    except Exception as exc:
        if wrap_exceptions is False:
            raise
        msg = f"An error occurred during the operation: {exc}"
        raise ExecutionError(msg, sql=sql) from exc
