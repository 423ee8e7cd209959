"""Runtime-checkable protocols used at the seams of sqlcompose.

``Renderable`` and ``SubqueryProtocol`` let expressions accept nested statements without
importing the builder package. ``DriverProtocol`` is the execution collaborator a
:class:`~sqlcompose.base.Database` delegates to.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sqlcompose.core.statement import ComposedQuery
    from sqlcompose.dialects import Dialect
    from sqlcompose.driver._transaction import TransactionOptions

__all__ = ("CancellationToken", "DriverProtocol", "Renderable", "StatementExecutor", "SubqueryProtocol")


@runtime_checkable
class Renderable(Protocol):
    """Anything that renders to a SQL fragment and its ordered parameters."""

    def render(self, dialect: "Dialect") -> "tuple[str, list[Any]]":
        """Render against ``dialect`` using ``?`` placeholders."""
        ...


@runtime_checkable
class SubqueryProtocol(Protocol):
    """A complete statement usable as a parenthesized subquery."""

    def render(self, dialect: "Dialect") -> "tuple[str, list[Any]]":
        """Render against ``dialect`` using ``?`` placeholders."""
        ...

    def build(self) -> "ComposedQuery":
        """Compose the statement for its own dialect."""
        ...


@runtime_checkable
class CancellationToken(Protocol):
    """Cancellation signal honoured by drivers, e.g. :class:`threading.Event`."""

    def is_set(self) -> bool: ...


class StatementExecutor(Protocol):
    """Runs composed statements; implemented by ``Database`` and ``Transaction``."""

    def execute_statement(self, statement: "ComposedQuery", context: Optional[Any] = None) -> int: ...

    def query_statement(
        self, statement: "ComposedQuery", context: Optional[Any] = None
    ) -> "list[dict[str, Any]]": ...


@runtime_checkable
class DriverProtocol(Protocol):
    """Execution collaborator.

    The engine only needs to submit SQL text with an ordered parameter list and receive
    rows or an affected-row count. Handles are opaque to the engine.
    """

    driver_name: str

    def prepare(self, sql: str, transaction: Optional[Any] = None) -> Any:
        """Prepare ``sql``, on ``transaction``'s connection when given."""
        ...

    def execute(self, handle: Any, parameters: "Sequence[Any]", context: Optional[Any] = None) -> int:
        """Run a prepared statement and return the affected row count."""
        ...

    def query(
        self, handle: Any, parameters: "Sequence[Any]", context: Optional[Any] = None
    ) -> "Iterable[Mapping[str, Any]]":
        """Run a prepared statement and return its rows."""
        ...

    def close_handle(self, handle: Any) -> None:
        """Release a prepared statement."""
        ...

    def begin_transaction(self, options: "TransactionOptions", context: Optional[Any] = None) -> Any:
        """Start a transaction and return its handle."""
        ...

    def commit(self, transaction: Any) -> None: ...

    def rollback(self, transaction: Any) -> None: ...

    def close(self) -> None:
        """Release every connection held by the driver."""
        ...
