"""Executable composed statements."""

from typing import TYPE_CHECKING, Any, Optional, TypeVar, overload

from sqlcompose.exceptions import NotFoundError
from sqlcompose.utils.schema import to_schema

if TYPE_CHECKING:
    from sqlcompose.core.statement import ComposedQuery
    from sqlcompose.protocols import StatementExecutor

__all__ = ("Query",)

SchemaT = TypeVar("SchemaT")


class Query:
    """A composed statement bound to the executor that will run it.

    The executor is either a :class:`~sqlcompose.base.Database`, which goes through the
    shared statement cache, or a :class:`~sqlcompose.driver.Transaction`, which runs on
    the transaction's connection.
    """

    __slots__ = ("_executor", "composed", "context")

    def __init__(
        self, composed: "ComposedQuery", executor: "StatementExecutor", context: Optional[Any] = None
    ) -> None:
        self.composed = composed
        self.context = context
        self._executor = executor

    def __repr__(self) -> str:
        return f"Query(sql={self.sql!r}, parameters={self.parameters!r})"

    @property
    def sql(self) -> str:
        return self.composed.sql

    @property
    def parameters(self) -> "tuple[Any, ...]":
        return self.composed.parameters

    def with_context(self, context: Optional[Any]) -> "Query":
        """Return a copy carrying ``context`` as its cancellation token."""
        return Query(self.composed, self._executor, context)

    def execute(self) -> int:
        """Run the statement and return the affected row count."""
        return self._executor.execute_statement(self.composed, self.context)

    @overload
    def all(self, schema_type: None = None) -> "list[dict[str, Any]]": ...
    @overload
    def all(self, schema_type: "type[SchemaT]") -> "list[SchemaT]": ...
    def all(self, schema_type: "Optional[type[SchemaT]]" = None) -> Any:
        """Fetch every row, converted to ``schema_type`` when given."""
        rows = self._executor.query_statement(self.composed, self.context)
        return to_schema(rows, schema_type=schema_type)

    @overload
    def one(self, schema_type: None = None) -> "dict[str, Any]": ...
    @overload
    def one(self, schema_type: "type[SchemaT]") -> "SchemaT": ...
    def one(self, schema_type: "Optional[type[SchemaT]]" = None) -> Any:
        """Fetch the first row.

        Raises:
            NotFoundError: If the statement returned no rows.
        """
        rows = self._executor.query_statement(self.composed, self.context)
        if not rows:
            msg = "No rows returned by the statement"
            raise NotFoundError(msg)
        return to_schema(rows[0], schema_type=schema_type)

    def row(self) -> "tuple[Any, ...]":
        """Fetch the first row as a tuple of column values.

        Raises:
            NotFoundError: If the statement returned no rows.
        """
        return tuple(self.one().values())

    def column(self) -> "list[Any]":
        """Fetch the first column of every row."""
        rows = self._executor.query_statement(self.composed, self.context)
        return [next(iter(row.values())) for row in rows if row]
