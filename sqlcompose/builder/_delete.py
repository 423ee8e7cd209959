from typing import TYPE_CHECKING, Any, Optional

from typing_extensions import Self

from sqlcompose.builder._base import StatementBuilder
from sqlcompose.builder.mixins import WhereClauseMixin
from sqlcompose.exceptions import SQLBuilderError
from sqlcompose.expressions import Fragment

if TYPE_CHECKING:
    from sqlcompose.dialects import Dialect

__all__ = ("DeleteQuery",)


class DeleteQuery(WhereClauseMixin, StatementBuilder):
    """Builder for DELETE statements."""

    __slots__ = ("_table", "_where")

    def __init__(self, *args: Any, table: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._table = table
        self._where = None

    def from_(self, table: str) -> Self:
        self._table = table
        return self

    def _compile(self, dialect: "Dialect") -> Fragment:
        if not self._table:
            msg = "DELETE requires a target table"
            raise SQLBuilderError(msg)
        where = self._compile_where(dialect)
        return Fragment(f"DELETE FROM {dialect.quote_table(self._table)}{where.sql}", where.parameters)
