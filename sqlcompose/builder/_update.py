from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Optional

from typing_extensions import Self

from sqlcompose.builder._base import StatementBuilder
from sqlcompose.builder.mixins import WhereClauseMixin
from sqlcompose.exceptions import SQLBuilderError
from sqlcompose.expressions import Fragment, render_value

if TYPE_CHECKING:
    from sqlcompose.dialects import Dialect

__all__ = ("UpdateQuery",)


class UpdateQuery(WhereClauseMixin, StatementBuilder):
    """Builder for UPDATE statements.

    SET assignments render with sorted column names. Values may be expressions, e.g.
    ``raw("count + ?", 1)``, which are inlined rather than bound.
    """

    __slots__ = ("_table", "_values", "_where")

    def __init__(
        self, *args: Any, table: Optional[str] = None, values: "Optional[Mapping[str, Any]]" = None, **kwargs: Any
    ) -> None:
        super().__init__(*args, **kwargs)
        self._table = table
        self._values: dict[str, Any] = dict(values or {})
        self._where = None

    def table(self, table: str) -> Self:
        self._table = table
        return self

    def set(self, values: "Optional[Mapping[str, Any]]" = None, **columns: Any) -> Self:
        """Merge column assignments into the SET clause."""
        self._values.update(values or {})
        self._values.update(columns)
        return self

    def _compile(self, dialect: "Dialect") -> Fragment:
        if not self._table:
            msg = "UPDATE requires a target table"
            raise SQLBuilderError(msg)
        if not self._values:
            msg = f"UPDATE {self._table!r} requires at least one column assignment"
            raise SQLBuilderError(msg)
        assignments: list[str] = []
        params: list[Any] = []
        for column in sorted(self._values):
            fragment = render_value(self._values[column], dialect)
            assignments.append(f"{dialect.quote_identifier(column)} = {fragment.sql}")
            params.extend(fragment.parameters)
        where = self._compile_where(dialect)
        sql = f"UPDATE {dialect.quote_table(self._table)} SET {', '.join(assignments)}{where.sql}"
        return Fragment(sql, (*params, *where.parameters))
