"""SELECT statement builder.

Clauses always render in the order WITH, SELECT, FROM, JOIN, WHERE, GROUP BY, HAVING,
ORDER BY, LIMIT, OFFSET, followed by any set operations. Parameters are collected in the
same order, so positional placeholders always line up with their values.
"""

from typing import TYPE_CHECKING, Any, Optional, Union

from typing_extensions import Self

from sqlcompose.builder._base import StatementBuilder
from sqlcompose.builder.mixins import (
    CommonTableExpressionMixin,
    GroupByClauseMixin,
    JoinClauseMixin,
    LimitOffsetClauseMixin,
    OrderByClauseMixin,
    SetOperationMixin,
    WhereClauseMixin,
)
from sqlcompose.exceptions import SQLBuilderError
from sqlcompose.expressions import Expression, Fragment, Raw, render_value
from sqlcompose.protocols import SubqueryProtocol

if TYPE_CHECKING:
    from sqlcompose.dialects import Dialect
    from sqlcompose.driver._query import SchemaT

__all__ = ("SelectQuery",)


class SelectQuery(
    CommonTableExpressionMixin,
    WhereClauseMixin,
    JoinClauseMixin,
    GroupByClauseMixin,
    OrderByClauseMixin,
    LimitOffsetClauseMixin,
    SetOperationMixin,
    StatementBuilder,
):
    """Builder for SELECT statements.

    Example:
        ```python
        query = (
            SelectQuery("postgres")
            .select("*")
            .from_("users")
            .where("status = ?", 1)
            .and_where("age > ?", 18)
        )
        query.build().sql  # SELECT * FROM "users" WHERE status = $1 AND age > $2
        ```
    """

    __slots__ = (
        "_columns",
        "_ctes",
        "_distinct",
        "_from",
        "_group_by",
        "_having",
        "_joins",
        "_limit",
        "_offset",
        "_order_by",
        "_set_operations",
        "_where",
    )

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._columns: list[Union[str, Expression]] = []
        self._distinct = False
        self._from: Optional[Union[str, tuple[Any, str]]] = None
        self._joins = []
        self._where = None
        self._group_by = []
        self._having = None
        self._order_by = []
        self._limit = None
        self._offset = None
        self._ctes = []
        self._set_operations = []

    def select(self, *columns: "Union[str, Expression]") -> Self:
        """Append columns to the select list.

        ``*`` is never quoted, entries containing ``(`` are emitted verbatim and
        ``table.column`` / ``column AS alias`` are quoted per part. Expressions such as
        :func:`~sqlcompose.functions.coalesce` are rendered inline.
        """
        for column in columns:
            if isinstance(column, str) and not column.strip():
                msg = "Select column cannot be empty"
                raise SQLBuilderError(msg)
            if not isinstance(column, (str, Expression)):
                msg = f"Unsupported select column {column!r}; use select_expr() for subqueries"
                raise SQLBuilderError(msg)
            self._columns.append(column)
        return self

    def columns(self, *columns: "Union[str, Expression]") -> Self:
        return self.select(*columns)

    def select_expr(self, sql: str, *values: Any) -> Self:
        """Append a raw select-list entry with its own parameters, e.g. a scalar subquery."""
        self._columns.append(Raw(sql, values))
        return self

    def distinct(self, enabled: bool = True) -> Self:
        self._distinct = enabled
        return self

    def from_(self, table: "Union[str, SubqueryProtocol]", alias: Optional[str] = None) -> Self:
        """Set the source table, or a subquery when ``alias`` is given.

        Raises:
            SQLBuilderError: If a subquery is given without an alias.
        """
        if isinstance(table, str):
            if not table.strip():
                msg = "FROM table cannot be empty"
                raise SQLBuilderError(msg)
            self._from = f"{table} {alias}" if alias else table
            return self
        return self.from_select(table, alias or "")

    def from_select(self, subquery: "SubqueryProtocol", alias: str) -> Self:
        if not isinstance(subquery, SubqueryProtocol):
            msg = f"from_select() requires a statement builder, got {type(subquery).__name__}"
            raise SQLBuilderError(msg)
        if not alias or not alias.strip():
            msg = "A subquery in FROM requires an alias"
            raise SQLBuilderError(msg)
        self._from = (subquery, alias)
        return self

    def _compile_columns(self, dialect: "Dialect") -> Fragment:
        if not self._columns:
            return Fragment("*", ())
        parts: list[str] = []
        params: list[Any] = []
        for column in self._columns:
            if isinstance(column, Expression):
                fragment = column.compile(dialect)
                parts.append(fragment.sql)
                params.extend(fragment.parameters)
            else:
                parts.append(dialect.quote_column(column))
        return Fragment(", ".join(parts), tuple(params))

    def _compile_from(self, dialect: "Dialect") -> Fragment:
        if self._from is None:
            return Fragment("", ())
        if isinstance(self._from, str):
            return Fragment(f" FROM {dialect.quote_table(self._from)}", ())
        subquery, alias = self._from
        fragment = render_value(subquery, dialect)
        return Fragment(f" FROM {fragment.sql} AS {dialect.quote_identifier(alias)}", fragment.parameters)

    def _compile(self, dialect: "Dialect") -> Fragment:
        ctes = self._compile_ctes(dialect)
        fragments = (
            self._compile_columns(dialect),
            self._compile_from(dialect),
            self._compile_joins(dialect),
            self._compile_where(dialect),
            self._compile_group_by(dialect),
            self._compile_having(dialect),
            self._compile_order_by(dialect),
        )
        keyword = "SELECT DISTINCT " if self._distinct else "SELECT "
        sql = keyword + "".join(fragment.sql for fragment in fragments) + self._compile_limit_offset()
        head = Fragment(sql, tuple(param for fragment in fragments for param in fragment.parameters))
        if self._set_operations:
            body, params = self._compile_set_operations(head, dialect)
            return Fragment(ctes.sql + body, ctes.parameters + tuple(params))
        return Fragment(ctes.sql + head.sql, ctes.parameters + head.parameters)

    def all(self, schema_type: "Optional[type[SchemaT]]" = None) -> Any:
        return self.to_query().all(schema_type)

    def one(self, schema_type: "Optional[type[SchemaT]]" = None) -> Any:
        return self.to_query().one(schema_type)

    def row(self) -> "tuple[Any, ...]":
        return self.to_query().row()

    def column(self) -> "list[Any]":
        return self.to_query().column()
