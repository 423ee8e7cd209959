"""INSERT and UPSERT builders.

Column mappings are rendered with sorted keys so that the same logical insert always
produces the same SQL text and therefore the same statement cache entry.
"""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Optional

from typing_extensions import Self

from sqlcompose.builder._base import StatementBuilder
from sqlcompose.builder.mixins import ReturningClauseMixin
from sqlcompose.dialects import ON_DUPLICATE_KEY
from sqlcompose.exceptions import SQLBuilderError
from sqlcompose.expressions import Fragment, render_value

if TYPE_CHECKING:
    from sqlcompose.dialects import Dialect

__all__ = ("InsertQuery", "UpsertQuery")


class InsertQuery(ReturningClauseMixin, StatementBuilder):
    """Builder for single-row INSERT statements."""

    __slots__ = ("_returning", "_table", "_values")

    def __init__(
        self, *args: Any, table: Optional[str] = None, values: "Optional[Mapping[str, Any]]" = None, **kwargs: Any
    ) -> None:
        super().__init__(*args, **kwargs)
        self._table = table
        self._values: dict[str, Any] = dict(values or {})
        self._returning = []

    def into(self, table: str) -> Self:
        self._table = table
        return self

    def values(self, values: "Optional[Mapping[str, Any]]" = None, **columns: Any) -> Self:
        """Merge column values into the row being inserted."""
        self._values.update(values or {})
        self._values.update(columns)
        return self

    def _insert_prefix(self, dialect: "Dialect", keyword: str = "INSERT INTO") -> Fragment:
        if not self._table:
            msg = "INSERT requires a target table"
            raise SQLBuilderError(msg)
        if not self._values:
            msg = f"INSERT INTO {self._table!r} requires at least one column value"
            raise SQLBuilderError(msg)
        columns = sorted(self._values)
        placeholders: list[str] = []
        params: list[Any] = []
        for column in columns:
            fragment = render_value(self._values[column], dialect)
            placeholders.append(fragment.sql)
            params.extend(fragment.parameters)
        sql = (
            f"{keyword} {dialect.quote_table(self._table)} "
            f"({', '.join(dialect.quote_identifier(column) for column in columns)}) "
            f"VALUES ({', '.join(placeholders)})"
        )
        return Fragment(sql, tuple(params))

    def _compile(self, dialect: "Dialect") -> Fragment:
        prefix = self._insert_prefix(dialect)
        return Fragment(prefix.sql + self._compile_returning(dialect), prefix.parameters)


class UpsertQuery(InsertQuery):
    """INSERT with conflict resolution.

    ``ON CONFLICT (...) DO UPDATE`` / ``DO NOTHING`` on PostgreSQL and SQLite,
    ``ON DUPLICATE KEY UPDATE`` / ``INSERT IGNORE`` on MySQL. When neither
    :meth:`do_update` nor :meth:`do_nothing` is called every non-conflict column is
    updated.
    """

    __slots__ = ("_conflict_columns", "_do_nothing", "_update_columns")

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._conflict_columns: list[str] = []
        self._update_columns: Optional[list[str]] = None
        self._do_nothing = False

    def on_conflict(self, *columns: str) -> Self:
        """Set the conflict target columns.

        Raises:
            SQLBuilderError: If no columns are given.
        """
        if not columns:
            msg = "on_conflict() requires at least one column"
            raise SQLBuilderError(msg)
        self._conflict_columns = list(columns)
        return self

    def do_update(self, *columns: str) -> Self:
        """Update ``columns`` on conflict; all non-conflict columns when none are given."""
        self._update_columns = list(columns) or None
        self._do_nothing = False
        return self

    def do_nothing(self) -> Self:
        self._do_nothing = True
        self._update_columns = None
        return self

    def _resolved_update_columns(self) -> "list[str]":
        if self._update_columns is not None:
            unknown = [column for column in self._update_columns if column not in self._values]
            if unknown:
                msg = f"Upsert update columns {unknown} are not part of the inserted values"
                raise SQLBuilderError(msg)
            return sorted(set(self._update_columns))
        return sorted(column for column in self._values if column not in self._conflict_columns)

    def _compile(self, dialect: "Dialect") -> Fragment:
        update_columns = [] if self._do_nothing else self._resolved_update_columns()
        if dialect.conflict_style == ON_DUPLICATE_KEY:
            if not update_columns:
                prefix = self._insert_prefix(dialect, keyword="INSERT IGNORE INTO")
                return Fragment(prefix.sql + self._compile_returning(dialect), prefix.parameters)
            prefix = self._insert_prefix(dialect)
            assignments = ", ".join(
                f"{dialect.quote_identifier(column)} = VALUES({dialect.quote_identifier(column)})"
                for column in update_columns
            )
            sql = f"{prefix.sql} ON DUPLICATE KEY UPDATE {assignments}{self._compile_returning(dialect)}"
            return Fragment(sql, prefix.parameters)

        prefix = self._insert_prefix(dialect)
        target = ""
        if self._conflict_columns:
            target = f" ({', '.join(dialect.quote_identifier(column) for column in self._conflict_columns)})"
        if not update_columns:
            sql = f"{prefix.sql} ON CONFLICT{target} DO NOTHING"
        else:
            if not target:
                msg = "ON CONFLICT DO UPDATE requires a conflict target; call on_conflict()"
                raise SQLBuilderError(msg)
            assignments = ", ".join(
                f"{dialect.quote_identifier(column)} = {dialect.excluded_prefix}.{dialect.quote_identifier(column)}"
                for column in update_columns
            )
            sql = f"{prefix.sql} ON CONFLICT{target} DO UPDATE SET {assignments}"
        return Fragment(sql + self._compile_returning(dialect), prefix.parameters)
