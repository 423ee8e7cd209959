"""Multi-row INSERT and UPDATE builders."""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from typing_extensions import Self

from sqlcompose.builder._base import StatementBuilder
from sqlcompose.exceptions import SQLBuilderError
from sqlcompose.expressions import Fragment, render_value

if TYPE_CHECKING:
    from sqlcompose.dialects import Dialect

__all__ = ("BatchInsertQuery", "BatchUpdateQuery")


class BatchInsertQuery(StatementBuilder):
    """``INSERT INTO t (a, b) VALUES (?, ?), (?, ?), ...`` over a fixed column list."""

    __slots__ = ("_columns", "_rows", "_table")

    def __init__(self, *args: Any, table: str, columns: "Sequence[str]", **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        if not table:
            msg = "Batch INSERT requires a target table"
            raise SQLBuilderError(msg)
        if not columns:
            msg = "Batch INSERT requires at least one column"
            raise SQLBuilderError(msg)
        self._table = table
        self._columns = tuple(columns)
        self._rows: list[tuple[Any, ...]] = []

    @property
    def row_count(self) -> int:
        return len(self._rows)

    def values(self, *values: Any) -> Self:
        """Add one row, positionally matching the column list.

        Raises:
            SQLBuilderError: If the number of values differs from the number of columns.
        """
        if len(values) != len(self._columns):
            msg = f"Batch INSERT expected {len(self._columns)} values, got {len(values)}"
            raise SQLBuilderError(msg)
        self._rows.append(values)
        return self

    def values_map(self, values: "Mapping[str, Any]") -> Self:
        """Add one row from a mapping; missing columns are inserted as NULL."""
        return self.values(*(values.get(column) for column in self._columns))

    def _compile(self, dialect: "Dialect") -> Fragment:
        if not self._rows:
            msg = f"Batch INSERT INTO {self._table!r} has no rows"
            raise SQLBuilderError(msg)
        rows: list[str] = []
        params: list[Any] = []
        for row in self._rows:
            placeholders: list[str] = []
            for value in row:
                fragment = render_value(value, dialect)
                placeholders.append(fragment.sql)
                params.extend(fragment.parameters)
            rows.append(f"({', '.join(placeholders)})")
        columns = ", ".join(dialect.quote_identifier(column) for column in self._columns)
        sql = f"INSERT INTO {dialect.quote_table(self._table)} ({columns}) VALUES {', '.join(rows)}"
        return Fragment(sql, tuple(params))


class BatchUpdateQuery(StatementBuilder):
    """Update many rows, keyed by one column, in a single statement.

    Each updated column becomes ``col = CASE key WHEN ? THEN ? ... ELSE col END`` and the
    statement is limited with ``WHERE key IN (...)``. Rows that do not set a column keep
    their current value through the ELSE branch.
    """

    __slots__ = ("_key_column", "_rows", "_table")

    def __init__(self, *args: Any, table: str, key_column: str, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        if not table or not key_column:
            msg = "Batch UPDATE requires a target table and a key column"
            raise SQLBuilderError(msg)
        self._table = table
        self._key_column = key_column
        self._rows: list[tuple[Any, dict[str, Any]]] = []

    @property
    def row_count(self) -> int:
        return len(self._rows)

    def set(self, key_value: Any, values: "Mapping[str, Any]") -> Self:
        """Add the new ``values`` for the row whose key column equals ``key_value``.

        Raises:
            SQLBuilderError: If ``values`` is empty or tries to update the key column.
        """
        if not values:
            msg = f"Batch UPDATE row {key_value!r} has no values"
            raise SQLBuilderError(msg)
        if self._key_column in values:
            msg = f"Batch UPDATE cannot change the key column {self._key_column!r}"
            raise SQLBuilderError(msg)
        self._rows.append((key_value, dict(values)))
        return self

    def _compile(self, dialect: "Dialect") -> Fragment:
        if not self._rows:
            msg = f"Batch UPDATE {self._table!r} has no rows"
            raise SQLBuilderError(msg)
        key = dialect.quote_identifier(self._key_column)
        columns = sorted({column for _, values in self._rows for column in values})
        assignments: list[str] = []
        params: list[Any] = []
        for column in columns:
            quoted = dialect.quote_identifier(column)
            whens: list[str] = []
            for key_value, values in self._rows:
                if column not in values:
                    continue
                fragment = render_value(values[column], dialect)
                whens.append(f"WHEN ? THEN {fragment.sql}")
                params.append(key_value)
                params.extend(fragment.parameters)
            assignments.append(f"{quoted} = CASE {key} {' '.join(whens)} ELSE {quoted} END")
        keys = [key_value for key_value, _ in self._rows]
        params.extend(keys)
        sql = (
            f"UPDATE {dialect.quote_table(self._table)} SET {', '.join(assignments)} "
            f"WHERE {key} IN ({', '.join('?' for _ in keys)})"
        )
        return Fragment(sql, tuple(params))
