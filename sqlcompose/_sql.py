"""Unified builder facade.

Provides :class:`SQLFactory`, the entry point for creating statement builders, and the
module level ``sql`` instance bound to the default dialect with no executor.
"""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Optional, Union

from sqlcompose.builder import (
    BatchInsertQuery,
    BatchUpdateQuery,
    DeleteQuery,
    InsertQuery,
    SelectQuery,
    UpdateQuery,
    UpsertQuery,
)
from sqlcompose.core.compiler import renumber_placeholders
from sqlcompose.core.statement import ComposedQuery
from sqlcompose.dialects import POSTGRES, DialectLike, get_dialect
from sqlcompose.exceptions import ImproperConfigurationError, SQLBuilderError
from sqlcompose.expressions import Expression, Raw

if TYPE_CHECKING:
    from sqlcompose.dialects import Dialect
    from sqlcompose.driver._query import Query
    from sqlcompose.protocols import StatementExecutor

__all__ = ("BuilderFactoryMixin", "SQLFactory", "sql")


class SQLFactory:
    """Factory for statement builders sharing one dialect, executor and context.

    Example:
        ```python
        from sqlcompose import sql

        query = sql.select("id", "name").from_("users").where("status = ?", 1)
        composed = query.build()
        ```

    Args:
        dialect: Dialect or registered dialect name for every builder created here.
        executor: Database or transaction the builders' terminal methods run on.
        context: Cancellation token handed to the executor.
    """

    __slots__ = ("context", "dialect", "executor")

    def __init__(
        self,
        dialect: DialectLike = POSTGRES,
        executor: "Optional[StatementExecutor]" = None,
        context: Optional[Any] = None,
    ) -> None:
        self.dialect: "Dialect" = get_dialect(dialect)
        self.executor = executor
        self.context = context

    def __repr__(self) -> str:
        return f"SQLFactory(dialect={self.dialect.name!r}, bound={self.executor is not None})"

    def _builder_kwargs(self) -> "dict[str, Any]":
        return {"dialect": self.dialect, "executor": self.executor, "context": self.context}

    def with_context(self, context: Optional[Any]) -> "SQLFactory":
        """Return a factory whose builders carry ``context`` as their cancellation token."""
        return SQLFactory(self.dialect, executor=self.executor, context=context)

    def select(self, *columns: Union[str, Expression]) -> SelectQuery:
        """Create a SELECT builder; no columns selects ``*``."""
        return SelectQuery(**self._builder_kwargs()).select(*columns)

    def insert(self, table: str, values: "Optional[Mapping[str, Any]]" = None) -> InsertQuery:
        return InsertQuery(table=table, values=values, **self._builder_kwargs())

    def upsert(self, table: str, values: "Optional[Mapping[str, Any]]" = None) -> UpsertQuery:
        return UpsertQuery(table=table, values=values, **self._builder_kwargs())

    def update(self, table: str, values: "Optional[Mapping[str, Any]]" = None) -> UpdateQuery:
        return UpdateQuery(table=table, values=values, **self._builder_kwargs())

    def delete(self, table: str) -> DeleteQuery:
        return DeleteQuery(table=table, **self._builder_kwargs())

    def batch_insert(self, table: str, columns: "Sequence[str]") -> BatchInsertQuery:
        return BatchInsertQuery(table=table, columns=columns, **self._builder_kwargs())

    def batch_update(self, table: str, key_column: str) -> BatchUpdateQuery:
        return BatchUpdateQuery(table=table, key_column=key_column, **self._builder_kwargs())

    def compose(self, sql: str, *parameters: Any) -> ComposedQuery:
        """Compose hand-written SQL that uses ``?`` placeholders.

        Raises:
            SQLBuilderError: If the number of placeholders differs from the number of parameters.
        """
        fragment = Raw(sql, parameters).compile(self.dialect)
        if not fragment.sql:
            msg = "Cannot compose an empty statement"
            raise SQLBuilderError(msg)
        return ComposedQuery(
            sql=renumber_placeholders(fragment.sql, self.dialect.parameter_style),
            parameters=fragment.parameters,
            dialect=self.dialect.name,
        )

    def new_query(self, sql: str, *parameters: Any) -> "Query":
        """Bind hand-written SQL to this factory's executor.

        Raises:
            ImproperConfigurationError: If the factory has no executor.
            SQLBuilderError: If the number of placeholders differs from the number of parameters.
        """
        from sqlcompose.driver._query import Query

        if self.executor is None:
            msg = "new_query() requires a factory bound to a database or transaction; use compose() instead"
            raise ImproperConfigurationError(msg)
        return Query(self.compose(sql, *parameters), self.executor, self.context)


class BuilderFactoryMixin:
    """Builder shortcuts for objects that can produce a bound :class:`SQLFactory`."""

    __slots__ = ()

    def builder(self) -> SQLFactory:
        raise NotImplementedError

    def select(self, *columns: Union[str, Expression]) -> SelectQuery:
        return self.builder().select(*columns)

    def insert(self, table: str, values: "Optional[Mapping[str, Any]]" = None) -> InsertQuery:
        return self.builder().insert(table, values)

    def upsert(self, table: str, values: "Optional[Mapping[str, Any]]" = None) -> UpsertQuery:
        return self.builder().upsert(table, values)

    def update(self, table: str, values: "Optional[Mapping[str, Any]]" = None) -> UpdateQuery:
        return self.builder().update(table, values)

    def delete(self, table: str) -> DeleteQuery:
        return self.builder().delete(table)

    def batch_insert(self, table: str, columns: "Sequence[str]") -> BatchInsertQuery:
        return self.builder().batch_insert(table, columns)

    def batch_update(self, table: str, key_column: str) -> BatchUpdateQuery:
        return self.builder().batch_update(table, key_column)

    def new_query(self, sql: str, *parameters: Any) -> "Query":
        """Bind hand-written SQL with ``?`` placeholders, e.g. ``db.new_query("SELECT ?", 1)``."""
        return self.builder().new_query(sql, *parameters)


sql = SQLFactory()
