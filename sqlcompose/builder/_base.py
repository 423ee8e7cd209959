"""Base class shared by every statement builder.

Builders accumulate clause state through chainable methods and render it on demand.
Rendering always emits ``?`` placeholders; :meth:`StatementBuilder.build` runs the
placeholder pass for the builder's dialect so subqueries composed independently still
share one numbering sequence.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional

from typing_extensions import Self

from sqlcompose.core.compiler import renumber_placeholders
from sqlcompose.core.statement import ComposedQuery
from sqlcompose.dialects import POSTGRES, DialectLike, get_dialect
from sqlcompose.exceptions import ImproperConfigurationError, SQLBuilderError

if TYPE_CHECKING:
    from sqlcompose.dialects import Dialect
    from sqlcompose.driver._query import Query
    from sqlcompose.expressions import Fragment
    from sqlcompose.protocols import StatementExecutor

__all__ = ("StatementBuilder",)


class StatementBuilder(ABC):
    """Abstract base class for SQL statement builders.

    Args:
        dialect: Dialect or registered dialect name used by :meth:`build`.
        executor: Optional executor used by :meth:`to_query` and the terminal methods.
        context: Optional cancellation token handed to the executor.
    """

    __slots__ = ("_context", "_dialect", "_executor")

    def __init__(
        self,
        dialect: DialectLike = POSTGRES,
        executor: "Optional[StatementExecutor]" = None,
        context: Optional[Any] = None,
    ) -> None:
        self._dialect = get_dialect(dialect)
        self._executor = executor
        self._context = context

    @property
    def dialect(self) -> "Dialect":
        return self._dialect

    @property
    def dialect_name(self) -> str:
        return self._dialect.name

    @abstractmethod
    def _compile(self, dialect: "Dialect") -> "Fragment":
        """Render the statement with ``?`` placeholders."""

    def with_context(self, context: Optional[Any]) -> Self:
        """Attach a cancellation token that is passed to the execution step."""
        self._context = context
        return self

    def render(self, dialect: "Optional[Dialect]" = None) -> "tuple[str, list[Any]]":
        """Render with ``?`` placeholders, e.g. to embed this statement in another.

        Args:
            dialect: Dialect to render for; defaults to the builder's own.

        Returns:
            The SQL text and its parameters in placeholder order.
        """
        fragment = self._compile(dialect or self._dialect)
        return fragment.sql, list(fragment.parameters)

    def build(self) -> ComposedQuery:
        """Compose the statement for the builder's dialect.

        Raises:
            SQLBuilderError: If the accumulated state does not form a valid statement.

        Returns:
            ComposedQuery: SQL text with dialect placeholders and ordered parameters.
        """
        sql, parameters = self.render(self._dialect)
        if not sql:
            msg = f"{type(self).__name__} rendered an empty statement"
            raise SQLBuilderError(msg)
        sql = renumber_placeholders(sql, self._dialect.parameter_style)
        return ComposedQuery(sql=sql, parameters=tuple(parameters), dialect=self._dialect.name)

    def to_query(self) -> "Query":
        """Bind the composed statement to this builder's executor.

        Raises:
            ImproperConfigurationError: If the builder was created without an executor.
        """
        from sqlcompose.driver._query import Query

        if self._executor is None:
            msg = f"{type(self).__name__} is not bound to a database or transaction; use build() instead"
            raise ImproperConfigurationError(msg)
        return Query(self.build(), self._executor, self._context)

    def execute(self) -> int:
        """Build and run the statement, returning the affected row count."""
        return self.to_query().execute()

    def __str__(self) -> str:
        return self.build().sql

