from typing import TYPE_CHECKING, Any, Optional

from typing_extensions import Self

from sqlcompose.expressions import (
    AND,
    EMPTY_FRAGMENT,
    OR,
    Expression,
    Fragment,
    Logical,
    between,
    coerce_condition,
    exists,
    in_,
    like,
    not_exists,
    not_in,
)

if TYPE_CHECKING:
    from sqlcompose.dialects import Dialect

__all__ = ("WhereClauseMixin", "and_condition", "compile_clause", "or_condition")


def and_condition(root: "Optional[Expression]", condition: "Optional[Expression]") -> "Optional[Expression]":
    """Add ``condition`` to the AND root, creating the root on first use."""
    if condition is None:
        return root
    if root is None:
        return Logical(AND, (condition,))
    if isinstance(root, Logical) and root.combinator == AND:
        return root.append(condition)
    return Logical(AND, (root, condition))


def or_condition(root: "Optional[Expression]", condition: "Optional[Expression]") -> "Optional[Expression]":
    """Rewrite the root to ``OR(root, condition)``."""
    if condition is None:
        return root
    if root is None:
        return Logical(AND, (condition,))
    return Logical(OR, (root, condition))


def compile_clause(keyword: str, root: "Optional[Expression]", dialect: "Dialect") -> Fragment:
    if root is None:
        return EMPTY_FRAGMENT
    fragment = root.compile(dialect)
    if not fragment.sql:
        return EMPTY_FRAGMENT
    return Fragment(f" {keyword} {fragment.sql}", fragment.parameters)


class WhereClauseMixin:
    """Mixin providing WHERE clause methods for SELECT, UPDATE, and DELETE builders.

    Conditions may be SQL strings with ``?`` placeholders followed by their values,
    column mappings (rendered as sorted equality checks) or expressions.
    """

    __slots__ = ()

    _where: "Optional[Expression]"

    def where(self, condition: Any, *values: Any) -> Self:
        """Add a condition joined to the existing ones with AND.

        Raises:
            SQLBuilderError: If the placeholder count of a SQL string does not match
                ``values`` or the condition type is unsupported.

        Returns:
            The current builder instance for method chaining.
        """
        self._where = and_condition(self._where, coerce_condition(condition, *values))
        return self

    def and_where(self, condition: Any, *values: Any) -> Self:
        return self.where(condition, *values)

    def or_where(self, condition: Any, *values: Any) -> Self:
        """OR a condition with everything accumulated so far."""
        self._where = or_condition(self._where, coerce_condition(condition, *values))
        return self

    def where_in(self, column: str, values: Any) -> Self:
        """Add a WHERE ... IN (...) clause. Supports subqueries and iterables."""
        return self.where(in_(column, values))

    def where_not_in(self, column: str, values: Any) -> Self:
        return self.where(not_in(column, values))

    def where_between(self, column: str, low: Any, high: Any) -> Self:
        return self.where(between(column, low, high))

    def where_like(self, column: str, *patterns: str) -> Self:
        return self.where(like(column, *patterns))

    def where_is_null(self, column: str) -> Self:
        return self.where({column: None})

    def where_exists(self, subquery: Any) -> Self:
        return self.where(exists(subquery))

    def where_not_exists(self, subquery: Any) -> Self:
        return self.where(not_exists(subquery))

    def _compile_where(self, dialect: "Dialect") -> Fragment:
        return compile_clause("WHERE", self._where, dialect)
