from typing import TYPE_CHECKING, Any, Final, Optional

from typing_extensions import Self

from sqlcompose.exceptions import SQLBuilderError, UnsupportedFeatureError
from sqlcompose.expressions import EMPTY_FRAGMENT, Fragment, coerce_condition

if TYPE_CHECKING:
    from sqlcompose.dialects import Dialect
    from sqlcompose.expressions import Expression

__all__ = ("JoinClauseMixin",)

_JOIN_KEYWORDS: Final = {
    "INNER": "INNER JOIN",
    "LEFT": "LEFT JOIN",
    "LEFT OUTER": "LEFT JOIN",
    "RIGHT": "RIGHT JOIN",
    "RIGHT OUTER": "RIGHT JOIN",
    "FULL": "FULL OUTER JOIN",
    "FULL OUTER": "FULL OUTER JOIN",
    "CROSS": "CROSS JOIN",
}


class JoinClauseMixin:
    """Mixin providing JOIN clauses for SELECT builders.

    A target of the form ``"orders o"`` renders as ``"orders" AS "o"``. Every join type
    except CROSS requires an ON condition.
    """

    __slots__ = ()

    _dialect: "Dialect"
    _joins: "list[tuple[str, str, Optional[Expression]]]"

    def join(self, table: str, on: Any = None, *values: Any, join_type: str = "INNER") -> Self:
        """Add a JOIN clause.

        Args:
            table: Table name, optionally followed by an alias.
            on: Join condition; a SQL string with ``?`` placeholders, a mapping or an expression.
            *values: Values for the placeholders of a string condition.
            join_type: INNER, LEFT, RIGHT, FULL or CROSS.

        Raises:
            SQLBuilderError: If the join type is unknown or a non-CROSS join has no condition.
            UnsupportedFeatureError: If the dialect cannot express the join type.

        Returns:
            The current builder instance for method chaining.
        """
        keyword = _JOIN_KEYWORDS.get(" ".join(join_type.upper().split()))
        if keyword is None:
            msg = f"Unsupported join type {join_type!r}"
            raise SQLBuilderError(msg)
        if keyword == "FULL OUTER JOIN" and not self._dialect.supports_full_outer_join:
            raise UnsupportedFeatureError("FULL OUTER JOIN", self._dialect.name)
        condition = coerce_condition(on, *values)
        if keyword == "CROSS JOIN":
            if condition is not None:
                msg = "CROSS JOIN does not take an ON condition"
                raise SQLBuilderError(msg)
        elif condition is None:
            msg = f"{keyword} {table!r} requires an ON condition"
            raise SQLBuilderError(msg)
        self._joins.append((keyword, table, condition))
        return self

    def inner_join(self, table: str, on: Any, *values: Any) -> Self:
        return self.join(table, on, *values, join_type="INNER")

    def left_join(self, table: str, on: Any, *values: Any) -> Self:
        return self.join(table, on, *values, join_type="LEFT")

    def right_join(self, table: str, on: Any, *values: Any) -> Self:
        return self.join(table, on, *values, join_type="RIGHT")

    def full_join(self, table: str, on: Any, *values: Any) -> Self:
        return self.join(table, on, *values, join_type="FULL")

    def cross_join(self, table: str) -> Self:
        return self.join(table, join_type="CROSS")

    def _compile_joins(self, dialect: "Dialect") -> Fragment:
        if not self._joins:
            return EMPTY_FRAGMENT
        if not dialect.supports_full_outer_join and any(kw == "FULL OUTER JOIN" for kw, _, _ in self._joins):
            raise UnsupportedFeatureError("FULL OUTER JOIN", dialect.name)
        parts: list[str] = []
        params: list[Any] = []
        for keyword, table, condition in self._joins:
            clause = f" {keyword} {dialect.quote_table(table)}"
            if condition is not None:
                fragment = condition.compile(dialect)
                if not fragment.sql:
                    msg = f"{keyword} {table!r} has an empty ON condition"
                    raise SQLBuilderError(msg)
                clause = f"{clause} ON {fragment.sql}"
                params.extend(fragment.parameters)
            parts.append(clause)
        return Fragment("".join(parts), tuple(params))
