from typing import TYPE_CHECKING, Any, Optional, Union

from typing_extensions import Self

from sqlcompose.builder.mixins._where import and_condition, compile_clause, or_condition
from sqlcompose.expressions import EMPTY_FRAGMENT, Expression, Fragment, coerce_condition

if TYPE_CHECKING:
    from sqlcompose.dialects import Dialect

__all__ = ("GroupByClauseMixin",)


class GroupByClauseMixin:
    """Mixin providing GROUP BY and HAVING for SELECT builders."""

    __slots__ = ()

    _group_by: "list[Union[str, Expression]]"
    _having: "Optional[Expression]"

    def group_by(self, *columns: "Union[str, Expression]") -> Self:
        self._group_by.extend(columns)
        return self

    def having(self, condition: Any, *values: Any) -> Self:
        """Add a HAVING condition joined to the existing ones with AND."""
        self._having = and_condition(self._having, coerce_condition(condition, *values))
        return self

    def and_having(self, condition: Any, *values: Any) -> Self:
        return self.having(condition, *values)

    def or_having(self, condition: Any, *values: Any) -> Self:
        self._having = or_condition(self._having, coerce_condition(condition, *values))
        return self

    def _compile_group_by(self, dialect: "Dialect") -> Fragment:
        if not self._group_by:
            return EMPTY_FRAGMENT
        parts: list[str] = []
        params: list[Any] = []
        for column in self._group_by:
            if isinstance(column, Expression):
                fragment = column.compile(dialect)
                parts.append(fragment.sql)
                params.extend(fragment.parameters)
            else:
                parts.append(dialect.quote_column(column))
        return Fragment(f" GROUP BY {', '.join(parts)}", tuple(params))

    def _compile_having(self, dialect: "Dialect") -> Fragment:
        return compile_clause("HAVING", self._having, dialect)
