from typing import TYPE_CHECKING, Any, Optional

from typing_extensions import Self

from sqlcompose.exceptions import SQLBuilderError, UnsupportedFeatureError
from sqlcompose.protocols import SubqueryProtocol

if TYPE_CHECKING:
    from sqlcompose.dialects import Dialect
    from sqlcompose.expressions import Fragment

__all__ = ("SetOperationMixin",)


class SetOperationMixin:
    """Mixin providing UNION, UNION ALL, INTERSECT and EXCEPT.

    ``None`` as the other query is a no-op so optional branches can be chained without
    conditionals.
    """

    __slots__ = ()

    _dialect: "Dialect"
    _set_operations: "list[tuple[str, Any]]"
    _ctes: "list[tuple[str, Any, bool]]"
    _order_by: "list[Any]"
    _limit: Optional[int]
    _offset: Optional[int]

    @property
    def set_operations(self) -> "tuple[str, ...]":
        """Operator keywords of the set-operation chain, in order."""
        return tuple(operator for operator, _ in self._set_operations)

    def union(self, other: Optional[Any]) -> Self:
        return self._add_set_operation("UNION", other)

    def union_all(self, other: Optional[Any]) -> Self:
        return self._add_set_operation("UNION ALL", other)

    def intersect(self, other: Optional[Any]) -> Self:
        """INTERSECT; raises :class:`UnsupportedFeatureError` where the dialect lacks it."""
        return self._add_set_operation("INTERSECT", other)

    def except_(self, other: Optional[Any]) -> Self:
        """EXCEPT; raises :class:`UnsupportedFeatureError` where the dialect lacks it."""
        return self._add_set_operation("EXCEPT", other)

    def _add_set_operation(self, operator: str, other: Optional[Any]) -> Self:
        if other is None:
            return self
        if operator in {"INTERSECT", "EXCEPT"} and not self._dialect.supports_intersect_except:
            raise UnsupportedFeatureError(operator, self._dialect.name)
        if other is self or not isinstance(other, SubqueryProtocol):
            msg = f"{operator} requires another statement builder"
            raise SQLBuilderError(msg)
        self._set_operations.append((operator, other))
        return self

    def _has_result_modifiers(self) -> bool:
        """Whether ORDER BY, LIMIT or OFFSET apply to this statement's own result."""
        return bool(self._order_by) or self._limit is not None or self._offset is not None

    def _needs_isolation(self) -> bool:
        """Whether this statement can only join a bare compound select as a derived table."""
        return self._has_result_modifiers() or bool(self._ctes) or bool(self._set_operations)

    def _compile_set_operations(self, head: "Fragment", dialect: "Dialect") -> "tuple[str, list[Any]]":
        """Combine the rendered head statement with every set-operation operand.

        Operands are evaluated in the order they were added. Dialects that parenthesize
        operands group the chain built so far before an INTERSECT, which would otherwise
        bind tighter than the preceding UNION or EXCEPT. Dialects that reject
        parenthesized operands get ``SELECT * FROM (...)`` around any operand whose own
        ORDER BY, LIMIT, OFFSET, CTEs or set operations a bare member cannot carry.
        """
        if any(op in {"INTERSECT", "EXCEPT"} for op, _ in self._set_operations) and not (
            dialect.supports_intersect_except
        ):
            raise UnsupportedFeatureError("INTERSECT/EXCEPT", dialect.name)
        wrap = dialect.parenthesize_set_operands
        if wrap:
            sql = f"({head.sql})"
        elif self._has_result_modifiers():
            sql = f"SELECT * FROM ({head.sql})"
        else:
            sql = head.sql
        params: list[Any] = list(head.parameters)
        for index, (operator, other) in enumerate(self._set_operations):
            other_sql, other_params = other.render(dialect)
            if wrap:
                if operator == "INTERSECT" and index > 0:
                    sql = f"({sql})"
                other_sql = f"({other_sql})"
            elif not isinstance(other, SetOperationMixin) or other._needs_isolation():
                other_sql = f"SELECT * FROM ({other_sql})"
            sql = f"{sql} {operator} {other_sql}"
            params.extend(other_params)
        return sql, params
