from typing import TYPE_CHECKING, Any

from typing_extensions import Self

from sqlcompose.exceptions import SQLBuilderError, UnsupportedFeatureError
from sqlcompose.expressions import EMPTY_FRAGMENT, Fragment
from sqlcompose.protocols import SubqueryProtocol

if TYPE_CHECKING:
    from sqlcompose.dialects import Dialect

__all__ = ("CommonTableExpressionMixin",)

_RECURSIVE_SET_OPERATIONS = frozenset({"UNION", "UNION ALL"})


class CommonTableExpressionMixin:
    """Mixin providing WITH and WITH RECURSIVE.

    CTEs render in declaration order ahead of the main statement, and their parameters
    come first in the parameter list.
    """

    __slots__ = ()

    _dialect: "Dialect"
    _ctes: "list[tuple[str, Any, bool]]"

    def with_(self, name: str, query: Any) -> Self:
        """Add a named CTE.

        Raises:
            SQLBuilderError: If the name is empty or ``query`` is not a statement.
        """
        self._ctes.append((self._validate_cte(name, query), query, False))
        return self

    def with_recursive(self, name: str, query: Any) -> Self:
        """Add a recursive CTE.

        ``query`` must be an anchor SELECT combined with exactly one recursive SELECT via
        ``union()`` or ``union_all()``.

        Raises:
            SQLBuilderError: If ``query`` is not a two-part UNION / UNION ALL chain.
            UnsupportedFeatureError: If the dialect lacks recursive CTEs.
        """
        from sqlcompose.builder._select import SelectQuery

        if not self._dialect.supports_recursive_cte:
            raise UnsupportedFeatureError("WITH RECURSIVE", self._dialect.name)
        self._validate_cte(name, query)
        operations = query.set_operations if isinstance(query, SelectQuery) else ()
        if len(operations) != 1 or operations[0] not in _RECURSIVE_SET_OPERATIONS:
            msg = (
                f"Recursive CTE {name!r} must be an anchor query combined with a recursive query "
                "using exactly one UNION or UNION ALL"
            )
            raise SQLBuilderError(msg)
        self._ctes.append((name, query, True))
        return self

    @staticmethod
    def _validate_cte(name: str, query: Any) -> str:
        if not name or not name.strip():
            msg = "CTE name cannot be empty"
            raise SQLBuilderError(msg)
        if not isinstance(query, SubqueryProtocol):
            msg = f"CTE {name!r} requires a statement builder, got {type(query).__name__}"
            raise SQLBuilderError(msg)
        return name

    def _compile_ctes(self, dialect: "Dialect") -> Fragment:
        if not self._ctes:
            return EMPTY_FRAGMENT
        parts: list[str] = []
        params: list[Any] = []
        for name, query, _ in self._ctes:
            sql, query_params = query.render(dialect)
            parts.append(f"{dialect.quote_identifier(name)} AS ({sql})")
            params.extend(query_params)
        keyword = "WITH RECURSIVE" if any(recursive for _, _, recursive in self._ctes) else "WITH"
        return Fragment(f"{keyword} {', '.join(parts)} ", tuple(params))
