import re
from typing import TYPE_CHECKING, Any, Final, Union

from typing_extensions import Self

from sqlcompose.exceptions import SQLBuilderError
from sqlcompose.expressions import EMPTY_FRAGMENT, Expression, Fragment

if TYPE_CHECKING:
    from sqlcompose.dialects import Dialect

__all__ = ("OrderByClauseMixin",)

_DIRECTION_REGEX: Final = re.compile(r"^(?P<column>.+?)\s+(?P<direction>ASC|DESC)$", re.IGNORECASE)


class OrderByClauseMixin:
    """Mixin providing ORDER BY. Repeated calls append columns."""

    __slots__ = ()

    _order_by: "list[Union[str, Expression]]"

    def order_by(self, *columns: "Union[str, Expression]") -> Self:
        """Append ORDER BY columns, each optionally followed by ASC or DESC.

        Raises:
            SQLBuilderError: If a column is empty.
        """
        for column in columns:
            if isinstance(column, str) and not column.strip():
                msg = "ORDER BY column cannot be empty"
                raise SQLBuilderError(msg)
            self._order_by.append(column)
        return self

    def _compile_order_by(self, dialect: "Dialect") -> Fragment:
        if not self._order_by:
            return EMPTY_FRAGMENT
        parts: list[str] = []
        params: list[Any] = []
        for column in self._order_by:
            if isinstance(column, Expression):
                fragment = column.compile(dialect)
                parts.append(fragment.sql)
                params.extend(fragment.parameters)
                continue
            match = _DIRECTION_REGEX.match(column.strip())
            if match:
                parts.append(f"{dialect.quote_column(match.group('column'))} {match.group('direction').upper()}")
            else:
                parts.append(dialect.quote_column(column))
        return Fragment(f" ORDER BY {', '.join(parts)}", tuple(params))
