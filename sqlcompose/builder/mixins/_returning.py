from typing import TYPE_CHECKING

from typing_extensions import Self

from sqlcompose.exceptions import SQLBuilderError, UnsupportedFeatureError

if TYPE_CHECKING:
    from sqlcompose.dialects import Dialect

__all__ = ("ReturningClauseMixin",)


class ReturningClauseMixin:
    """Mixin providing RETURNING for INSERT statements."""

    __slots__ = ()

    _dialect: "Dialect"
    _returning: "list[str]"

    def returning(self, *columns: str) -> Self:
        """Return ``columns`` of the affected rows.

        Raises:
            SQLBuilderError: If no columns are given.
            UnsupportedFeatureError: If the dialect has no RETURNING clause.
        """
        if not self._dialect.supports_returning:
            raise UnsupportedFeatureError("RETURNING", self._dialect.name)
        if not columns:
            msg = "RETURNING requires at least one column"
            raise SQLBuilderError(msg)
        self._returning.extend(columns)
        return self

    def _compile_returning(self, dialect: "Dialect") -> str:
        if not self._returning:
            return ""
        if not dialect.supports_returning:
            raise UnsupportedFeatureError("RETURNING", dialect.name)
        return " RETURNING " + ", ".join(dialect.quote_column(column) for column in self._returning)
