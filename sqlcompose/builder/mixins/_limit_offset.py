from typing import Optional

from typing_extensions import Self

from sqlcompose.exceptions import SQLBuilderError

__all__ = ("LimitOffsetClauseMixin",)


def _validate(keyword: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        msg = f"{keyword} must be a non-negative integer, got {value!r}"
        raise SQLBuilderError(msg)
    return value


class LimitOffsetClauseMixin:
    """Mixin providing LIMIT and OFFSET, rendered as integer literals."""

    __slots__ = ()

    _limit: Optional[int]
    _offset: Optional[int]

    def limit(self, value: int) -> Self:
        self._limit = _validate("LIMIT", value)
        return self

    def offset(self, value: int) -> Self:
        self._offset = _validate("OFFSET", value)
        return self

    def _compile_limit_offset(self) -> str:
        sql = ""
        if self._limit is not None:
            sql += f" LIMIT {self._limit}"
        if self._offset is not None:
            sql += f" OFFSET {self._offset}"
        return sql
