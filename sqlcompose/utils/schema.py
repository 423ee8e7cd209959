"""Conversion of result rows into caller supplied schema types."""

from dataclasses import is_dataclass
from pathlib import Path, PurePath
from typing import Any, Optional, TypeVar, Union

from msgspec import Struct, convert

from sqlcompose.exceptions import SQLComposeError

__all__ = ("is_msgspec_struct", "to_schema")

SchemaT = TypeVar("SchemaT")


def _default_msgspec_deserializer(target_type: Any, value: Any) -> Any:
    """Decode hook for types msgspec does not convert natively."""
    if isinstance(value, target_type):
        return value
    if isinstance(target_type, type) and issubclass(target_type, (Path, PurePath)):
        return target_type(value)
    msg = f"Cannot convert {type(value).__name__} to {target_type!r}"
    raise TypeError(msg)


def is_msgspec_struct(obj: Any) -> bool:
    return isinstance(obj, type) and issubclass(obj, Struct)


def to_schema(
    data: "Union[dict[str, Any], list[dict[str, Any]]]", *, schema_type: "Optional[type[SchemaT]]" = None
) -> Any:
    """Convert one row or a list of rows to ``schema_type``.

    Rows are plain dictionaries keyed by column name. Dataclasses and msgspec structs are
    supported as targets; ``None`` returns the rows unchanged. Values are coerced
    leniently, so ISO date strings returned by SQLite become ``datetime`` fields.

    Raises:
        SQLComposeError: If ``schema_type`` is not a dataclass or msgspec struct.

    Returns:
        The converted row or list of rows.
    """
    if schema_type is None:
        return data
    if not (is_msgspec_struct(schema_type) or is_dataclass(schema_type)):
        msg = "`schema_type` should be a valid Dataclass or Msgspec struct"
        raise SQLComposeError(msg)
    target: Any = list[schema_type] if isinstance(data, list) else schema_type  # type: ignore[valid-type]
    return convert(obj=data, type=target, strict=False, dec_hook=_default_msgspec_deserializer)
