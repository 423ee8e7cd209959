from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

__all__ = ("ComposedQuery",)


@dataclass(frozen=True)
class ComposedQuery:
    """Rendered SQL text with parameters ordered as their placeholders appear."""

    sql: str
    parameters: "tuple[Any, ...]" = field(default_factory=tuple)
    dialect: str = ""

    def __iter__(self) -> "Iterator[Any]":
        yield self.sql
        yield list(self.parameters)
