"""Placeholder scanning and renumbering.

Every fragment renders the ``?`` token. Once a statement is fully composed the compiler
walks the text left to right and, for numbered dialects, rewrites each placeholder to
``$1``, ``$2``... so that independently rendered subqueries share one global sequence.
"""

import re
from enum import Enum
from functools import lru_cache
from typing import Final

__all__ = ("PLACEHOLDER", "ParameterStyle", "count_placeholders", "renumber_placeholders")

PLACEHOLDER: Final = "?"

_PLACEHOLDER_REGEX: Final = re.compile(
    r"""
    # Literals and comments, matched first and skipped
    (?P<dquote>"(?:[^"]|"")*") |
    (?P<squote>'(?:[^']|'')*') |
    (?P<backtick>`(?:[^`]|``)*`) |
    (?P<dollar_quoted_string>\$(?P<dollar_quote_tag_inner>\w*)\$[\s\S]*?\$(?P=dollar_quote_tag_inner)\$) |
    (?P<line_comment>--[^\r\n]*) |
    (?P<block_comment>/\*(?:[^*]|\*(?!/))*\*/) |
    # PostgreSQL JSON operators that contain a question mark
    (?P<pg_q_operator>\?\?|\?\||\?&) |
    (?P<qmark>\?)
    """,
    re.VERBOSE | re.MULTILINE | re.DOTALL,
)


class ParameterStyle(str, Enum):
    """Placeholder style of a dialect."""

    QMARK = "qmark"
    NUMERIC = "numeric"

    def __str__(self) -> str:
        return self.value


def _positions(sql: str) -> "tuple[int, ...]":
    return tuple(match.start("qmark") for match in _PLACEHOLDER_REGEX.finditer(sql) if match.group("qmark"))


@lru_cache(maxsize=4096)
def count_placeholders(sql: str) -> int:
    """Count the ``?`` placeholders of ``sql`` that are outside literals and comments."""
    return len(_positions(sql))


@lru_cache(maxsize=4096)
def renumber_placeholders(sql: str, style: ParameterStyle = ParameterStyle.NUMERIC) -> str:
    """Rewrite ``?`` placeholders for the given style.

    Args:
        sql: Fully composed SQL text using ``?`` placeholders.
        style: Target placeholder style. ``QMARK`` returns the text unchanged.

    Returns:
        The SQL text with placeholders numbered from 1 in textual order.
    """
    if style is ParameterStyle.QMARK:
        return sql
    positions = _positions(sql)
    if not positions:
        return sql
    parts: list[str] = []
    last = 0
    for index, position in enumerate(positions, start=1):
        parts.append(sql[last:position])
        parts.append(f"${index}")
        last = position + 1
    parts.append(sql[last:])
    return "".join(parts)
