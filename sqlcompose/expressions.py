"""Predicate expressions.

Every expression is an immutable value that renders itself against a
:class:`~sqlcompose.dialects.Dialect` into a SQL fragment using ``?`` placeholders plus
the parameters for those placeholders, in textual order. Rendering is pure; the same
expression and dialect always produce the same text, which keeps statement cache keys
stable.

The free functions at the bottom of this module are the public constructors.
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Final, NamedTuple, Optional, Union

from sqlcompose.core.compiler import PLACEHOLDER, count_placeholders
from sqlcompose.exceptions import SQLBuilderError
from sqlcompose.protocols import Renderable, SubqueryProtocol

if TYPE_CHECKING:
    from sqlcompose.dialects import Dialect

__all__ = (
    "ALWAYS_FALSE",
    "AND",
    "EMPTY_FRAGMENT",
    "NOT",
    "OR",
    "Comparison",
    "Existence",
    "Expression",
    "Fragment",
    "HashEquality",
    "Logical",
    "Membership",
    "Pattern",
    "Range",
    "Raw",
    "and_",
    "between",
    "coerce_condition",
    "eq",
    "exists",
    "gt",
    "gte",
    "hash_eq",
    "in_",
    "like",
    "lt",
    "lte",
    "not_",
    "not_between",
    "not_eq",
    "not_exists",
    "not_in",
    "not_like",
    "or_",
    "or_like",
    "or_not_like",
    "raw",
    "render_column",
    "render_value",
)

AND: Final = "AND"
OR: Final = "OR"
NOT: Final = "NOT"

ALWAYS_FALSE: Final = "1=0"

COMPARISON_OPERATORS: Final = frozenset({"=", "<>", "<", ">", "<=", ">="})
DEFAULT_LIKE_ESCAPES: Final = (("\\", "\\\\"), ("%", "\\%"), ("_", "\\_"))

_COLLECTION_TYPES: Final = (list, tuple, set, frozenset)
_CONNECTIVE_REGEX: Final = re.compile(
    r"""(?P<squote>'(?:[^']|'')*')|(?P<dquote>"(?:[^"]|"")*")|(?P<open>\()|(?P<close>\))|\b(?P<word>AND|OR)\b""",
    re.IGNORECASE,
)


class Fragment(NamedTuple):
    """Rendered SQL with its parameters and top-level boolean connective, if any."""

    sql: str
    parameters: "tuple[Any, ...]"
    connective: Optional[str] = None


EMPTY_FRAGMENT: Final = Fragment("", ())


class Expression:
    """Base class for renderable SQL expressions."""

    __slots__ = ()

    def compile(self, dialect: "Dialect") -> Fragment:
        raise NotImplementedError

    def render(self, dialect: "Dialect") -> "tuple[str, list[Any]]":
        """Render against ``dialect``.

        Returns:
            The SQL fragment with ``?`` placeholders and its ordered parameters. An
            expression with nothing to contribute renders as ``("", [])``.
        """
        fragment = self.compile(dialect)
        return fragment.sql, list(fragment.parameters)


def _is_subquery(value: Any) -> bool:
    return isinstance(value, SubqueryProtocol) and not isinstance(value, Expression)


def render_value(value: Any, dialect: "Dialect") -> Fragment:
    """Render a value operand.

    Subqueries are parenthesized, expressions are inlined and anything else becomes a
    bound parameter.
    """
    if _is_subquery(value):
        sql, params = value.render(dialect)
        return Fragment(f"({sql})", tuple(params))
    if isinstance(value, Expression):
        return value.compile(dialect)
    if isinstance(value, Renderable):
        sql, params = value.render(dialect)
        return Fragment(sql, tuple(params))
    return Fragment(PLACEHOLDER, (value,))


def render_column(column: "Union[str, Expression]", dialect: "Dialect") -> Fragment:
    if isinstance(column, Expression):
        return column.compile(dialect)
    return Fragment(dialect.quote_column(column), ())


def _null_check(column_sql: str, negate: bool) -> str:
    return f"{column_sql} IS NOT NULL" if negate else f"{column_sql} IS NULL"


def _raw_connective(sql: str) -> Optional[str]:
    """Return the weakest boolean connective found outside parentheses and literals."""
    depth = 0
    found: Optional[str] = None
    for match in _CONNECTIVE_REGEX.finditer(sql):
        if match.group("open"):
            depth += 1
        elif match.group("close"):
            depth -= 1
        elif match.group("word") and depth == 0:
            word = match.group("word").upper()
            if word == OR:
                return OR
            found = AND
    return found


@dataclass(frozen=True)
class Raw(Expression):
    """A hand-written SQL fragment with ``?`` placeholders."""

    sql: str
    values: "tuple[Any, ...]" = ()

    def __post_init__(self) -> None:
        expected = count_placeholders(self.sql)
        if expected != len(self.values):
            msg = f"Raw fragment {self.sql!r} has {expected} placeholder(s) but {len(self.values)} value(s)"
            raise SQLBuilderError(msg)

    def compile(self, dialect: "Dialect") -> Fragment:
        sql = self.sql.strip()
        if not sql:
            return EMPTY_FRAGMENT
        return Fragment(sql, tuple(self.values), _raw_connective(sql))


@dataclass(frozen=True)
class Comparison(Expression):
    """``column op value``; a ``None`` value with ``=`` or ``<>`` renders a NULL check."""

    column: "Union[str, Expression]"
    op: str
    value: Any

    def __post_init__(self) -> None:
        op = "<>" if self.op == "!=" else self.op
        if op not in COMPARISON_OPERATORS:
            msg = f"Unsupported comparison operator {self.op!r}"
            raise SQLBuilderError(msg)
        if self.value is None and op not in {"=", "<>"}:
            msg = f"Cannot compare NULL with {op!r}; use eq() or not_eq()"
            raise SQLBuilderError(msg)
        object.__setattr__(self, "op", op)

    def compile(self, dialect: "Dialect") -> Fragment:
        column = render_column(self.column, dialect)
        if self.value is None:
            return Fragment(_null_check(column.sql, self.op == "<>"), column.parameters)
        value = render_value(self.value, dialect)
        return Fragment(f"{column.sql} {self.op} {value.sql}", column.parameters + value.parameters)


@dataclass(frozen=True)
class HashEquality(Expression):
    """Equality conditions over a column mapping, rendered with sorted keys.

    ``None`` renders ``IS NULL``, a list/tuple/set renders ``IN`` and a subquery renders
    ``IN (subquery)``. All conditions are joined with AND.
    """

    items: "tuple[tuple[str, Any], ...]" = ()

    @classmethod
    def from_mapping(cls, mapping: "Mapping[str, Any]") -> "HashEquality":
        return cls(tuple(sorted(mapping.items(), key=lambda item: item[0])))

    def compile(self, dialect: "Dialect") -> Fragment:
        parts: list[str] = []
        params: list[Any] = []
        for column, value in self.items:
            if isinstance(value, _COLLECTION_TYPES) or _is_subquery(value):
                fragment = Membership.of(column, value).compile(dialect)
            else:
                fragment = Comparison(column, "=", value).compile(dialect)
            if fragment.sql:
                parts.append(fragment.sql)
                params.extend(fragment.parameters)
        if not parts:
            return EMPTY_FRAGMENT
        return Fragment(" AND ".join(parts), tuple(params), AND if len(parts) > 1 else None)


@dataclass(frozen=True)
class Pattern(Expression):
    """LIKE family predicate.

    Each value has the escape character, ``%`` and ``_`` escaped (in that order) and is
    then wrapped with ``%`` on the enabled sides. Multiple values are joined with
    ``combinator``.
    """

    column: "Union[str, Expression]"
    values: "tuple[str, ...]"
    escape_left: bool = True
    escape_right: bool = True
    combinator: str = AND
    negate: bool = False
    escapes: "tuple[tuple[str, str], ...]" = DEFAULT_LIKE_ESCAPES

    def match(self, left: bool, right: bool) -> "Pattern":
        """Choose the sides that get a ``%`` wildcard."""
        return replace(self, escape_left=left, escape_right=right)

    def escape_chars(self, *chars: str) -> "Pattern":
        """Replace the escape table with ``from, to`` pairs.

        Raises:
            SQLBuilderError: If an odd number of strings is given.
        """
        if len(chars) % 2:
            msg = "escape_chars() requires an even number of arguments (from, to pairs)"
            raise SQLBuilderError(msg)
        return replace(self, escapes=tuple(zip(chars[::2], chars[1::2])))

    def escape(self, value: str) -> str:
        for old, new in self.escapes:
            value = value.replace(old, new)
        return value

    def wrap(self, value: str) -> str:
        escaped = self.escape(value)
        return f"{'%' if self.escape_left else ''}{escaped}{'%' if self.escape_right else ''}"

    def compile(self, dialect: "Dialect") -> Fragment:
        if not self.values:
            return EMPTY_FRAGMENT
        column = render_column(self.column, dialect)
        operator = "NOT LIKE" if self.negate else "LIKE"
        suffix = " ESCAPE '\\'" if dialect.like_escape_clause else ""
        parts = [f"{column.sql} {operator} {PLACEHOLDER}{suffix}" for _ in self.values]
        params: list[Any] = []
        for value in self.values:
            params.extend(column.parameters)
            params.append(self.wrap(value))
        return Fragment(
            f" {self.combinator} ".join(parts), tuple(params), self.combinator if len(parts) > 1 else None
        )


@dataclass(frozen=True)
class Membership(Expression):
    """``IN`` / ``NOT IN`` over literal values or a subquery."""

    column: "Union[str, Expression]"
    values: "tuple[Any, ...]" = ()
    subquery: Optional[Any] = None
    negate: bool = False

    @classmethod
    def of(cls, column: "Union[str, Expression]", values: Any, negate: bool = False) -> "Membership":
        """Build from a collection, a generator or a subquery.

        Raises:
            SQLBuilderError: If ``values`` is an expression that is not a complete statement.
        """
        if _is_subquery(values):
            return cls(column, subquery=values, negate=negate)
        if isinstance(values, Expression):
            msg = f"IN requires a list of values or a subquery, got {type(values).__name__}"
            raise SQLBuilderError(msg)
        if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
            return cls(column, (values,), negate=negate)
        return cls(column, tuple(values), negate=negate)

    def compile(self, dialect: "Dialect") -> Fragment:
        column = render_column(self.column, dialect)
        operator = "NOT IN" if self.negate else "IN"
        if self.subquery is not None:
            sub = render_value(self.subquery, dialect)
            return Fragment(f"{column.sql} {operator} {sub.sql}", column.parameters + sub.parameters)
        if not self.values:
            return Fragment(ALWAYS_FALSE, ()) if not self.negate else EMPTY_FRAGMENT
        if len(self.values) == 1:
            return Comparison(self.column, "<>" if self.negate else "=", self.values[0]).compile(dialect)
        placeholders: list[str] = []
        params: list[Any] = list(column.parameters)
        for value in self.values:
            if value is None:
                placeholders.append("NULL")
                continue
            fragment = render_value(value, dialect)
            placeholders.append(fragment.sql)
            params.extend(fragment.parameters)
        return Fragment(f"{column.sql} {operator} ({', '.join(placeholders)})", tuple(params))


@dataclass(frozen=True)
class Range(Expression):
    column: "Union[str, Expression]"
    low: Any
    high: Any
    negate: bool = False

    def compile(self, dialect: "Dialect") -> Fragment:
        column = render_column(self.column, dialect)
        low = render_value(self.low, dialect)
        high = render_value(self.high, dialect)
        operator = "NOT BETWEEN" if self.negate else "BETWEEN"
        return Fragment(
            f"{column.sql} {operator} {low.sql} AND {high.sql}",
            column.parameters + low.parameters + high.parameters,
        )


@dataclass(frozen=True)
class Logical(Expression):
    """AND / OR over operands, or NOT over a single operand.

    ``None`` operands and operands that render empty are skipped. An operand is
    parenthesized when its own top-level connective differs from this combinator.
    """

    combinator: str
    operands: "tuple[Optional[Expression], ...]" = field(default_factory=tuple)

    def __post_init__(self) -> None:
        combinator = self.combinator.upper()
        if combinator not in {AND, OR, NOT}:
            msg = f"Unsupported logical combinator {self.combinator!r}"
            raise SQLBuilderError(msg)
        if combinator == NOT and len(self.operands) != 1:
            msg = "NOT takes exactly one operand"
            raise SQLBuilderError(msg)
        object.__setattr__(self, "combinator", combinator)

    def compile(self, dialect: "Dialect") -> Fragment:
        fragments = [operand.compile(dialect) for operand in self.operands if operand is not None]
        fragments = [fragment for fragment in fragments if fragment.sql]
        if not fragments:
            return EMPTY_FRAGMENT
        if self.combinator == NOT:
            inner = fragments[0]
            return Fragment(f"NOT ({inner.sql})", inner.parameters)
        if len(fragments) == 1:
            return fragments[0]
        parts: list[str] = []
        params: list[Any] = []
        for fragment in fragments:
            if fragment.connective is not None and fragment.connective != self.combinator:
                parts.append(f"({fragment.sql})")
            else:
                parts.append(fragment.sql)
            params.extend(fragment.parameters)
        return Fragment(f" {self.combinator} ".join(parts), tuple(params), self.combinator)

    def append(self, *operands: "Optional[Expression]") -> "Logical":
        return replace(self, operands=self.operands + operands)


@dataclass(frozen=True)
class Existence(Expression):
    """``EXISTS (subquery)``; with no subquery EXISTS is always false and NOT EXISTS is absent."""

    subquery: Optional[Any] = None
    negate: bool = False

    def __post_init__(self) -> None:
        if self.subquery is not None and not (_is_subquery(self.subquery) or isinstance(self.subquery, Raw)):
            msg = f"EXISTS requires a subquery or raw SQL, got {type(self.subquery).__name__}"
            raise SQLBuilderError(msg)

    def compile(self, dialect: "Dialect") -> Fragment:
        operator = "NOT EXISTS" if self.negate else "EXISTS"
        if self.subquery is None:
            return EMPTY_FRAGMENT if self.negate else Fragment(ALWAYS_FALSE, ())
        sql, params = self.subquery.render(dialect)
        if not sql:
            return EMPTY_FRAGMENT if self.negate else Fragment(ALWAYS_FALSE, ())
        return Fragment(f"{operator} ({sql})", tuple(params))


def coerce_condition(condition: Any, *values: Any) -> "Optional[Expression]":
    """Turn a ``where()``-style argument into an expression.

    Strings become :class:`Raw` fragments bound to ``values``, mappings become
    :class:`HashEquality` and expressions pass through.

    Raises:
        SQLBuilderError: If values are given with a non-string condition or the condition
            type is unsupported.
    """
    if condition is None:
        if values:
            msg = "Parameters were given without a condition"
            raise SQLBuilderError(msg)
        return None
    if isinstance(condition, str):
        return Raw(condition, values)
    if values:
        msg = "Parameters can only accompany a SQL string condition"
        raise SQLBuilderError(msg)
    if isinstance(condition, Expression):
        return condition
    if isinstance(condition, Mapping):
        return HashEquality.from_mapping(condition)
    msg = f"Unsupported condition type {type(condition).__name__}"
    raise SQLBuilderError(msg)


def raw(sql: str, *values: Any) -> Raw:
    return Raw(sql, values)


def eq(column: "Union[str, Expression]", value: Any) -> Comparison:
    return Comparison(column, "=", value)


def not_eq(column: "Union[str, Expression]", value: Any) -> Comparison:
    return Comparison(column, "<>", value)


def gt(column: "Union[str, Expression]", value: Any) -> Comparison:
    return Comparison(column, ">", value)


def gte(column: "Union[str, Expression]", value: Any) -> Comparison:
    return Comparison(column, ">=", value)


def lt(column: "Union[str, Expression]", value: Any) -> Comparison:
    return Comparison(column, "<", value)


def lte(column: "Union[str, Expression]", value: Any) -> Comparison:
    return Comparison(column, "<=", value)


def hash_eq(mapping: "Optional[Mapping[str, Any]]" = None, **columns: Any) -> HashEquality:
    """Equality over several columns: ``hash_eq({"status": 1, "deleted_at": None})``."""
    merged: dict[str, Any] = dict(mapping or {})
    merged.update(columns)
    return HashEquality.from_mapping(merged)


def in_(column: "Union[str, Expression]", *values: Any) -> Membership:
    """``column IN (...)``.

    Accepts values as separate arguments, a single iterable or a single subquery.
    """
    if len(values) == 1:
        return Membership.of(column, values[0])
    return Membership.of(column, values)


def not_in(column: "Union[str, Expression]", *values: Any) -> Membership:
    if len(values) == 1:
        return Membership.of(column, values[0], negate=True)
    return Membership.of(column, values, negate=True)


def between(column: "Union[str, Expression]", low: Any, high: Any) -> Range:
    return Range(column, low, high)


def not_between(column: "Union[str, Expression]", low: Any, high: Any) -> Range:
    return Range(column, low, high, negate=True)


def like(column: "Union[str, Expression]", *values: str) -> Pattern:
    """``column LIKE '%value%'`` for every value, joined with AND."""
    return Pattern(column, values)


def not_like(column: "Union[str, Expression]", *values: str) -> Pattern:
    return Pattern(column, values, negate=True)


def or_like(column: "Union[str, Expression]", *values: str) -> Pattern:
    """``column LIKE '%value%'`` for every value, joined with OR."""
    return Pattern(column, values, combinator=OR)


def or_not_like(column: "Union[str, Expression]", *values: str) -> Pattern:
    return Pattern(column, values, combinator=OR, negate=True)


def and_(*operands: "Optional[Expression]") -> Logical:
    return Logical(AND, operands)


def or_(*operands: "Optional[Expression]") -> Logical:
    return Logical(OR, operands)


def not_(operand: Expression) -> Logical:
    return Logical(NOT, (operand,))


def exists(subquery: Optional[Any]) -> Existence:
    return Existence(subquery)


def not_exists(subquery: Optional[Any]) -> Existence:
    return Existence(subquery, negate=True)
