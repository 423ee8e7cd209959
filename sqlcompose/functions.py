"""SQL function expressions for select lists, SET clauses and comparisons.

String arguments of :func:`coalesce`, :func:`nullif`, :func:`greatest`, :func:`least` and
:func:`concat` are column references unless they start with a single quote, in which
case they are emitted verbatim as SQL literals. Other values are bound as parameters.
CASE operands and results are always bound as parameters unless they are expressions.
"""

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Optional, Union

from sqlcompose.exceptions import SQLBuilderError
from sqlcompose.expressions import Expression, Fragment, coerce_condition, render_column, render_value

if TYPE_CHECKING:
    from sqlcompose.dialects import Dialect

__all__ = (
    "Aliased",
    "Case",
    "Function",
    "case",
    "case_when",
    "coalesce",
    "concat",
    "greatest",
    "least",
    "nullif",
)


def _render_argument(argument: Any, dialect: "Dialect") -> Fragment:
    if isinstance(argument, str):
        if argument.startswith("'"):
            return Fragment(argument, ())
        return render_column(argument, dialect)
    return render_value(argument, dialect)


class _Aliasable(Expression):
    __slots__ = ()

    def as_(self, alias: str) -> "Aliased":
        """Name the expression in a select list."""
        return Aliased(self, alias)


@dataclass(frozen=True)
class Aliased(Expression):
    expression: Expression
    alias: str

    def compile(self, dialect: "Dialect") -> Fragment:
        inner = self.expression.compile(dialect)
        return Fragment(f"{inner.sql} AS {dialect.quote_identifier(self.alias)}", inner.parameters)


@dataclass(frozen=True)
class Function(_Aliasable):
    """A function call or, for ``CONCAT`` on operator dialects, a ``||`` chain."""

    name: str
    arguments: "tuple[Any, ...]"

    def compile(self, dialect: "Dialect") -> Fragment:
        fragments = [_render_argument(argument, dialect) for argument in self.arguments]
        params = tuple(param for fragment in fragments for param in fragment.parameters)
        name = self.name
        if name == "GREATEST":
            name = dialect.greatest_function
        elif name == "LEAST":
            name = dialect.least_function
        elif name == "CONCAT" and not dialect.concat_function:
            return Fragment(" || ".join(fragment.sql for fragment in fragments), params)
        return Fragment(f"{name}({', '.join(fragment.sql for fragment in fragments)})", params)


@dataclass(frozen=True)
class Case(_Aliasable):
    """``CASE`` expression.

    With ``operand`` set this is a simple CASE comparing the operand with each WHEN
    value; otherwise each WHEN holds a condition (a SQL string, mapping or expression).
    """

    operand: Optional[Any] = None
    whens: "tuple[tuple[Any, Any], ...]" = ()
    default: Any = None
    has_default: bool = False

    def when(self, condition: Any, result: Any) -> "Case":
        if self.operand is None:
            condition = coerce_condition(condition)
            if condition is None:
                msg = "A searched CASE requires a condition for every WHEN clause"
                raise SQLBuilderError(msg)
        return replace(self, whens=(*self.whens, (condition, result)))

    def else_(self, result: Any) -> "Case":
        return replace(self, default=result, has_default=True)

    def compile(self, dialect: "Dialect") -> Fragment:
        if not self.whens:
            msg = "CASE requires at least one WHEN clause"
            raise SQLBuilderError(msg)
        parts = ["CASE"]
        params: list[Any] = []
        if self.operand is not None:
            operand = render_column(self.operand, dialect)
            parts.append(operand.sql)
            params.extend(operand.parameters)
        for condition, result in self.whens:
            head = render_value(condition, dialect) if self.operand is not None else condition.compile(dialect)
            tail = render_value(result, dialect)
            parts.append(f"WHEN {head.sql} THEN {tail.sql}")
            params.extend(head.parameters)
            params.extend(tail.parameters)
        if self.has_default:
            default = Fragment("NULL", ()) if self.default is None else render_value(self.default, dialect)
            parts.append(f"ELSE {default.sql}")
            params.extend(default.parameters)
        parts.append("END")
        return Fragment(" ".join(parts), tuple(params))


def case(operand: "Optional[Union[str, Expression]]" = None) -> Case:
    """Start a CASE expression, simple when ``operand`` is given, searched otherwise."""
    return Case(operand)


def case_when(condition: "Union[str, Mapping[str, Any], Expression]", result: Any) -> Case:
    """Start a searched CASE with its first WHEN clause."""
    return Case().when(condition, result)


def coalesce(*arguments: Any) -> Function:
    if not arguments:
        msg = "COALESCE requires at least one argument"
        raise SQLBuilderError(msg)
    return Function("COALESCE", arguments)


def nullif(first: Any, second: Any) -> Function:
    return Function("NULLIF", (first, second))


def greatest(*arguments: Any) -> Function:
    """``GREATEST(...)``, rendered as ``MAX(...)`` on SQLite."""
    if len(arguments) < 2:  # noqa: PLR2004
        msg = "GREATEST requires at least two arguments"
        raise SQLBuilderError(msg)
    return Function("GREATEST", arguments)


def least(*arguments: Any) -> Function:
    if len(arguments) < 2:  # noqa: PLR2004
        msg = "LEAST requires at least two arguments"
        raise SQLBuilderError(msg)
    return Function("LEAST", arguments)


def concat(*arguments: Any) -> Function:
    """String concatenation: ``CONCAT(...)`` on MySQL, ``a || b`` elsewhere."""
    if not arguments:
        msg = "CONCAT requires at least one argument"
        raise SQLBuilderError(msg)
    return Function("CONCAT", arguments)

