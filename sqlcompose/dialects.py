"""Dialect descriptors.

A :class:`Dialect` is immutable data describing one database family: how identifiers are
quoted, which placeholder style the driver expects and which optional SQL features the
server understands. Builders consult these flags and fail before rendering SQL the
target database would reject.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Final, Union

from sqlglot import exp

from sqlcompose.core.compiler import ParameterStyle
from sqlcompose.exceptions import ImproperConfigurationError

__all__ = (
    "MYSQL",
    "POSTGRES",
    "SQLITE",
    "Dialect",
    "DialectLike",
    "get_dialect",
    "register_dialect",
    "registered_dialects",
)

ON_CONFLICT: Final = "on_conflict"
ON_DUPLICATE_KEY: Final = "on_duplicate_key"

_ALIAS_REGEX: Final = re.compile(r"^(?P<expr>.+?)\s+as\s+(?P<alias>\S+)$", re.IGNORECASE | re.DOTALL)


@lru_cache(maxsize=8192)
def _quote(name: str, sqlglot_dialect: str) -> str:
    return exp.to_identifier(name, quoted=True).sql(dialect=sqlglot_dialect)


@dataclass(frozen=True)
class Dialect:
    """Constants and policies for one SQL dialect.

    Args:
        name: Canonical dialect name.
        sqlglot_dialect: sqlglot dialect used to quote identifiers.
        parameter_style: ``QMARK`` repeats ``?``; ``NUMERIC`` renders ``$1``, ``$2``...
        supports_full_outer_join: Whether ``FULL OUTER JOIN`` is available.
        supports_intersect_except: Whether ``INTERSECT`` and ``EXCEPT`` are available.
        supports_recursive_cte: Whether ``WITH RECURSIVE`` is available.
        supports_returning: Whether ``INSERT ... RETURNING`` is available.
        conflict_style: ``"on_conflict"`` or ``"on_duplicate_key"``.
        excluded_prefix: Pseudo table naming the proposed row in ``ON CONFLICT DO UPDATE``.
        like_escape_clause: Append ``ESCAPE '\\'`` to LIKE, for servers without a default escape.
        greatest_function: Function rendering :func:`~sqlcompose.functions.greatest`.
        least_function: Function rendering :func:`~sqlcompose.functions.least`.
        concat_function: Use ``CONCAT(...)`` instead of the ``||`` operator.
        parenthesize_set_operands: Wrap each UNION / INTERSECT / EXCEPT operand in parentheses.
    """

    name: str
    sqlglot_dialect: str
    parameter_style: ParameterStyle = ParameterStyle.QMARK
    supports_full_outer_join: bool = True
    supports_intersect_except: bool = True
    supports_recursive_cte: bool = True
    supports_returning: bool = False
    conflict_style: str = ON_CONFLICT
    excluded_prefix: str = "EXCLUDED"
    like_escape_clause: bool = False
    greatest_function: str = "GREATEST"
    least_function: str = "LEAST"
    concat_function: bool = False
    parenthesize_set_operands: bool = True

    def quote_identifier(self, name: str) -> str:
        """Quote a single identifier part. ``*`` is returned verbatim."""
        if name == "*":
            return name
        return _quote(name, self.sqlglot_dialect)

    def quote_column(self, column: str) -> str:
        """Quote a column reference.

        ``*`` passes through, anything containing ``(`` is treated as a raw expression,
        ``table.column`` is quoted per part and ``expr AS alias`` quotes both sides.
        """
        column = column.strip()
        if column == "*" or "(" in column:
            return column
        match = _ALIAS_REGEX.match(column)
        if match:
            return f"{self.quote_column(match.group('expr'))} AS {self.quote_identifier(match.group('alias'))}"
        return ".".join(self.quote_identifier(part) for part in column.split("."))

    def quote_table(self, table: str) -> str:
        """Quote a table reference, splitting ``"base alias"`` on the first whitespace run."""
        table = table.strip()
        if "(" in table:
            return table
        match = _ALIAS_REGEX.match(table)
        if match:
            base, alias = match.group("expr"), match.group("alias")
        else:
            base, _, alias = table.partition(" ")
            alias = alias.strip()
        quoted = ".".join(self.quote_identifier(part) for part in base.split("."))
        if alias:
            return f"{quoted} AS {self.quote_identifier(alias)}"
        return quoted

    @property
    def uses_numbered_placeholders(self) -> bool:
        return self.parameter_style is ParameterStyle.NUMERIC


DialectLike = Union[str, Dialect]

POSTGRES: Final = Dialect(
    name="postgres",
    sqlglot_dialect="postgres",
    parameter_style=ParameterStyle.NUMERIC,
    supports_returning=True,
    excluded_prefix="EXCLUDED",
)
MYSQL: Final = Dialect(
    name="mysql",
    sqlglot_dialect="mysql",
    supports_full_outer_join=False,
    supports_intersect_except=False,
    conflict_style=ON_DUPLICATE_KEY,
    concat_function=True,
)
SQLITE: Final = Dialect(
    name="sqlite",
    sqlglot_dialect="sqlite",
    supports_returning=True,
    excluded_prefix="excluded",
    like_escape_clause=True,
    greatest_function="MAX",
    least_function="MIN",
    parenthesize_set_operands=False,
)

_REGISTRY: "dict[str, Dialect]" = {}


def register_dialect(dialect: Dialect, *aliases: str) -> Dialect:
    """Register ``dialect`` under its name and any driver-name aliases."""
    for key in (dialect.name, *aliases):
        _REGISTRY[key.lower()] = dialect
    return dialect


def registered_dialects() -> "tuple[str, ...]":
    return tuple(sorted(_REGISTRY))


def get_dialect(dialect: DialectLike) -> Dialect:
    """Resolve a dialect or driver name to its :class:`Dialect`.

    Raises:
        ImproperConfigurationError: If the name is not registered.

    Returns:
        The registered dialect, or ``dialect`` itself when a :class:`Dialect` is given.
    """
    if isinstance(dialect, Dialect):
        return dialect
    try:
        return _REGISTRY[dialect.lower()]
    except KeyError:
        msg = f"Unsupported dialect or driver {dialect!r}. Registered names: {', '.join(registered_dialects())}"
        raise ImproperConfigurationError(msg) from None


register_dialect(POSTGRES, "postgresql", "pgx", "psycopg", "asyncpg")
register_dialect(MYSQL, "mariadb")
register_dialect(SQLITE, "sqlite3")
