"""Tests for predicate expressions."""

import pytest

from sqlcompose.builder import SelectQuery
from sqlcompose.dialects import MYSQL, POSTGRES, SQLITE
from sqlcompose.exceptions import SQLBuilderError
from sqlcompose.expressions import (
    and_,
    between,
    coerce_condition,
    eq,
    exists,
    gt,
    gte,
    hash_eq,
    in_,
    like,
    lt,
    lte,
    not_,
    not_between,
    not_eq,
    not_exists,
    not_in,
    not_like,
    or_,
    or_like,
    or_not_like,
    raw,
)


def test_comparisons() -> None:
    """Comparison constructors quote the column and bind the value."""
    assert eq("name", "a").render(POSTGRES) == ('"name" = ?', ["a"])
    assert not_eq("name", "a").render(POSTGRES) == ('"name" <> ?', ["a"])
    assert gt("age", 1).render(POSTGRES) == ('"age" > ?', [1])
    assert gte("age", 1).render(POSTGRES) == ('"age" >= ?', [1])
    assert lt("age", 1).render(POSTGRES) == ('"age" < ?', [1])
    assert lte("age", 1).render(MYSQL) == ("`age` <= ?", [1])


def test_null_equality_renders_null_checks() -> None:
    """``None`` with equality operators becomes IS [NOT] NULL."""
    assert eq("deleted_at", None).render(POSTGRES) == ('"deleted_at" IS NULL', [])
    assert not_eq("deleted_at", None).render(POSTGRES) == ('"deleted_at" IS NOT NULL', [])


def test_null_ordering_comparison_is_rejected() -> None:
    """Ordering against NULL is an error."""
    with pytest.raises(SQLBuilderError):
        gt("age", None)


def test_raw_validates_placeholder_count() -> None:
    """A raw fragment must have one value per placeholder."""
    assert raw("a = ? AND b = '?'", 1).render(POSTGRES) == ("a = ? AND b = '?'", [1])
    with pytest.raises(SQLBuilderError):
        raw("a = ? AND b = ?", 1)


def test_hash_equality_sorts_keys() -> None:
    """Mapping conditions render in sorted key order."""
    expression = hash_eq({"status": 1, "deleted_at": None, "role": ["a", "b"]})
    assert expression.render(POSTGRES) == (
        '"deleted_at" IS NULL AND "role" IN (?, ?) AND "status" = ?',
        ["a", "b", 1],
    )


def test_hash_equality_keyword_columns() -> None:
    """Keyword arguments merge into the mapping."""
    assert hash_eq(b=2, a=1).render(POSTGRES) == ('"a" = ? AND "b" = ?', [1, 2])


def test_in_with_values() -> None:
    """IN accepts separate values or a single iterable."""
    assert in_("id", [1, 2, 3]).render(POSTGRES) == ('"id" IN (?, ?, ?)', [1, 2, 3])
    assert in_("id", 1, 2).render(POSTGRES) == ('"id" IN (?, ?)', [1, 2])
    assert not_in("id", (1, 2)).render(POSTGRES) == ('"id" NOT IN (?, ?)', [1, 2])


def test_in_single_value_becomes_equality() -> None:
    """A one-element IN is rendered as a comparison."""
    assert in_("id", [5]).render(POSTGRES) == ('"id" = ?', [5])
    assert not_in("id", [5]).render(POSTGRES) == ('"id" <> ?', [5])


def test_empty_in() -> None:
    """Empty IN is always false and empty NOT IN is omitted."""
    assert in_("id", []).render(POSTGRES) == ("1=0", [])
    assert not_in("id", []).render(POSTGRES) == ("", [])


def test_in_with_null_item() -> None:
    """``None`` items render as a NULL literal."""
    assert in_("id", [1, None]).render(POSTGRES) == ('"id" IN (?, NULL)', [1])


def test_in_with_subquery() -> None:
    """A statement builder becomes a parenthesized subquery."""
    subquery = SelectQuery().select("user_id").from_("orders").where("total > ?", 100)
    assert in_("id", subquery).render(POSTGRES) == (
        '"id" IN (SELECT "user_id" FROM "orders" WHERE total > ?)',
        [100],
    )


def test_in_rejects_plain_expression() -> None:
    """Expressions are not valid IN operands."""
    with pytest.raises(SQLBuilderError):
        in_("id", raw("SELECT 1"))


def test_between() -> None:
    """BETWEEN binds both bounds."""
    assert between("age", 18, 65).render(POSTGRES) == ('"age" BETWEEN ? AND ?', [18, 65])
    assert not_between("age", 18, 65).render(POSTGRES) == ('"age" NOT BETWEEN ? AND ?', [18, 65])


def test_like_escapes_and_wraps() -> None:
    """Wildcards in the value are escaped before it is wrapped with ``%``."""
    assert like("name", "50%_off").render(POSTGRES) == ('"name" LIKE ?', ["%50\\%\\_off%"])
    assert like("name", "a\\b").render(POSTGRES) == ('"name" LIKE ?', ["%a\\\\b%"])


def test_like_on_sqlite_declares_escape_character() -> None:
    """SQLite needs an explicit ESCAPE clause."""
    assert like("name", "a").render(SQLITE) == ('"name" LIKE ? ESCAPE \'\\\'', ["%a%"])


def test_like_multiple_values() -> None:
    """Multiple values are joined with AND, or with OR for the ``or_`` variants."""
    assert like("name", "a", "b").render(POSTGRES) == ('"name" LIKE ? AND "name" LIKE ?', ["%a%", "%b%"])
    assert or_like("name", "a", "b").render(POSTGRES) == ('"name" LIKE ? OR "name" LIKE ?', ["%a%", "%b%"])
    assert not_like("name", "a").render(POSTGRES) == ('"name" NOT LIKE ?', ["%a%"])
    assert or_not_like("name", "a", "b").render(POSTGRES) == (
        '"name" NOT LIKE ? OR "name" NOT LIKE ?',
        ["%a%", "%b%"],
    )


def test_like_match_sides_and_custom_escapes() -> None:
    """Wildcard sides and the escape table are configurable."""
    assert like("name", "abc").match(False, True).render(POSTGRES) == ('"name" LIKE ?', ["abc%"])
    assert like("name", "a%").escape_chars("%", "!%").match(False, False).render(POSTGRES) == (
        '"name" LIKE ?',
        ["a!%"],
    )
    with pytest.raises(SQLBuilderError):
        like("name", "a").escape_chars("%")


def test_like_without_values_is_empty() -> None:
    """A LIKE with nothing to match renders nothing."""
    assert like("name").render(POSTGRES) == ("", [])


def test_logical_parenthesizes_mixed_connectives() -> None:
    """Operands joined by a different connective are wrapped in parentheses."""
    expression = or_(eq("a", 1), and_(eq("b", 2), eq("c", 3)))
    assert expression.render(POSTGRES) == ('"a" = ? OR ("b" = ? AND "c" = ?)', [1, 2, 3])


def test_logical_parenthesizes_raw_or() -> None:
    """A raw fragment with a top-level OR is wrapped inside AND."""
    expression = and_(raw("x = ? OR y = ?", 1, 2), eq("z", 3))
    assert expression.render(POSTGRES) == ('(x = ? OR y = ?) AND "z" = ?', [1, 2, 3])


def test_logical_does_not_wrap_nested_or_in_parentheses() -> None:
    """An OR inside parentheses of a raw fragment is not top level."""
    expression = and_(raw("(x = ? OR y = ?)", 1, 2), eq("z", 3))
    assert expression.render(POSTGRES) == ('(x = ? OR y = ?) AND "z" = ?', [1, 2, 3])


def test_logical_skips_empty_operands() -> None:
    """``None`` and empty operands disappear."""
    assert and_().render(POSTGRES) == ("", [])
    assert and_(None, eq("a", 1), not_in("b", [])).render(POSTGRES) == ('"a" = ?', [1])


def test_not() -> None:
    """NOT wraps its operand."""
    assert not_(eq("a", 1)).render(POSTGRES) == ('NOT ("a" = ?)', [1])


def test_exists() -> None:
    """EXISTS renders the subquery in parentheses."""
    subquery = SelectQuery().select_expr("1").from_("orders").where("orders.user_id = users.id")
    assert exists(subquery).render(POSTGRES) == (
        'EXISTS (SELECT 1 FROM "orders" WHERE orders.user_id = users.id)',
        [],
    )
    assert not_exists(raw("SELECT 1")).render(POSTGRES) == ("NOT EXISTS (SELECT 1)", [])


def test_exists_without_subquery() -> None:
    """EXISTS of nothing is false and NOT EXISTS of nothing is omitted."""
    assert exists(None).render(POSTGRES) == ("1=0", [])
    assert not_exists(None).render(POSTGRES) == ("", [])


def test_coerce_condition() -> None:
    """Strings, mappings and expressions are accepted as conditions."""
    assert coerce_condition(None) is None
    assert coerce_condition("a = ?", 1).render(POSTGRES) == ("a = ?", [1])
    assert coerce_condition({"a": 1}).render(POSTGRES) == ('"a" = ?', [1])
    expression = eq("a", 1)
    assert coerce_condition(expression) is expression
    with pytest.raises(SQLBuilderError):
        coerce_condition(eq("a", 1), 2)
    with pytest.raises(SQLBuilderError):
        coerce_condition(42)


def test_rendering_is_deterministic() -> None:
    """Rendering the same expression twice yields identical output."""
    expression = and_(hash_eq(b=1, a=2), or_like("name", "x", "y"))
    assert expression.render(POSTGRES) == expression.render(POSTGRES)
