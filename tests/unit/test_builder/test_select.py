"""Tests for the SELECT builder."""

import pytest

from sqlcompose.builder import SelectQuery
from sqlcompose.core.statement import ComposedQuery
from sqlcompose.exceptions import ImproperConfigurationError, SQLBuilderError, UnsupportedFeatureError
from sqlcompose.expressions import eq, in_, or_


def test_basic_select_with_numbered_placeholders() -> None:
    """Conditions are ANDed and placeholders numbered for PostgreSQL."""
    query = SelectQuery().select("*").from_("users").where("status = ?", 1).and_where("age > ?", 18)
    composed = query.build()
    assert composed.sql == 'SELECT * FROM "users" WHERE status = $1 AND age > $2'
    assert list(composed.parameters) == [1, 18]
    assert composed.dialect == "postgres"


def test_select_without_columns_selects_star() -> None:
    assert SelectQuery().from_("users").build().sql == 'SELECT * FROM "users"'


def test_select_on_question_mark_dialects() -> None:
    """MySQL and SQLite keep ``?`` placeholders."""
    assert SelectQuery("mysql").select("id").from_("users").where("id = ?", 1).build().sql == (
        "SELECT `id` FROM `users` WHERE id = ?"
    )
    assert SelectQuery("sqlite").from_("users").where({"id": 1}).build().sql == 'SELECT * FROM "users" WHERE "id" = ?'


def test_composed_query_unpacks_to_sql_and_parameters() -> None:
    """A composed query can be unpacked into SQL text and a parameter list."""
    sql, parameters = SelectQuery().from_("users").where("id = ?", 7).build()
    assert sql == 'SELECT * FROM "users" WHERE id = $1'
    assert parameters == [7]


def test_render_keeps_question_marks() -> None:
    """``render()`` is used for embedding and never renumbers."""
    assert SelectQuery().from_("users").where("id = ?", 7).render() == ('SELECT * FROM "users" WHERE id = ?', [7])


def test_distinct_and_qualified_columns() -> None:
    query = SelectQuery().select("u.name AS n").distinct().from_("users u")
    assert query.build().sql == 'SELECT DISTINCT "u"."name" AS "n" FROM "users" AS "u"'


def test_or_where_wraps_existing_conditions() -> None:
    """``or_where`` ORs with everything accumulated so far."""
    query = SelectQuery().from_("users").where("a = ?", 1).where("b = ?", 2).or_where("c = ?", 3)
    assert query.build().sql == 'SELECT * FROM "users" WHERE (a = $1 AND b = $2) OR c = $3'
    assert query.build().parameters == (1, 2, 3)


def test_where_with_expressions() -> None:
    query = SelectQuery().from_("users").where(or_(eq("role", "admin"), eq("role", "owner")))
    assert query.build().sql == 'SELECT * FROM "users" WHERE "role" = $1 OR "role" = $2'


def test_where_helpers() -> None:
    """Convenience WHERE methods delegate to the expression constructors."""
    query = (
        SelectQuery()
        .from_("users")
        .where_in("id", [1, 2])
        .where_not_in("status", [9])
        .where_between("age", 18, 65)
        .where_like("name", "jo")
        .where_is_null("deleted_at")
    )
    assert query.build().sql == (
        'SELECT * FROM "users" WHERE "id" IN ($1, $2) AND "status" <> $3 AND "age" BETWEEN $4 AND $5 '
        'AND "name" LIKE $6 AND "deleted_at" IS NULL'
    )
    assert query.build().parameters == (1, 2, 9, 18, 65, "%jo%")


def test_where_rejects_mismatched_placeholders() -> None:
    with pytest.raises(SQLBuilderError):
        SelectQuery().from_("users").where("a = ? AND b = ?", 1)


def test_subquery_parameters_share_numbering() -> None:
    """Subquery placeholders are numbered in the same sequence as the outer query."""
    orders = SelectQuery().select("user_id").from_("orders").where("total > ?", 100)
    query = SelectQuery().from_("users").where(in_("id", orders)).where("status = ?", 1)
    composed = query.build()
    assert composed.sql == (
        'SELECT * FROM "users" WHERE "id" IN (SELECT "user_id" FROM "orders" WHERE total > $1) AND status = $2'
    )
    assert composed.parameters == (100, 1)


def test_where_exists() -> None:
    orders = SelectQuery().select_expr("1").from_("orders").where("orders.user_id = users.id")
    query = SelectQuery().from_("users").where_exists(orders)
    assert query.build().sql == (
        'SELECT * FROM "users" WHERE EXISTS (SELECT 1 FROM "orders" WHERE orders.user_id = users.id)'
    )


def test_from_subquery_requires_alias() -> None:
    inner = SelectQuery().select("id").from_("users").where("age > ?", 21)
    query = SelectQuery().select("t.id").from_select(inner, "t")
    assert query.build().sql == 'SELECT "t"."id" FROM (SELECT "id" FROM "users" WHERE age > $1) AS "t"'
    with pytest.raises(SQLBuilderError):
        SelectQuery().from_(inner)


def test_select_expr_with_parameters() -> None:
    query = SelectQuery().select("id").select_expr("price * ? AS taxed", 1.2).from_("items").where("id = ?", 3)
    composed = query.build()
    assert composed.sql == 'SELECT "id", price * $1 AS taxed FROM "items" WHERE id = $2'
    assert composed.parameters == (1.2, 3)


def test_joins() -> None:
    query = (
        SelectQuery()
        .select("u.name", "o.total")
        .from_("users u")
        .join("orders o", "o.user_id = u.id")
        .left_join("payments p", "p.order_id = o.id AND p.status = ?", "paid")
    )
    composed = query.build()
    assert composed.sql == (
        'SELECT "u"."name", "o"."total" FROM "users" AS "u" INNER JOIN "orders" AS "o" ON o.user_id = u.id '
        'LEFT JOIN "payments" AS "p" ON p.order_id = o.id AND p.status = $1'
    )
    assert composed.parameters == ("paid",)


def test_join_validation() -> None:
    """Joins other than CROSS need a condition and unknown types are rejected."""
    query = SelectQuery().from_("a")
    with pytest.raises(SQLBuilderError):
        query.join("b")
    with pytest.raises(SQLBuilderError):
        query.join("b", "a.id = b.id", join_type="SIDEWAYS")
    assert query.cross_join("b").build().sql == 'SELECT * FROM "a" CROSS JOIN "b"'


def test_full_join_support_depends_on_dialect() -> None:
    assert SelectQuery().from_("a").full_join("b", "a.id = b.id").build().sql == (
        'SELECT * FROM "a" FULL OUTER JOIN "b" ON a.id = b.id'
    )
    with pytest.raises(UnsupportedFeatureError):
        SelectQuery("mysql").from_("a").full_join("b", "a.id = b.id")


def test_group_by_having_order_limit_offset() -> None:
    query = (
        SelectQuery()
        .select("status", "COUNT(*) AS total")
        .from_("users")
        .group_by("status")
        .having("COUNT(*) > ?", 5)
        .order_by("total DESC", "status")
        .limit(10)
        .offset(20)
    )
    composed = query.build()
    assert composed.sql == (
        'SELECT "status", COUNT(*) AS total FROM "users" GROUP BY "status" HAVING COUNT(*) > $1 '
        'ORDER BY "total" DESC, "status" LIMIT 10 OFFSET 20'
    )
    assert composed.parameters == (5,)


@pytest.mark.parametrize("value", [-1, True, 1.5, "10"])
def test_limit_rejects_invalid_values(value: object) -> None:
    with pytest.raises(SQLBuilderError):
        SelectQuery().from_("users").limit(value)  # type: ignore[arg-type]


def test_union_parenthesizes_operands() -> None:
    query = SelectQuery().select("name").from_("users").union(SelectQuery().select("name").from_("archived"))
    assert query.build().sql == '(SELECT "name" FROM "users") UNION (SELECT "name" FROM "archived")'


def test_union_on_sqlite_leaves_operands_bare() -> None:
    query = SelectQuery("sqlite").select("name").from_("users")
    query.union_all(SelectQuery("sqlite").select("name").from_("archived"))
    assert query.build().sql == 'SELECT "name" FROM "users" UNION ALL SELECT "name" FROM "archived"'


def test_nested_set_operation_on_sqlite_becomes_derived_table() -> None:
    """SQLite has no parenthesized members, so a nested chain keeps its grouping as a subquery."""
    rest = SelectQuery("sqlite").select("n").from_("b").except_(SelectQuery("sqlite").select("n").from_("c"))
    query = SelectQuery("sqlite").select("n").from_("a").union(rest)
    assert query.build().sql == (
        'SELECT "n" FROM "a" UNION SELECT * FROM (SELECT "n" FROM "b" EXCEPT SELECT "n" FROM "c")'
    )


def test_ordered_operands_on_sqlite_become_derived_tables() -> None:
    top = SelectQuery("sqlite").select("n").from_("b").where("n > ?", 1).order_by("n DESC").limit(1)
    query = SelectQuery("sqlite").select("n").from_("a").order_by("n").limit(2).union(top)
    composed = query.build()
    assert composed.sql == (
        'SELECT * FROM (SELECT "n" FROM "a" ORDER BY "n" LIMIT 2) UNION '
        'SELECT * FROM (SELECT "n" FROM "b" WHERE n > ? ORDER BY "n" DESC LIMIT 1)'
    )
    assert composed.parameters == (1,)


def test_intersect_after_union_groups_the_preceding_chain() -> None:
    """INTERSECT binds tighter than UNION, so the chain built so far is grouped first."""
    query = (
        SelectQuery()
        .select("n")
        .from_("a")
        .union(SelectQuery().select("n").from_("b"))
        .intersect(SelectQuery().select("n").from_("c"))
    )
    assert query.build().sql == (
        '((SELECT "n" FROM "a") UNION (SELECT "n" FROM "b")) INTERSECT (SELECT "n" FROM "c")'
    )


def test_set_operation_parameters_follow_textual_order() -> None:
    left = SelectQuery().select("id").from_("a").where("x = ?", 1)
    right = SelectQuery().select("id").from_("b").where("y = ?", 2)
    composed = left.intersect(right).build()
    assert composed.sql == '(SELECT "id" FROM "a" WHERE x = $1) INTERSECT (SELECT "id" FROM "b" WHERE y = $2)'
    assert composed.parameters == (1, 2)


def test_set_operation_validation() -> None:
    """``None`` is a no-op, self-reference is rejected and MySQL lacks INTERSECT/EXCEPT."""
    query = SelectQuery().from_("a")
    assert query.union(None).set_operations == ()
    with pytest.raises(SQLBuilderError):
        query.union(query)
    with pytest.raises(UnsupportedFeatureError):
        SelectQuery("mysql").from_("a").intersect(SelectQuery("mysql").from_("b"))
    with pytest.raises(UnsupportedFeatureError):
        SelectQuery("mysql").from_("a").except_(SelectQuery("mysql").from_("b"))


def test_common_table_expression() -> None:
    active = SelectQuery().select("id").from_("users").where("active = ?", True)
    query = SelectQuery().with_("active_users", active).from_("active_users").where("id > ?", 10)
    composed = query.build()
    assert composed.sql == (
        'WITH "active_users" AS (SELECT "id" FROM "users" WHERE active = $1) '
        'SELECT * FROM "active_users" WHERE id > $2'
    )
    assert composed.parameters == (True, 10)


def test_recursive_common_table_expression() -> None:
    anchor = SelectQuery().select("id", "parent_id").from_("categories").where("parent_id IS NULL")
    step = SelectQuery().select("c.id", "c.parent_id").from_("categories c").join("tree t", "c.parent_id = t.id")
    query = SelectQuery().with_recursive("tree", anchor.union_all(step)).from_("tree")
    assert query.build().sql == (
        'WITH RECURSIVE "tree" AS ((SELECT "id", "parent_id" FROM "categories" WHERE parent_id IS NULL) '
        'UNION ALL (SELECT "c"."id", "c"."parent_id" FROM "categories" AS "c" '
        'INNER JOIN "tree" AS "t" ON c.parent_id = t.id)) SELECT * FROM "tree"'
    )


def test_recursive_cte_requires_single_union() -> None:
    with pytest.raises(SQLBuilderError):
        SelectQuery().with_recursive("tree", SelectQuery().from_("categories"))


def test_build_is_repeatable() -> None:
    """Building twice yields the same SQL, so the statement cache key is stable."""
    query = SelectQuery().from_("users").where({"b": 1, "a": 2})
    assert query.build() == query.build()
    assert isinstance(query.build(), ComposedQuery)


def test_to_query_requires_executor() -> None:
    with pytest.raises(ImproperConfigurationError):
        SelectQuery().from_("users").to_query()


def test_parameters_follow_clause_order_across_the_statement() -> None:
    """CTE, select list, JOIN, WHERE and HAVING parameters are numbered in textual order."""
    recent = SelectQuery().select("user_id").from_("orders").where("placed_at > ?", "2024-01-01")
    query = (
        SelectQuery()
        .with_("recent", recent)
        .select_expr("? AS label", "vip")
        .from_("recent r")
        .join("users u", "u.id = r.user_id AND u.region = ?", "eu")
        .where("u.active = ?", True)
        .group_by("u.id")
        .having("COUNT(*) > ?", 3)
    )
    composed = query.build()
    assert composed.sql == (
        'WITH "recent" AS (SELECT "user_id" FROM "orders" WHERE placed_at > $1) '
        'SELECT $2 AS label FROM "recent" AS "r" INNER JOIN "users" AS "u" ON u.id = r.user_id AND u.region = $3 '
        'WHERE u.active = $4 GROUP BY "u"."id" HAVING COUNT(*) > $5'
    )
    assert composed.parameters == ("2024-01-01", "vip", "eu", True, 3)
