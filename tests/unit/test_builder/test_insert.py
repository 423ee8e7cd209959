"""Tests for INSERT and UPSERT builders."""

import pytest

from sqlcompose.builder import InsertQuery, UpsertQuery
from sqlcompose.exceptions import SQLBuilderError, UnsupportedFeatureError
from sqlcompose.expressions import raw


def test_insert_sorts_columns() -> None:
    query = InsertQuery(table="users").values({"name": "Ada", "age": 36})
    composed = query.build()
    assert composed.sql == 'INSERT INTO "users" ("age", "name") VALUES ($1, $2)'
    assert composed.parameters == (36, "Ada")


def test_insert_keyword_values_and_into() -> None:
    query = InsertQuery("sqlite").into("users").values(name="Ada")
    assert query.build().sql == 'INSERT INTO "users" ("name") VALUES (?)'


def test_insert_inlines_expressions() -> None:
    query = InsertQuery(table="events", values={"created_at": raw("CURRENT_TIMESTAMP"), "kind": "login"})
    composed = query.build()
    assert composed.sql == 'INSERT INTO "events" ("created_at", "kind") VALUES (CURRENT_TIMESTAMP, $1)'
    assert composed.parameters == ("login",)


def test_insert_returning() -> None:
    query = InsertQuery(table="users", values={"name": "Ada"}).returning("id")
    assert query.build().sql == 'INSERT INTO "users" ("name") VALUES ($1) RETURNING "id"'
    with pytest.raises(UnsupportedFeatureError):
        InsertQuery("mysql", table="users", values={"name": "Ada"}).returning("id")


def test_insert_requires_table_and_values() -> None:
    with pytest.raises(SQLBuilderError):
        InsertQuery(table="users").build()
    with pytest.raises(SQLBuilderError):
        InsertQuery(values={"a": 1}).build()


def test_upsert_updates_non_conflict_columns_by_default() -> None:
    query = UpsertQuery(table="users", values={"id": 1, "name": "Ada", "email": "ada@example.com"}).on_conflict("id")
    composed = query.build()
    assert composed.sql == (
        'INSERT INTO "users" ("email", "id", "name") VALUES ($1, $2, $3) '
        'ON CONFLICT ("id") DO UPDATE SET "email" = EXCLUDED."email", "name" = EXCLUDED."name"'
    )
    assert composed.parameters == ("ada@example.com", 1, "Ada")


def test_upsert_explicit_update_columns() -> None:
    query = UpsertQuery(table="users", values={"id": 1, "name": "Ada", "email": "e"}).on_conflict("id").do_update("name")
    assert query.build().sql.endswith('ON CONFLICT ("id") DO UPDATE SET "name" = EXCLUDED."name"')
    with pytest.raises(SQLBuilderError):
        UpsertQuery(table="users", values={"id": 1}).on_conflict("id").do_update("missing").build()


def test_upsert_do_nothing() -> None:
    query = UpsertQuery(table="users", values={"id": 1}).on_conflict("id").do_nothing()
    assert query.build().sql == 'INSERT INTO "users" ("id") VALUES ($1) ON CONFLICT ("id") DO NOTHING'


def test_upsert_only_conflict_columns_does_nothing() -> None:
    """With nothing left to update the conflict is ignored."""
    query = UpsertQuery("sqlite", table="tags", values={"name": "x"}).on_conflict("name")
    assert query.build().sql == 'INSERT INTO "tags" ("name") VALUES (?) ON CONFLICT ("name") DO NOTHING'


def test_upsert_on_sqlite_uses_lowercase_excluded() -> None:
    query = UpsertQuery("sqlite", table="users", values={"id": 1, "name": "Ada"}).on_conflict("id")
    assert query.build().sql == (
        'INSERT INTO "users" ("id", "name") VALUES (?, ?) ON CONFLICT ("id") DO UPDATE SET "name" = excluded."name"'
    )


def test_upsert_on_mysql() -> None:
    query = UpsertQuery("mysql", table="users", values={"id": 1, "name": "Ada"}).on_conflict("id")
    assert query.build().sql == (
        "INSERT INTO `users` (`id`, `name`) VALUES (?, ?) ON DUPLICATE KEY UPDATE `name` = VALUES(`name`)"
    )
    ignored = UpsertQuery("mysql", table="users", values={"id": 1}).do_nothing()
    assert ignored.build().sql == "INSERT IGNORE INTO `users` (`id`) VALUES (?)"


def test_upsert_update_requires_conflict_target() -> None:
    with pytest.raises(SQLBuilderError):
        UpsertQuery(table="users", values={"id": 1, "name": "Ada"}).build()
    with pytest.raises(SQLBuilderError):
        UpsertQuery(table="users", values={"id": 1}).on_conflict()
