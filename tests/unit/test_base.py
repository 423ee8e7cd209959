"""Tests for the Database handle."""

import threading
from dataclasses import dataclass
from typing import Any

import msgspec
import pytest

from sqlcompose import Database, sql
from sqlcompose.dialects import MYSQL, POSTGRES
from sqlcompose.exceptions import ImproperConfigurationError, NotFoundError, QueryCancelledError


@dataclass
class User:
    id: int
    name: str


class UserStruct(msgspec.Struct):
    id: int
    name: str


def test_dialect_defaults_to_driver_name(database: Database) -> None:
    assert database.dialect is POSTGRES


def test_explicit_dialect_overrides_driver_name(fake_driver: Any) -> None:
    assert Database(fake_driver, dialect="mariadb").dialect is MYSQL


def test_unknown_driver_name_is_rejected(fake_driver: Any) -> None:
    with pytest.raises(ImproperConfigurationError):
        Database(type(fake_driver)("oracle"))


def test_repeated_statements_reuse_the_prepared_handle(database: Database, fake_driver: Any) -> None:
    for _ in range(3):
        database.select("id").from_("users").where("id = ?", 1).all()
    assert len(fake_driver.prepared) == 1
    assert fake_driver.prepared[0] == ('SELECT "id" FROM "users" WHERE id = $1', None)
    stats = database.cache_stats()
    assert (stats.hits, stats.misses, stats.size) == (2, 1, 1)


def test_execute_returns_affected_rows(database: Database, fake_driver: Any) -> None:
    fake_driver.rowcount = 3
    assert database.update("users", {"active": False}).where("age > ?", 90).execute() == 3
    assert fake_driver.executed[-1] == ('UPDATE "users" SET "active" = $1 WHERE age > $2', (False, 90), None)


def test_query_terminals(database: Database, fake_driver: Any) -> None:
    fake_driver.rows = [{"id": 1, "name": "Ada"}, {"id": 2, "name": "Bea"}]
    query = database.select("id", "name").from_("users")
    assert query.all() == fake_driver.rows
    assert query.one() == {"id": 1, "name": "Ada"}
    assert query.row() == (1, "Ada")
    assert query.column() == [1, 2]


def test_query_schema_conversion(database: Database, fake_driver: Any) -> None:
    fake_driver.rows = [{"id": 1, "name": "Ada"}]
    query = database.select("id", "name").from_("users")
    assert query.all(User) == [User(id=1, name="Ada")]
    assert query.one(UserStruct) == UserStruct(id=1, name="Ada")


def test_one_without_rows_raises(database: Database) -> None:
    with pytest.raises(NotFoundError):
        database.select().from_("users").one()


def test_new_query_validates_and_renumbers(database: Database, fake_driver: Any) -> None:
    query = database.new_query("SELECT * FROM users WHERE a = ? AND b = '?'", 1)
    assert query.sql == "SELECT * FROM users WHERE a = $1 AND b = '?'"
    assert query.parameters == (1,)
    query.all()
    assert fake_driver.executed[-1][1] == (1,)


def test_cancellation_token_reaches_driver(database: Database) -> None:
    event = threading.Event()
    event.set()
    with pytest.raises(QueryCancelledError):
        database.select().from_("users").with_context(event).all()
    with pytest.raises(QueryCancelledError):
        database.with_context(event).delete("users").execute()


def test_with_context_shares_the_cache(database: Database, fake_driver: Any) -> None:
    event = threading.Event()
    view = database.with_context(event)
    view.select().from_("users").all()
    database.select().from_("users").all()
    assert len(fake_driver.prepared) == 1
    assert view.statement_cache is database.statement_cache


def test_warm_and_pin(database: Database, fake_driver: Any) -> None:
    query = sql.select("id").from_("users")
    assert database.warm_cache([query, "SELECT 1"]) == 2
    assert database.warm_cache(["SELECT 1"]) == 0
    assert database.pin_query("SELECT 2") is True
    assert database.is_query_pinned("SELECT 2")
    assert database.cache_stats().pinned == 1
    assert database.unpin_query("SELECT 2") is True
    assert database.unpin_query("SELECT 3") is False
    assert [sql_text for sql_text, _ in fake_driver.prepared] == ['SELECT "id" FROM "users"', "SELECT 1", "SELECT 2"]


def test_close_releases_cache_and_driver(fake_driver: Any) -> None:
    with Database(fake_driver) as database:
        database.new_query("SELECT 1").all()
    assert fake_driver.closed
    assert fake_driver.closed_handles == ["SELECT 1"]
    assert database.cache_stats().size == 0
