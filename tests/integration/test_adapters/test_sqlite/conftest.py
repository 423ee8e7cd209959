from collections.abc import Generator

import pytest

from sqlcompose import Database
from sqlcompose.adapters.sqlite import SqliteConfig


@pytest.fixture
def sqlite_config() -> SqliteConfig:
    return SqliteConfig(connection_config={"database": ":memory:"}, statement_cache_size=16)


@pytest.fixture
def sqlite_database(sqlite_config: SqliteConfig) -> Generator[Database, None, None]:
    """In-memory database with a ``users`` table."""
    with sqlite_config.provide_database() as database:
        database.new_query(
            """
            CREATE TABLE users (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                email TEXT,
                age INTEGER DEFAULT 0
            )
            """
        ).execute()
        yield database
