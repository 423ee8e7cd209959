"""SQLite adapter for sqlcompose."""

from sqlcompose.adapters.sqlite.config import SqliteConfig, SqliteConnectionParams
from sqlcompose.adapters.sqlite.driver import (
    SqliteConnection,
    SqliteDriver,
    SqlitePreparedStatement,
    SqliteTransaction,
)

__all__ = (
    "SqliteConfig",
    "SqliteConnection",
    "SqliteConnectionParams",
    "SqliteDriver",
    "SqlitePreparedStatement",
    "SqliteTransaction",
)
