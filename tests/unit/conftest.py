"""Shared fixtures for unit tests.

``FakeDriver`` records every prepare, execute and close call so tests can assert how the
engine talks to its driver without a database.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import pytest

from sqlcompose import Database
from sqlcompose.driver import TransactionOptions
from sqlcompose.exceptions import ExecutionError, QueryCancelledError


class FakeHandle:
    def __init__(self, sql: str, transaction: Any = None) -> None:
        self.sql = sql
        self.transaction = transaction
        self.closed = False


class FakeTransaction:
    def __init__(self, options: TransactionOptions) -> None:
        self.options = options
        self.state = "active"


class FakeDriver:
    def __init__(self, driver_name: str = "postgres") -> None:
        self.driver_name = driver_name
        self.prepared: list[tuple[str, Any]] = []
        self.executed: list[tuple[str, tuple[Any, ...], Any]] = []
        self.closed_handles: list[str] = []
        self.transactions: list[FakeTransaction] = []
        self.rows: list[dict[str, Any]] = []
        self.rowcount = 1
        self.fail_prepare: set[str] = set()
        self.fail_commit = False
        self.fail_rollback = False
        self.closed = False

    def prepare(self, sql: str, transaction: Any = None) -> FakeHandle:
        self.prepared.append((sql, transaction))
        if sql in self.fail_prepare:
            msg = "prepare failed"
            raise ExecutionError(msg, sql=sql)
        return FakeHandle(sql, transaction)

    def _run(self, handle: FakeHandle, parameters: Sequence[Any], context: Any) -> None:
        assert not handle.closed, "executed a closed handle"
        if context is not None and context.is_set():
            msg = "cancelled"
            raise QueryCancelledError(msg, sql=handle.sql)
        self.executed.append((handle.sql, tuple(parameters), handle.transaction))

    def execute(self, handle: FakeHandle, parameters: Sequence[Any], context: Any = None) -> int:
        self._run(handle, parameters, context)
        return self.rowcount

    def query(self, handle: FakeHandle, parameters: Sequence[Any], context: Any = None) -> list[dict[str, Any]]:
        self._run(handle, parameters, context)
        return [dict(row) for row in self.rows]

    def close_handle(self, handle: FakeHandle) -> None:
        handle.closed = True
        self.closed_handles.append(handle.sql)

    def begin_transaction(self, options: TransactionOptions, context: Any = None) -> FakeTransaction:
        transaction = FakeTransaction(options)
        self.transactions.append(transaction)
        return transaction

    def commit(self, transaction: FakeTransaction) -> None:
        if self.fail_commit:
            msg = "commit failed"
            raise ExecutionError(msg)
        transaction.state = "committed"

    def rollback(self, transaction: FakeTransaction) -> None:
        if self.fail_rollback:
            msg = "rollback failed"
            raise ExecutionError(msg)
        transaction.state = "rolled_back"

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def database(fake_driver: FakeDriver) -> Database:
    return Database(fake_driver, statement_cache_size=10)
