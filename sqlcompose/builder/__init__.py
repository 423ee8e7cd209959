from sqlcompose.builder._base import StatementBuilder
from sqlcompose.builder._batch import BatchInsertQuery, BatchUpdateQuery
from sqlcompose.builder._delete import DeleteQuery
from sqlcompose.builder._insert import InsertQuery, UpsertQuery
from sqlcompose.builder._select import SelectQuery
from sqlcompose.builder._update import UpdateQuery
from sqlcompose.builder.mixins import (
    CommonTableExpressionMixin,
    GroupByClauseMixin,
    JoinClauseMixin,
    LimitOffsetClauseMixin,
    OrderByClauseMixin,
    ReturningClauseMixin,
    SetOperationMixin,
    WhereClauseMixin,
)

__all__ = (
    "BatchInsertQuery",
    "BatchUpdateQuery",
    "CommonTableExpressionMixin",
    "DeleteQuery",
    "GroupByClauseMixin",
    "InsertQuery",
    "JoinClauseMixin",
    "LimitOffsetClauseMixin",
    "OrderByClauseMixin",
    "ReturningClauseMixin",
    "SelectQuery",
    "SetOperationMixin",
    "StatementBuilder",
    "UpdateQuery",
    "UpsertQuery",
    "WhereClauseMixin",
)
