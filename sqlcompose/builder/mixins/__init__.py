from sqlcompose.builder.mixins._common_table_expr import CommonTableExpressionMixin
from sqlcompose.builder.mixins._group_by import GroupByClauseMixin
from sqlcompose.builder.mixins._join import JoinClauseMixin
from sqlcompose.builder.mixins._limit_offset import LimitOffsetClauseMixin
from sqlcompose.builder.mixins._order_by import OrderByClauseMixin
from sqlcompose.builder.mixins._returning import ReturningClauseMixin
from sqlcompose.builder.mixins._set_ops import SetOperationMixin
from sqlcompose.builder.mixins._where import WhereClauseMixin

__all__ = (
    "CommonTableExpressionMixin",
    "GroupByClauseMixin",
    "JoinClauseMixin",
    "LimitOffsetClauseMixin",
    "OrderByClauseMixin",
    "ReturningClauseMixin",
    "SetOperationMixin",
    "WhereClauseMixin",
)
