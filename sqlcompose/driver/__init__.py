from sqlcompose.driver._query import Query
from sqlcompose.driver._transaction import IsolationLevel, Transaction, TransactionOptions, TransactionState

__all__ = ("IsolationLevel", "Query", "Transaction", "TransactionOptions", "TransactionState")
