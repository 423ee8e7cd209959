import pytest

from sqlcompose.exceptions import (
    ExecutionError,
    ImproperConfigurationError,
    NotFoundError,
    QueryCancelledError,
    SQLBuilderError,
    SQLComposeError,
    TransactionClosedError,
    UnsupportedFeatureError,
    wrap_exceptions,
)


def test_exception_hierarchy() -> None:
    """Every library error derives from SQLComposeError."""
    assert issubclass(SQLBuilderError, SQLComposeError)
    assert issubclass(UnsupportedFeatureError, SQLBuilderError)
    assert issubclass(ImproperConfigurationError, SQLComposeError)
    assert issubclass(QueryCancelledError, ExecutionError)
    assert issubclass(NotFoundError, SQLComposeError)
    assert issubclass(TransactionClosedError, SQLComposeError)


def test_unsupported_feature_message() -> None:
    error = UnsupportedFeatureError("FULL OUTER JOIN", "mysql")
    assert str(error) == "FULL OUTER JOIN is not supported by the 'mysql' dialect"
    assert error.feature == "FULL OUTER JOIN"
    assert error.dialect == "mysql"


def test_execution_error_includes_sql() -> None:
    error = ExecutionError("boom", sql="SELECT 1")
    assert str(error) == "boom\nSQL: SELECT 1"
    assert error.sql == "SELECT 1"


def test_default_messages() -> None:
    assert str(SQLBuilderError()) == "Issues building SQL statement."
    assert "committed or rolled back" in str(TransactionClosedError())


def test_wrap_exceptions() -> None:
    """Foreign errors are wrapped and library errors pass through."""
    with pytest.raises(ExecutionError) as exc_info, wrap_exceptions(sql="SELECT 1"):
        raise RuntimeError("driver failure")
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert exc_info.value.sql == "SELECT 1"

    with pytest.raises(NotFoundError), wrap_exceptions():
        raise NotFoundError("missing")

    with pytest.raises(RuntimeError), wrap_exceptions(wrap_exceptions=False):
        raise RuntimeError("unwrapped")
