from abc import ABC, abstractmethod
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, ClassVar, Generic, Optional, TypeVar

from sqlcompose.base import Database
from sqlcompose.core.cache import DEFAULT_STATEMENT_CACHE_SIZE
from sqlcompose.dialects import get_dialect
from sqlcompose.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlcompose.dialects import Dialect, DialectLike
    from sqlcompose.protocols import DriverProtocol

__all__ = ("DatabaseConfig", "DriverT")

logger = get_logger("config")

DriverT = TypeVar("DriverT", bound="DriverProtocol")


class DatabaseConfig(ABC, Generic[DriverT]):
    """Base configuration for a driver and the :class:`~sqlcompose.base.Database` wrapping it.

    Args:
        dialect: Dialect or registered dialect name; defaults to the driver's name.
        statement_cache_size: Prepared statement cache capacity. Values ``<= 0`` use the default.
    """

    __slots__ = ("dialect", "statement_cache_size")
    driver_type: "ClassVar[type[Any]]"
    driver_name: "ClassVar[str]"

    def __init__(
        self, dialect: "Optional[DialectLike]" = None, statement_cache_size: int = DEFAULT_STATEMENT_CACHE_SIZE
    ) -> None:
        self.dialect = dialect
        self.statement_cache_size = statement_cache_size

    def __repr__(self) -> str:
        return f"{type(self).__name__}(dialect={self.get_dialect().name!r}, statement_cache_size={self.statement_cache_size!r})"

    def get_dialect(self) -> "Dialect":
        """Resolve the configured dialect.

        Raises:
            ImproperConfigurationError: If the name is not a registered dialect.
        """
        return get_dialect(self.dialect if self.dialect is not None else self.driver_name)

    @abstractmethod
    def create_driver(self) -> DriverT:
        """Create and return a new driver."""
        raise NotImplementedError

    def create_database(self) -> Database:
        """Create a database handle over a new driver. The caller must close it."""
        dialect = self.get_dialect()
        driver = self.create_driver()
        logger.debug(
            "Creating database",
            extra={"extra_fields": {"driver": self.driver_name, "dialect": dialect.name}},
        )
        return Database(driver, dialect=dialect, statement_cache_size=self.statement_cache_size)

    @contextmanager
    def provide_database(self) -> "Generator[Database, None, None]":
        """Provide a database handle that is closed when the block exits."""
        database = self.create_database()
        try:
            yield database
        finally:
            database.close()
