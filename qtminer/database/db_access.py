"""
Database Access Module

Owns the SQLAlchemy engine used to read source tables:
- Engine creation from settings (any SQLAlchemy URL)
- Connection check with retry and exponential backoff
- Connection context manager
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from qtminer.config.settings_loader import DatabaseSettings, get_settings
from qtminer.utils.advanced_logging import get_logger
from qtminer.utils.error_handling import DatabaseConnectionError, DatabaseError, retry


logger = get_logger(__name__)


class DbAccess:
    """
    Entry point to the relational source of the datasets.

    ``init_connection`` must be called before ``get_connection``.
    """

    def __init__(self, url: Optional[str] = None, settings: Optional[DatabaseSettings] = None):
        """
        Initialize database access.

        Args:
            url: SQLAlchemy URL (overrides settings)
            settings: Database settings (global settings if None)
        """
        self.settings = settings or get_settings().database
        self.url = url or self.settings.url
        self.engine: Optional[Engine] = None

    def init_connection(self) -> None:
        """
        Create the engine and check that the database answers.

        Raises:
            DatabaseConnectionError: If the database cannot be reached
        """
        try:
            self.engine = create_engine(self.url, echo=self.settings.echo)
        except (SQLAlchemyError, ImportError) as e:
            logger.error("database_engine_creation_failed", url=self._safe_url(), error=str(e))
            raise DatabaseConnectionError(
                f"Cannot create database engine: {e}",
                error_code="ENGINE_CREATION_FAILED",
            ) from e

        check = retry(
            max_attempts=self.settings.connect_retries,
            initial_delay=self.settings.retry_delay,
            retriable_exceptions=(OperationalError,),
        )(self._ping)

        try:
            check()
        except SQLAlchemyError as e:
            self.engine.dispose()
            self.engine = None
            logger.error("database_connection_failed", url=self._safe_url(), error=str(e))
            raise DatabaseConnectionError(
                f"Connection to the database failed: {e}",
                error_code="CONNECTION_FAILED",
            ) from e

        logger.info("database_connection_established", url=self._safe_url())

    def _ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    @contextmanager
    def get_connection(self) -> Generator[Connection, None, None]:
        """
        Context manager for a database connection.

        Example:
            with db.get_connection() as conn:
                rows = conn.execute(query).all()
        """
        if self.engine is None:
            raise DatabaseConnectionError(
                "Connection not initialised, call init_connection() first",
                error_code="NOT_CONNECTED",
            )
        with self.engine.connect() as conn:
            try:
                yield conn
            except SQLAlchemyError as e:
                logger.error("database_query_failed", error=str(e))
                raise DatabaseError(f"Database operation failed: {e}", error_code="QUERY_FAILED") from e

    def close_connection(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
            logger.info("database_connection_closed")

    def _safe_url(self) -> str:
        if self.engine is not None:
            return self.engine.url.render_as_string(hide_password=True)
        return self.url.split("@")[-1]

    def __str__(self) -> str:
        return f"DbAccess({self._safe_url()})"
