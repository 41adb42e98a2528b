"""
Theme Park Wait Time Reconciler - Database Connection Management
Lazily builds the pooled SQLAlchemy engine and hands out ORM sessions.

MySQL (PyMySQL) is the deployment target. DATABASE_URL overrides the
DB_* settings, e.g. sqlite:///waittimes.db for local runs.
"""

from contextlib import contextmanager
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import QueuePool
from sqlalchemy.engine import Engine, URL, make_url
from sqlalchemy.orm import Session
from typing import Generator, List, Optional, Union

from utils.config import (
    DATABASE_URL, DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD,
    DB_POOL_SIZE, DB_POOL_MAX_OVERFLOW, DB_POOL_RECYCLE, DB_POOL_PRE_PING,
    config
)
from utils.logger import logger, log_database_error


class DatabaseConnectionError(Exception):
    """Raised when the engine cannot be created or the schema cannot be built."""
    pass


def mysql_url() -> URL:
    """
    Build the MySQL URL from DB_* settings.

    URL.create() keeps the password out of rendered URLs; every
    connection is pinned to UTC since readings are stored as naive UTC.
    """
    return URL.create(
        drivername="mysql+pymysql",
        username=DB_USER,
        password=DB_PASSWORD,
        host=DB_HOST,
        port=DB_PORT,
        database=DB_NAME,
        query={
            "charset": "utf8mb4",
            "init_command": "SET time_zone='+00:00'",
        },
    )


class DatabaseConnection:
    """
    Owns the process-wide SQLAlchemy engine.

    MySQL engines use a QueuePool (10 connections + 20 overflow, hourly
    recycle, pre-ping). Other backends use SQLAlchemy's default pool.
    """

    def __init__(self, url: Optional[Union[str, URL]] = None):
        """
        Args:
            url: Database URL; defaults to DATABASE_URL, then the DB_* settings
        """
        self._url = url
        self._engine: Optional[Engine] = None

    @property
    def url(self) -> URL:
        if self._url is not None:
            return make_url(self._url)
        if DATABASE_URL:
            return make_url(DATABASE_URL)
        return mysql_url()

    def get_engine(self) -> Engine:
        """
        Get or create the engine.

        Raises:
            DatabaseConnectionError: If the engine cannot be created
        """
        if self._engine is None:
            url = self.url
            try:
                if url.get_backend_name() == "mysql":
                    self._engine = create_engine(
                        url,
                        poolclass=QueuePool,
                        pool_size=DB_POOL_SIZE,
                        max_overflow=DB_POOL_MAX_OVERFLOW,
                        pool_recycle=DB_POOL_RECYCLE,
                        pool_pre_ping=DB_POOL_PRE_PING,
                        hide_parameters=True,
                    )
                else:
                    self._engine = create_engine(url, hide_parameters=True)
            except Exception as e:
                log_database_error(e, "Failed to create database engine")
                raise DatabaseConnectionError(f"Failed to create database engine: {e}") from e

            logger.info("Database engine initialized", extra={
                "backend": url.get_backend_name(),
                "host": url.host,
                "database": url.database,
                "environment": config.environment
            })

        return self._engine

    def create_schema(self) -> List[str]:
        """
        Create any missing tables for the registered ORM models.

        Existing tables are left untouched.

        Returns:
            Names of the tables that were created
        """
        from models import Base

        engine = self.get_engine()
        try:
            existing = set(inspect(engine).get_table_names())
            Base.metadata.create_all(engine)
        except Exception as e:
            log_database_error(e, "Failed to create schema")
            raise DatabaseConnectionError(f"Failed to create schema: {e}") from e

        created = sorted(set(Base.metadata.tables) - existing)
        if created:
            logger.info("Created database tables", extra={"tables": created})
        return created

    def test_connection(self) -> bool:
        """
        Test database connectivity.

        Returns:
            True if a trivial query succeeds, False otherwise
        """
        try:
            with self.get_engine().connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()
            return True
        except Exception as e:
            logger.error("Database connection test failed", extra={
                "error_type": type(e).__name__,
                "error": str(e)
            })
            return False

    def close(self):
        """Dispose the engine and forget sessions bound to it."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            from models.base import reset_session_factory
            reset_session_factory()
            logger.info("Database connection pool closed")


# Global database connection instance
db = DatabaseConnection()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    ORM session scoped to one unit of work.

    Commits on success, rolls back and re-raises on error, always closes.

    Example:
        >>> with get_db_session() as session:
        ...     parks = ParkRepository(session).get_active()
    """
    from models.base import create_session

    session = create_session()

    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        log_database_error(e, "ORM transaction failed, rolled back")
        raise
    finally:
        session.close()
