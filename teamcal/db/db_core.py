"""Core database functionality and configuration.

This module provides database management with environment-aware
configuration, connection pooling, and session handling.
"""

from contextlib import contextmanager
import logging
from pathlib import Path
from typing import Optional, Dict, Any, Generator
import os

from sqlalchemy import create_engine, Engine, event, inspect
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import scoped_session, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ..models import Base
from ..config.environment import IS_PRODUCTION_ENVIRONMENT
from ..errors import TeamCalendarError

logger = logging.getLogger(__name__)

class DatabaseConfig:
    """Database configuration settings."""

    def __init__(
        self,
        sqlite_path: Optional[Path] = None,
        database_url: Optional[str] = None,
        echo: bool = False,
        pool_size: int = 3,
        max_overflow: int = 4,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        pool_pre_ping: bool = True
    ):
        """
        Initialize database configuration.

        In production environment, DATABASE_URL must be set in environment variables
        or provided explicitly via database_url parameter. In development an
        explicit URL (or DATABASE_URL) overrides the default SQLite file.

        Args:
            sqlite_path: Path to SQLite database file (for development)
            database_url: Full SQLAlchemy URL; defaults to DATABASE_URL env variable
            echo: Whether to echo SQL statements
            pool_size: Size of the connection pool (permanent connections)
            max_overflow: Maximum number of extra connections to allow temporarily
            pool_timeout: Seconds to wait for an available connection
            pool_recycle: Seconds before connections are recycled
            pool_pre_ping: Whether to ping connections before using them

        Raises:
            ValueError: If in production environment and no database URL is provided
        """
        url = database_url or os.environ.get('DATABASE_URL')
        if IS_PRODUCTION_ENVIRONMENT and not url:
            raise ValueError(
                "Database URL must be provided either via database_url parameter "
                "or DATABASE_URL environment variable when in production environment"
            )

        # Hosted Postgres providers still hand out the legacy scheme
        if url and url.startswith('postgres://'):
            url = 'postgresql://' + url[len('postgres://'):]

        self.database_url = url
        self.sqlite_path = None if url else (
            sqlite_path or Path(__file__).parent.parent.parent / 'data' / 'teamcal.db'
        )

        self.echo = echo
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.pool_recycle = pool_recycle
        self.pool_pre_ping = pool_pre_ping

    @property
    def connection_url(self) -> str:
        """Get the database connection URL."""
        if self.database_url:
            return self.database_url
        if not self.sqlite_path:
            raise ValueError("SQLite path not configured")
        return f"sqlite:///{self.sqlite_path}"

    @property
    def is_sqlite(self) -> bool:
        return self.connection_url.startswith('sqlite')

    def get_engine_args(self) -> Dict[str, Any]:
        """Get SQLAlchemy engine arguments based on configuration."""
        args = {"echo": self.echo}

        if self.is_sqlite:
            args["connect_args"] = {"check_same_thread": False}
            args["poolclass"] = StaticPool
        else:
            args.update({
                "pool_size": self.pool_size,
                "max_overflow": self.max_overflow,
                "pool_timeout": self.pool_timeout,
                "pool_recycle": self.pool_recycle,
                "pool_pre_ping": self.pool_pre_ping
            })

        return args

class DatabaseError(Exception):
    """Base exception for database-related errors."""
    pass

class ConnectionError(DatabaseError):
    """Raised when there are issues connecting to the database."""
    pass

class SessionError(DatabaseError):
    """Raised when there are issues with database sessions."""
    pass

def _configure_sqlite_connection(dbapi_connection, connection_record):
    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs behave
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

def _begin_sqlite_transaction(connection):
    connection.exec_driver_sql("BEGIN")

class Database:
    """Core database management class implementing the singleton pattern."""

    _instance = None
    _tables_checked = False

    def __new__(cls, config: Optional[DatabaseConfig] = None):
        """Ensure only one instance exists."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config: Optional[DatabaseConfig] = None):
        """Initialize the database manager if not already initialized."""
        if self._initialized:
            return

        self.config = config or DatabaseConfig()
        self.engine: Optional[Engine] = None
        self._session_factory = sessionmaker(expire_on_commit=False)
        self._scoped_session = scoped_session(self._session_factory)
        self._initialized = True

        self._setup_engine()

    def _setup_engine(self) -> None:
        """Set up the SQLAlchemy engine."""
        try:
            if self.config.sqlite_path:
                Path(self.config.sqlite_path).parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_engine(
                self.config.connection_url,
                **self.config.get_engine_args()
            )
            if self.config.is_sqlite:
                event.listen(self.engine, "connect", _configure_sqlite_connection)
                event.listen(self.engine, "begin", _begin_sqlite_transaction)
            self._session_factory.configure(bind=self.engine)
        except Exception as e:
            raise ConnectionError(f"Failed to create database engine: {e}") from e

    def init_db(self) -> None:
        """Initialize the database schema."""
        if not self.engine:
            raise ConnectionError("Database engine not initialized")

        try:
            Base.metadata.create_all(self.engine)
            logger.info("Database schema initialized successfully")
        except Exception as e:
            raise DatabaseError(f"Failed to initialize database schema: {e}") from e

    def ensure_tables_exist(self) -> None:
        """Ensure all required database tables exist."""
        if not self._tables_checked:
            if not self.engine:
                raise ConnectionError("Database engine not initialized")

            try:
                inspector = inspect(self.engine)
                existing_tables = inspector.get_table_names()
                required_tables = set(Base.metadata.tables)

                if not all(table in existing_tables for table in required_tables):
                    logger.info("Some tables missing, initializing database schema")
                    Base.metadata.create_all(self.engine)
                    logger.info("Database schema initialized successfully")

                self._tables_checked = True

            except Exception as e:
                raise DatabaseError(f"Failed to verify/create database schema: {e}") from e

    def reset_schema(self) -> None:
        """Drop and recreate every table. Intended for tests and local resets."""
        if not self.engine:
            raise ConnectionError("Database engine not initialized")
        self._scoped_session.remove()
        Base.metadata.drop_all(self.engine)
        Base.metadata.create_all(self.engine)
        self._tables_checked = True

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Commit/rollback is handled automatically. Domain errors
        (``TeamCalendarError``) and transient ``OperationalError``s are
        re-raised unchanged after rollback so callers can map or retry them;
        anything else is wrapped in SessionError.

        Example:
            with db.session() as session:
                event = session.get(TeamEvent, event_id)
                event.name = "New Name"

        Raises:
            SessionError: If there are issues with the session
            DatabaseError: If database schema verification fails
        """
        self.ensure_tables_exist()

        session = self._scoped_session()
        try:
            yield session
            session.commit()
        except (TeamCalendarError, OperationalError):
            session.rollback()
            raise
        except Exception as e:
            session.rollback()
            raise SessionError(f"Database session error: {e}") from e
        finally:
            session.close()
            self._scoped_session.remove()

# Create the global database instance with default configuration
db = Database()
