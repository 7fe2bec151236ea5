"""Database connection management for SmartClause persistence."""

import os
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base


DATABASE_URL_ENV = "SMART_CLAUSE_DATABASE_URL"


def get_database_url(
    host: Optional[str] = None,
    port: Optional[int] = None,
    database: Optional[str] = None,
    user: Optional[str] = None,
    password: Optional[str] = None,
) -> str:
    """
    Build the database URL from parameters or environment variables.

    ``SMART_CLAUSE_DATABASE_URL`` wins when set and no parameter is given;
    otherwise a PostgreSQL URL is built from the POSTGRES_* variables.

    Args:
        host: Database host (default: from POSTGRES_HOST env or 'localhost')
        port: Database port (default: from POSTGRES_PORT env or 5432)
        database: Database name (default: from POSTGRES_DB env or 'smart_clause')
        user: Database user (default: from POSTGRES_USER env or 'postgres')
        password: Database password (default: from POSTGRES_PASSWORD env or 'postgres')

    Returns:
        Database connection URL string.
    """
    explicit = any(v is not None for v in (host, port, database, user, password))
    if not explicit and os.environ.get(DATABASE_URL_ENV):
        return os.environ[DATABASE_URL_ENV]

    host = host or os.environ.get("POSTGRES_HOST", "localhost")
    port = port or int(os.environ.get("POSTGRES_PORT", "5432"))
    database = database or os.environ.get("POSTGRES_DB", "smart_clause")
    user = user or os.environ.get("POSTGRES_USER", "postgres")
    password = password or os.environ.get("POSTGRES_PASSWORD", "postgres")

    return f"postgresql://{user}:{password}@{host}:{port}/{database}"


class DatabaseManager:
    """
    Database connection manager with connection pooling.

    Handles database connections, session management, and schema initialization.
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
    ):
        """
        Initialize the database manager.

        Args:
            database_url: SQLAlchemy connection URL. If None, built from env vars.
            pool_size: Number of connections to keep in the pool.
            max_overflow: Maximum overflow connections beyond pool_size.
            echo: If True, log all SQL statements.
        """
        self._database_url = database_url or get_database_url()
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._echo = echo

    @property
    def database_url(self) -> str:
        return self._database_url

    @property
    def engine(self) -> Engine:
        """Get or create the database engine."""
        if self._engine is None:
            if self._database_url.startswith("sqlite"):
                # SQLite doesn't support pool_size and max_overflow; sessions
                # are used from worker threads, and an in-memory database
                # must share a single connection to be visible to all of them.
                kwargs = {"connect_args": {"check_same_thread": False}}
                if self._database_url in ("sqlite://", "sqlite:///:memory:"):
                    kwargs["poolclass"] = StaticPool
                self._engine = create_engine(
                    self._database_url,
                    echo=self._echo,
                    **kwargs,
                )
            else:
                self._engine = create_engine(
                    self._database_url,
                    pool_size=self._pool_size,
                    max_overflow=self._max_overflow,
                    echo=self._echo,
                    pool_pre_ping=True,
                )
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._session_factory

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Get a database session that commits on success and rolls back on error.

        Yields:
            SQLAlchemy Session object.

        Example:
            with db_manager.get_session() as session:
                session.add(some_object)
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self) -> None:
        """Create all tables defined in the models."""
        Base.metadata.create_all(self.engine)

    def close(self) -> None:
        """Close the database engine and release all connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None

    def health_check(self) -> bool:
        """
        Check if the database connection is healthy.

        Returns:
            True if connection is healthy, False otherwise.
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            return False
