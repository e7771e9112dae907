"""
==============================================================================
Database Connection Module
==============================================================================

Engine and session handling for the order database.

Two kinds of callers open sessions here:
- HTTP routes, through the get_db dependency (one session per request)
- SqlOrderStore, which opens one session per lookup on the matcher's
  worker thread

SQLite Notes:
------------
- check_same_thread is disabled since lookups run off the request thread
- an in-memory URL ("sqlite://") uses a StaticPool so every thread sees
  the same database
- file databases run in WAL mode so lookups don't block order writes

==============================================================================
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from bistro_scan.config import get_settings


# Module logger
logger = logging.getLogger(__name__)

# Declarative base for the order tables
Base = declarative_base()


def _is_memory_url(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


class DatabaseManager:
    """
    Owns the engine and session factory for one database URL.

    The engine is built on first use. Use get_database_manager() for the
    application-wide instance.

    Attributes:
        url: Database URL
    """

    def __init__(self, url: Optional[str] = None) -> None:
        settings = get_settings()
        self.url = url or settings.database_url
        self._echo = settings.debug
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = self._build_engine()
        return self._engine

    def _build_engine(self) -> Engine:
        if not self.url.startswith("sqlite"):
            logger.info(f"Connecting to {self.url.split('@')[-1]}")
            return create_engine(
                self.url,
                pool_pre_ping=True,
                pool_recycle=1800,
                echo=self._echo,
            )

        options = {"connect_args": {"check_same_thread": False}, "echo": self._echo}
        in_memory = _is_memory_url(self.url)
        if in_memory:
            options["poolclass"] = StaticPool
        engine = create_engine(self.url, **options)

        @event.listens_for(engine, "connect")
        def configure_sqlite(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if not in_memory:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        logger.info(f"Using SQLite database: {self.url}")
        return engine

    @property
    def session_factory(self) -> sessionmaker:
        # expire_on_commit is off: records are read after the session closes
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._session_factory

    def get_session(self) -> Session:
        """New session; the caller closes it."""
        return self.session_factory()

    def create_tables(self) -> None:
        Base.metadata.create_all(bind=self.engine)
        logger.info("Order tables created/verified")

    def verify_connection(self) -> bool:
        """Run SELECT 1; False when the database is unreachable."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Database connection failed: {e}")
            return False
        return True

    def dispose(self) -> None:
        """Close pooled connections."""
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Database connections closed")

    def __repr__(self) -> str:
        return f"DatabaseManager(url={self.url!r})"


@lru_cache(maxsize=1)
def get_database_manager() -> DatabaseManager:
    """Application-wide DatabaseManager."""
    return DatabaseManager()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    session = get_database_manager().get_session()
    try:
        yield session
    finally:
        session.close()
