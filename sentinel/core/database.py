"""
Database configuration for Global Sentinel.

This module provides the SQLite/SQLAlchemy store handle. A ``Database`` is
constructed explicitly, initialised on startup and closed on shutdown; the
components that need it receive it through their constructors.
"""

import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from sentinel.core.config import settings
from sentinel.core.logging import logger

# Base class for SQLAlchemy models
Base = declarative_base()


# Enable SQLite foreign key support
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")  # Write-Ahead Logging for better concurrency
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute(f"PRAGMA busy_timeout={int(settings.SQLITE_BUSY_TIMEOUT_MS)}")
        cursor.execute("PRAGMA temp_store=MEMORY")
        cursor.close()


class Database:
    """
    Store handle owning the SQLAlchemy engine and session factory.
    """

    def __init__(self, url: Optional[str] = None):
        """
        Initialize the handle without connecting.

        Args:
            url: SQLAlchemy database URL. Defaults to settings.DATABASE_URL.
        """
        self.url = url or settings.DATABASE_URL
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None

    @property
    def is_open(self) -> bool:
        return self.engine is not None

    def _create_engine(self) -> Engine:
        if self.url.startswith("sqlite"):
            if ":memory:" in self.url:
                # One shared connection, otherwise every session sees an empty database
                return create_engine(
                    self.url,
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool,
                    echo=False,
                )
            return create_engine(
                self.url,
                connect_args={"check_same_thread": False},  # Needed for SQLite
                pool_pre_ping=True,
                pool_size=5,
                max_overflow=10,
                pool_recycle=1800,
                echo=False,
            )
        return create_engine(self.url, pool_pre_ping=True, echo=False)

    def init(self) -> None:
        """
        Connect and create all tables.
        """
        if self.is_open:
            return

        # Import all models here to ensure they are registered with Base
        from sentinel.models.threat import Threat  # noqa: F401
        from sentinel.models.vote import VoteAudit  # noqa: F401

        if self.url.startswith("sqlite:///") and ":memory:" not in self.url:
            db_dir = os.path.dirname(self.url.replace("sqlite:///", ""))
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)

        self.engine = self._create_engine()
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )
        Base.metadata.create_all(bind=self.engine)

        logger.info(f"Database initialized at {self.url}")

    def close(self) -> None:
        """
        Dispose of the engine and its pooled connections.
        """
        if self.engine is not None:
            self.engine.dispose()
            logger.info(f"Database closed at {self.url}")
        self.engine = None
        self.SessionLocal = None

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Get database session.

        Yields:
            Session: Database session, closed on exit.
        """
        if self.SessionLocal is None:
            raise RuntimeError("Database is not initialized")
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()
