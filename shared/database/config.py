"""
Database configuration and connection handle.

The handle is created once per process and connects lazily. A failed
connection attempt is not remembered: the next caller tries again.
"""
import logging
import threading
from pathlib import Path
from typing import Optional, Tuple

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class DatabaseSettings(BaseSettings):
    """Database configuration settings."""

    database_url: Optional[str] = "sqlite:///./data/tales.db"
    echo: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"  # Ignore extra environment variables
    )


# Create declarative base
Base = declarative_base()


def _build_engine(database_url: str, echo: bool = False) -> Engine:
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        # File databases need their directory before the first connect
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        # SQLite configuration with thread safety
        return create_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={
                "check_same_thread": False,
            },
        )

    return create_engine(database_url, echo=echo, pool_pre_ping=True)


class DatabaseHandle:
    """Lazily connected engine and session factory shared across requests."""

    def __init__(self, database_url: Optional[str], echo: bool = False):
        self.database_url = database_url
        self.echo = echo
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Optional[DatabaseSettings] = None) -> "DatabaseHandle":
        settings = settings or DatabaseSettings()
        return cls(settings.database_url, echo=settings.echo)

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def _connect(self) -> Optional[Tuple[Engine, sessionmaker]]:
        """Return the engine and session factory together, connecting on first use."""
        with self._lock:
            if self._engine is None:
                if not self.database_url:
                    return None

                engine = None
                try:
                    engine = _build_engine(self.database_url, self.echo)
                    with engine.connect() as connection:
                        connection.execute(text("SELECT 1"))
                    Base.metadata.create_all(bind=engine)
                except SQLAlchemyError as e:
                    logger.warning(f"[Database] Failed to connect: {e}")
                    if engine is not None:
                        engine.dispose()
                    return None

                self._session_factory = sessionmaker(
                    autocommit=False,
                    autoflush=False,
                    expire_on_commit=False,
                    bind=engine
                )
                self._engine = engine
                logger.info("[Database] Connected")

            return self._engine, self._session_factory

    def get_engine(self) -> Optional[Engine]:
        """Return the engine, connecting on first use. None while unavailable."""
        connection = self._connect()
        return connection[0] if connection else None

    def get_session(self) -> Optional[Session]:
        """Open a new session, or None when the database is unavailable."""
        connection = self._connect()
        if connection is None:
            return None
        _, session_factory = connection
        return session_factory()

    def reset(self):
        """Drop the current engine so the next call reconnects."""
        with self._lock:
            if self._engine is not None:
                self._engine.dispose()
            self._engine = None
            self._session_factory = None
