"""
Database connection and session management for the Account Service.

A Database is constructed explicitly at startup and handed to the stores;
nothing in the service reaches for a module-level engine.
"""
from contextlib import contextmanager
from typing import Iterator
import logging

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def _is_postgres(url: str) -> bool:
    return url.startswith("postgresql")


def engine_options(
    url: str,
    pool_size: int = 5,
    max_overflow: int = 10,
    timeout_seconds: int = 10,
    echo: bool = False,
) -> dict:
    """Keyword arguments for create_engine, bounding every wait by timeout_seconds."""
    engine_kwargs = {"echo": echo}

    if _is_sqlite(url):
        engine_kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": timeout_seconds,
        }
        if _is_memory_sqlite(url):
            # One shared connection, otherwise every session sees an empty database
            engine_kwargs["poolclass"] = StaticPool
        return engine_kwargs

    connect_args = {"connect_timeout": timeout_seconds}
    if _is_postgres(url):
        connect_args["options"] = f"-c statement_timeout={timeout_seconds * 1000}"
    engine_kwargs.update(
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=timeout_seconds,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    return engine_kwargs


class Database:
    """Owns the SQLAlchemy engine and session factory for one process."""

    def __init__(
        self,
        url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        timeout_seconds: int = 10,
        echo: bool = False,
    ):
        self.url = url
        self.engine = create_engine(
            url, **engine_options(url, pool_size, max_overflow, timeout_seconds, echo)
        )
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings) -> "Database":
        return cls(
            settings.database_url,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            timeout_seconds=settings.DB_TIMEOUT_SECONDS,
            echo=settings.DB_ECHO,
        )

    def init_db(self) -> None:
        """
        Create all tables and indexes that do not exist yet.
        Called on application startup.
        """
        # Import models so they are registered with Base
        from .models import Country, User  # noqa: F401

        try:
            Base.metadata.create_all(bind=self.engine)
            logger.info("Database initialized successfully")
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Yield a session that is always closed. Callers commit explicitly;
        anything left uncommitted is rolled back on close.
        """
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def check_connection(self) -> bool:
        """
        Check if database connection is working.

        Returns:
            bool: True if connection is successful, False otherwise
        """
        try:
            with self.session() as db:
                db.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database connection check failed: {e}")
            return False

    def dispose(self) -> None:
        self.engine.dispose()
