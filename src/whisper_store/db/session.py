"""Database session configuration for the SQL key-value backend."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from whisper_store.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


def make_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine usable from worker threads.

    In-memory SQLite gets a single shared connection, otherwise every thread
    would see its own empty database.
    """
    if url.startswith("sqlite"):
        kwargs: dict[str, object] = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)
    return create_engine(url, pool_pre_ping=True, echo=echo)


def make_session_factory(engine: Engine) -> sessionmaker:
    """Return a session factory bound to ``engine``."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


engine = make_engine(settings.database_url, echo=settings.sql_debug)

SessionLocal = make_session_factory(engine)


def create_tables(bind: Engine | None = None) -> None:
    """Create all database tables."""
    import whisper_store.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def drop_tables(bind: Engine | None = None) -> None:
    """Drop all database tables."""
    import whisper_store.models  # noqa: F401

    Base.metadata.drop_all(bind=bind or engine)
