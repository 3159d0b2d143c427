"""
Database configuration and session management for the chat backend.

The engine and session factory are built from Settings by the app factory and
kept on app.state; get_db() hands each request its own session from there.
"""
from __future__ import annotations

from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ollama_chat.config import Settings


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless this is set per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# PUBLIC_INTERFACE
def build_engine(settings: Settings) -> Engine:
    """Create the SQLAlchemy engine with a bounded connection pool."""
    url = settings.database_url
    if url.startswith("sqlite"):
        # For SQLite, check_same_thread must be False for multithreaded FastAPI.
        engine = create_engine(url, echo=False, future=True, connect_args={"check_same_thread": False})
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        url,
        echo=False,
        future=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_pre_ping=True,
    )


# PUBLIC_INTERFACE
def build_session_factory(engine: Engine) -> sessionmaker:
    """Session factory. autocommit=False and autoflush=False are standard for explicit control."""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine, future=True)


# PUBLIC_INTERFACE
def get_db(request: Request) -> Generator[Session, None, None]:
    """Yield a database session for request scope and ensure proper cleanup."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
