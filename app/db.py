"""Engine, session factory and declarative Base shared by models, routers and tasks."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import get_settings

Base = declarative_base()


def _build_engine(database_url: str) -> Engine:
    settings = get_settings()
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        # In-memory SQLite must share one connection across threads (TestClient).
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    engine = create_engine(
        database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_timeout=settings.database_pool_timeout,
        pool_pre_ping=True,
        connect_args={"application_name": settings.app_name},
    )
    statement_timeout = settings.database_statement_timeout_ms

    @event.listens_for(engine, "connect")
    def _set_statement_timeout(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute(f"SET statement_timeout = {int(statement_timeout)}")
        cursor.close()

    return engine


class DatabaseManager:
    """Owns the engine and hands out sessions for requests and background tasks."""

    def __init__(self, database_url: str) -> None:
        self.engine = _build_engine(database_url)
        self.SessionLocal = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )

    @contextmanager
    def db_session(self) -> Iterator[Session]:
        """Session scope for code running outside a request (Celery tasks)."""
        db = self.SessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


db_manager = DatabaseManager(get_settings().database_url or "")
engine = db_manager.engine
SessionLocal = db_manager.SessionLocal


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
