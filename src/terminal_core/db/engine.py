"""Database engine, session management and commit helper."""

from __future__ import annotations

from collections.abc import Generator

import structlog
from sqlalchemy import create_engine, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from terminal_core.errors import PersistenceFailure

log = structlog.get_logger("db")

_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None


def _ensure_psycopg_driver(url: str) -> str:
    """Rewrite postgresql:// to postgresql+psycopg:// for psycopg v3."""
    if url.startswith("postgresql://"):
        return "postgresql+psycopg://" + url[len("postgresql://"):]
    return url


def init_engine(url: str, **kwargs) -> Engine:
    """Create the global engine and session factory."""
    global _engine, _SessionLocal
    _engine = create_engine(_ensure_psycopg_driver(url), **kwargs)
    _SessionLocal = sessionmaker(bind=_engine, expire_on_commit=False)
    return _engine


def get_engine() -> Engine:
    """Return the global engine (must call init_engine first)."""
    if _engine is None:
        raise RuntimeError("Database engine not initialised — call init_engine() first")
    return _engine


def get_session() -> Generator[Session, None, None]:
    """Yield a session, closing it when done."""
    if _SessionLocal is None:
        raise RuntimeError("Database engine not initialised — call init_engine() first")
    session = _SessionLocal()
    try:
        yield session
    finally:
        session.close()


def commit_or_raise(session: Session, stage: str, partial: bool = False) -> None:
    """Commit, or roll back and raise PersistenceFailure naming *stage*."""
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        log.error("commit_failed", stage=stage, partial=partial, error=str(exc))
        raise PersistenceFailure(
            f"Store rejected write during {stage.replace('_', ' ')}",
            stage=stage,
            partial=partial,
        ) from exc
