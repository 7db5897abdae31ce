"""Database layer — engine, session, ORM base."""

from terminal_core.db.base import Base
from terminal_core.db.engine import commit_or_raise, get_engine, get_session, init_engine

__all__ = ["Base", "commit_or_raise", "get_engine", "get_session", "init_engine"]
