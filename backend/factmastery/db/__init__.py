"""Database package."""

from factmastery.db.base import engine, async_session_maker, Base, get_db, init_db

__all__ = ["engine", "async_session_maker", "Base", "get_db", "init_db"]
