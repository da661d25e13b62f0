"""Database helpers (engine/session export)."""

from .session import Base, SessionFactory, get_engine, get_session

__all__ = ["Base", "SessionFactory", "get_engine", "get_session"]
