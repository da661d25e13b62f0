"""Engine/session helpers for the SQL backend."""
from __future__ import annotations

from contextlib import AbstractContextManager, contextmanager
from functools import lru_cache
from typing import Callable, Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from seatshare.core.config import get_settings

Base = declarative_base()

SessionFactory = Callable[[], AbstractContextManager[Session]]


@lru_cache
def get_engine():
    settings = get_settings()
    url = (settings.database_url or "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL must be configured to use the SQL backend.")
    connect_args = {}
    if url.startswith("sqlite"):
        # seat claims race across threads; let writers wait on the file lock
        connect_args = {"check_same_thread": False, "timeout": 30}
    return create_engine(
        url,
        future=True,
        pool_pre_ping=True,
        echo=settings.sql_echo,
        connect_args=connect_args,
    )


@lru_cache
def _get_sessionmaker():
    return sessionmaker(
        bind=get_engine(),
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


@contextmanager
def get_session() -> Iterator[Session]:
    session: Session = _get_sessionmaker()()
    try:
        yield session
    finally:
        session.close()
