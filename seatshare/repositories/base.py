"""Shared plumbing for the SQLAlchemy repositories."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.orm import Session

from seatshare.db.session import SessionFactory, get_session


class SQLStore:
    """Base class holding the injected session factory."""

    def __init__(self, session_factory: SessionFactory = get_session) -> None:
        self.session_factory = session_factory

    @contextmanager
    def _scope(self, session: Optional[Session] = None) -> Iterator[Session]:
        """
        Yield the caller's session untouched, or open a private one that is
        committed on success and rolled back on error.
        """
        if session is not None:
            yield session
            return
        with self.session_factory() as own:
            try:
                yield own
                own.commit()
            except Exception:
                own.rollback()
                raise
