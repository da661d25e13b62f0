from __future__ import annotations

import itertools
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

# make the seatshare package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from seatshare.container import build_container  # noqa: E402
from seatshare.core import config as core_config  # noqa: E402
from seatshare.db import models  # noqa: E402
from seatshare.db import session as db_session  # noqa: E402

_emails = itertools.count(1)


def _reset_caches() -> None:
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def temp_db(tmp_path, monkeypatch):
    """Temporary SQLite file database with fresh settings/engine caches."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("ADMIN_TOKEN", "admin-secret")
    _reset_caches()

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)

    yield db_file

    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()
    _reset_caches()


@pytest.fixture()
def container(temp_db):
    return build_container()


@pytest.fixture()
def catalog(container):
    """One provider supporting PT and ES; FR is supported but inactive; DE is unsupported."""
    repo = container.catalog
    pt = repo.create_country("Portugal", "PT")
    es = repo.create_country("Spain", "ES")
    fr = repo.create_country("France", "FR", is_active=False)
    de = repo.create_country("Germany", "DE")
    netflix = repo.create_provider("Netflix")
    spotify = repo.create_provider("Spotify")
    for country in (pt, es, fr):
        repo.add_supported_country(netflix.id, country.id)
    repo.add_supported_country(spotify.id, pt.id)
    return SimpleNamespace(
        provider=netflix.id,
        other_provider=spotify.id,
        pt=pt.id,
        es=es.id,
        fr=fr.id,
        de=de.id,
    )


@pytest.fixture()
def make_account(container):
    """Insert an account straight through the repository (skips argon2 hashing)."""
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _make(
        provider_id: str,
        slots: int,
        *,
        country_id: str | None = None,
        created_offset: int = 0,
        expires_at: datetime | None = None,
        is_active: bool = True,
    ):
        n = next(_emails)
        return container.subscriptions.create(
            provider_id=provider_id,
            country_id=country_id,
            name=f"Account {n}",
            email=f"account{n}@example.com",
            password_hash="argon2$not-a-real-hash",
            available_slots=slots,
            expires_at=expires_at,
            is_active=is_active,
            created_at=base + timedelta(minutes=created_offset),
        )

    return _make
