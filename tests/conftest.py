from __future__ import annotations

from collections.abc import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import sprite.models  # noqa: F401
from sprite import config
from sprite import db
from sprite.fixtures import parse_fixtures, seed_fixtures
from sprite.onboarding.cache import clear_invalidators


@pytest.fixture()
def session_local() -> Iterator[sessionmaker[Session]]:
    """In-memory database bound to ``db.SessionLocal`` and seeded with fixtures."""

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db.SessionLocal.configure(bind=engine)
    db.Base.metadata.create_all(bind=engine)
    with db.SessionLocal() as session:
        seed_fixtures(session, parse_fixtures())
        session.add(db.User(id=1, name="Ada", email="ada@example.com"))
        session.commit()
    try:
        yield db.SessionLocal
    finally:
        db.SessionLocal.configure(bind=None)
        engine.dispose()


@pytest.fixture(autouse=True)
def _reset_invalidators() -> Iterator[None]:
    clear_invalidators()
    yield
    clear_invalidators()


@pytest.fixture()
def session_secret(monkeypatch: pytest.MonkeyPatch) -> Iterator[str]:
    monkeypatch.setenv("SESSION_SECRET", "test-secret")
    config.reload_settings()
    yield "test-secret"
    monkeypatch.delenv("SESSION_SECRET", raising=False)
    config.reload_settings()
