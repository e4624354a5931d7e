from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from vcdash.config import Settings
from vcdash.models import Base
from vcdash.store import LocalStore
from vcdash.tests.factories import FakeAttio


@pytest.fixture()
def session_factory():
    """In-memory SQLite shared across connections via StaticPool."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def store(session_factory) -> LocalStore:
    return LocalStore(session_factory)


@pytest.fixture()
def fake() -> FakeAttio:
    return FakeAttio()


@pytest.fixture()
def settings() -> Settings:
    return Settings(attio_api_key="test-key", max_pages=40, fan_out=5)
