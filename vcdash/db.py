"""SQLite engine and sessions backing the local store."""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from vcdash.config import get_settings
from vcdash.models import Base

log = logging.getLogger(__name__)

_lock = threading.Lock()
_factory: sessionmaker[Session] | None = None


def init_db(db_path: str | Path | None = None) -> Path:
    """Create the tables and (re)bind the session factory; returns the file used."""
    global _factory
    path = Path(db_path if db_path is not None else get_settings().database_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    with _lock:
        previous, _factory = _factory, sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    if previous is not None:
        previous.kw["bind"].dispose()
    log.debug("Local store at %s", path)
    return path


def get_session() -> Session:
    with _lock:
        factory = _factory
    if factory is None:
        raise RuntimeError("init_db() has not been called")
    return factory()


@contextmanager
def transaction(factory: Callable[[], Session] = get_session) -> Generator[Session, None, None]:
    """Session that commits when the block succeeds and rolls back otherwise."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
