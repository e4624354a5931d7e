"""Durable local key/value store on SQLite.

Every document is stored as JSON under a single key, mirroring the
browser ``localStorage`` layout the dashboard used: ``assessments``,
``meetingRatings``, ``dealState`` and so on.  Writes replace the whole
document; concurrent writers are not merged (last write wins).
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, ContextManager

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from vcdash.db import get_session, transaction
from vcdash.models import StoredValue
from vcdash.utils import json_parse

log = logging.getLogger(__name__)

_MISSING = object()


class LocalStore:
    def __init__(self, session_factory: Callable[[], Session] | None = None):
        self._session_factory = session_factory or get_session

    def _session(self) -> ContextManager[Session]:
        return transaction(self._session_factory)

    def get_json(self, key: str, default: Any = None) -> Any:
        with self._session() as session:
            row = session.get(StoredValue, key)
            if row is None:
                return default
            value = json_parse(row.value_json, _MISSING)
        if value is _MISSING:
            log.warning("Discarding unreadable value stored under %r", key)
            return default
        return value

    def set_json(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        with self._session() as session:
            row = session.get(StoredValue, key)
            if row is None:
                session.add(StoredValue(key=key, value_json=payload))
            else:
                row.value_json = payload

    def remove(self, key: str) -> None:
        with self._session() as session:
            session.execute(delete(StoredValue).where(StoredValue.key == key))

    def keys(self) -> list[str]:
        with self._session() as session:
            return sorted(session.execute(select(StoredValue.key)).scalars().all())
