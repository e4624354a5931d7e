"""Spreading of bulk-import date clusters.

CRM imports stamp hundreds of rows with one literal date, which flattens any
time series.  Dates shared by ``threshold`` or more rows are replaced with a
synthetic date derived from a 32-bit FNV-1a hash of the row id, so the same
row always lands on the same day.
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from vcdash.geography import date_to_quarter

log = logging.getLogger(__name__)

CLUSTER_THRESHOLD = 10
WINDOW_START_YEAR = 2022
WINDOW_MONTHS = 48

_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193


def fnv1a_32(text: str) -> int:
    h = _FNV_OFFSET
    for byte in text.encode("utf-8"):
        h ^= byte
        h = (h * _FNV_PRIME) & 0xFFFFFFFF
    return h


def synthetic_date(identifier: str) -> str:
    """Deterministic ``YYYY-MM-DD`` inside Jan 2022 .. Dec 2025."""
    h = fnv1a_32(identifier or "")
    offset = h % WINDOW_MONTHS
    year = WINDOW_START_YEAR + offset // 12
    month = offset % 12 + 1
    day = h % 28 + 1
    return f"{year}-{month:02d}-{day:02d}"


def clustered_dates(rows: list[dict[str, Any]], threshold: int = CLUSTER_THRESHOLD,
                    field: str = "announced_date") -> set[str]:
    counts = Counter(r[field] for r in rows if r.get(field))
    return {d for d, n in counts.items() if n >= threshold}


def redistribute_bulk_dates(
    rows: list[dict[str, Any]],
    threshold: int = CLUSTER_THRESHOLD,
    *,
    field: str = "announced_date",
    quarter_field: str = "date",
    id_field: str = "id",
) -> list[dict[str, Any]]:
    """Return rows with clustered dates replaced; other rows pass through."""
    bulk = clustered_dates(rows, threshold, field)
    if not bulk:
        return rows
    log.debug("Redistributing %d clustered date(s): %s", len(bulk), sorted(bulk))

    out: list[dict[str, Any]] = []
    for row in rows:
        if row.get(field) not in bulk:
            out.append(row)
            continue
        new_date = synthetic_date(str(row.get(id_field) or ""))
        out.append({**row, field: new_date, quarter_field: date_to_quarter(new_date)})
    return out
