"""Shared utility functions used across vcdash modules."""
from __future__ import annotations

import json
import math
import re
from typing import Any, Iterator, Sequence, TypeVar

T = TypeVar("T")

_MISSING = object()
_YEAR_RE = re.compile(r"(\d{4})")


def json_parse(value: str | None, default: Any = _MISSING) -> Any:
    """Safely parse a JSON string, returning *default* on failure.

    If no default is given, returns ``{}`` on parse error.
    """
    try:
        return json.loads(value or "")
    except (json.JSONDecodeError, TypeError):
        return {} if default is _MISSING else default


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with .5 going up (towards +inf), unlike Python's banker's rounding."""
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def round_int(value: float) -> int:
    return int(round_half_up(value))


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def parse_year(value: str | None) -> int | None:
    """First four-digit run in a timestamp string, or None."""
    if not value or not isinstance(value, str):
        return None
    m = _YEAR_RE.search(value)
    return int(m.group(1)) if m else None


def to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
