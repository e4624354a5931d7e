from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field

PACKAGE_DIR = Path(__file__).parent


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    return int(raw) if raw else default


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    return float(raw) if raw else default


def _resolve_db_path() -> Path:
    override = _env("VCDASH_DB_PATH")
    if override:
        return Path(override).expanduser().resolve()
    return PACKAGE_DIR / "data" / "vcdash.db"


class Settings(BaseModel):
    attio_api_key: str = Field(default_factory=lambda: _env("ATTIO_API_KEY"))
    attio_api_base: str = Field(default_factory=lambda: _env("ATTIO_API_BASE", "https://api.attio.com/v2"))
    request_timeout_seconds: float = Field(default_factory=lambda: _env_float("VCDASH_TIMEOUT", 30.0))

    # Pagination
    entry_page_size: int = Field(default_factory=lambda: _env_int("VCDASH_PAGE_SIZE", 500))
    record_page_size: int = 100
    id_chunk_size: int = 50
    max_pages: int = Field(default_factory=lambda: _env_int("VCDASH_MAX_PAGES", 40))
    fan_out: int = Field(default_factory=lambda: _env_int("VCDASH_FAN_OUT", 5))

    # Caches
    cache_ttl_seconds: float = Field(default_factory=lambda: _env_float("VCDASH_CACHE_TTL", 600.0))
    qualified_count_ttl_seconds: float = 3600.0

    # Used when the qualified-universe count cannot be fetched live
    qualified_universe_fallback: int = Field(
        default_factory=lambda: _env_int("VCDASH_QUALIFIED_FALLBACK", 2000)
    )
    cluster_threshold: int = 10

    database_path: Path = Field(default_factory=_resolve_db_path)

    # Attio object and list slugs
    companies_object: str = "companies"
    deals_object: str = "deals_2"
    lps_object: str = "lp"
    coverage_list: str = "deal_coverage_6"
    deal_flow_list: str = "deal_flow_4"
    qualified_list: str = "old_2_6"

    extra_portfolio_names: list[str] = Field(default_factory=lambda: ["Veesion", "Okeiro", "Speach"])

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.database_path}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
