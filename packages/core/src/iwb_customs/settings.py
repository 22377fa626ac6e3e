from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    database_url: str
    tiers_path: Path
    log_level: str
    log_json: bool
    default_customs_pct: Decimal
    default_vat_pct: Decimal
    auto_create_tables: bool


def _normalize_database_url(database_url: str) -> str:
    if database_url.startswith("postgres://"):
        return f"postgresql://{database_url[len('postgres://'):]}"
    return database_url


def _read_log_level() -> str:
    level = os.getenv("IWB_LOG_LEVEL", "info").lower()
    if not isinstance(getattr(logging, level.upper(), None), int):
        raise ValueError(f"IWB_LOG_LEVEL must be a logging level name, got {level!r}")
    return level


def _read_percentage(name: str) -> Decimal:
    raw = os.getenv(name, "0")
    try:
        value = Decimal(raw)
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a decimal percentage, got {raw!r}") from exc
    if not value.is_finite() or value < 0 or value > 100:
        raise ValueError(f"{name} must be between 0 and 100, got {raw!r}")
    return value


@lru_cache
def get_settings() -> Settings:
    raw_database_url = os.getenv("DATABASE_URL") or "sqlite:///./iwb_customs.db"
    tiers_path = Path(os.getenv("IWB_TIERS_PATH", "storage/tiers/route_customs_tiers.json"))
    return Settings(
        database_url=_normalize_database_url(raw_database_url),
        tiers_path=tiers_path,
        log_level=_read_log_level(),
        log_json=os.getenv("IWB_LOG_JSON", "0") == "1",
        default_customs_pct=_read_percentage("IWB_DEFAULT_CUSTOMS_PCT"),
        default_vat_pct=_read_percentage("IWB_DEFAULT_VAT_PCT"),
        auto_create_tables=os.getenv("IWB_DB_AUTOCREATE", "1") == "1",
    )
