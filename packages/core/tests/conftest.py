from __future__ import annotations

import itertools
from pathlib import Path
from typing import Any, Callable

import pytest
from iwb_customs.settings import get_settings
from iwb_customs.store import TierStore, open_tier_store
from iwb_customs.tiers.models import CustomsTierRule

ROOT = Path(__file__).resolve().parents[3]
SEED_TIERS = ROOT / "storage" / "tiers" / "route_customs_tiers.json"

RuleFactory = Callable[..., CustomsTierRule]


@pytest.fixture(autouse=True)
def _settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "DATABASE_URL",
        "IWB_TIERS_PATH",
        "IWB_LOG_LEVEL",
        "IWB_LOG_JSON",
        "IWB_DEFAULT_CUSTOMS_PCT",
        "IWB_DEFAULT_VAT_PCT",
        "IWB_DB_AUTOCREATE",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def seed_path() -> Path:
    return SEED_TIERS


@pytest.fixture
def make_rule() -> RuleFactory:
    counter = itertools.count(1)

    def _make(**overrides: Any) -> CustomsTierRule:
        number = next(counter)
        payload: dict[str, Any] = {
            "id": f"tier-{number}",
            "origin_country": "US",
            "destination_country": "IN",
            "rule_name": f"Tier {number}",
            "logic_type": "AND",
            "customs_percentage": "10",
            "vat_percentage": "18",
            "priority_order": 1,
        }
        payload.update(overrides)
        return CustomsTierRule.model_validate(payload)

    return _make


@pytest.fixture
def store() -> TierStore:
    return open_tier_store("sqlite:///:memory:")
