from __future__ import annotations

from iwb_customs.store.models import Base, RouteCustomsTier
from iwb_customs.store.tier_store import TierStore, open_tier_store

__all__ = [
    "Base",
    "RouteCustomsTier",
    "TierStore",
    "open_tier_store",
]
