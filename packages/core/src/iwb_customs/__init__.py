from iwb_customs.errors import CustomsTierError, InvalidInputError, InvalidTierRuleError, TierNotFoundError
from iwb_customs.quote import CustomsRates, FallbackRates, QuoteItem, resolve_with_fallback, shipment_from_items
from iwb_customs.tiers import CustomsTierRule, LogicType, RouteTierResolver, Shipment, TierMatch, load_tier_rules

__all__ = [
    "CustomsRates",
    "CustomsTierError",
    "CustomsTierRule",
    "FallbackRates",
    "InvalidInputError",
    "InvalidTierRuleError",
    "LogicType",
    "QuoteItem",
    "RouteTierResolver",
    "Shipment",
    "TierMatch",
    "TierNotFoundError",
    "load_tier_rules",
    "resolve_with_fallback",
    "shipment_from_items",
]
