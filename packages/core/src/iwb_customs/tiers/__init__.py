from iwb_customs.tiers.loader import load_tier_rules, parse_tier_rule, parse_tier_rules
from iwb_customs.tiers.matching import first_match, rule_matches, within_bounds
from iwb_customs.tiers.models import CustomsTierRule, LogicType, Shipment, TierMatch
from iwb_customs.tiers.resolver import RouteTierResolver, StaticTierSource, TierRuleSource

__all__ = [
    "CustomsTierRule",
    "LogicType",
    "RouteTierResolver",
    "Shipment",
    "StaticTierSource",
    "TierMatch",
    "TierRuleSource",
    "first_match",
    "load_tier_rules",
    "parse_tier_rule",
    "parse_tier_rules",
    "rule_matches",
    "within_bounds",
]
