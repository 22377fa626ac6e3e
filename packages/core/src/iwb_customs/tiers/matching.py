from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from iwb_customs.errors import InvalidInputError
from iwb_customs.tiers.models import CustomsTierRule, LogicType


def within_bounds(value: Decimal, lower: Decimal | None, upper: Decimal | None) -> bool:
    """Inclusive range check; an absent bound never rejects."""
    if lower is not None and value < lower:
        return False
    if upper is not None and value > upper:
        return False
    return True


def coerce_logic_type(value: LogicType | str) -> LogicType:
    if isinstance(value, LogicType):
        return value
    try:
        return LogicType(str(value).strip().upper())
    except ValueError as exc:
        raise InvalidInputError(
            f"Unknown logic type: {value!r}",
            {"logic_type": str(value)},
        ) from exc


def rule_matches(rule: CustomsTierRule, declared_price: Decimal, total_weight: Decimal) -> bool:
    logic = coerce_logic_type(rule.logic_type)
    price_match = within_bounds(declared_price, rule.price_min, rule.price_max)
    weight_match = within_bounds(total_weight, rule.weight_min, rule.weight_max)
    if logic is LogicType.AND:
        return price_match and weight_match
    return price_match or weight_match


def first_match(
    rules: Iterable[CustomsTierRule],
    declared_price: Decimal,
    total_weight: Decimal,
) -> CustomsTierRule | None:
    for rule in rules:
        if rule_matches(rule, declared_price, total_weight):
            return rule
    return None
