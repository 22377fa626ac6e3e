from __future__ import annotations

from decimal import Decimal

import pytest
from iwb_customs.errors import InvalidInputError
from iwb_customs.tiers.matching import coerce_logic_type, first_match, rule_matches, within_bounds
from iwb_customs.tiers.models import LogicType


def test_within_bounds_is_inclusive() -> None:
    assert within_bounds(Decimal("100"), Decimal("100"), Decimal("500"))
    assert within_bounds(Decimal("500"), Decimal("100"), Decimal("500"))
    assert not within_bounds(Decimal("99.99"), Decimal("100"), Decimal("500"))
    assert not within_bounds(Decimal("500.01"), Decimal("100"), Decimal("500"))


def test_within_bounds_open_ended() -> None:
    assert within_bounds(Decimal("1000000"), Decimal("500"), None)
    assert within_bounds(Decimal("0"), None, Decimal("5"))
    assert within_bounds(Decimal("42"), None, None)


def test_and_rule_requires_both_dimensions(make_rule) -> None:
    rule = make_rule(price_min=100, price_max=500, weight_min=1, weight_max=5, logic_type="AND")
    assert not rule_matches(rule, Decimal("300"), Decimal("10"))
    assert rule_matches(rule, Decimal("300"), Decimal("3"))


def test_or_rule_accepts_either_dimension(make_rule) -> None:
    rule = make_rule(price_min=100, price_max=500, weight_min=1, weight_max=5, logic_type="OR")
    assert rule_matches(rule, Decimal("300"), Decimal("10"))
    assert rule_matches(rule, Decimal("50"), Decimal("3"))
    assert not rule_matches(rule, Decimal("50"), Decimal("10"))


def test_open_ended_and_rule(make_rule) -> None:
    rule = make_rule(price_min=500, price_max=None, weight_min=5, weight_max=None, logic_type="AND")
    assert rule_matches(rule, Decimal("1000"), Decimal("10"))
    assert not rule_matches(rule, Decimal("1000"), Decimal("2"))


@pytest.mark.parametrize("logic_type", ["AND", "OR"])
def test_unbounded_rule_matches_everything(make_rule, logic_type: str) -> None:
    rule = make_rule(logic_type=logic_type)
    for price, weight in [("0", "0"), ("10", "1000"), ("99999", "0.001")]:
        assert rule_matches(rule, Decimal(price), Decimal(weight))


def test_or_rule_with_unconstrained_price_always_matches(make_rule) -> None:
    rule = make_rule(weight_min=1, weight_max=5, logic_type="OR")
    assert rule_matches(rule, Decimal("300"), Decimal("50"))


def test_coerce_logic_type_rejects_unknown_value() -> None:
    assert coerce_logic_type("or") is LogicType.OR
    with pytest.raises(InvalidInputError):
        coerce_logic_type("XOR")


def test_rule_matches_rejects_unvalidated_logic_type(make_rule) -> None:
    rule = make_rule().model_copy(update={"logic_type": "NAND"})
    with pytest.raises(InvalidInputError):
        rule_matches(rule, Decimal("1"), Decimal("1"))


def test_first_match_respects_iteration_order(make_rule) -> None:
    broad = make_rule(rule_name="broad")
    narrow = make_rule(rule_name="narrow", price_max=10)
    assert first_match([broad, narrow], Decimal("5"), Decimal("1")) is broad
    assert first_match([narrow, broad], Decimal("5"), Decimal("1")) is narrow
    assert first_match([narrow], Decimal("50"), Decimal("1")) is None
