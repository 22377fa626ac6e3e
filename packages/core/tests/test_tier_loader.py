from __future__ import annotations

from decimal import Decimal

import orjson
import pytest
from iwb_customs.errors import InvalidInputError, InvalidTierRuleError
from iwb_customs.tiers.loader import load_tier_rules, parse_tier_rule
from iwb_customs.tiers.models import LogicType


def _write(path, payload) -> None:
    path.write_bytes(orjson.dumps(payload))


def test_seed_file_loads(seed_path) -> None:
    rules = load_tier_rules(seed_path)
    assert len(rules) == 9
    assert {rule.route for rule in rules} == {("US", "IN"), ("CN", "IN"), ("GB", "IN")}
    high = next(rule for rule in rules if rule.id == "ee59961b-8166-41c9-8f3a-f673e536b74d")
    assert high.price_max is None
    assert high.weight_min == Decimal("5")
    assert high.logic_type is LogicType.AND


def test_missing_file_returns_empty(tmp_path) -> None:
    assert load_tier_rules(tmp_path / "nope.json") == []


def test_non_array_payload_rejected(tmp_path) -> None:
    path = tmp_path / "tiers.json"
    _write(path, {"rules": []})
    with pytest.raises(InvalidTierRuleError):
        load_tier_rules(path)


def test_malformed_json_rejected(tmp_path) -> None:
    path = tmp_path / "tiers.json"
    path.write_text("[{", encoding="utf-8")
    with pytest.raises(InvalidTierRuleError):
        load_tier_rules(path)


def test_unknown_logic_type_reports_entry_index(tmp_path) -> None:
    path = tmp_path / "tiers.json"
    good = {
        "id": "a",
        "origin_country": "US",
        "destination_country": "IN",
        "rule_name": "A",
        "logic_type": "AND",
        "customs_percentage": 5,
        "vat_percentage": 18,
    }
    bad = {**good, "id": "b", "logic_type": "XOR"}
    _write(path, [good, bad])
    with pytest.raises(InvalidTierRuleError) as excinfo:
        load_tier_rules(path)
    assert excinfo.value.code == "INVALID_TIER_RULE"
    assert excinfo.value.details["index"] == 1
    assert any(error["field"] == "logic_type" for error in excinfo.value.details["errors"])
    assert isinstance(excinfo.value, InvalidInputError)


def test_float_values_keep_printed_precision() -> None:
    rule = parse_tier_rule(
        {
            "id": 7,
            "origin_country": "gb",
            "destination_country": "in",
            "rule_name": "Fractional",
            "logic_type": "or",
            "weight_max": 0.1,
            "customs_percentage": 11.0,
            "vat_percentage": 18.0,
        }
    )
    assert rule.id == "7"
    assert rule.route == ("GB", "IN")
    assert rule.logic_type is LogicType.OR
    assert rule.weight_max == Decimal("0.1")


def test_sales_tax_out_of_range_rejected() -> None:
    with pytest.raises(InvalidTierRuleError):
        parse_tier_rule(
            {
                "id": "x",
                "origin_country": "US",
                "destination_country": "IN",
                "rule_name": "Bad tax",
                "logic_type": "AND",
                "customs_percentage": 5,
                "vat_percentage": 18,
                "sales_tax_percentage": 101,
            }
        )


def test_non_object_entry_rejected() -> None:
    with pytest.raises(InvalidTierRuleError):
        parse_tier_rule(["not", "a", "rule"], index=3)


def test_duplicate_id_reports_entry_index(tmp_path) -> None:
    path = tmp_path / "tiers.json"
    entry = {
        "id": "a",
        "origin_country": "US",
        "destination_country": "IN",
        "rule_name": "A",
        "logic_type": "AND",
        "customs_percentage": 5,
        "vat_percentage": 18,
    }
    _write(path, [entry, {**entry, "id": "b"}, {**entry, "rule_name": "A again"}])
    with pytest.raises(InvalidTierRuleError) as excinfo:
        load_tier_rules(path)
    assert excinfo.value.details == {"index": 2, "id": "a", "first_index": 0}
