from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

import orjson
from pydantic import ValidationError

from iwb_customs.errors import InvalidTierRuleError
from iwb_customs.logging import get_logger
from iwb_customs.tiers.models import CustomsTierRule

logger = get_logger(__name__)


def load_tier_rules(path: Path) -> list[CustomsTierRule]:
    if not path.exists():
        logger.info("tier_rules_missing", path=str(path))
        return []
    try:
        payload = orjson.loads(path.read_bytes())
    except orjson.JSONDecodeError as exc:
        raise InvalidTierRuleError(
            f"Tier rule file is not valid JSON: {path}",
            {"path": str(path), "error": str(exc)},
        ) from exc
    if not isinstance(payload, list):
        raise InvalidTierRuleError(
            f"Tier rule file must hold a JSON array: {path}",
            {"path": str(path)},
        )
    rules = parse_tier_rules(payload)
    logger.info("tier_rules_loaded", path=str(path), count=len(rules))
    return rules


def parse_tier_rules(entries: Iterable[Any]) -> list[CustomsTierRule]:
    rules: list[CustomsTierRule] = []
    seen: dict[str, int] = {}
    for index, entry in enumerate(entries):
        rule = parse_tier_rule(entry, index=index)
        if rule.id in seen:
            raise InvalidTierRuleError(
                f"Duplicate customs tier id at entry {index}",
                {"index": index, "id": rule.id, "first_index": seen[rule.id]},
            )
        seen[rule.id] = index
        rules.append(rule)
    return rules


def parse_tier_rule(entry: Any, index: int | None = None) -> CustomsTierRule:
    details: dict[str, Any] = {}
    if index is not None:
        details["index"] = index
    if not isinstance(entry, dict):
        raise InvalidTierRuleError("Tier rule entry must be an object", details)
    try:
        return CustomsTierRule.model_validate(entry)
    except ValidationError as exc:
        details["errors"] = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
        label = f"entry {index}" if index is not None else "entry"
        raise InvalidTierRuleError(f"Invalid customs tier rule at {label}", details) from exc
