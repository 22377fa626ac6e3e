from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Iterable, Protocol, Sequence

from iwb_customs.logging import get_logger
from iwb_customs.tiers.loader import load_tier_rules
from iwb_customs.tiers.matching import coerce_logic_type, first_match
from iwb_customs.tiers.models import (
    CustomsTierRule,
    Shipment,
    TierMatch,
    normalize_country_code,
    require_non_negative,
)

logger = get_logger(__name__)

Route = tuple[str, str]


class TierRuleSource(Protocol):
    def active_rules(self, origin_country: str, destination_country: str) -> Sequence[CustomsTierRule]:
        ...


class StaticTierSource:
    """Rule source over a fixed, already-loaded list of rules."""

    def __init__(self, rules: Iterable[CustomsTierRule]) -> None:
        self._rules = tuple(rules)

    def active_rules(self, origin_country: str, destination_country: str) -> list[CustomsTierRule]:
        return [
            rule
            for rule in self._rules
            if rule.is_active and rule.route == (origin_country, destination_country)
        ]


class RouteTierResolver:
    """Pick the customs/VAT tier for a shipment on a route.

    Candidates for a route are the active rules of that route in ascending
    ``priority_order``; equal priorities keep the order the source returned
    them in. The first rule whose price/weight predicate holds wins.

    Each route's ordered candidates are cached as a tuple on first use.
    Rule edits must call :meth:`invalidate`; :class:`~iwb_customs.store.TierStore`
    does so for its subscribers.
    """

    def __init__(self, source: TierRuleSource) -> None:
        self._source = source
        self._routes: dict[Route, tuple[CustomsTierRule, ...]] = {}
        self._lock = threading.Lock()
        self._generation = 0

    @classmethod
    def from_rules(cls, rules: Iterable[CustomsTierRule]) -> RouteTierResolver:
        return cls(StaticTierSource(rules))

    @classmethod
    def from_file(cls, path: Path) -> RouteTierResolver:
        return cls.from_rules(load_tier_rules(path))

    def resolve(
        self,
        origin_country: str,
        destination_country: str,
        declared_price: Any,
        total_weight: Any,
    ) -> TierMatch | None:
        origin = normalize_country_code(origin_country)
        destination = normalize_country_code(destination_country)
        price = require_non_negative(declared_price, "declared_price")
        weight = require_non_negative(total_weight, "total_weight_kg")
        candidates = self.route_rules(origin, destination)
        rule = first_match(candidates, price, weight)
        if rule is None:
            logger.info(
                "tier_no_match",
                origin=origin,
                destination=destination,
                declared_price=str(price),
                total_weight_kg=str(weight),
                candidates=len(candidates),
            )
            return None
        logger.debug(
            "tier_resolved",
            origin=origin,
            destination=destination,
            rule_id=rule.id,
            rule_name=rule.rule_name,
            priority_order=rule.priority_order,
        )
        return TierMatch.from_rule(rule)

    def resolve_shipment(self, shipment: Shipment) -> TierMatch | None:
        return self.resolve(
            shipment.origin_country,
            shipment.destination_country,
            shipment.declared_price,
            shipment.total_weight_kg,
        )

    def route_rules(self, origin_country: str, destination_country: str) -> tuple[CustomsTierRule, ...]:
        route = (origin_country, destination_country)
        with self._lock:
            cached = self._routes.get(route)
            generation = self._generation
        if cached is not None:
            return cached
        # Fetched outside the lock so a slow source only delays its own route.
        built = self._build_route(route)
        with self._lock:
            # An invalidate during the fetch may have made `built` stale: serve it, don't cache it.
            if self._generation == generation:
                self._routes.setdefault(route, built)
        return built

    def invalidate(self, route: Route | None = None) -> None:
        with self._lock:
            self._generation += 1
            if route is None:
                self._routes.clear()
            else:
                self._routes.pop(route, None)

    def _build_route(self, route: Route) -> tuple[CustomsTierRule, ...]:
        fetched = self._source.active_rules(*route)
        candidates = [rule for rule in fetched if rule.is_active and rule.route == route]
        for rule in candidates:
            coerce_logic_type(rule.logic_type)
        # sorted() is stable, so equal priorities keep source order
        ordered = tuple(sorted(candidates, key=lambda rule: rule.priority_order))
        logger.debug("route_cache_built", origin=route[0], destination=route[1], rules=len(ordered))
        return ordered
