from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping

from sqlalchemy import Numeric, create_engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from iwb_customs.errors import InvalidTierRuleError, TierNotFoundError
from iwb_customs.logging import get_logger
from iwb_customs.store.models import Base, RouteCustomsTier
from iwb_customs.tiers.loader import parse_tier_rule
from iwb_customs.tiers.models import CustomsTierRule

logger = get_logger(__name__)

RouteListener = Callable[[tuple[str, str]], None]

_WRITABLE_FIELDS = (
    "origin_country",
    "destination_country",
    "rule_name",
    "description",
    "price_min",
    "price_max",
    "weight_min",
    "weight_max",
    "customs_percentage",
    "vat_percentage",
    "sales_tax_percentage",
    "priority_order",
    "is_active",
)

_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}


def open_tier_store(database_url: str, auto_create_tables: bool = True) -> TierStore:
    """Bind a :class:`TierStore` to ``database_url``.

    In-memory SQLite keeps a single shared connection, otherwise every session
    would open its own empty database.
    """
    if database_url in _MEMORY_URLS:
        engine = create_engine(database_url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    elif database_url.startswith("sqlite:"):
        engine = create_engine(database_url, connect_args={"check_same_thread": False})
    else:
        engine = create_engine(database_url)
    if auto_create_tables:
        Base.metadata.create_all(engine)
    return TierStore(sessionmaker(bind=engine, autoflush=False, expire_on_commit=False))


class TierStore:
    """CRUD over ``route_customs_tiers`` that doubles as a resolver rule source.

    Listeners registered with :meth:`subscribe` are called with every route a
    write touched, after the transaction commits.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        self._listeners: list[RouteListener] = []

    def subscribe(self, listener: RouteListener) -> None:
        self._listeners.append(listener)

    def create(self, rule: CustomsTierRule | Mapping[str, Any]) -> CustomsTierRule:
        validated = _validate(rule)
        with self._session_factory() as session:
            if _get_row(session, validated.id) is not None:
                raise InvalidTierRuleError("Tier id already exists", {"id": validated.id})
            row = RouteCustomsTier(id=validated.id, logic_type=validated.logic_type.value)
            _apply(row, validated)
            session.add(row)
            _commit(session, [validated.id])
            created = _to_rule(row)
        logger.info("tier_created", tier_id=created.id, origin=created.origin_country, destination=created.destination_country)
        self._notify([created.route])
        return created

    def get(self, tier_id: str) -> CustomsTierRule | None:
        with self._session_factory() as session:
            row = _get_row(session, tier_id)
            return _to_rule(row) if row is not None else None

    def update(self, tier_id: str, changes: Mapping[str, Any]) -> CustomsTierRule:
        if "id" in changes and str(changes["id"]) != tier_id:
            raise InvalidTierRuleError("Tier id cannot be changed", {"id": tier_id})
        with self._session_factory() as session:
            row = _get_row(session, tier_id)
            if row is None:
                raise TierNotFoundError(tier_id)
            current = _to_rule(row)
            merged = current.model_dump(exclude={"created_at", "updated_at"})
            merged.update(changes)
            validated = _validate(merged)
            row.logic_type = validated.logic_type.value
            _apply(row, validated)
            _commit(session, [tier_id])
            updated = _to_rule(row)
        logger.info("tier_updated", tier_id=tier_id, fields=sorted(changes))
        self._notify({current.route, updated.route})
        return updated

    def delete(self, tier_id: str) -> None:
        with self._session_factory() as session:
            row = _get_row(session, tier_id)
            if row is None:
                raise TierNotFoundError(tier_id)
            route = (row.origin_country, row.destination_country)
            session.delete(row)
            session.commit()
        logger.info("tier_deleted", tier_id=tier_id)
        self._notify([route])

    def list_rules(
        self,
        origin_country: str | None = None,
        destination_country: str | None = None,
    ) -> list[CustomsTierRule]:
        stmt = select(RouteCustomsTier)
        if origin_country is not None:
            stmt = stmt.where(RouteCustomsTier.origin_country == origin_country.strip().upper())
        if destination_country is not None:
            stmt = stmt.where(RouteCustomsTier.destination_country == destination_country.strip().upper())
        stmt = stmt.order_by(
            RouteCustomsTier.origin_country,
            RouteCustomsTier.destination_country,
            RouteCustomsTier.priority_order,
            RouteCustomsTier.seq,
        )
        with self._session_factory() as session:
            return [_to_rule(row) for row in session.scalars(stmt)]

    def active_rules(self, origin_country: str, destination_country: str) -> list[CustomsTierRule]:
        stmt = (
            select(RouteCustomsTier)
            .where(
                RouteCustomsTier.origin_country == origin_country,
                RouteCustomsTier.destination_country == destination_country,
                RouteCustomsTier.is_active.is_(True),
            )
            .order_by(RouteCustomsTier.priority_order, RouteCustomsTier.seq)
        )
        with self._session_factory() as session:
            return [_to_rule(row) for row in session.scalars(stmt)]

    def bulk_load(self, rules: Iterable[CustomsTierRule | Mapping[str, Any]]) -> int:
        """Insert or replace rules by id in one transaction.

        An id given more than once is written once, with its last record.
        Returns the number of distinct ids written.
        """
        by_id: dict[str, CustomsTierRule] = {}
        for rule in rules:
            validated = _validate(rule)
            by_id[validated.id] = validated
        routes: set[tuple[str, str]] = set()
        with self._session_factory() as session:
            for rule in by_id.values():
                row = _get_row(session, rule.id)
                if row is None:
                    row = RouteCustomsTier(id=rule.id)
                    session.add(row)
                else:
                    routes.add((row.origin_country, row.destination_country))
                row.logic_type = rule.logic_type.value
                _apply(row, rule)
                routes.add(rule.route)
            _commit(session, list(by_id))
        logger.info("tiers_bulk_loaded", count=len(by_id), routes=len(routes))
        self._notify(routes)
        return len(by_id)

    def _notify(self, routes: Iterable[tuple[str, str]]) -> None:
        for route in routes:
            for listener in self._listeners:
                listener(route)


def _get_row(session: Session, tier_id: str) -> RouteCustomsTier | None:
    return session.scalars(select(RouteCustomsTier).where(RouteCustomsTier.id == tier_id)).first()


def _commit(session: Session, tier_ids: list[str]) -> None:
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.warning("tier_write_conflict", tier_ids=tier_ids, error=str(exc.orig))
        raise InvalidTierRuleError(
            "Customs tier write conflicts with stored tiers",
            {"ids": tier_ids, "error": str(exc.orig)},
        ) from exc


def _validate(rule: CustomsTierRule | Mapping[str, Any]) -> CustomsTierRule:
    if isinstance(rule, CustomsTierRule):
        validated = rule
    else:
        payload = dict(rule)
        if not payload.get("id"):
            payload["id"] = str(uuid.uuid4())
        validated = parse_tier_rule(payload)
    problems = validated.bound_errors()
    if problems:
        raise InvalidTierRuleError(
            f"Inverted bounds on customs tier {validated.rule_name!r}",
            {"id": validated.id, "errors": problems},
        )
    problems = _column_errors(validated)
    if problems:
        raise InvalidTierRuleError(
            f"Customs tier {validated.rule_name!r} does not fit the tier table",
            {"id": validated.id, "errors": problems},
        )
    return validated


def _column_errors(rule: CustomsTierRule) -> list[str]:
    """Values the ``route_customs_tiers`` columns would reject or round."""
    columns = RouteCustomsTier.__table__.c
    problems: list[str] = []
    if len(rule.id) > columns.id.type.length:
        problems.append(f"id is longer than {columns.id.type.length} characters")
    for field in _WRITABLE_FIELDS:
        column_type = columns[field].type
        value = getattr(rule, field)
        if value is None or not isinstance(column_type, Numeric):
            continue
        # numeric(p, s) holds values below 10 ** (p - s) with at most s decimals
        limit = Decimal(10) ** (column_type.precision - column_type.scale)
        if abs(value) >= limit:
            problems.append(f"{field} must be below {limit}")
        elif value.quantize(Decimal(1).scaleb(-column_type.scale)) != value:
            problems.append(f"{field} allows at most {column_type.scale} decimal places")
    return problems


def _apply(row: RouteCustomsTier, rule: CustomsTierRule) -> None:
    for field in _WRITABLE_FIELDS:
        setattr(row, field, getattr(rule, field))


def _to_rule(row: RouteCustomsTier) -> CustomsTierRule:
    return CustomsTierRule(
        id=row.id,
        origin_country=row.origin_country,
        destination_country=row.destination_country,
        rule_name=row.rule_name,
        description=row.description,
        price_min=row.price_min,
        price_max=row.price_max,
        weight_min=row.weight_min,
        weight_max=row.weight_max,
        logic_type=row.logic_type,
        customs_percentage=row.customs_percentage,
        vat_percentage=row.vat_percentage,
        sales_tax_percentage=row.sales_tax_percentage if row.sales_tax_percentage is not None else Decimal("0"),
        priority_order=row.priority_order,
        is_active=row.is_active,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
