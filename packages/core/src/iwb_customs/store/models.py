from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class RouteCustomsTier(Base):
    __tablename__ = "route_customs_tiers"
    __table_args__ = (
        CheckConstraint("logic_type IN ('AND', 'OR')", name="route_customs_tiers_logic_type_check"),
        CheckConstraint(
            "sales_tax_percentage >= 0 AND sales_tax_percentage <= 100",
            name="check_sales_tax_percentage",
        ),
        Index("ix_route_customs_tiers_route", "origin_country", "destination_country", "priority_order"),
    )

    # Creation sequence; breaks priority ties in insertion order.
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    origin_country: Mapped[str] = mapped_column(String(2), nullable=False)
    destination_country: Mapped[str] = mapped_column(String(2), nullable=False)
    rule_name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price_min: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    price_max: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    weight_min: Mapped[Decimal | None] = mapped_column(Numeric(8, 3), nullable=True)
    weight_max: Mapped[Decimal | None] = mapped_column(Numeric(8, 3), nullable=True)
    logic_type: Mapped[str] = mapped_column(String(3), nullable=False)
    customs_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    vat_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    sales_tax_percentage: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 2),
        nullable=True,
        default=Decimal("0"),
    )
    priority_order: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
