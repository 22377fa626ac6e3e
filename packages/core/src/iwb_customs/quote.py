"""Quote-side helpers around tier resolution.

Quotes carry line items rather than a ready-made shipment, and a quote still
needs rates when no tier covers it; these helpers bridge both gaps.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from iwb_customs.settings import get_settings
from iwb_customs.tiers.models import Shipment, require_non_negative
from iwb_customs.tiers.resolver import RouteTierResolver


class QuoteItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    price: Decimal
    weight: Decimal
    quantity: int = Field(default=1, ge=1)

    @field_validator("price", "weight", mode="before")
    @classmethod
    def _non_negative(cls, value: Any, info: ValidationInfo) -> Decimal:
        return require_non_negative(value, info.field_name)


class FallbackRates(BaseModel):
    model_config = ConfigDict(frozen=True)

    customs_percentage: Decimal = Field(ge=0)
    vat_percentage: Decimal = Field(ge=0)
    sales_tax_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)


class CustomsRates(BaseModel):
    model_config = ConfigDict(frozen=True)

    customs_percentage: Decimal
    vat_percentage: Decimal
    sales_tax_percentage: Decimal
    source: Literal["tier", "fallback"]
    rule_id: str | None = None
    rule_name: str | None = None


def shipment_from_items(
    origin_country: str,
    destination_country: str,
    items: Iterable[QuoteItem],
) -> Shipment:
    total_price = Decimal("0")
    total_weight = Decimal("0")
    for item in items:
        total_price += item.price * item.quantity
        total_weight += item.weight * item.quantity
    return Shipment(
        origin_country=origin_country,
        destination_country=destination_country,
        declared_price=total_price,
        total_weight_kg=total_weight,
    )


def default_fallback() -> FallbackRates:
    settings = get_settings()
    return FallbackRates(
        customs_percentage=settings.default_customs_pct,
        vat_percentage=settings.default_vat_pct,
    )


def resolve_with_fallback(
    resolver: RouteTierResolver,
    shipment: Shipment,
    fallback: FallbackRates | None = None,
) -> CustomsRates:
    match = resolver.resolve_shipment(shipment)
    if match is not None:
        return CustomsRates(
            customs_percentage=match.customs_percentage,
            vat_percentage=match.vat_percentage,
            sales_tax_percentage=match.sales_tax_percentage,
            source="tier",
            rule_id=match.matched_rule_id,
            rule_name=match.rule_name,
        )
    rates = fallback or default_fallback()
    return CustomsRates(
        customs_percentage=rates.customs_percentage,
        vat_percentage=rates.vat_percentage,
        sales_tax_percentage=rates.sales_tax_percentage,
        source="fallback",
    )
