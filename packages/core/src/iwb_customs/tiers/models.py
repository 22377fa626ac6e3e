from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from iwb_customs.errors import InvalidInputError


class LogicType(str, Enum):
    AND = "AND"
    OR = "OR"


def normalize_country_code(value: Any) -> str:
    """Return an upper-case ISO 3166-1 alpha-2 code or raise InvalidInputError."""
    if not isinstance(value, str):
        raise InvalidInputError("Country code must be a string", {"value": repr(value)})
    code = value.strip().upper()
    if len(code) != 2 or not code.isascii() or not code.isalpha():
        raise InvalidInputError(f"Malformed country code: {value!r}", {"value": value})
    return code


def to_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidInputError(f"{field} must be numeric", {"field": field})
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            # str() keeps float inputs at their printed precision
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise InvalidInputError(f"{field} must be numeric", {"field": field}) from exc
    if not result.is_finite():
        raise InvalidInputError(f"{field} must be finite", {"field": field})
    return result


def require_non_negative(value: Any, field: str) -> Decimal:
    result = to_decimal(value, field)
    if result < 0:
        raise InvalidInputError(
            f"{field} must be non-negative",
            {"field": field, "value": str(result)},
        )
    return result


class CustomsTierRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    origin_country: str
    destination_country: str
    rule_name: str
    description: str | None = None
    price_min: Decimal | None = None
    price_max: Decimal | None = None
    weight_min: Decimal | None = None
    weight_max: Decimal | None = None
    logic_type: LogicType
    customs_percentage: Decimal = Field(ge=0)
    vat_percentage: Decimal = Field(ge=0)
    sales_tax_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    priority_order: int = 1
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if value is None:
            return value
        return str(value)

    @field_validator("origin_country", "destination_country", mode="before")
    @classmethod
    def _country(cls, value: Any) -> str:
        return normalize_country_code(value)

    @field_validator("logic_type", mode="before")
    @classmethod
    def _logic_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator(
        "price_min",
        "price_max",
        "weight_min",
        "weight_max",
        "customs_percentage",
        "vat_percentage",
        "sales_tax_percentage",
        mode="before",
    )
    @classmethod
    def _decimal(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return value
        return to_decimal(value, info.field_name)

    @property
    def route(self) -> tuple[str, str]:
        return (self.origin_country, self.destination_country)

    def bound_errors(self) -> list[str]:
        errors: list[str] = []
        if self.price_min is not None and self.price_max is not None and self.price_min > self.price_max:
            errors.append("price_min is greater than price_max")
        if self.weight_min is not None and self.weight_max is not None and self.weight_min > self.weight_max:
            errors.append("weight_min is greater than weight_max")
        return errors


class Shipment(BaseModel):
    model_config = ConfigDict(frozen=True)

    origin_country: str
    destination_country: str
    declared_price: Decimal
    total_weight_kg: Decimal

    @field_validator("origin_country", "destination_country", mode="before")
    @classmethod
    def _country(cls, value: Any) -> str:
        return normalize_country_code(value)

    @field_validator("declared_price", "total_weight_kg", mode="before")
    @classmethod
    def _non_negative(cls, value: Any, info: ValidationInfo) -> Decimal:
        return require_non_negative(value, info.field_name)

    @property
    def route(self) -> tuple[str, str]:
        return (self.origin_country, self.destination_country)


class TierMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    matched_rule_id: str
    rule_name: str
    customs_percentage: Decimal
    vat_percentage: Decimal
    sales_tax_percentage: Decimal = Decimal("0")
    priority_order: int

    @classmethod
    def from_rule(cls, rule: CustomsTierRule) -> TierMatch:
        return cls(
            matched_rule_id=rule.id,
            rule_name=rule.rule_name,
            customs_percentage=rule.customs_percentage,
            vat_percentage=rule.vat_percentage,
            sales_tax_percentage=rule.sales_tax_percentage,
            priority_order=rule.priority_order,
        )
