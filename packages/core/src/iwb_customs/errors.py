from __future__ import annotations

from typing import Any


class CustomsTierError(Exception):
    """Base error for customs tier resolution and storage."""

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


# Subclasses ValueError so pydantic validators can raise it directly.
class InvalidInputError(CustomsTierError, ValueError):
    def __init__(self, message: str = "Invalid input", details: dict[str, Any] | None = None) -> None:
        super().__init__("INVALID_INPUT", message, details)


class InvalidTierRuleError(InvalidInputError):
    def __init__(self, message: str = "Invalid customs tier rule", details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details)
        self.code = "INVALID_TIER_RULE"


class TierNotFoundError(CustomsTierError):
    def __init__(self, tier_id: str) -> None:
        super().__init__("TIER_NOT_FOUND", f"Customs tier not found: {tier_id}", {"id": tier_id})
