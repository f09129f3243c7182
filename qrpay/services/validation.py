"""Input validation for the three linked numeric fields.

Every violated rule contributes its own message; nothing fails fast, so the
caller can show the user the full list at once.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional

from qrpay.core.errors import AmountValidationError
from qrpay.models.amounts import AmountTriple
from qrpay.models.constants import MAX_AMOUNT, MAX_RATE


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)

    @property
    def error_message(self) -> str:
        return "\n".join(self.errors)


def validate_fields(
    rate: Optional[float],
    amount_a: Optional[float],
    amount_b: Optional[float],
    require_amount: bool = True,
) -> ValidationResult:
    errors: List[str] = []

    for label, value in (("Rate", rate), ("RMB amount", amount_a), ("RUB amount", amount_b)):
        if value is not None and not math.isfinite(value):
            errors.append(f"{label} must be a finite number")

    if rate is not None and rate <= 0:
        errors.append("Rate must be greater than zero")
    if amount_a is not None and amount_a <= 0:
        errors.append("RMB amount must be greater than zero")
    if amount_b is not None and amount_b <= 0:
        errors.append("RUB amount must be greater than zero")

    if require_amount and amount_a is None and amount_b is None:
        errors.append("Enter at least one amount (RMB or RUB)")

    # inf > bound is true, but the finite check above already reported it
    if rate is not None and math.isfinite(rate) and rate > MAX_RATE:
        errors.append("Rate is too large. Maximum 1000")
    if amount_a is not None and math.isfinite(amount_a) and amount_a > MAX_AMOUNT:
        errors.append("RMB amount is too large. Maximum 1,000,000")
    if amount_b is not None and math.isfinite(amount_b) and amount_b > MAX_AMOUNT:
        errors.append("RUB amount is too large. Maximum 1,000,000")

    return ValidationResult(is_valid=not errors, errors=errors)


def ensure_valid(
    rate: Optional[float],
    amount_a: Optional[float],
    amount_b: Optional[float],
    require_amount: bool = True,
) -> None:
    result = validate_fields(rate, amount_a, amount_b, require_amount)
    if not result.is_valid:
        raise AmountValidationError(result.errors)


def ensure_valid_triple(triple: AmountTriple) -> None:
    ensure_valid(triple.rate, triple.amount_a, triple.amount_b)
