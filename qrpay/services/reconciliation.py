"""Amount / rate reconciliation engine.

Resolves the three linked fields (rate, RMB amount A, RUB amount B) into one
consistent triple, using the field the user edited last as the tie-break:
the edited field is authoritative, the other present field is preferred in a
fixed order, and the remaining one is derived.

The engine is a pure function of its arguments. Callers pass the edited field
explicitly, so writing the result back into the inputs never needs any
re-entrancy suppression.
"""

from __future__ import annotations

import math
from typing import Optional

from qrpay.core.errors import InsufficientDataError
from qrpay.models.amounts import AmountTriple, EditedField


def _usable(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def reconcile(
    edited: EditedField,
    rate: Optional[float],
    amount_a: Optional[float],
    amount_b: Optional[float],
) -> AmountTriple:
    """Return the consistent triple or raise InsufficientDataError."""
    if edited is EditedField.NONE:
        if not (_usable(rate) and _usable(amount_a)):
            raise InsufficientDataError("rate and RMB amount are required")
        return _publish(rate, amount_a, amount_a * rate)

    if edited is EditedField.RATE:
        if not _usable(rate):
            raise InsufficientDataError("rate is not set")
        if _usable(amount_a):
            return _publish(rate, amount_a, amount_a * rate)
        if _usable(amount_b):
            return _publish(rate, amount_b / rate, amount_b)
        raise InsufficientDataError("no amount to convert")

    if edited is EditedField.AMOUNT_A:
        if not _usable(amount_a):
            raise InsufficientDataError("RMB amount is not set")
        if _usable(rate):
            return _publish(rate, amount_a, amount_a * rate)
        if _usable(amount_b):
            return _publish(amount_b / amount_a, amount_a, amount_b)
        raise InsufficientDataError("rate or RUB amount is required")

    if edited is EditedField.AMOUNT_B:
        if not _usable(amount_b):
            raise InsufficientDataError("RUB amount is not set")
        if _usable(rate):
            return _publish(rate, amount_b / rate, amount_b)
        if _usable(amount_a):
            return _publish(amount_b / amount_a, amount_a, amount_b)
        raise InsufficientDataError("rate or RMB amount is required")

    raise ValueError(f"Unknown edited field {edited!r}")


def _publish(rate: float, amount_a: float, amount_b: float) -> AmountTriple:
    # Products of large inputs can overflow or underflow to 0 / inf
    if not all(_usable(v) for v in (rate, amount_a, amount_b)):
        raise InsufficientDataError("derived value is out of range")
    return AmountTriple(rate=rate, amount_a=amount_a, amount_b=amount_b)
