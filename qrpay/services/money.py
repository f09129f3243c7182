"""Money / rounding helpers.

Centralized so the encoder, cache keys and image labels use identical
rounding semantics. Floats are always converted through ``repr`` and cleaned
of binary noise first, so two logically equal values never produce different
results.

Everything that ends up inside a rendered image is derived from the
truncated minor-unit amount (or rounds on a whole-unit boundary, which is
also a cent boundary). Two amounts with the same minor units therefore
encode and label identically, which is what lets the cache key on them.
"""

from __future__ import annotations
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP

_WHOLE = Decimal("1")
# Enough precision to absorb binary float noise (11.65 * 1000 -> 11650.000000000002)
_NOISE = Decimal("0.000001")


def _clean(value: float) -> Decimal:
    return Decimal(repr(float(value))).quantize(_NOISE, rounding=ROUND_HALF_UP)


def to_minor_units(amount: float) -> int:
    """Amount x 100, truncated (not rounded) to an integer number of kopecks."""
    return int((_clean(amount) * 100).to_integral_value(rounding=ROUND_DOWN))


def stable_amount(value: float) -> str:
    """Fixed two-decimal string of the truncated amount, used in cache keys."""
    minor = to_minor_units(value)
    return f"{minor // 100}.{minor % 100:02d}"


def whole_units(minor: int) -> int:
    """Minor units rounded half-up to whole currency units."""
    return (minor + 50) // 100


def format_grouped(value: float) -> str:
    """Whole-number rendering with a space as the thousands separator."""
    whole = _clean(value).quantize(_WHOLE, rounding=ROUND_HALF_UP)
    return f"{int(whole):,}".replace(",", " ")
