from __future__ import annotations

import math
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EditedField(str, Enum):
    """Field most recently changed by the user (never by a write-back)."""

    NONE = "none"
    RATE = "rate"
    AMOUNT_A = "amount_a"
    AMOUNT_B = "amount_b"


class AmountTriple(BaseModel):
    """Consistent rate / amount A (RMB) / amount B (RUB) triple."""

    model_config = ConfigDict(frozen=True)

    rate: float = Field(..., gt=0)
    amount_a: float = Field(..., gt=0)
    amount_b: float = Field(..., gt=0)

    @field_validator("rate", "amount_a", "amount_b")
    @classmethod
    def finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("value must be finite")
        return v


class FieldEditIn(BaseModel):
    value: Optional[float] = None


class ContractIn(BaseModel):
    enabled: bool
    number: str = Field("", max_length=64)

    @field_validator("number")
    @classmethod
    def strip_number(cls, v: str) -> str:
        return v.strip()
