"""Pydantic domain models for the QR Payments service."""

from .constants import (
    MAX_AMOUNT,
    MAX_RATE,
    DEFAULT_CONTRACT_NUMBER,
)  # re-export
from .amounts import AmountTriple, EditedField, FieldEditIn, ContractIn
from .payment import (
    QRFormat,
    PaymentProfile,
    CacheStatsOut,
    DisplayOut,
    PaymentStateOut,
)

__all__ = [
    "MAX_AMOUNT",
    "MAX_RATE",
    "DEFAULT_CONTRACT_NUMBER",
    "AmountTriple",
    "EditedField",
    "FieldEditIn",
    "ContractIn",
    "QRFormat",
    "PaymentProfile",
    "CacheStatsOut",
    "DisplayOut",
    "PaymentStateOut",
]
