from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class QRFormat(str, Enum):
    FAST_PAYMENT = "fast_payment"
    BANK_TRANSFER = "bank_transfer"
    PLAIN_TEXT = "plain_text"

    def next(self) -> "QRFormat":
        members = list(QRFormat)
        return members[(members.index(self) + 1) % len(members)]

    @property
    def description(self) -> str:
        return _FORMAT_DESCRIPTIONS[self]


_FORMAT_DESCRIPTIONS = {
    QRFormat.FAST_PAYMENT: "Standard SBP (recommended). Compatible with all banks via SBP",
    QRFormat.BANK_TRANSFER: "Bank format. Standard bank payment QR code",
    QRFormat.PLAIN_TEXT: "Plain text. Simplified fallback format",
}


class PaymentProfile(BaseModel):
    """Payee requisites embedded into every payload."""

    model_config = ConfigDict(frozen=True)

    legal_name: str
    account_number: str
    payee_inn: str
    bank_name: str
    bic: str
    corr_account: str
    ogrn: str = ""
    bank_inn: str = ""
    legal_address: str = ""


class CacheStatsOut(BaseModel):
    hits: int
    misses: int
    total_bytes: int
    count: int
    capacity: Optional[int]


class DisplayOut(BaseModel):
    status: str
    caption: Optional[str] = None
    payload: Optional[str] = None
    has_image: bool = False
    errors: List[str] = []


class PaymentStateOut(BaseModel):
    rate: Optional[float]
    amount_a: Optional[float]
    amount_b: Optional[float]
    last_edited: str
    contract_enabled: bool
    contract_number: str
    format: QRFormat
    format_description: str
    generating: bool
    display: DisplayOut
