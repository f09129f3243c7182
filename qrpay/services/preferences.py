"""Persisted form inputs and cache counters, backed by the metadata table.

Metadata keys:
  - exchange_rate / rmb_amount / rub_amount: float, absent when empty
  - contract_enabled: bool (0/1)
  - contract_number: str
  - cache_hits / cache_misses: int

Every function here is resilient: a failing store is logged as a
PersistenceFailure and the caller continues with defaults. Inputs are read
once at startup; counters are written only by the periodic flusher.
"""

from __future__ import annotations

import logging
import math
import sqlite3
from dataclasses import dataclass
from typing import Dict, Optional

from qrpay.core.errors import PersistenceFailure
from qrpay.db.dal import Database
from qrpay.models.constants import DEFAULT_CONTRACT_NUMBER

logger = logging.getLogger("qrpay.preferences")

FIELD_KEYS = {
    "rate": "exchange_rate",
    "amount_a": "rmb_amount",
    "amount_b": "rub_amount",
}
CONTRACT_ENABLED_KEY = "contract_enabled"
CONTRACT_NUMBER_KEY = "contract_number"
HITS_KEY = "cache_hits"
MISSES_KEY = "cache_misses"

ALL_KEYS = (
    *FIELD_KEYS.values(),
    CONTRACT_ENABLED_KEY,
    CONTRACT_NUMBER_KEY,
    HITS_KEY,
    MISSES_KEY,
)


@dataclass
class StoredPreferences:
    rate: Optional[float] = None
    amount_a: Optional[float] = None
    amount_b: Optional[float] = None
    contract_enabled: bool = False
    contract_number: str = DEFAULT_CONTRACT_NUMBER
    cache_hits: int = 0
    cache_misses: int = 0


def _float_or_none(val: Optional[str]) -> Optional[float]:
    if val is None:
        return None
    try:
        f = float(val)
    except ValueError:
        return None
    return f if math.isfinite(f) else None


def _int_or_default(val: Optional[str], default: int = 0) -> int:
    if val is None:
        return default
    try:
        return max(0, int(val))
    except ValueError:
        return default


class PreferencesStore:
    def __init__(self, db: Database):
        self._db = db

    def load(self) -> StoredPreferences:
        try:
            data = self._db.get_meta_many(ALL_KEYS)
        except sqlite3.Error as e:
            self._report("load", e)
            return StoredPreferences()
        return StoredPreferences(
            rate=_float_or_none(data.get(FIELD_KEYS["rate"])),
            amount_a=_float_or_none(data.get(FIELD_KEYS["amount_a"])),
            amount_b=_float_or_none(data.get(FIELD_KEYS["amount_b"])),
            contract_enabled=data.get(CONTRACT_ENABLED_KEY) in ("1", "true", "True"),
            contract_number=data.get(CONTRACT_NUMBER_KEY, DEFAULT_CONTRACT_NUMBER),
            cache_hits=_int_or_default(data.get(HITS_KEY)),
            cache_misses=_int_or_default(data.get(MISSES_KEY)),
        )

    def save_fields(
        self,
        rate: Optional[float],
        amount_a: Optional[float],
        amount_b: Optional[float],
        contract_enabled: bool,
        contract_number: str,
    ) -> bool:
        # Empty fields keep their last stored value
        values: Dict[str, str] = {
            CONTRACT_ENABLED_KEY: "1" if contract_enabled else "0",
            CONTRACT_NUMBER_KEY: contract_number,
        }
        for name, value in (("rate", rate), ("amount_a", amount_a), ("amount_b", amount_b)):
            if value is not None:
                values[FIELD_KEYS[name]] = repr(float(value))
        return self._write("save_fields", values)

    def save_counters(self, hits: int, misses: int) -> bool:
        return self._write("save_counters", {HITS_KEY: str(hits), MISSES_KEY: str(misses)})

    def _write(self, op: str, values: Dict[str, str]) -> bool:
        try:
            self._db.set_meta_many(values)
        except sqlite3.Error as e:
            self._report(op, e)
            return False
        return True

    @staticmethod
    def _report(op: str, exc: Exception) -> None:
        failure = PersistenceFailure(f"{op} failed: {exc}")
        logger.warning("preference store unavailable: %s", failure)
