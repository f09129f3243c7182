"""Domain constants: input bounds, payload tags and preload grid."""

from typing import Tuple

MAX_RATE: float = 1000.0
MAX_AMOUNT: float = 1_000_000.0

DEFAULT_CONTRACT_NUMBER = "22"

# SBP "ST00012" is the unified payment document header (UTF-8 charset flag 2)
FAST_PAYMENT_TAG = "ST00012"
BANK_TRANSFER_TAG = "BANK"

# Rate x amount combinations rendered ahead of time by the preload action
PRELOAD_RATES: Tuple[float, ...] = (11.0, 11.5, 12.0, 12.25, 12.5, 13.0)
PRELOAD_AMOUNTS: Tuple[float, ...] = (100.0, 500.0, 1000.0, 2000.0, 5000.0, 10000.0)
