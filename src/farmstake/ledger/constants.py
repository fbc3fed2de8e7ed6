# src/farmstake/ledger/constants.py
from __future__ import annotations

"""Staking ledger constants.

Rates are whole percentages applied with truncating integer arithmetic:

  amount * rate // PERCENT_DENOMINATOR

Lock durations are configured in days and stored in seconds.
"""

SECONDS_PER_DAY: int = 24 * 60 * 60

# Percentages are integers in [0, 100].
PERCENT_DENOMINATOR: int = 100
MAX_RATE_PCT: int = 100
MIN_REWARD_RATE_PCT: int = 1
MIN_PENALTY_RATE_PCT: int = 0

# Locker identities mimic a 20-byte hex account id ("0x" + 40 hex chars).
LOCKER_IDENTITY_HEX_CHARS: int = 40

# Default custody account used when the embedder does not provide one.
DEFAULT_CUSTODY_ACCOUNT: str = "STAKE_MANAGER"

# Token decimal exponents beyond this are almost certainly a unit mix-up.
MAX_TOKEN_DECIMALS: int = 36
