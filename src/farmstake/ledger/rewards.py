# src/farmstake/ledger/rewards.py
from __future__ import annotations

"""Payout arithmetic for locker withdrawals.

Everything here is pure integer math with truncation toward zero. Amounts are
never negative, so floor division and truncation agree.

Matured withdrawal:
  stake  = S
  reward = S * reward_rate / 100, rescaled from stake-token units to
           reward-token units when the two tokens use different decimals

Early withdrawal:
  stake  = S * (100 - penalty_rate) / 100
  reward = 0
"""

from typing import Any

from farmstake.ledger.constants import MAX_RATE_PCT, PERCENT_DENOMINATOR
from farmstake.ledger.types import Payout


def _as_nonneg_int(v: Any, *, field: str) -> int:
    # bool is an int subclass; disallow it explicitly
    if isinstance(v, bool) or not isinstance(v, int):
        raise TypeError(f"{field} must be int (got {type(v).__name__})")
    if v < 0:
        raise ValueError(f"{field} must be >= 0 (got {v})")
    return int(v)


def _as_rate(v: Any, *, field: str) -> int:
    r = _as_nonneg_int(v, field=field)
    if r > MAX_RATE_PCT:
        raise ValueError(f"{field} must be <= {MAX_RATE_PCT} (got {r})")
    return r


def apply_rate(amount: int, rate_pct: int) -> int:
    """Return floor(amount * rate_pct / 100)."""
    a = _as_nonneg_int(amount, field="amount")
    r = _as_rate(rate_pct, field="rate_pct")
    return (a * r) // PERCENT_DENOMINATOR


def reward_amount(
    stake: int,
    reward_rate_pct: int,
    *,
    stake_decimals: int = 0,
    reward_decimals: int = 0,
) -> int:
    """Reward owed for a matured stake, in reward-token base units.

    The multiplication happens before the single division so that decimal
    rescaling never loses precision that a plain rate application would keep.
    """
    s = _as_nonneg_int(stake, field="stake")
    r = _as_rate(reward_rate_pct, field="reward_rate_pct")
    sd = _as_nonneg_int(stake_decimals, field="stake_decimals")
    rd = _as_nonneg_int(reward_decimals, field="reward_decimals")
    return (s * r * 10**rd) // (PERCENT_DENOMINATOR * 10**sd)


def early_return_amount(stake: int, penalty_rate_pct: int) -> int:
    """Stake tokens returned on an early withdrawal (principal minus penalty)."""
    p = _as_rate(penalty_rate_pct, field="penalty_rate_pct")
    return apply_rate(stake, MAX_RATE_PCT - p)


def matured_payout(
    stake: int,
    reward_rate_pct: int,
    *,
    stake_decimals: int = 0,
    reward_decimals: int = 0,
) -> Payout:
    return Payout(
        stake_amount=_as_nonneg_int(stake, field="stake"),
        reward_amount=reward_amount(
            stake,
            reward_rate_pct,
            stake_decimals=stake_decimals,
            reward_decimals=reward_decimals,
        ),
    )


def early_payout(stake: int, penalty_rate_pct: int) -> Payout:
    return Payout(stake_amount=early_return_amount(stake, penalty_rate_pct), reward_amount=0)


def is_matured(stake_timestamp: int, now_s: int, lock_duration_s: int) -> bool:
    """True once the elapsed time reaches or exceeds the lock duration."""
    return int(now_s) - int(stake_timestamp) >= int(lock_duration_s)


__all__ = [
    "apply_rate",
    "early_payout",
    "early_return_amount",
    "is_matured",
    "matured_payout",
    "reward_amount",
]
