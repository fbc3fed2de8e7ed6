# src/farmstake/runtime/locker.py
from __future__ import annotations

"""A single named staking pool.

A Locker owns its per-user StakeRecords and locker-scoped totals. It never
moves tokens: stake/unstake are split into a validating step that does not
mutate anything (check_stake / quote_unstake) and a commit step that cannot
fail (commit_stake / commit_unstake). The StakeManager runs token transfers
between the two so a failed transfer leaves the locker untouched.

The convenience methods stake() and unstake_all() run both steps back to back
for callers that have no transfers to interleave.

Locker is not thread-safe by itself; the owning StakeManager serializes calls.
"""

import hashlib
from typing import Any, Dict, List, Optional

from farmstake.ledger.constants import (
    LOCKER_IDENTITY_HEX_CHARS,
    MAX_RATE_PCT,
    MIN_PENALTY_RATE_PCT,
    MIN_REWARD_RATE_PCT,
    SECONDS_PER_DAY,
)
from farmstake.ledger.rewards import early_payout, is_matured, matured_payout
from farmstake.ledger.types import Json, LockerDetail, Payout, StakeRecord, UnstakeQuote
from farmstake.runtime.errors import (
    EmptyLockerName,
    InvalidAmount,
    InvalidRate,
    NothingToUnstake,
    StakeAlreadyActive,
    ZeroDeposit,
    ZeroRewardRate,
)


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def derive_locker_identity(name: str, *, namespace: str = "") -> str:
    """Deterministic 0x-prefixed 40-hex-char id for a locker."""
    digest = hashlib.sha256(f"farmstake-locker:{namespace}:{name}".encode("utf-8")).hexdigest()
    return "0x" + digest[:LOCKER_IDENTITY_HEX_CHARS]


def validate_locker_params(
    name: Any,
    lock_duration_days: Any,
    reward_rate_pct: Any,
    penalty_rate_pct: Any,
) -> None:
    """Raise the first StakeError that applies to these creation parameters.

    Name uniqueness is the registry's concern and is not checked here.
    """
    if not isinstance(name, str) or not name:
        raise EmptyLockerName({"name": name})
    if reward_rate_pct == 0:
        raise ZeroRewardRate({"name": name})
    if not _is_int(reward_rate_pct) or not (MIN_REWARD_RATE_PCT <= reward_rate_pct <= MAX_RATE_PCT):
        raise InvalidRate({"field": "reward_rate_pct", "value": reward_rate_pct})
    if not _is_int(penalty_rate_pct) or not (MIN_PENALTY_RATE_PCT <= penalty_rate_pct <= MAX_RATE_PCT):
        raise InvalidRate({"field": "penalty_rate_pct", "value": penalty_rate_pct})
    if not _is_int(lock_duration_days) or lock_duration_days < 0:
        raise InvalidAmount({"field": "lock_duration_days", "value": lock_duration_days})


class Locker:
    def __init__(
        self,
        name: str,
        lock_duration_days: int,
        reward_rate_pct: int,
        penalty_rate_pct: int,
        *,
        identity: Optional[str] = None,
        stake_decimals: int = 0,
        reward_decimals: int = 0,
    ) -> None:
        validate_locker_params(name, lock_duration_days, reward_rate_pct, penalty_rate_pct)

        self._name = name
        self._identity = identity or derive_locker_identity(name)
        self._lock_duration_s = int(lock_duration_days) * SECONDS_PER_DAY
        self._reward_rate = int(reward_rate_pct)
        self._penalty_rate = int(penalty_rate_pct)
        self._stake_decimals = int(stake_decimals)
        self._reward_decimals = int(reward_decimals)

        # dict preserves first-stake order; users are never removed
        self._records: Dict[str, StakeRecord] = {}

        self.total_staked: int = 0
        self.total_rewards_claimed: int = 0

    # ----------------------------
    # Immutable parameters
    # ----------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def lock_duration(self) -> int:
        """Lock duration in seconds."""
        return self._lock_duration_s

    @property
    def reward_rate(self) -> int:
        return self._reward_rate

    @property
    def penalty_rate(self) -> int:
        return self._penalty_rate

    def detail(self) -> LockerDetail:
        return LockerDetail(
            name=self._name,
            identity=self._identity,
            lock_duration_seconds=self._lock_duration_s,
            reward_rate=self._reward_rate,
            penalty_rate=self._penalty_rate,
        )

    # ----------------------------
    # Views
    # ----------------------------

    def get_user_addresses(self) -> List[str]:
        return list(self._records.keys())

    def get_user_record(self, user: str) -> StakeRecord:
        """Copy of the user's record; zero-valued if the user never staked."""
        rec = self._records.get(user)
        return rec.copy() if rec is not None else StakeRecord()

    # ----------------------------
    # Stake
    # ----------------------------

    def check_stake(self, user: str, amount: int) -> None:
        if not _is_int(amount) or amount < 0:
            raise InvalidAmount({"locker": self._name, "amount": amount})
        if amount == 0:
            raise ZeroDeposit({"locker": self._name, "user": user})

        rec = self._records.get(user)
        if rec is not None and rec.stake_balance > 0:
            raise StakeAlreadyActive(
                {"locker": self._name, "user": user, "stake_balance": rec.stake_balance}
            )

    def commit_stake(self, user: str, amount: int, now_s: int) -> StakeRecord:
        rec = self._records.get(user)
        if rec is None:
            rec = StakeRecord()
            self._records[user] = rec

        rec.stake_balance = int(amount)
        rec.stake_timestamp = int(now_s)
        self.total_staked += int(amount)
        return rec.copy()

    def stake(self, user: str, amount: int, now_s: int) -> StakeRecord:
        self.check_stake(user, amount)
        return self.commit_stake(user, amount, now_s)

    # ----------------------------
    # Unstake
    # ----------------------------

    def quote_unstake(self, user: str, now_s: int) -> UnstakeQuote:
        """Compute what unstake_all would pay, without mutating anything."""
        rec = self._records.get(user)
        if rec is None or rec.stake_balance <= 0:
            raise NothingToUnstake({"locker": self._name, "user": user})

        balance = int(rec.stake_balance)
        started = int(rec.stake_timestamp or 0)
        matured = is_matured(started, now_s, self._lock_duration_s)

        if matured:
            payout = matured_payout(
                balance,
                self._reward_rate,
                stake_decimals=self._stake_decimals,
                reward_decimals=self._reward_decimals,
            )
        else:
            payout = early_payout(balance, self._penalty_rate)

        return UnstakeQuote(
            user=user,
            prior_balance=balance,
            payout=payout,
            matured=matured,
            elapsed_s=int(now_s) - started,
        )

    def commit_unstake(self, quote: UnstakeQuote) -> Payout:
        rec = self._records[quote.user]

        rec.stake_balance = 0
        rec.stake_timestamp = None
        self.total_staked -= int(quote.prior_balance)
        self.total_rewards_claimed += int(quote.payout.reward_amount)
        return quote.payout

    def unstake_all(self, user: str, now_s: int) -> Payout:
        return self.commit_unstake(self.quote_unstake(user, now_s))

    # ----------------------------
    # JSON interop
    # ----------------------------

    def to_json(self) -> Json:
        return {
            "name": self._name,
            "identity": self._identity,
            "lock_duration_seconds": self._lock_duration_s,
            "reward_rate": self._reward_rate,
            "penalty_rate": self._penalty_rate,
            "total_staked": int(self.total_staked),
            "total_rewards_claimed": int(self.total_rewards_claimed),
            "participants": self.get_user_addresses(),
            "records": {u: r.to_json() for u, r in self._records.items()},
        }

    def __repr__(self) -> str:
        return (
            f"Locker(name={self._name!r}, lock_duration={self._lock_duration_s}, "
            f"reward_rate={self._reward_rate}, penalty_rate={self._penalty_rate})"
        )


__all__ = ["Locker", "derive_locker_identity", "validate_locker_params"]
