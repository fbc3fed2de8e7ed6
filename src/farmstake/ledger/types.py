# src/farmstake/ledger/types.py
from __future__ import annotations

"""Value types shared by the locker and the stake manager."""

from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any, Dict, NamedTuple, Optional

Json = Dict[str, Any]


class Phase(IntEnum):
    """Manager-wide lifecycle stage. Only ever moves forward."""

    INITIALIZED = 0
    ACTIVE = 1
    ENDED = 2


@dataclass
class StakeRecord:
    """Per-user, per-locker stake state.

    A record is zeroed (never deleted) when the stake is withdrawn.
    `unclaimed_reward` stays at zero: rewards are computed and paid in one step
    at unstake time.
    """

    stake_balance: int = 0
    stake_timestamp: Optional[int] = None
    unclaimed_reward: int = 0

    @property
    def is_active(self) -> bool:
        return self.stake_balance > 0

    def copy(self) -> "StakeRecord":
        return StakeRecord(
            stake_balance=int(self.stake_balance),
            stake_timestamp=self.stake_timestamp,
            unclaimed_reward=int(self.unclaimed_reward),
        )

    def to_json(self) -> Json:
        return asdict(self)


class LockerDetail(NamedTuple):
    name: str
    identity: str
    lock_duration_seconds: int
    reward_rate: int
    penalty_rate: int


class Payout(NamedTuple):
    """Amounts owed to a user by an unstake: (stake token, reward token)."""

    stake_amount: int
    reward_amount: int


@dataclass(frozen=True)
class UnstakeQuote:
    """Result of a validated-but-uncommitted unstake."""

    user: str
    prior_balance: int
    payout: Payout
    matured: bool
    elapsed_s: int


__all__ = ["Json", "LockerDetail", "Payout", "Phase", "StakeRecord", "UnstakeQuote"]
