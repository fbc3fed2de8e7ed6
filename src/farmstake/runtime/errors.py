# src/farmstake/runtime/errors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class StakeError(Exception):
    """Canonical error type for rejected staking ledger operations."""

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class _FixedStakeError(StakeError):
    """StakeError whose code/reason are fixed per subclass."""

    CODE: str = "rejected"
    REASON: str = "rejected"

    def __init__(self, details: Any | None = None) -> None:
        super().__init__(self.CODE, self.REASON, details)


class EmptyLockerName(_FixedStakeError):
    CODE = "invalid_locker"
    REASON = "locker_name_empty"


class ZeroRewardRate(_FixedStakeError):
    CODE = "invalid_locker"
    REASON = "reward_rate_zero"


class DuplicateLockerName(_FixedStakeError):
    CODE = "conflict"
    REASON = "locker_name_exists"


class InvalidRate(_FixedStakeError):
    CODE = "invalid_locker"
    REASON = "rate_out_of_range"


class LockerNotFound(_FixedStakeError):
    CODE = "not_found"
    REASON = "locker_not_found"


class PhaseNotActive(_FixedStakeError):
    CODE = "forbidden"
    REASON = "staking_phase_not_active"


class ZeroDeposit(_FixedStakeError):
    CODE = "invalid_amount"
    REASON = "deposit_zero"


class InvalidAmount(_FixedStakeError):
    CODE = "invalid_amount"
    REASON = "amount_not_positive_int"


class StakeAlreadyActive(_FixedStakeError):
    CODE = "conflict"
    REASON = "already have a locked up stake that has not matured"


class NothingToUnstake(_FixedStakeError):
    CODE = "not_found"
    REASON = "nothing_to_unstake"


class Unauthorized(_FixedStakeError):
    CODE = "forbidden"
    REASON = "admin_required"


class UnknownOperation(_FixedStakeError):
    CODE = "op_unimplemented"
    REASON = "op_not_implemented"


class InvalidPayload(_FixedStakeError):
    CODE = "invalid_payload"
    REASON = "payload_schema_mismatch"


__all__ = [
    "DuplicateLockerName",
    "EmptyLockerName",
    "InvalidAmount",
    "InvalidPayload",
    "InvalidRate",
    "LockerNotFound",
    "NothingToUnstake",
    "PhaseNotActive",
    "StakeAlreadyActive",
    "StakeError",
    "Unauthorized",
    "UnknownOperation",
    "ZeroDeposit",
    "ZeroRewardRate",
]
