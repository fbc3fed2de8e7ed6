"""farmstake: multi-locker staking ledger with matured rewards and early-exit penalties."""

from farmstake.ledger.types import LockerDetail, Payout, Phase, StakeRecord
from farmstake.runtime.stake_manager import StakeManager

__version__ = "0.1.0"

__all__ = ["LockerDetail", "Payout", "Phase", "StakeManager", "StakeRecord", "__version__"]
