# src/farmstake/runtime/stake_manager.py
from __future__ import annotations

"""Multi-locker staking ledger.

StakeManager owns the locker registry, the funding phase, the reward funding
balance and the global totals. Token movement is delegated to a TokenLedger.

Every public mutation runs under one re-entrant lock and follows the same
ordering:

  1. validate (phase, caller, locker existence, locker-level checks)
  2. perform the TokenLedger transfer(s); unstake payouts run inside
     TokenLedger.atomic() when the ledger offers it, so both tokens move or
     neither does. Without atomic() the reward is paid first
  3. commit locker records and manager totals

Nothing internal changes before step 3, so a rejected transfer leaves the
ledger exactly as it was.
"""

import contextlib
import logging
import threading
import time
from typing import Any, Callable, ContextManager, Dict, List, Optional

from farmstake.ledger.constants import MAX_TOKEN_DECIMALS
from farmstake.ledger.types import Json, LockerDetail, Payout, Phase, StakeRecord
from farmstake.runtime import metrics
from farmstake.runtime.errors import (
    DuplicateLockerName,
    EmptyLockerName,
    InvalidAmount,
    LockerNotFound,
    PhaseNotActive,
    StakeError,
    Unauthorized,
    ZeroRewardRate,
)
from farmstake.runtime.locker import Locker, derive_locker_identity
from farmstake.runtime.stake_config import StakeConfig, validate_stake_config
from farmstake.runtime.structured_logging import log_event
from farmstake.token.ledger import TokenError, TokenLedger

log = logging.getLogger("farmstake.stake_manager")

Clock = Callable[[], int]


def _system_clock() -> int:
    return int(time.time())


def _norm_account(v: Any) -> str:
    return str(v).strip() if v is not None else ""


def _as_decimals(name: str, v: Any) -> int:
    if isinstance(v, bool) or not isinstance(v, int) or not (0 <= v <= MAX_TOKEN_DECIMALS):
        raise ValueError(f"{name} must be an int in 0..{MAX_TOKEN_DECIMALS}; got: {v!r}")
    return v


class StakeManager:
    def __init__(
        self,
        tokens: TokenLedger,
        *,
        reward_token: str,
        stake_token: str,
        admin: str,
        rewards_duration_days: int = 0,
        stake_decimals: int = 0,
        reward_decimals: int = 0,
        clock: Optional[Clock] = None,
    ) -> None:
        if not _norm_account(reward_token) or not _norm_account(stake_token):
            raise ValueError("reward_token and stake_token must be non-empty")
        if not _norm_account(admin):
            raise ValueError("admin must be non-empty")

        self._tokens = tokens
        self._clock: Clock = clock or _system_clock
        self._lock = threading.RLock()

        self.reward_token = _norm_account(reward_token)
        self.stake_token = _norm_account(stake_token)
        self.admin = _norm_account(admin)
        # Informational; no operation is gated on it.
        self.rewards_duration_days = int(rewards_duration_days)
        self.stake_decimals = _as_decimals("stake_decimals", stake_decimals)
        self.reward_decimals = _as_decimals("reward_decimals", reward_decimals)

        self._phase = Phase.INITIALIZED
        self.funding_balance: int = 0
        self._total_staked: int = 0
        self._total_rewards_claimed: int = 0
        self._lockers: Dict[str, Locker] = {}

    @classmethod
    def from_config(
        cls,
        cfg: StakeConfig,
        tokens: TokenLedger,
        *,
        clock: Optional[Clock] = None,
    ) -> "StakeManager":
        validate_stake_config(cfg)
        return cls(
            tokens,
            reward_token=cfg.reward_token,
            stake_token=cfg.stake_token,
            admin=cfg.admin,
            rewards_duration_days=cfg.rewards_duration_days,
            stake_decimals=cfg.stake_decimals,
            reward_decimals=cfg.reward_decimals,
            clock=clock,
        )

    # ----------------------------
    # Internals
    # ----------------------------

    def _now(self) -> int:
        return int(self._clock())

    def _require_admin(self, caller: str, op: str) -> None:
        if _norm_account(caller) != self.admin:
            raise Unauthorized({"op": op, "caller": caller})

    def _get_locker(self, name: str) -> Locker:
        locker = self._lockers.get(name) if isinstance(name, str) else None
        if locker is None:
            raise LockerNotFound({"locker": name})
        return locker

    def _advance_phase(self, target: Phase) -> None:
        if target < self._phase:
            raise ValueError(f"phase cannot move backward: {self._phase.name} -> {target.name}")
        if target != self._phase:
            log_event(log, "phase_changed", old=self._phase.name, new=target.name)
            self._phase = target

    def _rejected(self, op: str, err: Exception) -> None:
        metrics.inc_counter(metrics.OPS_REJECTED_TOTAL, 1)
        log_event(log, "op_rejected", op=op, error=str(err))

    def _publish_totals(self) -> None:
        metrics.observe_ledger(
            total_staked=self._total_staked,
            funding_balance=self.funding_balance,
            total_rewards_claimed=self._total_rewards_claimed,
        )

    def _payout_batch(self) -> ContextManager[Any]:
        # atomic() is optional on a TokenLedger; without it transfers run one by one
        atomic = getattr(self._tokens, "atomic", None)
        if callable(atomic):
            return atomic()
        return contextlib.nullcontext()

    # ----------------------------
    # Administrator operations
    # ----------------------------

    def fund_contract(self, amount: int, *, caller: str) -> None:
        """Deposit reward tokens; the first deposit activates staking."""
        with self._lock:
            try:
                self._require_admin(caller, "fund_contract")
                if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
                    raise InvalidAmount({"op": "fund_contract", "amount": amount})

                self._tokens.transfer_into(self.reward_token, self.admin, amount)
            except (StakeError, TokenError) as e:
                self._rejected("fund_contract", e)
                raise

            self.funding_balance += int(amount)
            if self._phase == Phase.INITIALIZED:
                self._advance_phase(Phase.ACTIVE)

            self._publish_totals()
            log_event(
                log,
                "fund_contract",
                amount=int(amount),
                funding_balance=self.funding_balance,
                phase=self._phase.name,
            )

    def create_locker(
        self,
        name: str,
        lock_duration_days: int,
        reward_rate_pct: int,
        penalty_rate_pct: int,
        *,
        caller: str,
    ) -> LockerDetail:
        with self._lock:
            try:
                self._require_admin(caller, "create_locker")
                if not isinstance(name, str) or not name:
                    raise EmptyLockerName({"name": name})
                if reward_rate_pct == 0:
                    raise ZeroRewardRate({"name": name})
                if name in self._lockers:
                    raise DuplicateLockerName({"name": name})

                locker = Locker(
                    name,
                    lock_duration_days,
                    reward_rate_pct,
                    penalty_rate_pct,
                    identity=derive_locker_identity(name, namespace=f"{self.stake_token}:{self.reward_token}"),
                    stake_decimals=self.stake_decimals,
                    reward_decimals=self.reward_decimals,
                )
            except StakeError as e:
                self._rejected("create_locker", e)
                raise

            self._lockers[name] = locker
            detail = locker.detail()
            log_event(log, "locker_created", **detail._asdict())
            return detail

    # ----------------------------
    # User operations
    # ----------------------------

    def stake(self, locker_name: str, amount: int, *, caller: str) -> StakeRecord:
        user = _norm_account(caller)
        with self._lock:
            try:
                if self._phase != Phase.ACTIVE:
                    raise PhaseNotActive({"phase": self._phase.name})
                locker = self._get_locker(locker_name)
                locker.check_stake(user, amount)
                now = self._now()

                self._tokens.transfer_into(self.stake_token, user, amount)
            except (StakeError, TokenError) as e:
                self._rejected("stake", e)
                raise

            rec = locker.commit_stake(user, amount, now)
            self._total_staked += int(amount)

            metrics.inc_counter(metrics.STAKES_TOTAL, 1)
            self._publish_totals()
            log_event(
                log,
                "staked",
                locker=locker.name,
                user=user,
                amount=int(amount),
                stake_timestamp=rec.stake_timestamp,
                total_staked=self._total_staked,
            )
            return rec

    def unstake_all(self, locker_name: str, user: str) -> Payout:
        """Withdraw the user's whole stake from a locker.

        Returns (stake_amount, reward_amount). A matured stake returns the full
        principal plus reward; an early one returns principal minus penalty and
        no reward. The forfeited penalty stays in custody.
        """
        account = _norm_account(user)
        with self._lock:
            try:
                locker = self._get_locker(locker_name)
                quote = locker.quote_unstake(account, self._now())

                payout = quote.payout
                # reward before principal
                with self._payout_batch():
                    if payout.reward_amount > 0:
                        self._tokens.transfer_out(self.reward_token, account, payout.reward_amount)
                    if payout.stake_amount > 0:
                        self._tokens.transfer_out(self.stake_token, account, payout.stake_amount)
            except (StakeError, TokenError) as e:
                self._rejected("unstake_all", e)
                raise

            locker.commit_unstake(quote)
            self._total_staked -= quote.prior_balance
            self._total_rewards_claimed += payout.reward_amount

            metrics.inc_counter(metrics.UNSTAKES_TOTAL, 1)
            if not quote.matured:
                metrics.inc_counter(metrics.EARLY_UNSTAKES_TOTAL, 1)
            self._publish_totals()
            log_event(
                log,
                "unstaked",
                locker=locker.name,
                user=account,
                matured=quote.matured,
                elapsed_s=quote.elapsed_s,
                stake_amount=payout.stake_amount,
                reward_amount=payout.reward_amount,
                forfeited=quote.prior_balance - payout.stake_amount,
            )
            return payout

    # ----------------------------
    # Views
    # ----------------------------

    def get_locker_names(self) -> List[str]:
        with self._lock:
            return list(self._lockers.keys())

    def get_locker_detail(self, name: str) -> LockerDetail:
        with self._lock:
            return self._get_locker(name).detail()

    def get_locker_user_array(self, name: str) -> List[str]:
        with self._lock:
            return self._get_locker(name).get_user_addresses()

    def get_locker_user_record(self, name: str, user: str) -> StakeRecord:
        with self._lock:
            return self._get_locker(name).get_user_record(_norm_account(user))

    def total_staked(self) -> int:
        with self._lock:
            return self._total_staked

    def tot_rewards_claimed(self) -> int:
        with self._lock:
            return self._total_rewards_claimed

    def stake_phase(self) -> Phase:
        with self._lock:
            return self._phase

    def check_invariants(self) -> None:
        """Raise AssertionError if the aggregate totals disagree with the records."""
        with self._lock:
            locker_sum = 0
            for locker in self._lockers.values():
                records_sum = sum(
                    locker.get_user_record(u).stake_balance for u in locker.get_user_addresses()
                )
                if records_sum != locker.total_staked:
                    raise AssertionError(
                        f"locker {locker.name!r} total_staked={locker.total_staked} != records={records_sum}"
                    )
                locker_sum += locker.total_staked
            if locker_sum != self._total_staked:
                raise AssertionError(f"total_staked={self._total_staked} != lockers={locker_sum}")

    def snapshot(self) -> Json:
        with self._lock:
            return {
                "phase": self._phase.name,
                "reward_token": self.reward_token,
                "stake_token": self.stake_token,
                "admin": self.admin,
                "rewards_duration_days": self.rewards_duration_days,
                "funding_balance": int(self.funding_balance),
                "total_staked": int(self._total_staked),
                "total_rewards_claimed": int(self._total_rewards_claimed),
                "lockers": [locker.to_json() for locker in self._lockers.values()],
            }


__all__ = ["Clock", "StakeManager"]
