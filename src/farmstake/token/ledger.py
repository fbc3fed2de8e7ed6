# src/farmstake/token/ledger.py
from __future__ import annotations

"""Token transfer capability consumed by the stake manager.

The staking core never owns balances. It talks to a TokenLedger that moves
value between user accounts and the manager's custody account:

  - transfer_into: pull `amount` of `token_id` from a user into custody
    (the user must have approved custody to spend it)
  - transfer_out: push `amount` of `token_id` from custody to a user
  - balance_of: read-only balance lookup
  - atomic (optional, see AtomicTokenLedger): context manager; every
    transfer inside it commits or none does

InMemoryTokenLedger is a complete, thread-safe implementation with ERC-20 like
allowance semantics. It backs the test-suite and embedders that do not have a
real token backend.
"""

import copy
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, ContextManager, Dict, Iterator, Protocol, runtime_checkable

from farmstake.ledger.constants import DEFAULT_CUSTODY_ACCOUNT
from farmstake.runtime.structured_logging import log_event

Json = Dict[str, Any]

log = logging.getLogger("farmstake.token")


@dataclass
class TokenError(Exception):
    """Failure reported by a TokenLedger. Surfaced unchanged by the core."""

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class InsufficientBalance(TokenError):
    def __init__(self, details: Any | None = None) -> None:
        super().__init__("insufficient_funds", "transfer_amount_exceeds_balance", details)


class InsufficientAllowance(TokenError):
    def __init__(self, details: Any | None = None) -> None:
        super().__init__("insufficient_funds", "insufficient_allowance", details)


class InsufficientCustodyBalance(TokenError):
    def __init__(self, details: Any | None = None) -> None:
        super().__init__("insufficient_funds", "custody_balance_too_low", details)


@runtime_checkable
class TokenLedger(Protocol):
    def transfer_into(self, token_id: str, from_account: str, amount: int) -> None: ...

    def transfer_out(self, token_id: str, to_account: str, amount: int) -> None: ...

    def balance_of(self, token_id: str, account: str) -> int: ...


@runtime_checkable
class AtomicTokenLedger(TokenLedger, Protocol):
    """TokenLedger that can also batch transfers all-or-nothing."""

    def atomic(self) -> ContextManager[None]: ...


def _as_amount(v: Any) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise TypeError(f"amount must be int (got {type(v).__name__})")
    if v < 0:
        raise ValueError(f"amount must be >= 0 (got {v})")
    return int(v)


def _norm(s: Any) -> str:
    return str(s).strip() if s is not None else ""


class InMemoryTokenLedger:
    """Multi-token balance sheet with allowances and a single custody account."""

    def __init__(self, custody_account: str = DEFAULT_CUSTODY_ACCOUNT) -> None:
        custody = _norm(custody_account)
        if not custody:
            raise ValueError("custody_account must be a non-empty string")
        self.custody_account = custody
        self._lock = threading.RLock()
        # balances[token_id][account] -> int
        self._balances: Dict[str, Dict[str, int]] = {}
        # allowances[token_id][owner][spender] -> int
        self._allowances: Dict[str, Dict[str, Dict[str, int]]] = {}

    # ----------------------------
    # Reads
    # ----------------------------

    def balance_of(self, token_id: str, account: str) -> int:
        with self._lock:
            return int(self._balances.get(_norm(token_id), {}).get(_norm(account), 0))

    def allowance(self, token_id: str, owner: str, spender: str) -> int:
        with self._lock:
            by_owner = self._allowances.get(_norm(token_id), {}).get(_norm(owner), {})
            return int(by_owner.get(_norm(spender), 0))

    def total_supply(self, token_id: str) -> int:
        with self._lock:
            return sum(self._balances.get(_norm(token_id), {}).values())

    # ----------------------------
    # Account-side writes
    # ----------------------------

    def faucet(self, token_id: str, account: str, amount: int) -> None:
        """Mint `amount` of `token_id` to `account` (test/dev funding)."""
        amt = _as_amount(amount)
        with self._lock:
            self._credit(_norm(token_id), _norm(account), amt)

    def approve(self, token_id: str, owner: str, amount: int, *, spender: str | None = None) -> None:
        """Set the amount `spender` (default: custody) may pull from `owner`."""
        amt = _as_amount(amount)
        sp = _norm(spender) if spender is not None else self.custody_account
        with self._lock:
            by_owner = self._allowances.setdefault(_norm(token_id), {}).setdefault(_norm(owner), {})
            by_owner[sp] = amt

    # ----------------------------
    # TokenLedger protocol
    # ----------------------------

    def transfer_into(self, token_id: str, from_account: str, amount: int) -> None:
        amt = _as_amount(amount)
        tok = _norm(token_id)
        src = _norm(from_account)
        with self._lock:
            allowed = self.allowance(tok, src, self.custody_account)
            if allowed < amt:
                raise InsufficientAllowance({"token": tok, "account": src, "allowance": allowed, "amount": amt})
            bal = self.balance_of(tok, src)
            if bal < amt:
                raise InsufficientBalance({"token": tok, "account": src, "balance": bal, "amount": amt})

            by_owner = self._allowances.setdefault(tok, {}).setdefault(src, {})
            by_owner[self.custody_account] = allowed - amt
            self._debit(tok, src, amt)
            self._credit(tok, self.custody_account, amt)

        log_event(log, "token_transfer_into", token=tok, account=src, amount=amt)

    def transfer_out(self, token_id: str, to_account: str, amount: int) -> None:
        amt = _as_amount(amount)
        tok = _norm(token_id)
        dst = _norm(to_account)
        with self._lock:
            bal = self.balance_of(tok, self.custody_account)
            if bal < amt:
                raise InsufficientCustodyBalance({"token": tok, "custody": bal, "amount": amt})
            self._debit(tok, self.custody_account, amt)
            self._credit(tok, dst, amt)

        log_event(log, "token_transfer_out", token=tok, account=dst, amount=amt)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Run a batch of transfers with all-or-nothing semantics.

        Balances and allowances are snapshotted on entry and restored if the
        block raises. The ledger lock is held for the whole block.
        """
        with self._lock:
            balances = copy.deepcopy(self._balances)
            allowances = copy.deepcopy(self._allowances)
            try:
                yield
            except BaseException:
                self._balances = balances
                self._allowances = allowances
                raise

    # ----------------------------
    # Internals (lock held by caller)
    # ----------------------------

    def _credit(self, token_id: str, account: str, amount: int) -> None:
        book = self._balances.setdefault(token_id, {})
        book[account] = int(book.get(account, 0)) + int(amount)

    def _debit(self, token_id: str, account: str, amount: int) -> None:
        book = self._balances.setdefault(token_id, {})
        book[account] = int(book.get(account, 0)) - int(amount)

    def to_json(self) -> Json:
        with self._lock:
            return {
                "custody_account": self.custody_account,
                "balances": copy.deepcopy(self._balances),
                "allowances": copy.deepcopy(self._allowances),
            }


__all__ = [
    "AtomicTokenLedger",
    "InMemoryTokenLedger",
    "InsufficientAllowance",
    "InsufficientBalance",
    "InsufficientCustodyBalance",
    "TokenError",
    "TokenLedger",
]
