# src/farmstake/runtime/op_dispatch.py

from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from pydantic import ValidationError

from farmstake.runtime.errors import InvalidPayload, UnknownOperation
from farmstake.runtime.op_schema import (
    CreateLockerPayload,
    FundContractPayload,
    OpEnvelope,
    StakePayload,
    UnstakeAllPayload,
    parse_payload,
    schema_for,
)
from farmstake.runtime.stake_manager import StakeManager
from farmstake.runtime.structured_logging import log_event

Json = Dict[str, Any]
ApplyFn = Callable[[StakeManager, OpEnvelope, Any], Json]

log = logging.getLogger("farmstake.op_dispatch")


def _apply_fund_contract(mgr: StakeManager, env: OpEnvelope, p: FundContractPayload) -> Json:
    mgr.fund_contract(p.amount, caller=env.caller)
    return {
        "applied": "FUND_CONTRACT",
        "amount": p.amount,
        "funding_balance": mgr.funding_balance,
        "phase": mgr.stake_phase().name,
    }


def _apply_create_locker(mgr: StakeManager, env: OpEnvelope, p: CreateLockerPayload) -> Json:
    detail = mgr.create_locker(
        p.name,
        p.lock_duration_days,
        p.reward_rate_pct,
        p.penalty_rate_pct,
        caller=env.caller,
    )
    return {"applied": "CREATE_LOCKER", **detail._asdict()}


def _apply_stake(mgr: StakeManager, env: OpEnvelope, p: StakePayload) -> Json:
    rec = mgr.stake(p.locker, p.amount, caller=env.caller)
    return {
        "applied": "STAKE",
        "locker": p.locker,
        "user": env.caller,
        "stake_balance": rec.stake_balance,
        "stake_timestamp": rec.stake_timestamp,
    }


def _apply_unstake_all(mgr: StakeManager, env: OpEnvelope, p: UnstakeAllPayload) -> Json:
    user = p.user if p.user else env.caller
    payout = mgr.unstake_all(p.locker, user)
    return {
        "applied": "UNSTAKE_ALL",
        "locker": p.locker,
        "user": user,
        "stake_amount": payout.stake_amount,
        "reward_amount": payout.reward_amount,
    }


_APPLIERS: Dict[str, ApplyFn] = {
    "FUND_CONTRACT": _apply_fund_contract,
    "CREATE_LOCKER": _apply_create_locker,
    "STAKE": _apply_stake,
    "UNSTAKE_ALL": _apply_unstake_all,
}


def apply_op(mgr: StakeManager, env: Any) -> Json:
    """Validate an operation envelope and run it against the manager.

    Returns a JSON receipt. Unknown ops fail closed with UnknownOperation;
    malformed payloads raise InvalidPayload. StakeError and TokenError raised
    by the manager propagate unchanged.
    """
    try:
        env_norm = OpEnvelope.from_json(env)
    except InvalidPayload:
        log_event(log, "op_rejected", op=None, error="envelope_must_be_object")
        raise

    fn = _APPLIERS.get(env_norm.op)
    if fn is None or schema_for(env_norm.op) is None:
        log_event(log, "op_rejected", op=env_norm.op, error="op_not_implemented")
        raise UnknownOperation({"op": env_norm.op})

    try:
        payload = parse_payload(env_norm.op, env_norm.payload)
    except ValidationError as ve:
        log_event(log, "op_rejected", op=env_norm.op, error="payload_schema_mismatch")
        raise InvalidPayload({"op": env_norm.op, "errors": ve.errors(include_url=False)}) from ve

    return fn(mgr, env_norm, payload)


__all__ = ["apply_op"]
