# src/farmstake/runtime/op_schema.py
from __future__ import annotations

"""Operation envelopes and payload schemas.

An envelope names an operation, the calling account and a JSON payload:

    {"op": "STAKE", "caller": "alice", "payload": {"locker": "ONE_WEEK", "amount": 1000}}

Schemas are strict shape checks only (required keys, exact JSON types, no
unknown keys). Business rules such as a zero reward rate or an empty locker
name are left to the StakeManager so callers see the same typed errors whether
they go through an envelope or call the manager directly.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr, ValidationError

from farmstake.runtime.errors import InvalidPayload

Json = Dict[str, Any]


class _StrictModel(BaseModel):
    """Strict model: reject unknown keys."""

    model_config = ConfigDict(extra="forbid")


class FundContractPayload(_StrictModel):
    amount: StrictInt


class CreateLockerPayload(_StrictModel):
    name: StrictStr
    lock_duration_days: StrictInt
    reward_rate_pct: StrictInt
    penalty_rate_pct: StrictInt


class StakePayload(_StrictModel):
    locker: StrictStr
    amount: StrictInt


class UnstakeAllPayload(_StrictModel):
    locker: StrictStr
    # Defaults to the envelope caller.
    user: Optional[StrictStr] = None


Schema = Type[_StrictModel]

SCHEMA_BY_OP: Dict[str, Schema] = {
    "FUND_CONTRACT": FundContractPayload,
    "CREATE_LOCKER": CreateLockerPayload,
    "STAKE": StakePayload,
    "UNSTAKE_ALL": UnstakeAllPayload,
}


@dataclass(frozen=True)
class OpEnvelope:
    op: str
    caller: str
    payload: Dict[str, Any]

    @staticmethod
    def from_json(j: Any) -> "OpEnvelope":
        if isinstance(j, OpEnvelope):
            return j
        if not isinstance(j, Mapping):
            raise InvalidPayload({"reason": "envelope_must_be_object", "type": type(j).__name__})
        payload = j.get("payload")
        return OpEnvelope(
            op=str(j.get("op", "") or "").strip().upper(),
            caller=str(j.get("caller", "") or "").strip(),
            payload=payload if isinstance(payload, dict) else {},
        )

    def to_json(self) -> Json:
        return {"op": self.op, "caller": self.caller, "payload": dict(self.payload)}


def schema_for(op: str) -> Optional[Schema]:
    return SCHEMA_BY_OP.get(str(op or "").strip().upper())


def validate_payload(*, op: str, payload: Any) -> Tuple[bool, str, Optional[Json]]:
    """Validate payload against its op schema.

    Returns: (ok, reason, details)
    """
    sch = schema_for(op)
    if sch is None:
        return False, "op_not_implemented", {"op": op}

    if not isinstance(payload, dict):
        return False, "payload_must_be_object", {"op": op}

    try:
        sch(**payload)
    except ValidationError as ve:
        return False, "payload_schema_mismatch", {"op": op, "errors": ve.errors(include_url=False)}
    return True, "", None


def parse_payload(op: str, payload: Any) -> _StrictModel:
    """Return the validated payload model; raises ValidationError on mismatch."""
    sch = schema_for(op)
    if sch is None:
        raise KeyError(op)
    return sch.model_validate(payload)
