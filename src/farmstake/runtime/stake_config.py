# src/farmstake/runtime/stake_config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from farmstake.env import load_dotenv_if_present
from farmstake.ledger.constants import DEFAULT_CUSTODY_ACCOUNT, MAX_TOKEN_DECIMALS

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    if v is None:
        return int(default)
    try:
        return int(v)
    except (TypeError, ValueError):
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


@dataclass(frozen=True)
class StakeConfig:
    reward_token: str
    stake_token: str

    # Account allowed to fund the reward pool and create lockers.
    admin: str
    # TokenLedger account that holds staked and reward tokens.
    custody_account: str

    rewards_duration_days: int

    stake_decimals: int
    reward_decimals: int

    log_level: str


def validate_stake_config(cfg: StakeConfig) -> None:
    """Fail-fast validation for operator config."""

    for name, v in (
        ("reward_token", cfg.reward_token),
        ("stake_token", cfg.stake_token),
        ("admin", cfg.admin),
        ("custody_account", cfg.custody_account),
    ):
        if not isinstance(v, str) or not v.strip():
            raise ValueError(f"{name} must be a non-empty string")

    if cfg.reward_token.strip() == cfg.stake_token.strip():
        raise ValueError("reward_token and stake_token must differ")

    if cfg.admin.strip() == cfg.custody_account.strip():
        raise ValueError("admin must not be the custody account")

    if int(cfg.rewards_duration_days) < 0:
        raise ValueError(f"rewards_duration_days must be >= 0; got: {cfg.rewards_duration_days}")

    for name, d in (("stake_decimals", cfg.stake_decimals), ("reward_decimals", cfg.reward_decimals)):
        if int(d) < 0 or int(d) > MAX_TOKEN_DECIMALS:
            raise ValueError(f"{name} must be 0..{MAX_TOKEN_DECIMALS}; got: {d}")


def default_stake_config() -> StakeConfig:
    return StakeConfig(
        reward_token="FARM",
        stake_token="mUSDC",
        admin="admin",
        custody_account=DEFAULT_CUSTODY_ACCOUNT,
        rewards_duration_days=5,
        stake_decimals=0,
        reward_decimals=0,
        log_level="INFO",
    )


def read_stake_config_file(path: str) -> StakeConfig:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("stake config must be a JSON object")

    d = default_stake_config()

    cfg = StakeConfig(
        reward_token=_as_str(raw.get("reward_token"), d.reward_token),
        stake_token=_as_str(raw.get("stake_token"), d.stake_token),
        admin=_as_str(raw.get("admin"), d.admin),
        custody_account=_as_str(raw.get("custody_account"), d.custody_account),
        rewards_duration_days=_as_int(raw.get("rewards_duration_days"), d.rewards_duration_days),
        stake_decimals=_as_int(raw.get("stake_decimals"), d.stake_decimals),
        reward_decimals=_as_int(raw.get("reward_decimals"), d.reward_decimals),
        log_level=_as_str(raw.get("log_level"), d.log_level),
    )

    validate_stake_config(cfg)
    return cfg


def load_stake_config(*, config_path: Optional[str] = None) -> StakeConfig:
    load_dotenv_if_present()
    p = config_path or os.environ.get("FARMSTAKE_CONFIG_PATH")
    if p:
        return read_stake_config_file(p)

    cfg = default_stake_config()
    validate_stake_config(cfg)
    return cfg


def stake_config_to_json(cfg: StakeConfig) -> Json:
    return {
        "reward_token": cfg.reward_token,
        "stake_token": cfg.stake_token,
        "admin": cfg.admin,
        "custody_account": cfg.custody_account,
        "rewards_duration_days": int(cfg.rewards_duration_days),
        "stake_decimals": int(cfg.stake_decimals),
        "reward_decimals": int(cfg.reward_decimals),
        "log_level": cfg.log_level,
    }
