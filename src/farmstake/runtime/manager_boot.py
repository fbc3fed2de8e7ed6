# src/farmstake/runtime/manager_boot.py

from __future__ import annotations

from typing import Optional

from farmstake.runtime.stake_config import StakeConfig, load_stake_config
from farmstake.runtime.stake_manager import Clock, StakeManager
from farmstake.runtime.structured_logging import configure_structured_logging
from farmstake.token.ledger import InMemoryTokenLedger, TokenLedger


def build_stake_manager(
    cfg: Optional[StakeConfig] = None,
    *,
    tokens: Optional[TokenLedger] = None,
    clock: Optional[Clock] = None,
    configure_logging: bool = True,
) -> StakeManager:
    """
    Build a StakeManager from an explicit config or, if omitted, from
    FARMSTAKE_CONFIG_PATH / .env / defaults.

    Without a TokenLedger an InMemoryTokenLedger is created whose custody
    account is the configured one.
    """
    c = cfg or load_stake_config()
    if configure_logging:
        configure_structured_logging(c.log_level)

    ledger = tokens if tokens is not None else InMemoryTokenLedger(custody_account=c.custody_account)
    return StakeManager.from_config(c, ledger, clock=clock)
