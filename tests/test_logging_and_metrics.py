# tests/test_logging_and_metrics.py
from __future__ import annotations

import json
import logging

import pytest

from farmstake.runtime import metrics
from farmstake.runtime.errors import ZeroDeposit
from farmstake.runtime.stake_manager import StakeManager
from farmstake.runtime.structured_logging import configure_structured_logging, log_event
from farmstake.testing.clock import ManualClock
from farmstake.token.ledger import InMemoryTokenLedger


def _mk_active() -> tuple[StakeManager, InMemoryTokenLedger]:
    tokens = InMemoryTokenLedger(custody_account="STAKER")
    mgr = StakeManager(tokens, reward_token="FARM", stake_token="mUSDC", admin="admin", clock=ManualClock())
    tokens.faucet("FARM", "admin", 100)
    tokens.approve("FARM", "admin", 100)
    tokens.faucet("mUSDC", "alice", 100)
    tokens.approve("mUSDC", "alice", 100)
    mgr.create_locker("A", 7, 10, 10, caller="admin")
    mgr.fund_contract(100, caller="admin")
    return mgr, tokens


def _events(caplog: pytest.LogCaptureFixture, logger_name: str) -> list[dict]:
    out = []
    for rec in caplog.records:
        if rec.name == logger_name:
            out.append(json.loads(rec.getMessage()))
    return out


def test_log_event_emits_sorted_json(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("farmstake.test")
    with caplog.at_level(logging.INFO, logger="farmstake.test"):
        log_event(logger, "hello", b=2, a=1)

    msg = caplog.records[-1].getMessage()
    payload = json.loads(msg)
    assert payload["event"] == "hello"
    assert payload["a"] == 1 and payload["b"] == 2
    assert "ts_ms" in payload
    assert msg.index('"a"') < msg.index('"b"')


def test_log_event_falls_back_for_unserializable_fields(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("farmstake.test")
    with caplog.at_level(logging.INFO, logger="farmstake.test"):
        log_event(logger, "odd", obj=object())
    assert caplog.records[-1].getMessage().startswith("event=odd")


def test_manager_logs_lifecycle_events(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="farmstake.stake_manager"):
        mgr, _ = _mk_active()
        mgr.stake("A", 100, caller="alice")
        mgr.unstake_all("A", "alice")

    names = [e["event"] for e in _events(caplog, "farmstake.stake_manager")]
    assert names == ["locker_created", "phase_changed", "fund_contract", "staked", "unstaked"]

    unstaked = _events(caplog, "farmstake.stake_manager")[-1]
    assert unstaked["matured"] is False
    assert unstaked["forfeited"] == 10


def test_rejections_are_logged_and_counted(caplog: pytest.LogCaptureFixture) -> None:
    metrics.reset()
    mgr, _ = _mk_active()
    with caplog.at_level(logging.INFO, logger="farmstake.stake_manager"):
        with pytest.raises(ZeroDeposit):
            mgr.stake("A", 0, caller="alice")

    ev = _events(caplog, "farmstake.stake_manager")[-1]
    assert ev["event"] == "op_rejected"
    assert ev["op"] == "stake"
    assert metrics.snapshot()["counters"]["ops_rejected_total"] == 1


def test_metrics_track_stakes_and_unstakes() -> None:
    metrics.reset()
    mgr, _ = _mk_active()
    mgr.stake("A", 100, caller="alice")
    mgr.unstake_all("A", "alice")

    snap = metrics.snapshot()
    assert snap["counters"][metrics.STAKES_TOTAL] == 1
    assert snap["counters"][metrics.UNSTAKES_TOTAL] == 1
    assert snap["counters"][metrics.EARLY_UNSTAKES_TOTAL] == 1
    assert snap["gauges"]["total_staked"] == 0
    assert snap["gauges"]["funding_balance"] == 100

    text = metrics.format_prometheus()
    assert "farmstake_stakes_total 1" in text
    assert "farmstake_total_staked 0" in text
    assert text.startswith("farmstake_uptime_ms ")


def test_configure_structured_logging_is_idempotent(monkeypatch: pytest.MonkeyPatch) -> None:
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    saved_flag = getattr(root, "_farmstake_configured", False)
    try:
        monkeypatch.setenv("FARMSTAKE_LOG_LEVEL", "debug")
        configure_structured_logging()
        assert root.level == logging.DEBUG
        handlers = list(root.handlers)

        configure_structured_logging("WARNING")
        assert root.level == logging.WARNING
        assert root.handlers == handlers
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)
        setattr(root, "_farmstake_configured", saved_flag)


def test_ledger_gauges_follow_committed_totals() -> None:
    metrics.reset()
    mgr, tokens = _mk_active()
    tokens.faucet("FARM", "admin", 50)
    tokens.approve("FARM", "admin", 50)
    mgr.fund_contract(50, caller="admin")
    mgr.stake("A", 100, caller="alice")

    gauges = metrics.snapshot()["gauges"]
    assert gauges[metrics.TOTAL_STAKED] == 100
    assert gauges[metrics.FUNDING_BALANCE] == 150
    assert gauges[metrics.TOTAL_REWARDS_CLAIMED] == 0

    text = metrics.format_prometheus()
    assert "# TYPE farmstake_stakes_total counter" in text
    assert "# TYPE farmstake_funding_balance gauge" in text
    assert "farmstake_funding_balance 150" in text
