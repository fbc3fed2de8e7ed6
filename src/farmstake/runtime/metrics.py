# src/farmstake/runtime/metrics.py
from __future__ import annotations

"""Process-wide staking metrics.

Counters only go up and track operations; gauges mirror the ledger totals
after each committed mutation. Both are plain ints kept under one lock.
"""

import threading
import time
from typing import Dict

# Counters
STAKES_TOTAL = "stakes_total"
UNSTAKES_TOTAL = "unstakes_total"
EARLY_UNSTAKES_TOTAL = "early_unstakes_total"
OPS_REJECTED_TOTAL = "ops_rejected_total"

# Gauges
TOTAL_STAKED = "total_staked"
FUNDING_BALANCE = "funding_balance"
TOTAL_REWARDS_CLAIMED = "total_rewards_claimed"

_lock = threading.Lock()
_counters: Dict[str, int] = {}
_gauges: Dict[str, int] = {}
_started_ms = int(time.time() * 1000)


def inc_counter(name: str, value: int = 1) -> None:
    n = str(name or "").strip()
    if not n:
        return
    with _lock:
        _counters[n] = int(_counters.get(n, 0)) + int(value)


def set_gauge(name: str, value: int) -> None:
    n = str(name or "").strip()
    if not n:
        return
    with _lock:
        _gauges[n] = int(value)


def observe_ledger(*, total_staked: int, funding_balance: int, total_rewards_claimed: int) -> None:
    """Publish the manager totals as gauges in one step."""
    with _lock:
        _gauges[TOTAL_STAKED] = int(total_staked)
        _gauges[FUNDING_BALANCE] = int(funding_balance)
        _gauges[TOTAL_REWARDS_CLAIMED] = int(total_rewards_claimed)


def reset() -> None:
    """Drop all counters and gauges (tests)."""
    with _lock:
        _counters.clear()
        _gauges.clear()


def snapshot() -> dict:
    with _lock:
        return {
            "ts_ms": int(time.time() * 1000),
            "started_ms": int(_started_ms),
            "uptime_ms": int(time.time() * 1000) - int(_started_ms),
            "counters": dict(_counters),
            "gauges": dict(_gauges),
        }


def format_prometheus(prefix: str = "farmstake_") -> str:
    """Prometheus exposition text, with a TYPE line per metric."""
    pre = str(prefix or "").strip() or "farmstake_"
    snap = snapshot()
    lines: list[str] = [f"{pre}uptime_ms {int(snap['uptime_ms'])}"]

    for k in sorted(snap["counters"].keys()):
        lines.append(f"# TYPE {pre}{k} counter")
        lines.append(f"{pre}{k} {int(snap['counters'][k])}")
    for k in sorted(snap["gauges"].keys()):
        lines.append(f"# TYPE {pre}{k} gauge")
        lines.append(f"{pre}{k} {int(snap['gauges'][k])}")

    return "\n".join(lines) + "\n"
