# tests/test_stake_manager_setup.py
from __future__ import annotations

import pytest

from farmstake.ledger.types import Phase
from farmstake.runtime.errors import (
    DuplicateLockerName,
    EmptyLockerName,
    InvalidAmount,
    InvalidRate,
    LockerNotFound,
    Unauthorized,
    ZeroRewardRate,
)
from farmstake.runtime.stake_manager import StakeManager
from farmstake.testing.clock import ManualClock
from farmstake.token.ledger import InMemoryTokenLedger, InsufficientAllowance

ADMIN = "admin"
USER1 = "user1"
FARM = "FARM"
MUSDC = "mUSDC"
DAY = 86400


def _mk_env() -> tuple[StakeManager, InMemoryTokenLedger]:
    tokens = InMemoryTokenLedger(custody_account="STAKER")
    mgr = StakeManager(
        tokens,
        reward_token=FARM,
        stake_token=MUSDC,
        admin=ADMIN,
        rewards_duration_days=5,
        clock=ManualClock(),
    )
    tokens.faucet(FARM, ADMIN, 10_000)
    tokens.faucet(MUSDC, USER1, 1_000)
    return mgr, tokens


def _fund(mgr: StakeManager, tokens: InMemoryTokenLedger, amount: int) -> None:
    tokens.approve(FARM, ADMIN, amount)
    mgr.fund_contract(amount, caller=ADMIN)


def test_deploy_parameters() -> None:
    mgr, _ = _mk_env()
    assert mgr.reward_token == FARM
    assert mgr.stake_token == MUSDC
    assert mgr.rewards_duration_days == 5
    assert mgr.stake_phase() == Phase.INITIALIZED
    assert mgr.funding_balance == 0
    assert mgr.total_staked() == 0
    assert mgr.tot_rewards_claimed() == 0
    assert mgr.get_locker_names() == []


def test_admin_deposit_starts_staking() -> None:
    mgr, tokens = _mk_env()
    _fund(mgr, tokens, 1000)

    assert tokens.balance_of(FARM, ADMIN) == 9000
    assert tokens.balance_of(FARM, "STAKER") == 1000
    assert mgr.funding_balance == 1000
    assert mgr.stake_phase() == Phase.ACTIVE


def test_admin_can_top_up() -> None:
    mgr, tokens = _mk_env()
    _fund(mgr, tokens, 1000)
    _fund(mgr, tokens, 1000)

    assert tokens.balance_of(FARM, ADMIN) == 8000
    assert tokens.balance_of(FARM, "STAKER") == 2000
    assert mgr.funding_balance == 2000
    assert mgr.stake_phase() == Phase.ACTIVE


def test_funding_requires_allowance_and_leaves_phase_on_failure() -> None:
    mgr, tokens = _mk_env()

    with pytest.raises(InsufficientAllowance):
        mgr.fund_contract(1000, caller=ADMIN)

    assert mgr.funding_balance == 0
    assert mgr.stake_phase() == Phase.INITIALIZED
    assert tokens.balance_of(FARM, ADMIN) == 10_000


def test_funding_is_admin_only_and_positive() -> None:
    mgr, tokens = _mk_env()
    tokens.faucet(FARM, USER1, 100)
    tokens.approve(FARM, USER1, 100)

    with pytest.raises(Unauthorized):
        mgr.fund_contract(100, caller=USER1)
    with pytest.raises(InvalidAmount):
        mgr.fund_contract(0, caller=ADMIN)

    assert mgr.stake_phase() == Phase.INITIALIZED
    assert tokens.balance_of(FARM, USER1) == 100


def test_create_locker() -> None:
    mgr, _ = _mk_env()
    mgr.create_locker("ONE_WEEK", 7, 10, 10, caller=ADMIN)

    assert mgr.get_locker_names() == ["ONE_WEEK"]
    name, identity, lock_s, reward, penalty = mgr.get_locker_detail("ONE_WEEK")
    assert name == "ONE_WEEK"
    assert len(identity) == 42
    assert lock_s == 7 * DAY
    assert reward == 10
    assert penalty == 10


def test_create_multiple_lockers_keeps_order() -> None:
    mgr, _ = _mk_env()
    mgr.create_locker("ONE_WEEK", 7, 10, 10, caller=ADMIN)
    mgr.create_locker("FORTNIGHT", 14, 15, 10, caller=ADMIN)

    assert mgr.get_locker_names() == ["ONE_WEEK", "FORTNIGHT"]

    one = mgr.get_locker_detail("ONE_WEEK")
    two = mgr.get_locker_detail("FORTNIGHT")
    assert one.identity != two.identity
    assert (one.lock_duration_seconds, one.reward_rate, one.penalty_rate) == (7 * DAY, 10, 10)
    assert (two.lock_duration_seconds, two.reward_rate, two.penalty_rate) == (14 * DAY, 15, 10)


def test_lockers_can_be_created_in_any_phase() -> None:
    mgr, tokens = _mk_env()
    mgr.create_locker("A", 1, 1, 0, caller=ADMIN)
    _fund(mgr, tokens, 10)
    mgr.create_locker("B", 2, 100, 100, caller=ADMIN)
    assert mgr.get_locker_names() == ["A", "B"]


def test_locker_names_are_case_sensitive() -> None:
    mgr, _ = _mk_env()
    mgr.create_locker("one_week", 7, 10, 10, caller=ADMIN)
    mgr.create_locker("ONE_WEEK", 7, 10, 10, caller=ADMIN)
    assert mgr.get_locker_names() == ["one_week", "ONE_WEEK"]


def test_no_locker_without_name() -> None:
    mgr, _ = _mk_env()
    with pytest.raises(EmptyLockerName):
        mgr.create_locker("", 7, 10, 10, caller=ADMIN)
    assert mgr.get_locker_names() == []


def test_no_locker_with_zero_reward_rate() -> None:
    mgr, _ = _mk_env()
    with pytest.raises(ZeroRewardRate):
        mgr.create_locker("ONE_WEEK", 7, 0, 10, caller=ADMIN)
    assert mgr.get_locker_names() == []


def test_empty_name_is_reported_before_zero_rate() -> None:
    mgr, _ = _mk_env()
    with pytest.raises(EmptyLockerName):
        mgr.create_locker("", 7, 0, 10, caller=ADMIN)


def test_no_locker_with_taken_name() -> None:
    mgr, _ = _mk_env()
    mgr.create_locker("ONE_WEEK", 7, 10, 10, caller=ADMIN)

    with pytest.raises(DuplicateLockerName):
        mgr.create_locker("ONE_WEEK", 14, 15, 10, caller=ADMIN)

    assert mgr.get_locker_names() == ["ONE_WEEK"]
    assert mgr.get_locker_detail("ONE_WEEK").lock_duration_seconds == 7 * DAY


def test_zero_rate_is_reported_before_duplicate_name() -> None:
    mgr, _ = _mk_env()
    mgr.create_locker("ONE_WEEK", 7, 10, 10, caller=ADMIN)
    with pytest.raises(ZeroRewardRate):
        mgr.create_locker("ONE_WEEK", 7, 0, 10, caller=ADMIN)


def test_out_of_range_rates_are_rejected() -> None:
    mgr, _ = _mk_env()
    with pytest.raises(InvalidRate):
        mgr.create_locker("A", 7, 101, 10, caller=ADMIN)
    with pytest.raises(InvalidRate):
        mgr.create_locker("A", 7, 10, 101, caller=ADMIN)
    assert mgr.get_locker_names() == []


def test_create_locker_is_admin_only() -> None:
    mgr, _ = _mk_env()
    with pytest.raises(Unauthorized):
        mgr.create_locker("ONE_WEEK", 7, 10, 10, caller=USER1)
    assert mgr.get_locker_names() == []


def test_unknown_locker_views() -> None:
    mgr, _ = _mk_env()
    with pytest.raises(LockerNotFound):
        mgr.get_locker_detail("NOPE")
    with pytest.raises(LockerNotFound):
        mgr.get_locker_user_array("NOPE")
    with pytest.raises(LockerNotFound):
        mgr.get_locker_user_record("NOPE", USER1)
