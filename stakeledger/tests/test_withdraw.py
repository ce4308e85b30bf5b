from __future__ import annotations

import pytest

from stakeledger.errors import LockNotElapsed, NoPosition, PositionEmpty
from stakeledger.ledgertypes import Withdrawn

from .conftest import DAY, LEDGER, T0, WEEK, YEAR, Env, mk_config


def test_two_years_at_ten_percent_pays_1200(env, alice):
    pid = env.ledger.open_or_extend_position(alice, 1_000)
    env.clock.advance(2 * YEAR)

    payout = env.ledger.withdraw_position(alice, pid)

    assert (payout.principal, payout.reward, payout.total) == (1_000, 200, 1_200)
    assert payout.position_ids == (pid,)
    assert payout.principal_token == "STK"
    assert payout.reward_token == "STK"
    assert env.stk(alice) == 1_000_000 + 200
    assert env.ledger.total_staked == 0

    view = env.ledger.get_position(alice, pid)
    assert not view.is_open
    assert (view.size, view.start_time, view.accrued_reward) == (0, 0, 0)

    ev = env.ledger.journal()[-1]
    assert isinstance(ev, Withdrawn)
    assert (ev.principal, ev.reward) == (1_000, 200)


def test_lock_not_elapsed_after_six_days(env, alice):
    pid = env.ledger.open_or_extend_position(alice, 1_000)
    env.clock.advance(6 * DAY)

    with pytest.raises(LockNotElapsed) as ei:
        env.ledger.withdraw_position(alice, pid)
    assert ei.value.details["unlock_time"] == T0 + WEEK
    assert ei.value.details["now"] == T0 + 6 * DAY
    assert env.ledger.get_position(alice, pid).size == 1_000
    assert env.ledger.total_staked == 1_000


def test_withdraw_exactly_at_unlock_time(env, alice):
    pid = env.ledger.open_or_extend_position(alice, 1_000)
    env.clock.advance(WEEK)
    payout = env.ledger.withdraw_position(alice, pid)
    assert payout.principal == 1_000
    assert payout.reward == 0


def test_withdraw_twice_fails(env, alice):
    pid = env.ledger.open_or_extend_position(alice, 1_000)
    env.clock.advance(WEEK)
    env.ledger.withdraw_position(alice, pid)
    with pytest.raises(PositionEmpty):
        env.ledger.withdraw_position(alice, pid)


def test_withdraw_unknown_account_or_id(env, alice):
    with pytest.raises(NoPosition):
        env.ledger.withdraw_position("nobody", 0)
    env.ledger.open_or_extend_position(alice, 10)
    with pytest.raises(NoPosition):
        env.ledger.withdraw_position(alice, 1)


def test_position_ids_are_not_reused_after_withdraw(env, alice):
    pid = env.ledger.open_or_extend_position(alice, 10)
    env.clock.advance(WEEK)
    env.ledger.withdraw_position(alice, pid)
    assert env.ledger.open_or_extend_position(alice, 10) == pid + 1


def test_split_payout_sends_reward_in_reward_token():
    env = Env(mk_config(split=True))
    env.fund("alice", 1_000_000)
    pid = env.ledger.open_or_extend_position("alice", 1_000)
    env.clock.advance(2 * YEAR)

    payout = env.ledger.withdraw_position("alice", pid)

    assert payout.reward_token == "RWD"
    assert env.stk("alice") == 1_000_000
    assert env.rwd("alice") == 200


def test_zero_reward_skips_the_reward_transfer():
    env = Env(mk_config(split=True))
    env.fund("alice", 1_000)
    calls = []
    env.reward_token.add_listener(lambda src, dst, amount: calls.append((src, dst, amount)))

    pid = env.ledger.open_or_extend_position("alice", 1_000)
    env.clock.advance(WEEK)
    env.ledger.withdraw_position("alice", pid)

    assert calls == []
    assert env.stk("alice") == 1_000
    assert env.stk(LEDGER) == 1_000_000_000
