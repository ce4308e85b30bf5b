from __future__ import annotations

import threading

import pytest

from stakeledger.errors import ReentrantCall
from stakeledger.ledgertypes import ForceWithdrawn

from .conftest import ADMIN, LEDGER, WEEK


def test_reentrant_call_from_token_hook_is_rejected(env, alice):
    seen = []

    def hook(src, dst, amount):
        try:
            env.ledger.withdraw_all_eligible(src)
        except ReentrantCall as e:
            seen.append(e)

    env.stake_token.add_listener(hook)
    pid = env.ledger.open_or_extend_position(alice, 1_000)

    assert pid == 0
    assert len(seen) == 1
    assert seen[0].details == {"operation": "withdraw_all_eligible", "in_flight": "open_or_extend_position"}
    assert env.ledger.get_position(alice, pid).size == 1_000


def test_uncaught_reentry_aborts_the_outer_operation(env, alice):
    def hook(src, dst, amount):
        env.ledger.open_or_extend_position(src, 1)

    env.stake_token.add_listener(hook)
    with pytest.raises(ReentrantCall):
        env.ledger.open_or_extend_position(alice, 1_000)

    assert env.ledger.total_staked == 0
    assert env.ledger.state.count(alice) == 0
    assert env.ledger.known_accounts == ()
    assert env.stk(alice) == 1_000_000
    assert env.stake_token.allowance(alice, LEDGER) == 1_000_000

    # the ledger is usable again once the hook is gone
    env.stake_token.remove_listener(hook)
    assert env.ledger.open_or_extend_position(alice, 1_000) == 0


def test_reentry_during_payout_keeps_the_position(env, alice):
    pid = env.ledger.open_or_extend_position(alice, 1_000)
    env.clock.advance(WEEK)

    def hook(src, dst, amount):
        if src == LEDGER:
            env.ledger.withdraw_position(dst, pid)

    env.stake_token.add_listener(hook)
    with pytest.raises(ReentrantCall):
        env.ledger.withdraw_position(alice, pid)

    assert env.ledger.get_position(alice, pid).size == 1_000
    assert env.ledger.total_staked == 1_000
    assert env.stk(alice) == 1_000_000 - 1_000


def test_reads_during_a_payout_are_rejected(env, alice):
    pid = env.ledger.open_or_extend_position(alice, 1_000)
    env.clock.advance(WEEK)
    rejected = []

    def hook(src, dst, amount):
        if src != LEDGER:
            return
        for read in (
            lambda: env.ledger.get_position(dst, pid),
            lambda: env.ledger.list_positions(dst),
            lambda: env.ledger.claimable_reward(dst, pid),
            lambda: env.ledger.info(),
            lambda: env.ledger.total_staked,
            lambda: env.ledger.known_accounts,
        ):
            try:
                read()
            except ReentrantCall as e:
                rejected.append(e.details["operation"])

    env.stake_token.add_listener(hook)
    payout = env.ledger.withdraw_position(alice, pid)

    assert payout.principal == 1_000
    assert rejected == [
        "get_position", "list_positions", "claimable_reward", "info", "total_staked", "known_accounts",
    ]
    assert env.ledger.total_staked == 0
    assert env.ledger.get_position(alice, pid).size == 0


def test_reentry_during_force_withdraw_journals_accounts_already_paid(env, alice, bob):
    env.ledger.open_or_extend_position(alice, 1_000)
    env.ledger.open_or_extend_position(bob, 500)

    def hook(src, dst, amount):
        if src == LEDGER and dst == bob:
            env.ledger.withdraw_all_eligible(dst)

    env.stake_token.add_listener(hook)
    with pytest.raises(ReentrantCall) as ei:
        env.ledger.admin_force_withdraw_all(ADMIN)

    assert ei.value.details["paid_accounts"] == [alice]
    assert env.stk(alice) == 1_000_000
    assert env.stk(bob) == 1_000_000 - 500
    assert env.ledger.total_staked == 500

    ev = env.ledger.journal()[-1]
    assert isinstance(ev, ForceWithdrawn)
    assert ev.payouts == {alice: 1_000}
    env.ledger.state.check_invariants()


def test_threads_are_serialized(env):
    accounts = [f"acct{i}" for i in range(8)]
    for a in accounts:
        env.fund(a, 100)

    def worker(account):
        for _ in range(20):
            env.ledger.open_or_extend_position(account, 5)

    threads = [threading.Thread(target=worker, args=(a,)) for a in accounts]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert env.ledger.total_staked == 8 * 100
    assert sorted(env.ledger.known_accounts) == sorted(accounts)
    for a in accounts:
        assert env.ledger.state.count(a) == 20
    env.ledger.state.check_invariants()
