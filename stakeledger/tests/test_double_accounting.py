from __future__ import annotations

import pytest

from .conftest import YEAR, Env, mk_config


def _claim_then_withdraw(reconcile: bool) -> int:
    env = Env(mk_config(reconcile=reconcile))
    env.fund("alice", 1_000)
    pid = env.ledger.open_or_extend_position("alice", 1_000)
    env.clock.advance(YEAR)
    claimed = env.ledger.claim_rewards("alice", pid)
    env.clock.advance(YEAR)
    withdrawn = env.ledger.withdraw_position("alice", pid).reward
    return claimed + withdrawn


def test_reconciled_claims_pay_two_years_once():
    assert _claim_then_withdraw(reconcile=True) == 200


def test_raw_anchors_pay_the_claimed_year_again():
    # withdraw measures from start_time and ignores the earlier claim
    assert _claim_then_withdraw(reconcile=False) == 300


@pytest.mark.parametrize("reconcile,banked", [(True, 0), (False, 100)])
def test_add_after_claim(reconcile, banked):
    env = Env(mk_config(reconcile=reconcile))
    env.fund("alice", 2_000)
    pid = env.ledger.open_or_extend_position("alice", 1_000)
    env.clock.advance(YEAR)
    env.ledger.claim_rewards("alice", pid)

    pos = env.ledger.add_to_position("alice", pid, 1_000)
    assert pos.accrued_reward == banked


def test_raw_claim_anchor_ignores_add_reset():
    env = Env(mk_config(reconcile=False))
    env.fund("alice", 2_000)
    pid = env.ledger.open_or_extend_position("alice", 1_000)
    env.clock.advance(YEAR)
    env.ledger.add_to_position("alice", pid, 1_000)  # banks 100

    # claim-age anchor is still the original stake time: 2000 * 10% * 1 year on top
    assert env.ledger.claim_rewards("alice", pid) == 100 + 200
