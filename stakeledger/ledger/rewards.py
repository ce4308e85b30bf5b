from __future__ import annotations

"""
Reward math for staking positions.

The model is deliberately coarse: reward accrues in whole years only.

    reward = size * rate_percent * floor(elapsed / SECONDS_PER_YEAR) // 100

Both divisions truncate; nothing here ever touches a float. A position that
is less than one year old (measured from the chosen anchor) earns 0.

Two anchors exist:
  • position-age: measured from `start_time` (reset whenever size changes)
  • claim-age:    measured from `last_claim_time` (reset by every claim)

`earning_anchor` picks the anchor the ledger uses for banking and paying.
"""

import logging

from stakeledger.ledgertypes.position import Position

log = logging.getLogger(__name__)

# 365.25 days
SECONDS_PER_YEAR = 31_557_600


def whole_years(since: int, now: int) -> int:
    """Number of complete years in [since, now]; 0 if `now` is not after `since`."""
    elapsed = int(now) - int(since)
    if elapsed <= 0:
        return 0
    return elapsed // SECONDS_PER_YEAR


def reward_for(size: int, rate_percent: int, since: int, now: int) -> int:
    size = int(size)
    rate_percent = int(rate_percent)
    if size < 0 or rate_percent < 0:
        raise ValueError("size and rate_percent must be non-negative")
    years = whole_years(since, now)
    return size * rate_percent * years // 100


def position_age_reward(position: Position, rate_percent: int, now: int) -> int:
    return reward_for(position.size, rate_percent, position.start_time, now)


def claim_age_reward(position: Position, rate_percent: int, now: int) -> int:
    return reward_for(position.size, rate_percent, position.last_claim_time, now)


def earning_anchor(position: Position, *, reconcile: bool) -> int:
    """
    Timestamp from which not-yet-paid reward is measured.

    With `reconcile`, an interval already paid out by a claim is excluded, so
    adding to or withdrawing a position after a claim never pays that interval
    a second time.
    """
    if reconcile:
        return max(position.start_time, position.last_claim_time)
    return position.start_time


def unbanked_reward(position: Position, rate_percent: int, now: int, *, reconcile: bool) -> int:
    """Reward earned since the earning anchor, excluding `accrued_reward`."""
    if not position.is_open:
        return 0
    r = reward_for(position.size, rate_percent, earning_anchor(position, reconcile=reconcile), now)
    log.debug("rewards: size=%d rate=%d%% anchor=%d now=%d -> %d",
              position.size, rate_percent, earning_anchor(position, reconcile=reconcile), now, r)
    return r


def claimable_reward(position: Position, rate_percent: int, now: int, *, reconcile: bool) -> int:
    """
    What claim_rewards would pay now: banked reward plus reward since the
    claim anchor (last_claim_time, or the reconciled anchor).
    """
    if not position.is_open:
        return 0
    if reconcile:
        fresh = unbanked_reward(position, rate_percent, now, reconcile=True)
    else:
        fresh = claim_age_reward(position, rate_percent, now)
    return position.accrued_reward + fresh


def withdrawable_reward(position: Position, rate_percent: int, now: int, *, reconcile: bool) -> int:
    """What a withdrawal pays on top of principal: banked + unbanked reward."""
    if not position.is_open:
        return 0
    return position.accrued_reward + unbanked_reward(position, rate_percent, now, reconcile=reconcile)


__all__ = [
    "SECONDS_PER_YEAR",
    "whole_years",
    "reward_for",
    "position_age_reward",
    "claim_age_reward",
    "earning_anchor",
    "unbanked_reward",
    "claimable_reward",
    "withdrawable_reward",
]
