from __future__ import annotations

from typing import Any, Optional

import pytest

from stakeledger.adapters import InMemoryToken, ManualClock, OwnerAccess, PauseSwitch
from stakeledger.config import (LedgerConfig, LockConfig, PayoutConfig,
                                RewardConfig, SweepConfig)
from stakeledger.ledger import SECONDS_PER_YEAR, StakeLedger

T0 = 1_700_000_000
DAY = 86_400
WEEK = 7 * DAY
YEAR = SECONDS_PER_YEAR
LEDGER = "stake-ledger"
ADMIN = "admin"


def mk_config(
    *,
    rate: int = 10,
    lock: int = WEEK,
    reconcile: bool = True,
    inclusive: bool = True,
    split: bool = False,
) -> LedgerConfig:
    return LedgerConfig(
        reward=RewardConfig(rate_percent=rate, reconcile_claims=reconcile),
        lock=LockConfig(lock_period_seconds=lock),
        sweep=SweepConfig(inclusive_upper_bound=inclusive),
        payout=PayoutConfig(split_reward_token=split),
        ledger_address=LEDGER,
    )


class Env:
    """A ledger wired to in-memory tokens, a manual clock and an owner admin."""

    def __init__(self, cfg: Optional[LedgerConfig] = None, *, access: Any = None) -> None:
        self.clock = ManualClock(T0)
        self.stake_token = InMemoryToken("Stake Token", "STK")
        self.reward_token = InMemoryToken("Reward Token", "RWD")
        self.access = access if access is not None else OwnerAccess(ADMIN)
        self.pause = PauseSwitch()
        self.ledger = StakeLedger(
            stake_token=self.stake_token.bind(LEDGER),
            reward_token=self.reward_token.bind(LEDGER),
            access=self.access,
            clock=self.clock,
            pause=self.pause,
            config=cfg or mk_config(),
        )
        # reward reserves held by the ledger
        self.stake_token.mint(LEDGER, 1_000_000_000)
        self.reward_token.mint(LEDGER, 1_000_000_000)

    def fund(self, account: str, amount: int, *, approve: Optional[int] = None) -> None:
        self.stake_token.mint(account, amount)
        self.stake_token.approve(account, LEDGER, amount if approve is None else approve)

    def stk(self, account: str) -> int:
        return self.stake_token.balance_of(account)

    def rwd(self, account: str) -> int:
        return self.reward_token.balance_of(account)


@pytest.fixture
def env() -> Env:
    return Env()


@pytest.fixture
def alice(env: Env) -> str:
    env.fund("alice", 1_000_000)
    return "alice"


@pytest.fixture
def bob(env: Env) -> str:
    env.fund("bob", 1_000_000)
    return "bob"
