from __future__ import annotations

"""
Lightweight shared types for the staking ledger.

These are intentionally minimal so they can be imported from both runtime
code and type-checkers without importing heavier submodules.

Conventions
-----------
- Accounts are opaque strings (an address, a username, a key hash).
- Position ids are per-account, 0-based, and never reused.
- Amounts are integers in the token's smallest unit; no floats anywhere.
- Timestamps are UNIX seconds.
"""


from typing import NewType

AccountId = NewType("AccountId", str)
PositionId = NewType("PositionId", int)
TokenAmount = NewType("TokenAmount", int)
Timestamp = NewType("Timestamp", int)

from .position import Payout, Position, PositionView  # noqa: E402
from .events import (  # noqa: E402
    BulkWithdrawn,
    EventType,
    ForceWithdrawn,
    LedgerEvent,
    LockPeriodChanged,
    PausedChanged,
    PositionIncreased,
    RewardClaimed,
    RewardRateChanged,
    Staked,
    Withdrawn,
    event_from_dict,
)

__all__ = [
    "AccountId",
    "PositionId",
    "TokenAmount",
    "Timestamp",
    "Position",
    "PositionView",
    "Payout",
    "EventType",
    "LedgerEvent",
    "Staked",
    "PositionIncreased",
    "Withdrawn",
    "BulkWithdrawn",
    "RewardClaimed",
    "ForceWithdrawn",
    "RewardRateChanged",
    "LockPeriodChanged",
    "PausedChanged",
    "event_from_dict",
]
