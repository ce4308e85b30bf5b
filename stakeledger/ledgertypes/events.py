from __future__ import annotations
"""
Ledger event types.

One event is appended to the ledger journal for every successful mutating
operation. Events are pure dataclasses with JSON-serializable fields and
small helpers to (de)serialize; the RPC layer and the CLI print them as-is.

Events:
  - Staked:            a new position was opened (or the next slot extended).
  - PositionIncreased: principal was added to an existing position.
  - Withdrawn:         one position was closed and paid out.
  - BulkWithdrawn:     withdraw_all_eligible closed one or more positions.
  - RewardClaimed:     reward was paid while the position stays open.
  - ForceWithdrawn:    an administrator drained every account.
  - RewardRateChanged / LockPeriodChanged / PausedChanged: admin parameters.

Timestamps are the ledger clock reading (UNIX seconds) at the operation.
"""


from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Type, Union


class EventType(str, Enum):
    STAKED = "Staked"
    POSITION_INCREASED = "PositionIncreased"
    WITHDRAWN = "Withdrawn"
    BULK_WITHDRAWN = "BulkWithdrawn"
    REWARD_CLAIMED = "RewardClaimed"
    FORCE_WITHDRAWN = "ForceWithdrawn"
    REWARD_RATE_CHANGED = "RewardRateChanged"
    LOCK_PERIOD_CHANGED = "LockPeriodChanged"
    PAUSED_CHANGED = "PausedChanged"


def _to_dict(ev: Any) -> Dict[str, Any]:
    d = asdict(ev)
    d["etype"] = ev.etype.value
    return d


# ────────────────────────────────────────────────────────────────────────────────
# Event payloads
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Staked:
    ts: int
    account: str
    position_id: int
    amount: int
    new_size: int
    etype: EventType = EventType.STAKED

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass(frozen=True)
class PositionIncreased:
    ts: int
    account: str
    position_id: int
    amount: int
    banked_reward: int
    new_size: int
    etype: EventType = EventType.POSITION_INCREASED

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass(frozen=True)
class Withdrawn:
    ts: int
    account: str
    position_id: int
    principal: int
    reward: int
    etype: EventType = EventType.WITHDRAWN

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass(frozen=True)
class BulkWithdrawn:
    ts: int
    account: str
    position_ids: List[int]
    principal: int
    reward: int
    etype: EventType = EventType.BULK_WITHDRAWN

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass(frozen=True)
class RewardClaimed:
    ts: int
    account: str
    position_id: int
    reward: int
    etype: EventType = EventType.REWARD_CLAIMED

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass(frozen=True)
class ForceWithdrawn:
    ts: int
    caller: str
    payouts: Dict[str, int] = field(default_factory=dict)
    total: int = 0
    etype: EventType = EventType.FORCE_WITHDRAWN

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass(frozen=True)
class RewardRateChanged:
    ts: int
    caller: str
    old_percent: int
    new_percent: int
    etype: EventType = EventType.REWARD_RATE_CHANGED

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass(frozen=True)
class LockPeriodChanged:
    ts: int
    caller: str
    old_seconds: int
    new_seconds: int
    etype: EventType = EventType.LOCK_PERIOD_CHANGED

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass(frozen=True)
class PausedChanged:
    ts: int
    caller: str
    paused: bool
    etype: EventType = EventType.PAUSED_CHANGED

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


LedgerEvent = Union[
    Staked,
    PositionIncreased,
    Withdrawn,
    BulkWithdrawn,
    RewardClaimed,
    ForceWithdrawn,
    RewardRateChanged,
    LockPeriodChanged,
    PausedChanged,
]

_BY_TYPE: Dict[EventType, Type[Any]] = {
    EventType.STAKED: Staked,
    EventType.POSITION_INCREASED: PositionIncreased,
    EventType.WITHDRAWN: Withdrawn,
    EventType.BULK_WITHDRAWN: BulkWithdrawn,
    EventType.REWARD_CLAIMED: RewardClaimed,
    EventType.FORCE_WITHDRAWN: ForceWithdrawn,
    EventType.REWARD_RATE_CHANGED: RewardRateChanged,
    EventType.LOCK_PERIOD_CHANGED: LockPeriodChanged,
    EventType.PAUSED_CHANGED: PausedChanged,
}


def event_from_dict(d: Mapping[str, Any]) -> LedgerEvent:
    """Inverse of `<event>.to_dict()`."""
    data = dict(d)
    etype = EventType(data.pop("etype"))
    cls = _BY_TYPE[etype]
    return cls(etype=etype, **data)


__all__ = [
    "EventType",
    "Staked",
    "PositionIncreased",
    "Withdrawn",
    "BulkWithdrawn",
    "RewardClaimed",
    "ForceWithdrawn",
    "RewardRateChanged",
    "LockPeriodChanged",
    "PausedChanged",
    "LedgerEvent",
    "event_from_dict",
]
