from __future__ import annotations

"""
Position and payout records.

- Position is the mutable storage record for one staking commitment.
- PositionView is the frozen, display-oriented projection returned by queries.
- Payout describes what a withdrawal or claim sent out, split by source.

This module is intentionally small and pure (no I/O, no clock).
"""


from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional


@dataclass
class Position:
    """
    One staking commitment. A position with size == 0 is closed and is read
    the same way as a slot that was never written.
    """

    size: int = 0
    start_time: int = 0
    accrued_reward: int = 0
    last_claim_time: int = 0

    @property
    def is_open(self) -> bool:
        return self.size > 0

    def clear(self) -> None:
        self.size = 0
        self.start_time = 0
        self.accrued_reward = 0
        self.last_claim_time = 0

    def copy(self) -> "Position":
        return Position(
            size=self.size,
            start_time=self.start_time,
            accrued_reward=self.accrued_reward,
            last_claim_time=self.last_claim_time,
        )

    def validate(self) -> None:
        for name in ("size", "start_time", "accrued_reward", "last_claim_time"):
            v = getattr(self, name)
            if not isinstance(v, int) or v < 0:
                raise ValueError(f"{name} must be a non-negative int, got {v!r}")

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "Position":
        p = Position(
            size=int(d.get("size", 0)),
            start_time=int(d.get("start_time", 0)),
            accrued_reward=int(d.get("accrued_reward", 0)),
            last_claim_time=int(d.get("last_claim_time", 0)),
        )
        p.validate()
        return p


@dataclass(frozen=True)
class PositionView:
    account: str
    position_id: int
    size: int
    start_time: int
    accrued_reward: int
    last_claim_time: int
    pending_reward: int
    unlock_time: int

    @property
    def is_open(self) -> bool:
        return self.size > 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Payout:
    """
    Amounts sent to `account` by one ledger operation.

    `principal_token` / `reward_token` name the token each part left through;
    they are equal when principal and reward travel in a single transfer.
    """

    account: str
    principal: int
    reward: int
    principal_token: str
    reward_token: str
    position_ids: tuple = ()
    at: Optional[int] = None

    @property
    def total(self) -> int:
        return self.principal + self.reward

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account": self.account,
            "principal": self.principal,
            "reward": self.reward,
            "total": self.total,
            "principal_token": self.principal_token,
            "reward_token": self.reward_token,
            "position_ids": list(self.position_ids),
            "at": self.at,
        }


__all__ = ["Position", "PositionView", "Payout"]
