from __future__ import annotations

"""
Staking ledger storage
----------------------

Single, explicitly-owned container for every piece of ledger storage:

  • positions       account → {position_id → Position}   (two-level, sparse)
  • position_count  account → next unused position id
  • total_staked    incrementally maintained sum of open position sizes
  • reward_rate_percent / lock_period_seconds   admin parameters
  • known_accounts  append-only, distinct, in first-stake order

It is deliberately storage-agnostic and uses pure-Python data structures with
explicit serialization helpers. Persistence is delegated to higher layers
(the CLI state file, an embedding service) which snapshot `dump()` and
restore via `load()`.

`atomic()` gives operations all-or-nothing semantics: storage is snapshotted
on entry and restored if the block raises, so a failed token transfer leaves
no trace. Reads of never-written slots return an empty Position, the same
way an unset mapping entry reads.

Amounts are integer base units (no floats). `check_invariants()` verifies
  • total_staked == sum(open sizes)
  • every stored position id < position_count[account]
  • every account with a position is in known_accounts exactly once
"""

import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Tuple

from stakeledger.errors import InvariantViolation
from stakeledger.ledgertypes.position import Position

log = logging.getLogger(__name__)


@dataclass
class LedgerState:
    reward_rate_percent: int = 0
    lock_period_seconds: int = 0
    total_staked: int = 0
    positions: Dict[str, Dict[int, Position]] = field(default_factory=dict)
    position_count: Dict[str, int] = field(default_factory=dict)
    known_accounts: List[str] = field(default_factory=list)

    # --- reads ---

    def count(self, account: str) -> int:
        return self.position_count.get(account, 0)

    def has_any(self, account: str) -> bool:
        return self.count(account) > 0

    def get(self, account: str, position_id: int) -> Position:
        """Stored position, or a detached empty Position for unwritten slots."""
        slot = self.positions.get(account, {}).get(int(position_id))
        return slot if slot is not None else Position()

    def open_positions(self, account: str) -> List[Tuple[int, Position]]:
        inner = self.positions.get(account, {})
        return [(pid, p) for pid, p in sorted(inner.items()) if p.is_open]

    def open_position_total(self) -> int:
        return sum(1 for inner in self.positions.values() for p in inner.values() if p.is_open)

    # --- writes ---

    def put(self, account: str, position_id: int, position: Position) -> Position:
        self.positions.setdefault(account, {})[int(position_id)] = position
        return position

    def clear(self, account: str, position_id: int) -> None:
        inner = self.positions.get(account)
        if inner is None:
            return
        p = inner.get(int(position_id))
        if p is not None:
            p.clear()

    def allocate_id(self, account: str) -> int:
        """Consume the next position id; registers the account on its first one."""
        pid = self.count(account)
        if pid == 0 and account not in self.known_accounts:
            self.known_accounts.append(account)
        self.position_count[account] = pid + 1
        return pid

    def add_total(self, amount: int) -> int:
        if amount < 0:
            raise InvariantViolation("negative stake delta", details={"amount": amount})
        self.total_staked += amount
        return self.total_staked

    def sub_total(self, amount: int) -> int:
        if amount < 0 or amount > self.total_staked:
            raise InvariantViolation(
                "total_staked would go negative",
                details={"amount": amount, "total_staked": self.total_staked},
            )
        self.total_staked -= amount
        return self.total_staked

    # --- atomicity ---

    def _snapshot(self) -> Dict[str, Any]:
        return {
            "reward_rate_percent": self.reward_rate_percent,
            "lock_period_seconds": self.lock_period_seconds,
            "total_staked": self.total_staked,
            "positions": copy.deepcopy(self.positions),
            "position_count": dict(self.position_count),
            "known_accounts": list(self.known_accounts),
        }

    def _restore(self, snap: Mapping[str, Any]) -> None:
        self.reward_rate_percent = snap["reward_rate_percent"]
        self.lock_period_seconds = snap["lock_period_seconds"]
        self.total_staked = snap["total_staked"]
        self.positions = snap["positions"]
        self.position_count = snap["position_count"]
        self.known_accounts = snap["known_accounts"]

    @contextmanager
    def atomic(self) -> Iterator["LedgerState"]:
        snap = self._snapshot()
        try:
            yield self
        except BaseException:
            self._restore(snap)
            log.debug("state: rolled back to snapshot (total_staked=%d)", self.total_staked)
            raise

    # --- invariants ---

    def check_invariants(self) -> None:
        open_sum = 0
        for account, inner in self.positions.items():
            n = self.count(account)
            for pid, p in inner.items():
                if pid < 0 or pid >= n:
                    raise InvariantViolation(
                        "position id outside allocated range",
                        details={"account": account, "position_id": pid, "count": n},
                    )
                try:
                    p.validate()
                except ValueError as e:
                    raise InvariantViolation(str(e), details={"account": account, "position_id": pid}) from e
                open_sum += p.size
        if open_sum != self.total_staked:
            raise InvariantViolation(
                "total_staked does not match sum of open positions",
                details={"total_staked": self.total_staked, "open_sum": open_sum},
            )
        if len(set(self.known_accounts)) != len(self.known_accounts):
            raise InvariantViolation("duplicate entry in known_accounts")
        for account, n in self.position_count.items():
            if n > 0 and account not in self.known_accounts:
                raise InvariantViolation("account with positions is not known", details={"account": account})

    # --- load/save ---

    def dump(self) -> Dict[str, Any]:
        return {
            "reward_rate_percent": self.reward_rate_percent,
            "lock_period_seconds": self.lock_period_seconds,
            "total_staked": self.total_staked,
            "known_accounts": list(self.known_accounts),
            "position_count": {k: v for k, v in sorted(self.position_count.items())},
            "positions": {
                account: {str(pid): p.to_dict() for pid, p in sorted(inner.items()) if p.is_open}
                for account, inner in sorted(self.positions.items())
            },
        }

    @classmethod
    def load(cls, data: Mapping[str, Any]) -> "LedgerState":
        st = cls(
            reward_rate_percent=int(data.get("reward_rate_percent", 0)),
            lock_period_seconds=int(data.get("lock_period_seconds", 0)),
            total_staked=int(data.get("total_staked", 0)),
            known_accounts=[str(a) for a in data.get("known_accounts", [])],
            position_count={str(k): int(v) for k, v in (data.get("position_count") or {}).items()},
        )
        for account, inner in (data.get("positions") or {}).items():
            for pid, pd in inner.items():
                st.put(str(account), int(pid), Position.from_dict(pd))
        st.check_invariants()
        return st


__all__ = ["LedgerState"]
