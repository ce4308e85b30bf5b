# -*- coding: utf-8 -*-
"""
stakeledger.adapters.token
==========================

Fungible-token capability consumed by the ledger, plus a deterministic,
float-free in-memory implementation used by tests, simulations and the CLI.

Capability (what the ledger calls)
----------------------------------
balance_of(account) -> int
transfer_from(src, dst, amount) -> bool    # ledger pulls `amount` from `src`
transfer(dst, amount) -> bool              # ledger pays `amount` out

A `False` return (or an exception) is a failed transfer; the ledger treats
both the same way and rolls back its own storage.

InMemoryToken (ERC-20-like)
---------------------------
# metadata
name, symbol, decimals, total_supply()
balance_of(addr), allowance(owner, spender)

# state-changing (explicit caller)
transfer(caller, to, amount) -> bool
approve(caller, spender, amount) -> bool
transfer_from(caller, owner, to, amount) -> bool
mint(to, amount), burn(owner, amount)

`bind(holder)` returns a `TokenHandle`: the capability view of the token as
seen by `holder` (the ledger address), which acts as spender for
`transfer_from` and as sender for `transfer`.

Notes
-----
- Insufficient balance / allowance returns False instead of raising, so the
  caller has to check the result.
- Transfer listeners run after balances move; if one raises, the move is
  undone and the exception propagates. They exist so tests can observe (and
  attempt to re-enter) the ledger from inside a transfer.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Protocol, Tuple

log = logging.getLogger(__name__)

TransferListener = Callable[[str, str, int], None]


class FungibleToken(Protocol):
    name: str

    def balance_of(self, account: str) -> int: ...
    def transfer_from(self, src: str, dst: str, amount: int) -> bool: ...
    def transfer(self, dst: str, amount: int) -> bool: ...


def _require_amount(amount: int) -> int:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
        raise ValueError(f"amount must be a non-negative int, got {amount!r}")
    return amount


def _require_address(addr: str) -> str:
    if not isinstance(addr, str) or not addr:
        raise ValueError(f"address must be a non-empty string, got {addr!r}")
    return addr


class InMemoryToken:
    """Storage-backed (dict) fungible token ledger."""

    def __init__(self, name: str, symbol: str, decimals: int = 18) -> None:
        if not name or not symbol:
            raise ValueError("name and symbol are required")
        if decimals < 0:
            raise ValueError("decimals must be >= 0")
        self.name = name
        self.symbol = symbol.upper()
        self.decimals = int(decimals)
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._total = 0
        self._listeners: List[TransferListener] = []

    # --- views ---

    def total_supply(self) -> int:
        return self._total

    def balance_of(self, addr: str) -> int:
        return self._balances.get(_require_address(addr), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((_require_address(owner), _require_address(spender)), 0)

    # --- supply control ---

    def mint(self, to: str, amount: int) -> int:
        _require_address(to)
        _require_amount(amount)
        self._balances[to] = self._balances.get(to, 0) + amount
        self._total += amount
        log.debug("token %s: mint to=%s amount=%d", self.symbol, to, amount)
        return self._balances[to]

    def burn(self, owner: str, amount: int) -> bool:
        _require_address(owner)
        _require_amount(amount)
        bal = self._balances.get(owner, 0)
        if bal < amount:
            return False
        self._balances[owner] = bal - amount
        self._total -= amount
        return True

    # --- transfers (explicit caller) ---

    def approve(self, caller: str, spender: str, amount: int) -> bool:
        _require_address(caller)
        _require_address(spender)
        _require_amount(amount)
        self._allowances[(caller, spender)] = amount
        return True

    def transfer(self, caller: str, to: str, amount: int) -> bool:
        _require_address(caller)
        _require_address(to)
        _require_amount(amount)
        if self._balances.get(caller, 0) < amount:
            log.debug("token %s: transfer rejected from=%s amount=%d (balance low)", self.symbol, caller, amount)
            return False
        self._move(caller, to, amount)
        return True

    def transfer_from(self, caller: str, owner: str, to: str, amount: int) -> bool:
        """
        Spender (`caller`) transfers `amount` from `owner` to `to` using allowance.
        """
        _require_address(caller)
        _require_address(owner)
        _require_address(to)
        _require_amount(amount)
        key = (owner, caller)
        current_allow = self._allowances.get(key, 0)
        if current_allow < amount:
            log.debug("token %s: transfer_from rejected owner=%s spender=%s (allowance low)",
                      self.symbol, owner, caller)
            return False
        if self._balances.get(owner, 0) < amount:
            log.debug("token %s: transfer_from rejected owner=%s (balance low)", self.symbol, owner)
            return False
        self._allowances[key] = current_allow - amount
        try:
            self._move(owner, to, amount)
        except BaseException:
            self._allowances[key] = current_allow
            raise
        return True

    def _move(self, src: str, dst: str, amount: int) -> None:
        self._balances[src] = self._balances.get(src, 0) - amount
        self._balances[dst] = self._balances.get(dst, 0) + amount
        try:
            for fn in list(self._listeners):
                fn(src, dst, amount)
        except BaseException:
            self._balances[dst] -= amount
            self._balances[src] += amount
            raise

    # --- listeners ---

    def add_listener(self, fn: TransferListener) -> None:
        self._listeners.append(fn)

    def remove_listener(self, fn: TransferListener) -> None:
        self._listeners.remove(fn)

    # --- capability view ---

    def bind(self, holder: str) -> "TokenHandle":
        return TokenHandle(self, holder)

    # --- load/save ---

    def dump(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": self._total,
            "balances": {k: v for k, v in sorted(self._balances.items()) if v},
            "allowances": [
                {"owner": o, "spender": s, "amount": a}
                for (o, s), a in sorted(self._allowances.items())
                if a
            ],
        }

    @classmethod
    def load(cls, data: Mapping[str, Any]) -> "InMemoryToken":
        tok = cls(str(data["name"]), str(data["symbol"]), int(data.get("decimals", 18)))
        for k, v in (data.get("balances") or {}).items():
            tok._balances[str(k)] = _require_amount(int(v))
        for a in data.get("allowances") or []:
            tok._allowances[(str(a["owner"]), str(a["spender"]))] = _require_amount(int(a["amount"]))
        tok._total = sum(tok._balances.values())
        declared = data.get("total_supply")
        if declared is not None and int(declared) != tok._total:
            raise ValueError(f"total_supply mismatch: declared={declared} balances={tok._total}")
        return tok


class TokenHandle:
    """`FungibleToken` capability bound to one holder (the ledger address)."""

    def __init__(self, token: InMemoryToken, holder: str) -> None:
        self._token = token
        self.holder = _require_address(holder)

    @property
    def name(self) -> str:
        return self._token.symbol

    @property
    def token(self) -> InMemoryToken:
        return self._token

    def balance_of(self, account: str) -> int:
        return self._token.balance_of(account)

    def transfer_from(self, src: str, dst: str, amount: int) -> bool:
        return self._token.transfer_from(self.holder, src, dst, amount)

    def transfer(self, dst: str, amount: int) -> bool:
        return self._token.transfer(self.holder, dst, amount)


__all__ = ["FungibleToken", "InMemoryToken", "TokenHandle", "TransferListener"]
