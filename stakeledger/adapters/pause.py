# -*- coding: utf-8 -*-
"""
stakeledger.adapters.pause
==========================

Global pause switch checked at the top of every user-facing mutating ledger
operation.

- The paused flag is a single boolean shared by the whole ledger.
- Who may flip it is decided by the ledger's access-control capability; the
  switch itself is just state.
- ``set_paused`` is idempotent and reports whether the flag changed, so the
  ledger only journals real transitions.
"""
from __future__ import annotations

from typing import Protocol


class Pausable(Protocol):
    def is_paused(self) -> bool: ...
    def set_paused(self, flag: bool) -> bool: ...


class PauseSwitch:
    def __init__(self, paused: bool = False) -> None:
        self._paused = bool(paused)

    def is_paused(self) -> bool:
        return self._paused

    def set_paused(self, flag: bool) -> bool:
        flag = bool(flag)
        if flag == self._paused:
            return False
        self._paused = flag
        return True

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"PauseSwitch(paused={self._paused})"


__all__ = ["Pausable", "PauseSwitch"]
