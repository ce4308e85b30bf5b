from __future__ import annotations

"""
Staking ledger core: storage (`state`), reward math (`rewards`) and the
operation surface (`ledger.StakeLedger`).
"""

from .ledger import StakeLedger
from .rewards import SECONDS_PER_YEAR, reward_for, whole_years
from .state import LedgerState

__all__ = ["StakeLedger", "LedgerState", "SECONDS_PER_YEAR", "reward_for", "whole_years"]
