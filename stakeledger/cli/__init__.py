from __future__ import annotations

"""
stakeledger.cli
---------------

Command-line front end for a staking ledger kept in a local JSON state file
(ledger storage, both token ledgers, the manual clock and access config).

    stakeledger init --admin admin --rate 10 --lock-seconds 604800
    stakeledger mint --to alice --amount 1000
    stakeledger approve --owner alice --amount 1000
    stakeledger stake --account alice --amount 1000
    stakeledger advance --days 730
    stakeledger withdraw --account alice --position-id 0
"""

from .main import app

__all__ = ["app"]
