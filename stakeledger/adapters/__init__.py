"""
Capabilities the staking ledger consumes from its environment: a clock,
fungible tokens, access control and a pause switch. Each is a small Protocol
with one or two concrete implementations suitable for tests, the CLI, and
embedding.
"""

from .access import AccessControl, OwnerAccess, RoleAccess, access_from_dict
from .clock import Clock, ManualClock, SystemClock
from .pause import Pausable, PauseSwitch
from .token import FungibleToken, InMemoryToken, TokenHandle

__all__ = [
    "AccessControl",
    "OwnerAccess",
    "RoleAccess",
    "access_from_dict",
    "Clock",
    "ManualClock",
    "SystemClock",
    "Pausable",
    "PauseSwitch",
    "FungibleToken",
    "InMemoryToken",
    "TokenHandle",
]
