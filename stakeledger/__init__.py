from __future__ import annotations
"""
stakeledger - token-staking ledger package.

Accounts deposit a fungible asset into timed positions, accrue a
whole-year percentage reward in a second asset, and withdraw principal plus
reward after a minimum lock period. Submodules are lazily imported to keep
import time minimal.

Public surface (lazily loaded):
- config, errors, metrics
- ledger, ledgertypes, adapters
- rpc, cli
"""


import importlib
from typing import List

from .version import __version__

__all__: List[str] = [
    "__version__",
    # lazily importable subpackages/modules
    "config",
    "errors",
    "metrics",
    "ledger",
    "ledgertypes",
    "adapters",
    "rpc",
    "cli",
]

# --- Lazy module loader (PEP 562) -------------------------------------------------

_lazy_modules = set(__all__) - {"__version__"}


def __getattr__(name: str):
    if name in _lazy_modules:
        return importlib.import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(set(globals().keys()) | _lazy_modules)


def get_version() -> str:
    """Return the stakeledger package version string."""
    return __version__
