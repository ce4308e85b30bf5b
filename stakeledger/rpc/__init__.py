from __future__ import annotations

"""
stakeledger.rpc
---------------

RPC surface for the staking ledger:
  • JSON-RPC method table (`methods.make_methods`)
  • FastAPI REST router and mounting helpers (`mount.mount_ledger`)
"""

from typing import Dict, Final

# Base path under which ledger endpoints are mounted into a host API.
RPC_PREFIX: Final[str] = "/stake"

# Suggested OpenAPI tag used by route modules in this package.
STAKE_OPENAPI_TAG: Final[Dict[str, str]] = {
    "name": "stake",
    "description": "Token staking positions, rewards and administration.",
}

__all__ = [
    "RPC_PREFIX",
    "STAKE_OPENAPI_TAG",
]
