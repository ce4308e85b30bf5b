from __future__ import annotations

"""
stakeledger.rpc.mount
---------------------

Helpers to mount the ledger RPC surface into an existing FastAPI app and/or to
register the JSON-RPC methods with your dispatcher.

Typical usage (REST):
    from fastapi import FastAPI
    from stakeledger.rpc.mount import mount_ledger
    app = FastAPI()
    mount_ledger(app, ledger, prefix="/stake")

Typical usage (JSON-RPC):
    from stakeledger.rpc.mount import register_jsonrpc
    register_jsonrpc(dispatcher, ledger)

The dispatcher only needs an `.add(name, callable)` or
`.register(name, callable)` method.
"""

from typing import Any, Protocol

from . import RPC_PREFIX, STAKE_OPENAPI_TAG
from .methods import build_rest_router, make_methods
from stakeledger.ledger.ledger import StakeLedger


class _JsonRpcDispatcherLike(Protocol):
    """Minimal protocol to support common JSON-RPC dispatchers."""
    def add(self, method: str, func: Any) -> None: ...
    def register(self, method: str, func: Any) -> None: ...


def mount_ledger(app: Any, ledger: StakeLedger, *, prefix: str = RPC_PREFIX) -> None:
    """
    Mount the ledger REST endpoints under `prefix` on a FastAPI app.

    Parameters
    ----------
    app : fastapi.FastAPI
        Your FastAPI application instance.
    ledger : StakeLedger
        The ledger the endpoints operate on.
    prefix : str
        URL prefix for the mounted router (default: "/stake").
    """
    router = build_rest_router(ledger)
    app.include_router(router, prefix=prefix, tags=[STAKE_OPENAPI_TAG["name"]])


def register_jsonrpc(dispatcher: _JsonRpcDispatcherLike, ledger: StakeLedger) -> int:
    """
    Register the stake.* JSON-RPC methods on a dispatcher and return how many
    were registered. Tries `.add(name, fn)` first, then `.register(name, fn)`.
    """
    methods = make_methods(ledger)
    for name, fn in methods.items():
        try:
            dispatcher.add(name, fn)  # type: ignore[attr-defined]
        except AttributeError:
            dispatcher.register(name, fn)  # type: ignore[attr-defined]
    return len(methods)


__all__ = ["mount_ledger", "register_jsonrpc"]
