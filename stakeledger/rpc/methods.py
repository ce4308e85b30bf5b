from __future__ import annotations

"""
stakeledger.rpc.methods
-----------------------

JSON-RPC style method implementations for the staking ledger.

Exposed methods (bind via `make_methods`):
  • stake.openPosition      • stake.getPosition
  • stake.addToPosition     • stake.listPositions
  • stake.withdraw          • stake.pendingReward
  • stake.withdrawAll       • stake.info
  • stake.claim
  admin (caller must be an administrator):
  • stake.setRewardRate     • stake.pause
  • stake.setLockPeriod     • stake.unpause
  • stake.forceWithdrawAll

Design:
  - This module is transport-agnostic. It returns a dict of callables that a
    JSON-RPC dispatcher can register. `build_rest_router` exposes the same
    callables via FastAPI REST.
  - Caller identity is an argument (`account` for user operations, `caller`
    for admin ones). Authenticating it is the transport's job.
  - Ledger errors propagate unchanged; the REST adapter maps their codes to
    HTTP statuses.

Usage:
    from stakeledger.rpc.methods import make_methods
    methods = make_methods(ledger)
    dispatcher.register_many(methods)
"""

import re
from typing import Any, Callable, Dict, Optional

from stakeledger.errors import (
    InvalidParameter,
    LockNotElapsed,
    NoPosition,
    Paused,
    PositionEmpty,
    ReentrantCall,
    StakeLedgerError,
    TransferFailed,
    Unauthorized,
)
from stakeledger.ledger.ledger import StakeLedger


# ---- Helpers ---------------------------------------------------------------

_INT_RE = re.compile(r"-?[0-9]+")


def _coerce_int(value: Any, name: str, *, minimum: int = 0) -> int:
    # ints and base-10 integer strings only; floats are refused rather than truncated
    if isinstance(value, int) and not isinstance(value, bool):
        iv = value
    elif isinstance(value, str) and _INT_RE.fullmatch(value.strip()):
        iv = int(value.strip())
    else:
        raise InvalidParameter(f"invalid {name}: must be an integer", name=name, value=repr(value))
    if iv < minimum:
        raise InvalidParameter(f"invalid {name}: must be >= {minimum}", name=name, value=iv)
    return iv


def _require_str(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidParameter(f"{name} is required", name=name)
    return value


# ---- JSON-RPC method factory ----------------------------------------------

def make_methods(ledger: StakeLedger) -> Dict[str, Callable[..., Any]]:
    """
    Build a mapping of JSON-RPC method name -> callable.
    Each callable returns plain JSON-serializable structures.
    """

    def stake_open_position(*, account: str, amount: Any) -> Dict[str, Any]:
        acct = _require_str(account, "account")
        pid = ledger.open_or_extend_position(acct, _coerce_int(amount, "amount"))
        return ledger.get_position(acct, pid).to_dict()

    def stake_add_to_position(*, account: str, positionId: Any, amount: Any) -> Dict[str, Any]:
        acct = _require_str(account, "account")
        pid = _coerce_int(positionId, "positionId")
        ledger.add_to_position(acct, pid, _coerce_int(amount, "amount"))
        return ledger.get_position(acct, pid).to_dict()

    def stake_withdraw(*, account: str, positionId: Any) -> Dict[str, Any]:
        acct = _require_str(account, "account")
        return ledger.withdraw_position(acct, _coerce_int(positionId, "positionId")).to_dict()

    def stake_withdraw_all(*, account: str) -> Dict[str, Any]:
        return ledger.withdraw_all_eligible(_require_str(account, "account")).to_dict()

    def stake_claim(*, account: str, positionId: Any) -> Dict[str, Any]:
        acct = _require_str(account, "account")
        pid = _coerce_int(positionId, "positionId")
        reward = ledger.claim_rewards(acct, pid)
        return {"account": acct, "positionId": pid, "reward": reward}

    def stake_get_position(*, account: str, positionId: Any) -> Dict[str, Any]:
        acct = _require_str(account, "account")
        return ledger.get_position(acct, _coerce_int(positionId, "positionId")).to_dict()

    def stake_list_positions(*, account: str, includeClosed: bool = False) -> Dict[str, Any]:
        acct = _require_str(account, "account")
        items = [v.to_dict() for v in ledger.list_positions(acct, include_closed=bool(includeClosed))]
        return {"account": acct, "items": items}

    def stake_pending_reward(*, account: str, positionId: Any) -> Dict[str, Any]:
        acct = _require_str(account, "account")
        pid = _coerce_int(positionId, "positionId")
        return {
            "account": acct,
            "positionId": pid,
            "withdrawable": ledger.pending_reward(acct, pid),
            "claimable": ledger.claimable_reward(acct, pid),
        }

    def stake_info() -> Dict[str, Any]:
        return ledger.info()

    def stake_set_reward_rate(*, caller: str, ratePercent: Any) -> Dict[str, Any]:
        new = _coerce_int(ratePercent, "ratePercent")
        old = ledger.set_reward_rate(_require_str(caller, "caller"), new)
        return {"old": old, "new": new}

    def stake_set_lock_period(*, caller: str, seconds: Any) -> Dict[str, Any]:
        new = _coerce_int(seconds, "seconds")
        old = ledger.set_lock_period(_require_str(caller, "caller"), new)
        return {"old": old, "new": new}

    def stake_pause(*, caller: str) -> Dict[str, Any]:
        changed = ledger.pause(_require_str(caller, "caller"))
        return {"paused": ledger.paused, "changed": changed}

    def stake_unpause(*, caller: str) -> Dict[str, Any]:
        changed = ledger.unpause(_require_str(caller, "caller"))
        return {"paused": ledger.paused, "changed": changed}

    def stake_force_withdraw_all(*, caller: str) -> Dict[str, Any]:
        return ledger.admin_force_withdraw_all(_require_str(caller, "caller"))

    # Map JSON-RPC names → callables
    return {
        "stake.openPosition": stake_open_position,
        "stake.addToPosition": stake_add_to_position,
        "stake.withdraw": stake_withdraw,
        "stake.withdrawAll": stake_withdraw_all,
        "stake.claim": stake_claim,
        "stake.getPosition": stake_get_position,
        "stake.listPositions": stake_list_positions,
        "stake.pendingReward": stake_pending_reward,
        "stake.info": stake_info,
        "stake.setRewardRate": stake_set_reward_rate,
        "stake.setLockPeriod": stake_set_lock_period,
        "stake.pause": stake_pause,
        "stake.unpause": stake_unpause,
        "stake.forceWithdrawAll": stake_force_withdraw_all,
    }


# ---- HTTP status mapping ---------------------------------------------------

_STATUS_BY_ERROR = (
    (NoPosition, 404),
    (Unauthorized, 403),
    (Paused, 503),
    (LockNotElapsed, 409),
    (PositionEmpty, 409),
    (ReentrantCall, 409),
    (TransferFailed, 502),
)


def http_status_for(err: StakeLedgerError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(err, cls):
            return status
    return 400


# ---- REST adapter (FastAPI) ------------------------------------------------

CALLER_HEADER = "X-Stake-Caller"


def build_rest_router(ledger: StakeLedger, *, methods: Optional[Dict[str, Callable[..., Any]]] = None):
    """
    Return a FastAPI APIRouter exposing the ledger.

    The acting account is taken from the `X-Stake-Caller` header; put an
    authenticating proxy or dependency in front of it in real deployments.
    """
    from fastapi import APIRouter, Header, HTTPException, Query

    m = methods or make_methods(ledger)
    router = APIRouter()

    def call(name: str, **kwargs: Any) -> Any:
        try:
            return m[name](**kwargs)
        except StakeLedgerError as e:
            raise HTTPException(status_code=http_status_for(e), detail=e.to_dict()) from e

    @router.get("/info")
    def http_info():
        return call("stake.info")

    @router.get("/accounts/{account}/positions")
    def http_list_positions(account: str, include_closed: bool = Query(False)):
        return call("stake.listPositions", account=account, includeClosed=include_closed)

    @router.get("/accounts/{account}/positions/{position_id}")
    def http_get_position(account: str, position_id: int):
        return call("stake.getPosition", account=account, positionId=position_id)

    @router.get("/accounts/{account}/positions/{position_id}/reward")
    def http_pending_reward(account: str, position_id: int):
        return call("stake.pendingReward", account=account, positionId=position_id)

    @router.post("/positions")
    def http_open_position(amount: int = Query(..., ge=0), caller: str = Header(..., alias=CALLER_HEADER)):
        return call("stake.openPosition", account=caller, amount=amount)

    @router.post("/positions/{position_id}/add")
    def http_add_to_position(
        position_id: int,
        amount: int = Query(..., ge=0),
        caller: str = Header(..., alias=CALLER_HEADER),
    ):
        return call("stake.addToPosition", account=caller, positionId=position_id, amount=amount)

    @router.post("/positions/{position_id}/withdraw")
    def http_withdraw(position_id: int, caller: str = Header(..., alias=CALLER_HEADER)):
        return call("stake.withdraw", account=caller, positionId=position_id)

    @router.post("/positions/withdraw-all")
    def http_withdraw_all(caller: str = Header(..., alias=CALLER_HEADER)):
        return call("stake.withdrawAll", account=caller)

    @router.post("/positions/{position_id}/claim")
    def http_claim(position_id: int, caller: str = Header(..., alias=CALLER_HEADER)):
        return call("stake.claim", account=caller, positionId=position_id)

    @router.post("/admin/reward-rate")
    def http_set_reward_rate(rate_percent: int = Query(..., ge=0), caller: str = Header(..., alias=CALLER_HEADER)):
        return call("stake.setRewardRate", caller=caller, ratePercent=rate_percent)

    @router.post("/admin/lock-period")
    def http_set_lock_period(seconds: int = Query(..., ge=0), caller: str = Header(..., alias=CALLER_HEADER)):
        return call("stake.setLockPeriod", caller=caller, seconds=seconds)

    @router.post("/admin/pause")
    def http_pause(caller: str = Header(..., alias=CALLER_HEADER)):
        return call("stake.pause", caller=caller)

    @router.post("/admin/unpause")
    def http_unpause(caller: str = Header(..., alias=CALLER_HEADER)):
        return call("stake.unpause", caller=caller)

    @router.post("/admin/force-withdraw-all")
    def http_force_withdraw_all(caller: str = Header(..., alias=CALLER_HEADER)):
        return call("stake.forceWithdrawAll", caller=caller)

    return router


__all__ = [
    "CALLER_HEADER",
    "make_methods",
    "http_status_for",
    "build_rest_router",
]
