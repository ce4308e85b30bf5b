from __future__ import annotations
# stakeledger/errors.py
"""
Error types for the staking ledger. Every ledger rejection is one of these;
they are lightweight, serializable, and safe to surface over RPC/logs.

Exports:
- StakeLedgerError (base)
- ZeroAmount, InsufficientBalance
- NoPosition, PositionEmpty, LockNotElapsed
- Paused, TransferFailed, Unauthorized
- ReentrantCall, InvalidParameter, InvariantViolation
"""


import json
from typing import Any, Dict, Mapping, Optional


class StakeLedgerError(Exception):
    """Base class for staking ledger domain errors."""

    code: str = "STAKE_ERROR"

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.__str__())

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.details:
            # Keep this compact and stable for logs
            packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"), default=str)
            return f"{self.code}: {self.message} [{packed}]"
        return f"{self.code}: {self.message}"


def _with(details: Optional[Mapping[str, Any]], **fields: Any) -> Dict[str, Any]:
    d = dict(details or {})
    for k, v in fields.items():
        if v is not None:
            d.setdefault(k, v)
    return d


class ZeroAmount(StakeLedgerError):
    """A stake/add amount of zero (or less) was supplied."""
    code = "STAKE_ZERO_AMOUNT"

    def __init__(
        self,
        *,
        amount: int = 0,
        message: str = "amount must be positive",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_with(details, amount=int(amount)))


class InsufficientBalance(StakeLedgerError):
    """Caller's external token balance is below the requested transfer-in amount."""
    code = "STAKE_INSUFFICIENT_BALANCE"

    def __init__(
        self,
        *,
        account: str,
        required: int,
        available: int,
        message: str = "insufficient token balance",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            details=_with(details, account=account, required=int(required), available=int(available)),
        )


class NoPosition(StakeLedgerError):
    """The account has never opened a position, or the position id is out of range."""
    code = "STAKE_NO_POSITION"

    def __init__(
        self,
        *,
        account: str,
        position_id: Optional[int] = None,
        message: str = "no position",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_with(details, account=account, position_id=position_id))


class PositionEmpty(StakeLedgerError):
    """Targeted position has zero size (already withdrawn or never funded)."""
    code = "STAKE_POSITION_EMPTY"

    def __init__(
        self,
        *,
        account: str,
        position_id: int,
        message: str = "position is empty",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_with(details, account=account, position_id=int(position_id)))


class LockNotElapsed(StakeLedgerError):
    """Withdrawal attempted before the lock period has passed since start_time."""
    code = "STAKE_LOCK_NOT_ELAPSED"

    def __init__(
        self,
        *,
        account: str,
        position_id: int,
        unlock_time: int,
        now: int,
        message: str = "lock period not elapsed",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            details=_with(
                details,
                account=account,
                position_id=int(position_id),
                unlock_time=int(unlock_time),
                now=int(now),
            ),
        )


class Paused(StakeLedgerError):
    """The ledger is paused; no user-facing mutating operation proceeds."""
    code = "STAKE_PAUSED"

    def __init__(
        self,
        *,
        operation: Optional[str] = None,
        message: str = "ledger is paused",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_with(details, operation=operation))


class TransferFailed(StakeLedgerError):
    """The underlying token-transfer capability reported failure."""
    code = "STAKE_TRANSFER_FAILED"

    def __init__(
        self,
        *,
        token: str,
        src: str,
        dst: str,
        amount: int,
        reason: Optional[str] = None,
        message: str = "token transfer failed",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            details=_with(details, token=token, src=src, dst=dst, amount=int(amount), reason=reason),
        )


class Unauthorized(StakeLedgerError):
    """Administrator-only operation invoked by a non-administrator."""
    code = "STAKE_UNAUTHORIZED"

    def __init__(
        self,
        *,
        caller: str,
        operation: Optional[str] = None,
        message: str = "caller is not an administrator",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_with(details, caller=caller, operation=operation))


class ReentrantCall(StakeLedgerError):
    """A ledger operation was invoked while another one is still in flight."""
    code = "STAKE_REENTRANT_CALL"

    def __init__(
        self,
        *,
        operation: str,
        in_flight: Optional[str] = None,
        message: str = "re-entrant ledger call rejected",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_with(details, operation=operation, in_flight=in_flight))


class InvalidParameter(StakeLedgerError):
    """An administrative parameter or query argument is out of range."""
    code = "STAKE_INVALID_PARAMETER"

    def __init__(
        self,
        message: str = "invalid parameter",
        *,
        name: Optional[str] = None,
        value: Any = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_with(details, name=name, value=value))


class InvariantViolation(StakeLedgerError):
    """Ledger storage no longer satisfies its bookkeeping invariants."""
    code = "STAKE_INVARIANT_VIOLATION"


__all__ = [
    "StakeLedgerError",
    "ZeroAmount",
    "InsufficientBalance",
    "NoPosition",
    "PositionEmpty",
    "LockNotElapsed",
    "Paused",
    "TransferFailed",
    "Unauthorized",
    "ReentrantCall",
    "InvalidParameter",
    "InvariantViolation",
]
