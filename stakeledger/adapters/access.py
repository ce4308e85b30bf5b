# -*- coding: utf-8 -*-
"""
stakeledger.adapters.access
===========================

Access-control capability for the ledger's administrator-only operations.

The ledger only ever asks one question, `is_administrator(caller)`. Two
implementations are provided:

- ``OwnerAccess``: a single owner (Ownable-style) with
  ``transfer_ownership`` / ``renounce_ownership``.
- ``RoleAccess``: an admin set; the owner (if any) is implicitly an admin
  and is the only one allowed to grant/revoke.

Both raise ``Unauthorized`` from their own mutators, and both are
idempotent: granting an existing admin or revoking a missing one is a no-op.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Set

from stakeledger.errors import InvalidParameter, Unauthorized

log = logging.getLogger(__name__)


class AccessControl(Protocol):
    def is_administrator(self, caller: str) -> bool: ...


class OwnerAccess:
    """Single-owner access control."""

    def __init__(self, owner: Optional[str]) -> None:
        self._owner = owner or None

    @property
    def owner(self) -> Optional[str]:
        return self._owner

    def is_administrator(self, caller: str) -> bool:
        return self._owner is not None and caller == self._owner

    def require_owner(self, caller: str) -> None:
        if not self.is_administrator(caller):
            raise Unauthorized(caller=caller, operation="owner")

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self.require_owner(caller)
        if not new_owner:
            # renounce_ownership() is the explicit way to leave no owner
            raise InvalidParameter("new owner must be non-empty", name="new_owner")
        previous, self._owner = self._owner, new_owner
        log.info("access: ownership transferred previous=%s new=%s", previous, new_owner)

    def renounce_ownership(self, caller: str) -> None:
        self.require_owner(caller)
        log.info("access: ownership renounced previous=%s", self._owner)
        self._owner = None

    def dump(self) -> Dict[str, Any]:
        return {"kind": "owner", "owner": self._owner}


class RoleAccess:
    """Administrator set; the owner is a super-admin who manages the set."""

    def __init__(self, admins: Iterable[str] = (), *, owner: Optional[str] = None) -> None:
        self._owner = owner or None
        self._admins: Set[str] = {a for a in admins if a}

    @property
    def owner(self) -> Optional[str]:
        return self._owner

    def admins(self) -> Set[str]:
        return set(self._admins)

    def is_administrator(self, caller: str) -> bool:
        if self._owner is not None and caller == self._owner:
            return True
        return caller in self._admins

    def _require_manager(self, caller: str, operation: str) -> None:
        if self._owner is None or caller != self._owner:
            raise Unauthorized(caller=caller, operation=operation)

    def grant(self, caller: str, account: str) -> bool:
        self._require_manager(caller, "grant")
        if not account:
            raise InvalidParameter("account must be non-empty", name="account")
        if account in self._admins:
            return False
        self._admins.add(account)
        log.info("access: admin granted account=%s by=%s", account, caller)
        return True

    def revoke(self, caller: str, account: str) -> bool:
        self._require_manager(caller, "revoke")
        if account not in self._admins:
            return False
        self._admins.discard(account)
        log.info("access: admin revoked account=%s by=%s", account, caller)
        return True

    def dump(self) -> Dict[str, Any]:
        return {"kind": "roles", "owner": self._owner, "admins": sorted(self._admins)}


def access_from_dict(data: Mapping[str, Any]) -> "OwnerAccess | RoleAccess":
    kind = data.get("kind", "owner")
    if kind == "owner":
        return OwnerAccess(data.get("owner"))
    if kind == "roles":
        return RoleAccess(data.get("admins") or (), owner=data.get("owner"))
    raise InvalidParameter("unknown access kind", name="kind", value=kind)


__all__ = ["AccessControl", "OwnerAccess", "RoleAccess", "access_from_dict"]
