from __future__ import annotations

import json

from stakeledger import errors

ALL = [
    errors.ZeroAmount,
    errors.InsufficientBalance,
    errors.NoPosition,
    errors.PositionEmpty,
    errors.LockNotElapsed,
    errors.Paused,
    errors.TransferFailed,
    errors.Unauthorized,
    errors.ReentrantCall,
    errors.InvalidParameter,
    errors.InvariantViolation,
]


def test_codes_are_unique_and_prefixed():
    codes = [cls.code for cls in ALL]
    assert len(set(codes)) == len(codes)
    assert all(c.startswith("STAKE_") for c in codes)
    assert all(issubclass(cls, errors.StakeLedgerError) for cls in ALL)


def test_lock_not_elapsed_payload():
    e = errors.LockNotElapsed(account="alice", position_id=0, unlock_time=200, now=150)
    d = e.to_dict()
    assert d["code"] == "STAKE_LOCK_NOT_ELAPSED"
    assert d["details"] == {"account": "alice", "position_id": 0, "unlock_time": 200, "now": 150}
    json.dumps(d)
    assert str(e).startswith("STAKE_LOCK_NOT_ELAPSED: ")


def test_optional_fields_are_omitted():
    e = errors.NoPosition(account="alice")
    assert e.details == {"account": "alice"}
    assert errors.Paused().details == {}
    assert str(errors.Paused()) == "STAKE_PAUSED: ledger is paused"


def test_invalid_parameter_carries_name_and_value():
    e = errors.InvalidParameter("bad rate", name="rate_percent", value=-1)
    assert e.message == "bad rate"
    assert e.details == {"name": "rate_percent", "value": -1}
