from __future__ import annotations

import pytest

from stakeledger.errors import InvalidParameter, LockNotElapsed, Unauthorized
from stakeledger.rpc.methods import CALLER_HEADER, http_status_for, make_methods
from stakeledger.rpc.mount import register_jsonrpc

from .conftest import ADMIN, WEEK, YEAR

fastapi = pytest.importorskip("fastapi")
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from stakeledger.metrics import mount_fastapi  # noqa: E402
from stakeledger.rpc.mount import mount_ledger  # noqa: E402


def _as(who: str):
    return {CALLER_HEADER: who}


@pytest.fixture
def client(env):
    app = FastAPI()
    mount_ledger(app, env.ledger)
    mount_fastapi(app)
    return TestClient(app)


# ---------------------------------------------------------------- JSON-RPC


def test_method_table_names(env):
    methods = make_methods(env.ledger)
    assert set(methods) == {
        "stake.openPosition", "stake.addToPosition", "stake.withdraw", "stake.withdrawAll",
        "stake.claim", "stake.getPosition", "stake.listPositions", "stake.pendingReward",
        "stake.info", "stake.setRewardRate", "stake.setLockPeriod", "stake.pause",
        "stake.unpause", "stake.forceWithdrawAll",
    }


def test_jsonrpc_flow(env, alice):
    m = make_methods(env.ledger)
    pos = m["stake.openPosition"](account=alice, amount="1000")
    assert pos["size"] == 1_000
    assert pos["position_id"] == 0

    env.clock.advance(2 * YEAR)
    assert m["stake.pendingReward"](account=alice, positionId=0)["withdrawable"] == 200
    assert m["stake.withdraw"](account=alice, positionId=0)["total"] == 1_200
    assert m["stake.listPositions"](account=alice)["items"] == []
    assert m["stake.info"]()["total_staked"] == 0


def test_jsonrpc_admin_and_errors(env, alice):
    m = make_methods(env.ledger)
    assert m["stake.setRewardRate"](caller=ADMIN, ratePercent=15) == {"old": 10, "new": 15}
    assert m["stake.pause"](caller=ADMIN) == {"paused": True, "changed": True}
    assert m["stake.unpause"](caller=ADMIN)["paused"] is False
    with pytest.raises(Unauthorized):
        m["stake.setLockPeriod"](caller=alice, seconds=0)

    m["stake.openPosition"](account=alice, amount=10)
    with pytest.raises(LockNotElapsed):
        m["stake.withdraw"](account=alice, positionId=0)


@pytest.mark.parametrize("amount", [1.9, 2.0, "1.9", "1e3", True, None, ""])
def test_jsonrpc_rejects_non_integer_amounts(env, alice, amount):
    m = make_methods(env.ledger)
    with pytest.raises(InvalidParameter):
        m["stake.openPosition"](account=alice, amount=amount)

    assert env.ledger.total_staked == 0
    assert env.stk(alice) == 1_000_000


def test_jsonrpc_rejects_fractional_top_ups(env, alice):
    m = make_methods(env.ledger)
    m["stake.openPosition"](account=alice, amount=" 1000 ")
    with pytest.raises(InvalidParameter):
        m["stake.addToPosition"](account=alice, positionId=0, amount=0.5)
    with pytest.raises(InvalidParameter):
        m["stake.getPosition"](account=alice, positionId=0.0)

    assert env.ledger.get_position(alice, 0).size == 1_000


def test_register_jsonrpc_uses_register_when_add_missing(env):
    class Dispatcher:
        def __init__(self):
            self.table = {}

        def register(self, name, fn):
            self.table[name] = fn

    d = Dispatcher()
    assert register_jsonrpc(d, env.ledger) == 14
    assert "stake.claim" in d.table


def test_status_mapping():
    assert http_status_for(Unauthorized(caller="x")) == 403
    assert http_status_for(LockNotElapsed(account="a", position_id=0, unlock_time=1, now=0)) == 409


# -------------------------------------------------------------------- REST


def test_rest_stake_and_withdraw(client, env, alice):
    r = client.post("/stake/positions", params={"amount": 1000}, headers=_as(alice))
    assert r.status_code == 200, r.text
    assert r.json()["size"] == 1_000

    r = client.post("/stake/positions/0/withdraw", headers=_as(alice))
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "STAKE_LOCK_NOT_ELAPSED"

    env.clock.advance(WEEK)
    r = client.post("/stake/positions/0/withdraw", headers=_as(alice))
    assert r.status_code == 200
    assert r.json()["principal"] == 1_000

    r = client.get(f"/stake/accounts/{alice}/positions", params={"include_closed": True})
    assert r.status_code == 200
    assert len(r.json()["items"]) == 1


def test_rest_errors(client, alice):
    r = client.get(f"/stake/accounts/{alice}/positions/0")
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "STAKE_NO_POSITION"

    r = client.post("/stake/admin/pause", headers=_as(alice))
    assert r.status_code == 403

    r = client.post("/stake/positions", params={"amount": 0}, headers=_as(alice))
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "STAKE_ZERO_AMOUNT"

    # caller header is required for mutations
    r = client.post("/stake/positions", params={"amount": 10})
    assert r.status_code == 422


def test_rest_paused(client, alice):
    assert client.post("/stake/admin/pause", headers=_as(ADMIN)).json()["paused"] is True
    r = client.post("/stake/positions", params={"amount": 10}, headers=_as(alice))
    assert r.status_code == 503
    assert client.get("/stake/info").json()["paused"] is True


def test_rest_claim_and_admin(client, env, alice):
    client.post("/stake/positions", params={"amount": 1000}, headers=_as(alice))
    env.clock.advance(YEAR)
    r = client.post("/stake/positions/0/claim", headers=_as(alice))
    assert r.json()["reward"] == 100

    r = client.post("/stake/admin/lock-period", params={"seconds": 0}, headers=_as(ADMIN))
    assert r.json() == {"old": WEEK, "new": 0}
    r = client.post("/stake/admin/force-withdraw-all", headers=_as(ADMIN))
    assert r.json() == {"payouts": {alice: 1_000}, "total": 1_000}


def test_metrics_endpoint(client, alice):
    client.post("/stake/positions", params={"amount": 10}, headers=_as(alice))
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "stakeledger_operations_total" in r.text
    assert "stakeledger_total_staked" in r.text
