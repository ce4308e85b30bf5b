from __future__ import annotations

"""
Prometheus metrics for the staking ledger.

We expose counters and histograms covering:
- operations: completed ledger operations by name
- rejections: failed operations by name and error code
- payouts: outbound transfers by token, and their amount distribution
- latencies: wall time spent inside each ledger operation
- gauges: total staked principal and number of open positions

This module is dependency-light and can be mounted into any ASGI app
or FastAPI app via the helpers at the bottom.
"""


import time
from contextlib import contextmanager
from typing import Optional

from prometheus_client import (CONTENT_TYPE_LATEST, CollectorRegistry, Counter,
                               Gauge, Histogram, generate_latest)

# Use a dedicated registry so embedding apps can choose to merge or expose it directly.
REGISTRY = CollectorRegistry()

# ────────────────────────────────────────────────────────────────────────────────
# Label conventions
#   op:    ledger method name, e.g. "withdraw_position"
#   code:  StakeLedgerError.code, e.g. "STAKE_LOCK_NOT_ELAPSED"
#   token: token symbol the payout left through
# ────────────────────────────────────────────────────────────────────────────────

OPERATIONS = Counter(
    "stakeledger_operations_total",
    "Total ledger operations completed, by operation.",
    labelnames=("op",),
    registry=REGISTRY,
)

REJECTIONS = Counter(
    "stakeledger_rejections_total",
    "Total ledger operations rejected, by operation and error code.",
    labelnames=("op", "code"),
    registry=REGISTRY,
)

PAYOUTS = Counter(
    "stakeledger_payouts_total",
    "Total outbound transfers issued by the ledger, by token.",
    labelnames=("token",),
    registry=REGISTRY,
)

_LATENCY_BUCKETS = (
    0.0005,
    0.001,
    0.0025,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
)

OPERATION_SECONDS = Histogram(
    "stakeledger_operation_seconds",
    "Time spent inside a ledger operation, by operation.",
    labelnames=("op",),
    buckets=_LATENCY_BUCKETS,
    registry=REGISTRY,
)

# Amounts are in base units; buckets are powers of ten to span token decimals.
PAYOUT_AMOUNT = Histogram(
    "stakeledger_payout_amount",
    "Distribution of outbound transfer amounts (base units).",
    labelnames=("token",),
    buckets=tuple(float(10 ** e) for e in range(0, 25, 3)),
    registry=REGISTRY,
)

TOTAL_STAKED = Gauge(
    "stakeledger_total_staked",
    "Principal currently staked across all open positions (base units).",
    registry=REGISTRY,
)

OPEN_POSITIONS = Gauge(
    "stakeledger_open_positions",
    "Number of positions with non-zero size.",
    registry=REGISTRY,
)

# ────────────────────────────────────────────────────────────────────────────────
# Recording helpers
# ────────────────────────────────────────────────────────────────────────────────


def record_operation(op: str) -> None:
    OPERATIONS.labels(op=op).inc()


def record_rejection(op: str, code: str) -> None:
    REJECTIONS.labels(op=op, code=code).inc()


def record_payout(token: str, amount: int) -> None:
    """Record an outbound transfer and observe its amount."""
    PAYOUTS.labels(token=token).inc()
    if amount >= 0:
        PAYOUT_AMOUNT.labels(token=token).observe(float(amount))


def set_staking_gauges(total_staked: int, open_positions: int) -> None:
    TOTAL_STAKED.set(float(total_staked))
    OPEN_POSITIONS.set(float(open_positions))


@contextmanager
def time_operation(op: str):
    """Context manager to observe the duration of one ledger operation."""
    start = time.perf_counter()
    try:
        yield
    finally:
        OPERATION_SECONDS.labels(op=op).observe(time.perf_counter() - start)


# ────────────────────────────────────────────────────────────────────────────────
# ASGI/FastAPI mounting helpers
# ────────────────────────────────────────────────────────────────────────────────


def make_prometheus_asgi_app(registry: Optional[CollectorRegistry] = None):
    """
    Return a minimal ASGI app that serves Prometheus metrics at '/'.
    No external web framework required.
    """
    reg = registry or REGISTRY

    async def app(scope, receive, send):  # type: ignore[override]
        if scope["type"] != "http" or (scope.get("path") or "/") != "/":
            await send({"type": "http.response.start", "status": 404, "headers": []})
            await send({"type": "http.response.body", "body": b"Not Found"})
            return
        payload = generate_latest(reg)
        headers = [
            (b"content-type", CONTENT_TYPE_LATEST.encode("ascii")),
            (b"cache-control", b"no-cache, no-store, must-revalidate"),
        ]
        await send({"type": "http.response.start", "status": 200, "headers": headers})
        await send({"type": "http.response.body", "body": payload})

    return app


def mount_fastapi(
    app, path: str = "/metrics", registry: Optional[CollectorRegistry] = None
) -> None:
    """
    Mount a GET {path} endpoint on a FastAPI app to serve metrics.

    Usage:
        from fastapi import FastAPI
        from stakeledger.metrics import mount_fastapi
        app = FastAPI()
        mount_fastapi(app)
    """
    from fastapi import Response

    reg = registry or REGISTRY

    @app.get(path)
    def _metrics():
        return Response(generate_latest(reg), media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "OPERATIONS",
    "REJECTIONS",
    "PAYOUTS",
    "OPERATION_SECONDS",
    "PAYOUT_AMOUNT",
    "TOTAL_STAKED",
    "OPEN_POSITIONS",
    "record_operation",
    "record_rejection",
    "record_payout",
    "set_staking_gauges",
    "time_operation",
    "make_prometheus_asgi_app",
    "mount_fastapi",
]
