from __future__ import annotations
"""
stakeledger.config - configuration for the staking ledger

Covers:
- Annual reward rate (whole percent) and reward reconciliation mode
- Minimum lock period before withdrawal (seconds)
- Sweep bound used by bulk/force withdrawals
- Payout routing (single stake-token payout vs. principal/reward split)

Environment overrides (all optional; sensible defaults provided):

  # Reward
  STAKELEDGER_REWARD_RATE_PERCENT=10
  STAKELEDGER_RECONCILE_CLAIMS=1

  # Lock
  STAKELEDGER_LOCK_PERIOD_SECONDS=604800

  # Sweep / payouts
  STAKELEDGER_SWEEP_INCLUSIVE_UPPER_BOUND=1
  STAKELEDGER_SPLIT_REWARD_TOKEN=0

  # Identity of the ledger in token balances
  STAKELEDGER_LEDGER_ADDRESS=stake-ledger

You can also load from a JSON or YAML file via `STAKELEDGER_CONFIG_FILE=/path/to/config.(json|yaml|yml)`.
File values override defaults; environment overrides the file.
"""


from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional
import json
import os
from pathlib import Path

import yaml


# -------------------------- Data classes --------------------------


@dataclass
class RewardConfig:
    """Reward rate in whole percent per full year of stake."""
    rate_percent: int = 10
    # Measure banked/withdrawn reward from max(start_time, last_claim_time) so a
    # claimed interval is never paid again. False keeps the raw per-path anchors.
    reconcile_claims: bool = True

    def validate(self) -> None:
        if self.rate_percent < 0:
            raise ValueError(f"rate_percent must be non-negative (got {self.rate_percent}).")


@dataclass
class LockConfig:
    """Minimum dwell time before a position's principal may be withdrawn."""
    lock_period_seconds: int = 7 * 24 * 60 * 60  # 7 days

    def validate(self) -> None:
        if self.lock_period_seconds < 0:
            raise ValueError(f"lock_period_seconds must be non-negative (got {self.lock_period_seconds}).")


@dataclass
class SweepConfig:
    """
    Position-index range scanned by withdraw_all_eligible / admin_force_withdraw_all.

    inclusive_upper_bound=True scans ids 0..count (one past the last opened
    position); False scans 0..count-1.
    """
    inclusive_upper_bound: bool = True

    def validate(self) -> None:
        return None


@dataclass
class PayoutConfig:
    """How a withdrawal's principal and reward leave the ledger."""
    # False: one stake-token transfer of principal + reward.
    # True: principal via the stake token, reward via the reward token.
    split_reward_token: bool = False

    def validate(self) -> None:
        return None


@dataclass
class LedgerConfig:
    """Top-level configuration container."""
    reward: RewardConfig = field(default_factory=RewardConfig)
    lock: LockConfig = field(default_factory=LockConfig)
    sweep: SweepConfig = field(default_factory=SweepConfig)
    payout: PayoutConfig = field(default_factory=PayoutConfig)

    ledger_address: str = "stake-ledger"
    token_decimals: int = 18  # informational

    def validate(self) -> None:
        self.reward.validate()
        self.lock.validate()
        self.sweep.validate()
        self.payout.validate()
        if not self.ledger_address:
            raise ValueError("ledger_address must be non-empty.")
        if self.token_decimals < 0:
            raise ValueError("token_decimals must be non-negative.")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -------------------------- Loaders --------------------------


def _getenv_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(str(v).replace("_", ""))
    except ValueError as e:
        raise ValueError(f"Invalid int for {name}: {v!r}") from e


def _getenv_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    s = v.strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    raise ValueError(f"Invalid bool for {name}: {v!r}")


def from_env(base: Optional[LedgerConfig] = None, prefix: str = "STAKELEDGER_") -> LedgerConfig:
    """
    Build a LedgerConfig from environment variables, optionally layering on top of `base`.
    """
    cfg = base or LedgerConfig()

    rate = _getenv_int(f"{prefix}REWARD_RATE_PERCENT", cfg.reward.rate_percent)
    reconcile = _getenv_bool(f"{prefix}RECONCILE_CLAIMS", cfg.reward.reconcile_claims)
    lock = _getenv_int(f"{prefix}LOCK_PERIOD_SECONDS", cfg.lock.lock_period_seconds)
    inclusive = _getenv_bool(f"{prefix}SWEEP_INCLUSIVE_UPPER_BOUND", cfg.sweep.inclusive_upper_bound)
    split = _getenv_bool(f"{prefix}SPLIT_REWARD_TOKEN", cfg.payout.split_reward_token)
    address = os.getenv(f"{prefix}LEDGER_ADDRESS") or cfg.ledger_address
    decimals = _getenv_int(f"{prefix}TOKEN_DECIMALS", cfg.token_decimals)

    new_cfg = LedgerConfig(
        reward=RewardConfig(rate_percent=rate, reconcile_claims=reconcile),
        lock=LockConfig(lock_period_seconds=lock),
        sweep=SweepConfig(inclusive_upper_bound=inclusive),
        payout=PayoutConfig(split_reward_token=split),
        ledger_address=address,
        token_decimals=decimals,
    )
    new_cfg.validate()
    return new_cfg


def from_dict(data: Dict[str, Any]) -> LedgerConfig:
    """Build a LedgerConfig from a nested mapping (the shape of `to_dict()`)."""

    def pick(dct: Dict[str, Any], key: str, default: Any) -> Any:
        return dct.get(key, default)

    reward = data.get("reward", {}) or {}
    lock = data.get("lock", {}) or {}
    sweep = data.get("sweep", {}) or {}
    payout = data.get("payout", {}) or {}

    cfg = LedgerConfig(
        reward=RewardConfig(
            rate_percent=int(pick(reward, "rate_percent", RewardConfig().rate_percent)),
            reconcile_claims=bool(pick(reward, "reconcile_claims", RewardConfig().reconcile_claims)),
        ),
        lock=LockConfig(
            lock_period_seconds=int(pick(lock, "lock_period_seconds", LockConfig().lock_period_seconds)),
        ),
        sweep=SweepConfig(
            inclusive_upper_bound=bool(pick(sweep, "inclusive_upper_bound", SweepConfig().inclusive_upper_bound)),
        ),
        payout=PayoutConfig(
            split_reward_token=bool(pick(payout, "split_reward_token", PayoutConfig().split_reward_token)),
        ),
        ledger_address=str(pick(data, "ledger_address", LedgerConfig().ledger_address)),
        token_decimals=int(pick(data, "token_decimals", LedgerConfig().token_decimals)),
    )
    cfg.validate()
    return cfg


def from_file(path: str | os.PathLike[str]) -> LedgerConfig:
    """
    Load configuration from a JSON or YAML file.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text or "{}")
    return from_dict(data)


def load() -> LedgerConfig:
    """
    Load configuration using the following precedence:
      1) File at $STAKELEDGER_CONFIG_FILE (JSON/YAML)
      2) Environment variables (STAKELEDGER_*), applied on top of defaults or file values
    """
    file_path = os.getenv("STAKELEDGER_CONFIG_FILE")
    base = from_file(file_path) if file_path else LedgerConfig()
    return from_env(base=base)


# -------------------------- Utilities --------------------------


def pretty(cfg: Optional[LedgerConfig] = None) -> str:
    """Return a human-readable JSON string of the current config."""
    obj = (cfg or load()).to_dict()
    return json.dumps(obj, indent=2, sort_keys=True)


__all__ = [
    "RewardConfig",
    "LockConfig",
    "SweepConfig",
    "PayoutConfig",
    "LedgerConfig",
    "from_env",
    "from_dict",
    "from_file",
    "load",
    "pretty",
]
