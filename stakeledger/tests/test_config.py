from __future__ import annotations

import json

import pytest
import yaml

from stakeledger import config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "STAKELEDGER_CONFIG_FILE",
        "STAKELEDGER_REWARD_RATE_PERCENT",
        "STAKELEDGER_RECONCILE_CLAIMS",
        "STAKELEDGER_LOCK_PERIOD_SECONDS",
        "STAKELEDGER_SWEEP_INCLUSIVE_UPPER_BOUND",
        "STAKELEDGER_SPLIT_REWARD_TOKEN",
        "STAKELEDGER_LEDGER_ADDRESS",
        "STAKELEDGER_TOKEN_DECIMALS",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    cfg = config.LedgerConfig()
    cfg.validate()
    assert cfg.reward.rate_percent == 10
    assert cfg.reward.reconcile_claims is True
    assert cfg.lock.lock_period_seconds == 7 * 24 * 3600
    assert cfg.sweep.inclusive_upper_bound is True
    assert cfg.payout.split_reward_token is False
    assert cfg.ledger_address == "stake-ledger"


def test_from_env(monkeypatch):
    monkeypatch.setenv("STAKELEDGER_REWARD_RATE_PERCENT", "12")
    monkeypatch.setenv("STAKELEDGER_LOCK_PERIOD_SECONDS", "86_400")
    monkeypatch.setenv("STAKELEDGER_RECONCILE_CLAIMS", "off")
    monkeypatch.setenv("STAKELEDGER_SPLIT_REWARD_TOKEN", "yes")
    monkeypatch.setenv("STAKELEDGER_LEDGER_ADDRESS", "vault")

    cfg = config.from_env()
    assert cfg.reward.rate_percent == 12
    assert cfg.lock.lock_period_seconds == 86_400
    assert cfg.reward.reconcile_claims is False
    assert cfg.payout.split_reward_token is True
    assert cfg.ledger_address == "vault"


def test_from_env_rejects_garbage(monkeypatch):
    monkeypatch.setenv("STAKELEDGER_RECONCILE_CLAIMS", "maybe")
    with pytest.raises(ValueError):
        config.from_env()
    monkeypatch.delenv("STAKELEDGER_RECONCILE_CLAIMS")
    monkeypatch.setenv("STAKELEDGER_REWARD_RATE_PERCENT", "ten")
    with pytest.raises(ValueError):
        config.from_env()


def test_negative_values_fail_validation(monkeypatch):
    monkeypatch.setenv("STAKELEDGER_LOCK_PERIOD_SECONDS", "-1")
    with pytest.raises(ValueError):
        config.from_env()
    with pytest.raises(ValueError):
        config.from_dict({"reward": {"rate_percent": -3}})


def test_from_yaml_file(tmp_path):
    p = tmp_path / "ledger.yaml"
    p.write_text(yaml.safe_dump({
        "reward": {"rate_percent": 7},
        "sweep": {"inclusive_upper_bound": False},
        "ledger_address": "pool",
    }))
    cfg = config.from_file(p)
    assert cfg.reward.rate_percent == 7
    assert cfg.reward.reconcile_claims is True
    assert cfg.sweep.inclusive_upper_bound is False
    assert cfg.ledger_address == "pool"


def test_from_json_file_round_trip(tmp_path):
    src = config.LedgerConfig()
    src.lock.lock_period_seconds = 60
    p = tmp_path / "ledger.json"
    p.write_text(json.dumps(src.to_dict()))
    assert config.from_file(p) == src


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        config.from_file(tmp_path / "nope.yaml")


def test_load_layers_env_over_file(tmp_path, monkeypatch):
    p = tmp_path / "ledger.yml"
    p.write_text("reward:\n  rate_percent: 3\nlock:\n  lock_period_seconds: 5\n")
    monkeypatch.setenv("STAKELEDGER_CONFIG_FILE", str(p))
    monkeypatch.setenv("STAKELEDGER_LOCK_PERIOD_SECONDS", "9")

    cfg = config.load()
    assert cfg.reward.rate_percent == 3
    assert cfg.lock.lock_period_seconds == 9
    assert json.loads(config.pretty(cfg))["lock"]["lock_period_seconds"] == 9
