from __future__ import annotations

import stakeledger
from stakeledger.version import BASE_VERSION, build_version


def test_base_version_without_override(monkeypatch):
    monkeypatch.delenv("STAKELEDGER_VERSION", raising=False)
    assert build_version() == BASE_VERSION


def test_env_override_wins(monkeypatch):
    monkeypatch.setenv("STAKELEDGER_VERSION", "9.9.9+ci.42")
    assert build_version() == "9.9.9+ci.42"


def test_package_exposes_version():
    assert stakeledger.get_version() == stakeledger.__version__
