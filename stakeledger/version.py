from __future__ import annotations

"""
stakeledger.version - package version string.

STAKELEDGER_VERSION in the environment overrides BASE_VERSION (useful for
stamping builds from CI).
"""

import os

# Bump this on intentional releases.
BASE_VERSION = "0.1.0"


def build_version() -> str:
    return os.getenv("STAKELEDGER_VERSION") or BASE_VERSION


__version__ = build_version()


__all__ = ["__version__", "build_version", "BASE_VERSION"]
