"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import os

import pytest

_ENV_PREFIX = "PERCH_"


@pytest.fixture(autouse=True)
def isolated_perch_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove ``PERCH_*`` variables so configuration starts from defaults."""
    for name in [key for key in os.environ if key.startswith(_ENV_PREFIX)]:
        monkeypatch.delenv(name)
