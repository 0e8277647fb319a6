"""Repository-wide pytest configuration.

Keeps the repository root on ``sys.path`` so ``grid_publisher`` imports
resolve without an editable install, and clears the publisher environment
variables so a developer's shell cannot leak a real key or endpoint into the
suite.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

_PUBLISHER_ENV = ("UP_PRIVATE_KEY", "UP_ADDRESS", "KEY_MANAGER", "RPC_URL", "CHAIN_ID")


@pytest.fixture(autouse=True)
def _isolate_publisher_env(monkeypatch):
    for name in _PUBLISHER_ENV:
        monkeypatch.delenv(name, raising=False)
    yield
