"""Pytest configuration shared by every suite.

What:
  Put the in-repo source tree on ``sys.path`` and point the runtime
  configuration at the canned ``tests/data/config.yaml`` for every test.

Why:
  The store reads connection defaults from a process-wide cached config. Tests
  must not depend on a file in the working directory or on cache state left
  by a previous test.

How:
  Insert ``mailstore/src`` ahead of installed packages, then an autouse
  fixture sets ``MAILSTORE_CONFIG_PATH`` and ``MAILSTORE_PASSWORD`` and resets
  the cache around each test.

Interfaces:
  :func:`runtime_config` (autouse pytest fixture).
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "mailstore" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest

from mailstore.config.loader import reset_runtime_config

CONFIG_PATH = Path(__file__).resolve().parent / "data" / "config.yaml"


@pytest.fixture(autouse=True)
def runtime_config(monkeypatch: pytest.MonkeyPatch):
    """Apply the canned configuration file and password for every test."""

    monkeypatch.setenv("MAILSTORE_CONFIG_PATH", str(CONFIG_PATH))
    monkeypatch.setenv("MAILSTORE_PASSWORD", "s3cret")
    reset_runtime_config()
    try:
        yield
    finally:
        reset_runtime_config()
