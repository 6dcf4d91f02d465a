"""Pytest configuration shared by the unit and end-to-end suites.

What:
  Establish project import paths and apply a canned runtime configuration to
  every test.

Why:
  Tests must exercise the in-repo ``mailreader`` sources rather than an
  installed wheel, and the runtime configuration is cached globally, so each
  test needs a clean cache pointing at a known file.

How:
  Prepend ``mailreader/src`` to ``sys.path`` when present and point
  ``MAILREADER_CONFIG_PATH`` at ``tests/data/config.yaml`` while resetting the
  cache before and after each test.

Interfaces:
  :func:`runtime_config` (autouse fixture), :data:`CONFIG_PATH`.
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "mailreader" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest

from mailreader.config.loader import reset_runtime_config

CONFIG_PATH = Path(__file__).resolve().parent / "data" / "config.yaml"


@pytest.fixture(autouse=True)
def runtime_config(monkeypatch: pytest.MonkeyPatch):
    """Apply the canned configuration file for every test.

    Args:
      monkeypatch: Pytest helper injected automatically for environment control.
    """

    monkeypatch.setenv("MAILREADER_CONFIG_PATH", str(CONFIG_PATH))
    reset_runtime_config()
    try:
        yield
    finally:
        reset_runtime_config()
