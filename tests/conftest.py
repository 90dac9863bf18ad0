"""Pytest configuration shared by the unit and end-to-end suites.

What:
  Put the in-repo ``rendmail/src`` tree on ``sys.path`` and isolate every test
  from configuration files on the host.

Why:
  :func:`rendmail.config.loader.load_config` reads ``RENDMAIL_CONFIG_PATH``
  and well-known locations such as ``/etc/rendmail/rendmail.yaml``. A file on
  the developer's machine must not change test outcomes.

How:
  Insert the source directory at import time, then use an autouse fixture to
  drop the environment variable and empty the list of default locations.

Interfaces:
  :func:`isolated_config` (autouse fixture).
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "rendmail" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch):
    """Hide host configuration files from the loader for the duration of a test."""

    monkeypatch.delenv("RENDMAIL_CONFIG_PATH", raising=False)
    monkeypatch.setattr("rendmail.config.loader.DEFAULT_LOCATIONS", ())
    yield
