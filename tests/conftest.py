"""Pytest configuration for test isolation.

Settings and logging read ``CHURCH_REPORTS_*`` variables from the process
environment, and the CLI loads a ``.env`` from the working directory. A
developer's shell or a stray ``.env`` could therefore change separators,
default titles or signatures under the tests.

To keep tests hermetic, every test starts with those variables removed and
runs from its own temporary directory.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

# Make sure the workspace `packages/` dir is on sys.path so `church_reports` is importable
_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR)] if p not in sys.path]


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop ``CHURCH_REPORTS_*`` variables and chdir into the test's tmp dir."""

    for name in list(os.environ):
        if name.startswith("CHURCH_REPORTS_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
