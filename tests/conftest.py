"""Pytest configuration for test isolation.

Settings are read from ``SALES_REPORTS_*`` variables and ``DATABASE_URL``, and
the database client caches one engine per URL. A developer shell (or a local
``.env`` loaded by an earlier CLI test) could leak configuration into later
tests, so every test starts from a clean environment, a fresh engine cache and
an unconfigured package logger.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# Make the workspace packages importable without an install (`packages/`,
# `libs/db/src`) and keep the repo root first so `tests.helpers` resolves.
_ROOT = Path(__file__).resolve().parents[1]
sys.path[:0] = [
    p
    for p in (str(_ROOT), str(_ROOT / "packages"), str(_ROOT / "libs" / "db" / "src"))
    if p not in sys.path
]


@pytest.fixture(autouse=True)
def _isolate_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    """Drop inherited configuration and run each test from its own directory."""

    for key in list(os.environ):
        if key.startswith("SALES_REPORTS_") or key == "DATABASE_URL":
            monkeypatch.delenv(key, raising=False)
    # The CLI loads `.env` from the working directory.
    monkeypatch.chdir(tmp_path)

    yield

    from db.client import dispose_engines

    import sales_reports.logging_setup as logging_setup

    dispose_engines()
    pkg_logger = logging.getLogger("sales_reports")
    for h in list(pkg_logger.handlers):
        pkg_logger.removeHandler(h)
    pkg_logger.propagate = True
    pkg_logger.setLevel(logging.NOTSET)
    logging_setup._CONFIGURED = False
