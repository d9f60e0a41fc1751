"""Centralized logging configuration for the ``sales_reports`` package.

Public helpers:

- ``configure_logging(...)``: attach one ``StreamHandler`` to the package
  logger (``"sales_reports"``). The CLI calls it once at startup; a host job
  runner embedding the pipeline may call it instead, or configure handlers of
  its own.
- ``get_logger(name)``: logger for ``sales_reports.<module>``. Until logging is
  configured, the package logger carries a ``NullHandler`` so library use
  stays silent.
- ``run_context(run_id)``: tag every record emitted inside the block with the
  run id (``%(run_id)s`` in the format), the same id the audit trail stores.
  Worker threads see it when the caller runs them in a copy of its context.

Library modules never attach handlers themselves.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import IO

_PKG_LOGGER_NAME = "sales_reports"
_LEVEL_ENV = "SALES_REPORTS_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s run=%(run_id)s %(message)s"
_NO_RUN = "-"

_CONFIGURED = False
_RUN_ID: ContextVar[str] = ContextVar("sales_reports_run_id", default=_NO_RUN)


class _RunIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "run_id"):
            record.run_id = _RUN_ID.get()
        return True


@contextmanager
def run_context(run_id: str) -> Iterator[None]:
    token = _RUN_ID.set(run_id)
    try:
        yield
    finally:
        _RUN_ID.reset(token)


def current_run_id() -> str:
    return _RUN_ID.get()


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv(_LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    # Unknown names fall back to INFO rather than failing the run.
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Configure the package logger; later calls are no-ops.

    ``level`` defaults to ``SALES_REPORTS_LOG_LEVEL`` (or INFO). ``stream``
    defaults to ``sys.stderr`` at call time.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _resolve_level(level)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(resolved)
    handler.addFilter(_RunIdFilter())
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    # Records are fully handled here; the root logger would print them twice.
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "current_run_id", "get_logger", "run_context"]
