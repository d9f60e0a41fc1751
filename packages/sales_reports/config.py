"""Typed run settings.

``ReportSettings`` is built either from keyword arguments (host applications,
tests) or from the environment via :meth:`ReportSettings.from_env`. The CLI
loads a ``.env`` file first (``python-dotenv``, without overriding variables
that are already set) and then layers command-line options on top.

Environment variables
---------------------
``SALES_REPORTS_PERIOD``            previous_month | current_month
``SALES_REPORTS_ADMIN_ID``          employee id of the administrator (required)
``SALES_REPORTS_SENDER_ID``         employee id used as sender (defaults to admin)
``SALES_REPORTS_ARTIFACT_DIR``      where report CSVs are written
``SALES_REPORTS_REP_FALLBACK``      none | customer_default
``SALES_REPORTS_CONCURRENCY``       dispatch workers (1..32)
``SALES_REPORTS_DISPATCH_TIMEOUT``  seconds per dispatch; 0 disables
``SALES_REPORTS_SMTP_HOST`` / ``_PORT`` / ``_USERNAME`` / ``_PASSWORD`` /
``_STARTTLS`` / ``SALES_REPORTS_FROM_ADDRESS``
``SALES_REPORTS_DRY_RUN``           log messages instead of sending
``SALES_REPORTS_PERSIST``           record outcomes in the database
``DATABASE_URL``                    shared database
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError
from .normalizer import RepFallbackPolicy
from .periods import PeriodKind
from .render import DEFAULT_HEADER

_ENV_PREFIX = "SALES_REPORTS_"
_MAX_CONCURRENCY = 32
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class ReportSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    period: PeriodKind = PeriodKind.PREVIOUS_MONTH
    admin_id: str
    sender_id: str | None = None
    artifact_dir: Path = Path("reports")
    rep_fallback: RepFallbackPolicy = RepFallbackPolicy.NONE
    concurrency: int = Field(default=1, ge=1, le=_MAX_CONCURRENCY)
    dispatch_timeout: float | None = 120.0
    csv_header: tuple[str, str, str, str] = DEFAULT_HEADER

    smtp_host: str | None = None
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_starttls: bool = True
    from_address: str | None = None
    dry_run: bool = False

    database_url: str | None = None
    persist: bool = False

    @field_validator("admin_id")
    @classmethod
    def _admin_id_non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("admin_id must be non-empty")
        return v

    @field_validator("period", mode="before")
    @classmethod
    def _parse_period(cls, v: Any) -> Any:
        return PeriodKind.parse(v) if isinstance(v, str) else v

    @field_validator("rep_fallback", mode="before")
    @classmethod
    def _parse_rep_fallback(cls, v: Any) -> Any:
        return RepFallbackPolicy.parse(v) if isinstance(v, str) else v

    @field_validator("dispatch_timeout")
    @classmethod
    def _timeout_positive_or_none(cls, v: float | None) -> float | None:
        # 0 (or negative) disables the timeout.
        if v is None or v <= 0:
            return None
        return v

    @field_validator("sender_id", "smtp_host", "smtp_username", "from_address", "database_url")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        return v or None

    def require_smtp(self) -> None:
        """Raise :class:`ConfigError` unless real delivery is configured."""

        if self.dry_run:
            return
        missing = [
            name for name in ("smtp_host", "from_address") if getattr(self, name) is None
        ]
        if missing:
            raise ConfigError(
                "SMTP delivery requires " + ", ".join(missing) + " (or enable dry run)"
            )

    @classmethod
    def build(cls, **values: Any) -> ReportSettings:
        """Validate ``values``; raise :class:`ConfigError` with a readable message."""

        try:
            return cls(**values)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}"
                for err in exc.errors()
            )
            raise ConfigError(f"invalid settings: {problems}") from exc

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> ReportSettings:
        """Read settings from ``environ`` (default ``os.environ``).

        ``overrides`` whose value is ``None`` are ignored, so CLI options that
        were not given fall through to the environment.
        """

        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for field_name in cls.model_fields:
            if field_name == "csv_header":
                continue
            key = (
                "DATABASE_URL" if field_name == "database_url" else _ENV_PREFIX + field_name.upper()
            )
            raw = env.get(key)
            if raw is not None and raw.strip() != "":
                values[field_name] = _coerce_env(field_name, raw)
        values.update({k: v for k, v in overrides.items() if v is not None})
        if "admin_id" not in values:
            raise ConfigError(f"{_ENV_PREFIX}ADMIN_ID is not set")
        return cls.build(**values)


def _coerce_env(field_name: str, raw: str) -> Any:
    bool_fields = {"smtp_starttls", "dry_run", "persist"}
    if field_name in bool_fields:
        v = raw.strip().lower()
        if v in _TRUE:
            return True
        if v in _FALSE:
            return False
        raise ConfigError(f"{_ENV_PREFIX}{field_name.upper()} must be a boolean, got {raw!r}")
    return raw


__all__ = ["ReportSettings"]
