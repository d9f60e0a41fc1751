"""Local filesystem artifact store for generated report files.

Layout: ``<root>/<sanitized name>``. Names are deterministic per group and
period, so a re-run overwrites the previous file for the same report.

Atomicity: writes target a unique ``<name>.<token>.tmp`` first and then
``os.replace`` into place, so a reader never sees a half-written CSV.
"""

from __future__ import annotations

import contextlib
import os
import re
from pathlib import Path
from uuid import uuid4

from .logging_setup import get_logger
from .models import ArtifactHandle

_UNSAFE_CHARS = re.compile(r"[^\w\-.]")

_logger = get_logger("sales_reports.storage")


def sanitize_name(name: str) -> str:
    """Replace path separators and special characters with underscores."""

    cleaned = _UNSAFE_CHARS.sub("_", name.strip())
    # Never allow names that resolve to the directory itself or its parent.
    if cleaned in {"", ".", ".."}:
        raise ValueError(f"invalid artifact name: {name!r}")
    return cleaned


class LocalArtifactStore:
    """Persist CSV content under ``root`` and hand back retrievable handles."""

    def __init__(self, root: str | os.PathLike[str], *, encoding: str = "utf-8") -> None:
        self.root = Path(root).expanduser().resolve()
        self.encoding = encoding

    def save(self, name: str, content: str) -> ArtifactHandle:
        file_name = sanitize_name(name)
        self.root.mkdir(parents=True, exist_ok=True)
        target = self.root / file_name
        # One temp file per write, even for the same target.
        tmp = target.with_name(f"{target.name}.{uuid4().hex[:8]}.tmp")
        try:
            # newline="" keeps the renderer's "\n" line endings on every platform.
            with tmp.open("w", encoding=self.encoding, newline="") as f:
                f.write(content)
            os.replace(tmp, target)
        except Exception:
            with contextlib.suppress(FileNotFoundError):
                tmp.unlink()
            raise
        _logger.debug("Stored artifact %s (%d chars)", target, len(content))
        return ArtifactHandle(
            id=file_name,
            name=file_name,
            path=os.fspath(target),
            content_type="text/csv",
        )

    def read(self, handle: ArtifactHandle) -> bytes:
        path = Path(handle.path)
        if path.parent != self.root:
            raise ValueError(f"artifact {handle.id!r} does not belong to this store")
        return path.read_bytes()


__all__ = ["LocalArtifactStore", "sanitize_name"]
