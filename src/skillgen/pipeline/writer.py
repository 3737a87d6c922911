"""Artifact Writer: one JSON artifact per unit, written atomically.

Artifact layout: ``<root>/<kind dir>/<unit_id>.json`` containing
``{"sourceHash", "generatedAt", "payload"}`` (2-space indent, trailing newline).

Writes go to a temp file in the target directory and are renamed into place,
so a reader sees either the old or the new complete artifact.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from skillgen.models import Artifact, UnitKind


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-05-01T12:00:00.000Z."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


class ArtifactStore:
    """Owns the generated artifact tree for a single run.

    Args:
        root: Output directory (created on first write).
        clock: Returns the ``generatedAt`` string; injectable for tests.
    """

    def __init__(self, root: Path, clock: Callable[[], str] = utc_timestamp) -> None:
        self.root = root
        self._clock = clock
        # Directories already ensured during this run; never persisted.
        self._created_dirs: set[Path] = set()

    def path_for(self, kind: UnitKind, unit_id: str) -> Path:
        """Return the artifact path for (*kind*, *unit_id*).

        Raises:
            ValueError: If *unit_id* could escape its kind directory.
        """
        if not unit_id or "/" in unit_id or "\\" in unit_id or unit_id.startswith("."):
            raise ValueError(f"Invalid unit id for an artifact path: '{unit_id}'")
        return self.root / kind.artifact_dir / f"{unit_id}.json"

    def write(self, kind: UnitKind, unit_id: str, digest: str, payload: dict[str, Any]) -> Artifact:
        """Serialize and atomically persist the artifact for *unit_id*."""
        path = self.path_for(kind, unit_id)
        artifact = Artifact(source_hash=digest, generated_at=self._clock(), payload=payload)
        content = json.dumps(artifact.to_dict(), indent=2, ensure_ascii=False) + "\n"
        self._ensure_dir(path.parent)
        write_atomic(path, content)
        return artifact

    def _ensure_dir(self, directory: Path) -> None:
        if directory in self._created_dirs:
            return
        directory.mkdir(parents=True, exist_ok=True)
        self._created_dirs.add(directory)


def write_atomic(path: Path, content: str) -> None:
    """Write *content* to *path* atomically (temp → rename).

    The parent directory must already exist.
    """
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up temp file on error
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
