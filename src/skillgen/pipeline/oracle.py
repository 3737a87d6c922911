"""Staleness Oracle — decide regenerate vs. skip from recorded digests.

Regeneration is driven solely by content equality: the digest recorded in the
existing artifact is compared with the freshly computed one. File modification
times and wall-clock time are never consulted. A missing, unreadable or
corrupt artifact is stale, never fatal, so a damaged cache is always rewritten.
"""

from __future__ import annotations

import json
from pathlib import Path

from skillgen.models import UnitKind
from skillgen.pipeline.writer import ArtifactStore


def recorded_hash(path: Path) -> str | None:
    """Return the ``sourceHash`` recorded in the artifact at *path*.

    Returns None if the file is absent, unreadable, not valid JSON, not a JSON
    object, or has no string ``sourceHash``.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    value = data.get("sourceHash")
    return value if isinstance(value, str) and value else None


def is_stale(unit_id: str, current_digest: str, store: ArtifactStore, kind: UnitKind) -> bool:
    """True if the artifact for *unit_id* is absent, corrupt, or records another digest."""
    return recorded_hash(store.path_for(kind, unit_id)) != current_digest
