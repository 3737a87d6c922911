"""Content Hasher — deterministic cache key over a unit's raw content.

SHA-256 over UTF-8 bytes, hex-encoded and truncated to 16 characters (64 bits).
The truncated digest is a cache key, not a security boundary; the reduced
collision resistance is accepted for that use.

Composite inputs are joined with BOUNDARY in the order given. The hasher is
order-sensitive and applies no normalization: callers supply parts in a fixed
order and exactly as read from disk.
"""

from __future__ import annotations

import hashlib
from collections.abc import Sequence

from skillgen.models import BOUNDARY

DIGEST_LENGTH = 16


def digest(raw: str | Sequence[str]) -> str:
    """Return the 16-hex-character content digest of *raw*."""
    if not isinstance(raw, str):
        raw = BOUNDARY.join(raw)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:DIGEST_LENGTH]
