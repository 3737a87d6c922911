"""Domain models for the skillgen pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

# Separator between contributing raw parts of a composite unit.
BOUNDARY = "\n---BOUNDARY---\n"


class UnitKind(str, Enum):
    PLUGIN = "plugin"
    SKILL = "skill"
    DIAGRAM = "diagram"

    @property
    def artifact_dir(self) -> str:
        return _ARTIFACT_DIRS[self]


_ARTIFACT_DIRS: dict[UnitKind, str] = {
    UnitKind.PLUGIN: "plugins",
    UnitKind.SKILL: "skills",
    UnitKind.DIAGRAM: "workflow",
}

_KIND_ORDER: dict[UnitKind, int] = {
    UnitKind.PLUGIN: 0,
    UnitKind.SKILL: 1,
    UnitKind.DIAGRAM: 2,
}


class UnitState(str, Enum):
    DISCOVERED = "discovered"
    HASHED = "hashed"
    FRESH = "fresh"
    STALE = "stale"
    ENRICHING = "enriching"
    ENRICHED = "enriched"
    ENRICHMENT_FAILED = "enrichment_failed"
    WRITTEN = "written"
    FAILED = "failed"
    CANCELLED = "cancelled"
    PLANNED = "planned"

    @property
    def terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {
        UnitState.FRESH,
        UnitState.WRITTEN,
        UnitState.FAILED,
        UnitState.CANCELLED,
        UnitState.PLANNED,
    }
)


def sort_key(kind: UnitKind, unit_id: str) -> tuple[int, str]:
    """Deterministic ordering: kind first, then unit id by codepoint."""
    return (_KIND_ORDER[kind], unit_id)


@dataclass(frozen=True)
class SourceUnit:
    """One discoverable piece of author-provided content.

    Attributes:
        unit_id: Stable identifier (plugin or skill name).
        kind: Which artifact family the unit belongs to.
        raw_parts: Exact source strings, in hashing order.
        fields: Parsed curated + identity values.
        path: Source directory (for messages only).
    """

    unit_id: str
    kind: UnitKind
    raw_parts: tuple[str, ...]
    fields: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)
    path: Path | None = None

    @property
    def raw_content(self) -> str:
        return BOUNDARY.join(self.raw_parts)


@dataclass
class Artifact:
    source_hash: str
    generated_at: str
    payload: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceHash": self.source_hash,
            "generatedAt": self.generated_at,
            "payload": self.payload,
        }


@dataclass
class UnitOutcome:
    unit_id: str
    kind: UnitKind
    state: UnitState
    digest: str | None = None
    reason: str = ""
    enriched: bool = False


@dataclass
class DiscoveryError:
    """A unit the Source Reader could not load (reported, then skipped)."""

    unit_id: str
    kind: UnitKind | None
    reason: str


@dataclass
class RunSummary:
    outcomes: list[UnitOutcome] = field(default_factory=list)
    discovery_errors: list[DiscoveryError] = field(default_factory=list)
    cancelled: bool = False

    def sorted_outcomes(self) -> list[UnitOutcome]:
        return sorted(self.outcomes, key=lambda o: sort_key(o.kind, o.unit_id))

    def _count(self, state: UnitState) -> int:
        return sum(1 for o in self.outcomes if o.state is state)

    @property
    def generated(self) -> int:
        return self._count(UnitState.WRITTEN)

    @property
    def unchanged(self) -> int:
        return self._count(UnitState.FRESH)

    @property
    def planned(self) -> int:
        return self._count(UnitState.PLANNED)

    @property
    def failed(self) -> int:
        return self._count(UnitState.FAILED) + len(self.discovery_errors)

    @property
    def exit_code(self) -> int:
        if self.cancelled:
            return 130
        return 1 if self.failed else 0
