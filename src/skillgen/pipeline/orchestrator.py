"""Pipeline Orchestrator — drive every unit through hash → staleness → enrich → write.

Per-unit state machine:

  DISCOVERED → HASHED → FRESH                                  (skip)
                      → STALE → [ENRICHING → ENRICHED | ENRICHMENT_FAILED]
                              → WRITTEN | FAILED

Units run sequentially in sorted order; each reaches a terminal state before
the next begins. A unit's failure is recorded and never aborts its siblings.
The only error raised past ``run()`` is FatalPipelineError, raised before any
unit is written when enrichment is needed but no credential is configured.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from rich.console import Console

from skillgen.enrich.adapter import EnrichmentAdapter
from skillgen.enrich.errors import EnrichmentError
from skillgen.enrich.schema import missing_fields
from skillgen.models import RunSummary, SourceUnit, UnitOutcome, UnitState
from skillgen.pipeline.hasher import digest
from skillgen.pipeline.oracle import is_stale
from skillgen.pipeline.payload import build_payload
from skillgen.pipeline.writer import ArtifactStore
from skillgen.sources.reader import DiscoveryResult

AdapterFactory = Callable[[], EnrichmentAdapter]


class FatalPipelineError(RuntimeError):
    """A run-level precondition failed; no unit was processed."""


@dataclass
class UnitPlan:
    """Result of the hashing + staleness pass for one unit."""

    unit: SourceUnit
    digest: str
    stale: bool
    missing: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def needs_enrichment(self) -> bool:
        return self.stale and bool(self.missing) and self.error is None


class Pipeline:
    """Incremental regeneration of all discovered units.

    Args:
        store:           Artifact store for this run.
        adapter_factory: Builds the enrichment adapter; called at most once,
                         and only if some stale unit has curated gaps. Raises
                         EnvironmentError when the credential is missing.
        console:         Rich console for progress output.
        force:           Treat every unit as stale (bypass the oracle).
        dry_run:         Plan only: no writes, no enrichment calls.
        cancel:          Checked at each unit boundary; when set, remaining
                         units are reported as cancelled.
    """

    def __init__(
        self,
        store: ArtifactStore,
        adapter_factory: AdapterFactory,
        *,
        console: Console | None = None,
        force: bool = False,
        dry_run: bool = False,
        cancel: threading.Event | None = None,
    ) -> None:
        self._store = store
        self._adapter_factory = adapter_factory
        self._console = console or Console()
        self._force = force
        self._dry_run = dry_run
        self._cancel = cancel or threading.Event()

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan(self, units: list[SourceUnit]) -> list[UnitPlan]:
        """Hash every unit and decide staleness (no writes, no API calls)."""
        plans: list[UnitPlan] = []
        for unit in units:
            current = digest(unit.raw_parts)
            try:
                stale = self._force or is_stale(unit.unit_id, current, self._store, unit.kind)
            except ValueError as exc:
                plans.append(UnitPlan(unit, current, stale=True, error=str(exc)))
                continue
            missing = missing_fields(unit) if stale else []
            plans.append(UnitPlan(unit, current, stale=stale, missing=missing))
        return plans

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self, discovery: DiscoveryResult) -> RunSummary:
        """Process every discovered unit and return the run summary.

        Raises:
            FatalPipelineError: Enrichment is required but the adapter could
                not be built (missing credential).
        """
        summary = RunSummary(discovery_errors=list(discovery.errors))
        for err in discovery.errors:
            label = f"{err.kind.value} {err.unit_id}" if err.kind else err.unit_id
            self._console.print(f"  [red]✗ {label}:[/] {err.reason}")

        plans = self.plan(discovery.units)

        adapter: EnrichmentAdapter | None = None
        if not self._dry_run and any(p.needs_enrichment for p in plans):
            try:
                adapter = self._adapter_factory()
            except EnvironmentError as exc:
                raise FatalPipelineError(str(exc)) from exc

        for i, plan in enumerate(plans):
            if self._cancel.is_set():
                summary.cancelled = True
                for rest in plans[i:]:
                    summary.outcomes.append(
                        UnitOutcome(
                            rest.unit.unit_id,
                            rest.unit.kind,
                            UnitState.CANCELLED,
                            digest=rest.digest,
                            reason="run cancelled",
                        )
                    )
                break
            summary.outcomes.append(self._process(plan, adapter))

        return summary

    def _process(self, plan: UnitPlan, adapter: EnrichmentAdapter | None) -> UnitOutcome:
        unit = plan.unit
        label = f"{unit.kind.value} {unit.unit_id}"
        outcome = UnitOutcome(unit.unit_id, unit.kind, UnitState.HASHED, digest=plan.digest)

        if plan.error is not None:
            return self._fail(outcome, label, plan.error)

        if not plan.stale:
            outcome.state = UnitState.FRESH
            self._console.print(f"  [dim]↷ {label}: unchanged (hash: {plan.digest})[/]")
            return outcome

        outcome.state = UnitState.STALE

        if self._dry_run:
            outcome.state = UnitState.PLANNED
            needs = f" — enrich: {', '.join(plan.missing)}" if plan.missing else ""
            self._console.print(f"  [yellow]⟳ {label}: would regenerate{needs}[/]")
            return outcome

        generated = None
        if plan.missing:
            if adapter is None:
                return self._fail(outcome, label, "enrichment required but no adapter is available")
            outcome.state = UnitState.ENRICHING
            self._console.print(f"  [dim]⟳ {label}: enriching {', '.join(plan.missing)}…[/]")
            try:
                generated = adapter.enrich(unit, plan.missing)
            except EnrichmentError as exc:
                outcome.state = UnitState.ENRICHMENT_FAILED
                return self._fail(outcome, label, f"enrichment failed: {exc}")
            except Exception as exc:
                outcome.state = UnitState.ENRICHMENT_FAILED
                return self._fail(outcome, label, f"unexpected {type(exc).__name__} during enrichment: {exc}")
            outcome.state = UnitState.ENRICHED
            outcome.enriched = True

        try:
            payload = build_payload(unit, generated)
        except Exception as exc:
            return self._fail(outcome, label, f"unexpected {type(exc).__name__} building payload: {exc}")

        try:
            self._store.write(unit.kind, unit.unit_id, plan.digest, payload)
        except (OSError, ValueError) as exc:
            return self._fail(outcome, label, f"write failed: {exc}")

        outcome.state = UnitState.WRITTEN
        self._console.print(f"  [green]✓[/] {label}: generated (hash: {plan.digest})")
        return outcome

    def _fail(self, outcome: UnitOutcome, label: str, reason: str) -> UnitOutcome:
        outcome.state = UnitState.FAILED
        outcome.reason = reason
        self._console.print(f"  [red]✗ {label}:[/] {reason}")
        return outcome
