"""Tests for the pipeline orchestrator (end-to-end over a temp source tree)."""

from __future__ import annotations

import io
import json
import os
import threading

import pytest
from rich.console import Console

from skillgen.enrich.errors import EnrichmentTransportError
from skillgen.models import UnitKind, UnitState
from skillgen.pipeline.hasher import digest
from skillgen.pipeline.orchestrator import FatalPipelineError, Pipeline
from skillgen.pipeline.payload import DIAGRAM_EVENTS
from skillgen.sources.reader import read_sources


class FakeAdapter:
    """Returns canned values for every wanted field and records each call."""

    def __init__(self, fail_on=(), on_call=None):
        self.calls: list[tuple[str, list[str]]] = []
        self._fail_on = set(fail_on)
        self._on_call = on_call

    def enrich(self, unit, wanted=None):
        self.calls.append((unit.unit_id, list(wanted)))
        if self._on_call is not None:
            self._on_call(unit)
        if unit.unit_id in self._fail_on:
            raise EnrichmentTransportError("Timeout calling fake/model: too slow")
        canned = {
            "short_description": "Generated short.",
            "full_description": "Generated full.",
            "use_cases": [{"title": "Generated", "description": "Generated use case."}],
            "tagline": "Generated tagline",
            "short_summary": "Generated summary.",
            "full_summary": "Generated full summary.",
            "highlights": [{"title": "Generated", "description": "Generated highlight."}],
            "workflow": [{"name": "Generated", "description": "Generated step."}],
        }
        if unit.kind is UnitKind.DIAGRAM:
            canned["tooltips"] = {e["id"]: f"Generated {e['id']}" for e in DIAGRAM_EVENTS}
            canned["enhanced_contents"] = {
                s["title"]: "Generated enhanced." for s in unit.fields["sections"]
            }
        return {name: canned[name] for name in wanted}


def _no_credential():
    raise EnvironmentError("API key not found for provider 'deepseek'. Set the DEEPSEEK_API_KEY environment variable.")


def _run(tree, store, adapter=None, **kwargs):
    factory = (lambda: adapter) if adapter is not None else _no_credential
    pipeline = Pipeline(store, factory, console=Console(file=io.StringIO()), **kwargs)
    return pipeline.run(read_sources(tree.root))


def _states(summary):
    return {(o.kind.value, o.unit_id): o.state for o in summary.outcomes}


def _artifact(store, kind, unit_id):
    return json.loads(store.path_for(kind, unit_id).read_text(encoding="utf-8"))


# ------------------------------------------------------------------
# Basic run
# ------------------------------------------------------------------


def test_fully_curated_run_needs_no_credential(curated_tree, store):
    summary = _run(curated_tree, store)

    assert _states(summary) == {
        ("plugin", "amplify"): UnitState.WRITTEN,
        ("skill", "write-plan"): UnitState.WRITTEN,
    }
    assert summary.exit_code == 0
    art = _artifact(store, UnitKind.SKILL, "write-plan")
    assert art["payload"]["tagline"] == "Plan before you build"
    assert len(art["sourceHash"]) == 16


def test_outcomes_follow_sorted_order(tree, store, samples):
    tree.plugin("zeta")
    tree.plugin("alpha", website=samples.philosophy_toml, hooks=samples.hooks_json)
    tree.skill("alpha", "b-skill")
    tree.skill("zeta", "a-skill")

    summary = _run(tree, store, FakeAdapter())

    assert [(o.kind, o.unit_id) for o in summary.outcomes] == [
        (UnitKind.PLUGIN, "alpha"),
        (UnitKind.PLUGIN, "zeta"),
        (UnitKind.SKILL, "a-skill"),
        (UnitKind.SKILL, "b-skill"),
        (UnitKind.DIAGRAM, "alpha"),
    ]


def test_recorded_hash_matches_source_digest(curated_tree, store):
    summary = _run(curated_tree, store)
    unit = next(u for u in read_sources(curated_tree.root).units if u.kind is UnitKind.PLUGIN)
    assert _artifact(store, UnitKind.PLUGIN, "amplify")["sourceHash"] == digest(unit.raw_parts)
    assert summary.outcomes[0].digest == digest(unit.raw_parts)


# ------------------------------------------------------------------
# Idempotence and change sensitivity
# ------------------------------------------------------------------


def test_second_run_is_byte_identical(tree, store):
    tree.plugin("amplify")
    tree.skill("amplify", "write-plan")
    adapter = FakeAdapter()
    _run(tree, store, adapter)
    path = store.path_for(UnitKind.SKILL, "write-plan")
    before = path.read_bytes()

    summary = _run(tree, store, adapter)

    assert path.read_bytes() == before
    assert summary.generated == 0
    assert summary.unchanged == 2
    assert len(adapter.calls) == 2


def test_fresh_units_need_no_credential(curated_tree, store):
    tree = curated_tree
    tree.skill("amplify", "debug")
    _run(tree, store, FakeAdapter())

    # Second run: every unit fresh, so a missing credential is not fatal.
    summary = _run(tree, store)
    assert summary.exit_code == 0
    assert summary.unchanged == 3


def test_only_changed_unit_regenerates(curated_tree, store, samples):
    tree = curated_tree
    _run(tree, store)
    plugin_before = store.path_for(UnitKind.PLUGIN, "amplify").read_bytes()

    tree.skill("amplify", "write-plan", doc="---\nname: write-plan\n---\n\n# Changed\n", website=samples.skill_toml)
    summary = _run(tree, store)

    assert _states(summary) == {
        ("plugin", "amplify"): UnitState.FRESH,
        ("skill", "write-plan"): UnitState.WRITTEN,
    }
    assert store.path_for(UnitKind.PLUGIN, "amplify").read_bytes() == plugin_before


def test_source_timestamps_do_not_trigger_regeneration(curated_tree, store, samples):
    tree = curated_tree
    tree.skill("amplify", "debug", website=samples.skill_toml)
    _run(tree, store)
    sources = sorted(
        p for p in tree.root.rglob("*") if p.name in ("PLUGIN.md", "SKILL.md", "website.toml")
    )
    artifacts = {p: p.read_bytes() for p in store.root.rglob("*.json")}
    for path in sources:
        os.utime(path, (1_700_000_000, 1_700_000_000))

    summary = _run(tree, store)

    assert set(_states(summary).values()) == {UnitState.FRESH}
    assert {p: p.read_bytes() for p in store.root.rglob("*.json")} == artifacts

    doc = tree.root / "amplify" / "skills" / "debug" / "SKILL.md"
    stat = doc.stat()
    doc.write_bytes(doc.read_bytes().replace(b"# debug", b"# Debug"))
    os.utime(doc, ns=(stat.st_atime_ns, stat.st_mtime_ns))

    summary = _run(tree, store)

    assert _states(summary) == {
        ("plugin", "amplify"): UnitState.FRESH,
        ("skill", "debug"): UnitState.WRITTEN,
        ("skill", "write-plan"): UnitState.FRESH,
    }


def test_adding_a_skill_makes_plugin_stale(curated_tree, store):
    _run(curated_tree, store)
    curated_tree.skill("amplify", "debug")
    summary = _run(curated_tree, store, FakeAdapter())

    states = _states(summary)
    assert states[("plugin", "amplify")] is UnitState.WRITTEN
    assert states[("skill", "write-plan")] is UnitState.FRESH
    assert states[("skill", "debug")] is UnitState.WRITTEN
    assert _artifact(store, UnitKind.PLUGIN, "amplify")["payload"]["skills"] == ["debug", "write-plan"]


def test_force_regenerates_fresh_units(curated_tree, store):
    _run(curated_tree, store)
    summary = _run(curated_tree, store, force=True)
    assert summary.generated == 2
    assert _artifact(store, UnitKind.PLUGIN, "amplify")["generatedAt"] == "2024-01-01T00:00:02.000Z"


# ------------------------------------------------------------------
# Curated precedence
# ------------------------------------------------------------------


def test_curated_values_win_under_force(curated_tree, store):
    adapter = FakeAdapter()
    _run(curated_tree, store, adapter, force=True)

    assert adapter.calls == []
    payload = _artifact(store, UnitKind.PLUGIN, "amplify")["payload"]
    assert payload["shortDescription"] == "Research-first workflows for Claude Code."
    assert payload["useCases"] == [
        {"title": "Grounded research", "description": "Collect sources before answering."}
    ]


def test_enrichment_only_fills_gaps(tree, store):
    tree.plugin("amplify")
    tree.skill(
        "amplify",
        "write-plan",
        website='[skill]\ntagline = "Curated tagline"\nshort_summary = "Curated summary."\n',
    )
    adapter = FakeAdapter()
    _run(tree, store, adapter)

    assert ("write-plan", ["full_summary", "highlights", "workflow"]) in adapter.calls
    payload = _artifact(store, UnitKind.SKILL, "write-plan")["payload"]
    assert payload["tagline"] == "Curated tagline"
    assert payload["shortSummary"] == "Curated summary."
    assert payload["fullSummary"] == "Generated full summary."
    assert payload["workflow"] == {"steps": [{"name": "Generated", "description": "Generated step."}]}


def test_diagram_generated_tooltips_and_curated_sections(tree, store, samples):
    website = samples.philosophy_toml + '\n[diagram.tooltips]\nSessionStart = "Curated start"\n'
    tree.plugin("amplify", website=website, hooks=samples.hooks_json)
    adapter = FakeAdapter()
    _run(tree, store, adapter)

    payload = _artifact(store, UnitKind.DIAGRAM, "amplify")["payload"]
    tooltips = {e["id"]: e["tooltip"] for e in payload["diagram"]["events"]}
    assert tooltips["SessionStart"] == "Curated start"
    assert tooltips["PreToolUse"] == "Generated PreToolUse"
    assert payload["philosophies"][0]["enhancedContent"] == "Generated enhanced."
    assert payload["intro"] == "How the plugin thinks."


# ------------------------------------------------------------------
# Failure handling
# ------------------------------------------------------------------


def test_unit_failure_is_isolated(tree, store):
    tree.plugin("amplify")
    tree.skill("amplify", "debug")
    tree.skill("amplify", "write-plan")
    summary = _run(tree, store, FakeAdapter(fail_on={"debug"}))

    states = _states(summary)
    assert states[("skill", "debug")] is UnitState.FAILED
    assert states[("skill", "write-plan")] is UnitState.WRITTEN
    assert states[("plugin", "amplify")] is UnitState.WRITTEN
    failed = next(o for o in summary.outcomes if o.unit_id == "debug")
    assert failed.reason.startswith("enrichment failed:")
    assert not store.path_for(UnitKind.SKILL, "debug").exists()
    assert summary.exit_code == 1


def test_failed_unit_keeps_previous_artifact(tree, store):
    tree.plugin("amplify")
    tree.skill("amplify", "debug")
    _run(tree, store, FakeAdapter())
    before = store.path_for(UnitKind.SKILL, "debug").read_bytes()

    tree.skill("amplify", "debug", doc="---\nname: debug\n---\n\n# Changed\n")
    summary = _run(tree, store, FakeAdapter(fail_on={"debug"}))

    assert _states(summary)[("skill", "debug")] is UnitState.FAILED
    assert store.path_for(UnitKind.SKILL, "debug").read_bytes() == before

    # The next run retries because the recorded hash is still the old one.
    summary = _run(tree, store, FakeAdapter())
    assert _states(summary)[("skill", "debug")] is UnitState.WRITTEN


def test_corrupt_artifact_is_rewritten(curated_tree, store):
    _run(curated_tree, store)
    path = store.path_for(UnitKind.SKILL, "write-plan")
    path.write_text("{not json", encoding="utf-8")

    summary = _run(curated_tree, store)

    assert _states(summary)[("skill", "write-plan")] is UnitState.WRITTEN
    assert json.loads(path.read_text(encoding="utf-8"))["payload"]["name"] == "write-plan"


def test_missing_credential_is_fatal_before_any_write(tree, store):
    tree.plugin("amplify")
    with pytest.raises(FatalPipelineError, match="DEEPSEEK_API_KEY"):
        _run(tree, store)
    assert not store.root.exists()


def test_discovery_errors_count_as_failures(curated_tree, store):
    curated_tree.skill("amplify", "broken", website="not = [valid")
    summary = _run(curated_tree, store)
    assert summary.generated == 2
    assert summary.failed == 1
    assert summary.exit_code == 1


def test_write_failure_is_reported(curated_tree, store):
    (store.root / "skills").mkdir(parents=True)
    (store.root / "skills" / "write-plan.json").mkdir()

    summary = _run(curated_tree, store)

    outcome = next(o for o in summary.outcomes if o.unit_id == "write-plan")
    assert outcome.state is UnitState.FAILED
    assert outcome.reason.startswith("write failed:")
    assert _states(summary)[("plugin", "amplify")] is UnitState.WRITTEN


def test_malformed_diagram_section_is_isolated(tree, store, samples):
    website = samples.plugin_toml + "\n" + samples.philosophy_toml + "additions = 5\n"
    tree.plugin("alpha", website=website, hooks=samples.hooks_json)
    tree.plugin("beta", website=samples.plugin_toml)

    summary = _run(tree, store)

    assert _states(summary) == {
        ("plugin", "alpha"): UnitState.WRITTEN,
        ("plugin", "beta"): UnitState.WRITTEN,
    }
    assert [(e.unit_id, e.kind) for e in summary.discovery_errors] == [("alpha", UnitKind.DIAGRAM)]
    assert "'additions' must be an array of tables" in summary.discovery_errors[0].reason
    assert not store.path_for(UnitKind.DIAGRAM, "alpha").exists()
    assert summary.exit_code == 1


def test_unexpected_payload_error_fails_only_that_unit(curated_tree, store, monkeypatch):
    from skillgen.pipeline import orchestrator

    real_build = orchestrator.build_payload

    def build(unit, generated):
        if unit.unit_id == "write-plan":
            raise TypeError("unsupported operand")
        return real_build(unit, generated)

    monkeypatch.setattr(orchestrator, "build_payload", build)
    summary = _run(curated_tree, store)

    outcome = next(o for o in summary.outcomes if o.unit_id == "write-plan")
    assert outcome.state is UnitState.FAILED
    assert outcome.reason == "unexpected TypeError building payload: unsupported operand"
    assert _states(summary)[("plugin", "amplify")] is UnitState.WRITTEN
    assert summary.exit_code == 1


def test_unexpected_adapter_error_fails_only_that_unit(tree, store):
    def on_call(unit):
        if unit.unit_id == "debug":
            raise KeyError("choices")

    tree.plugin("amplify")
    tree.skill("amplify", "debug")
    tree.skill("amplify", "write-plan")
    summary = _run(tree, store, FakeAdapter(on_call=on_call))

    failed = next(o for o in summary.outcomes if o.unit_id == "debug")
    assert failed.state is UnitState.FAILED
    assert failed.reason.startswith("unexpected KeyError during enrichment:")
    assert _states(summary)[("skill", "write-plan")] is UnitState.WRITTEN
    assert _states(summary)[("plugin", "amplify")] is UnitState.WRITTEN


# ------------------------------------------------------------------
# Cancellation and dry run
# ------------------------------------------------------------------


def test_cancel_before_run(curated_tree, store):
    cancel = threading.Event()
    cancel.set()
    summary = _run(curated_tree, store, cancel=cancel)

    assert summary.cancelled
    assert summary.exit_code == 130
    assert all(o.state is UnitState.CANCELLED for o in summary.outcomes)
    assert not store.root.exists()


def test_cancel_between_units(tree, store):
    tree.plugin("amplify")
    tree.skill("amplify", "debug")
    tree.skill("amplify", "write-plan")
    cancel = threading.Event()
    adapter = FakeAdapter(on_call=lambda unit: cancel.set())

    summary = _run(tree, store, adapter, cancel=cancel)

    # The in-flight unit completes; the rest are not started.
    assert _states(summary) == {
        ("plugin", "amplify"): UnitState.WRITTEN,
        ("skill", "debug"): UnitState.CANCELLED,
        ("skill", "write-plan"): UnitState.CANCELLED,
    }
    assert summary.exit_code == 130
    assert store.path_for(UnitKind.PLUGIN, "amplify").exists()


def test_dry_run_writes_nothing(tree, store):
    tree.plugin("amplify")
    tree.skill("amplify", "write-plan")
    summary = _run(tree, store, dry_run=True)

    assert summary.planned == 2
    assert summary.exit_code == 0
    assert not store.root.exists()


def test_plan_reports_missing_fields_for_stale_units(curated_tree, store):
    curated_tree.skill("amplify", "debug")
    pipeline = Pipeline(store, _no_credential, console=Console(file=io.StringIO()))
    plans = {p.unit.unit_id: p for p in pipeline.plan(read_sources(curated_tree.root).units)}

    assert plans["write-plan"].stale and plans["write-plan"].missing == []
    assert plans["debug"].missing == ["tagline", "short_summary", "full_summary", "highlights", "workflow"]
    assert plans["debug"].needs_enrichment
