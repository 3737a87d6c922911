"""skillgen status — show staleness and enrichment needs without writing anything."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from skillgen.cli.common import discover, load_settings
from skillgen.enrich.adapter import EnrichmentAdapter
from skillgen.pipeline.orchestrator import Pipeline
from skillgen.pipeline.writer import ArtifactStore

console = Console()


def status_cmd(
    source_root: Annotated[
        Path | None,
        typer.Option("--source-root", help="Plugin source directory."),
    ] = None,
    output_dir: Annotated[
        Path | None,
        typer.Option("--output-dir", "-o", help="Generated artifact directory."),
    ] = None,
) -> None:
    """Show each unit's digest, freshness, and whether it needs enrichment."""
    settings = load_settings(console, source_root, output_dir)
    discovery = discover(console, settings)

    def _no_adapter() -> EnrichmentAdapter:
        raise EnvironmentError("status never calls the enrichment service")

    pipeline = Pipeline(ArtifactStore(settings.output_dir), _no_adapter, console=console, dry_run=True)
    plans = pipeline.plan(discovery.units)

    table = Table(title=f"Units in {settings.source_root}", title_justify="left")
    table.add_column("Kind")
    table.add_column("Unit", style="bold")
    table.add_column("Hash", style="dim")
    table.add_column("State")
    table.add_column("Content")

    for plan in plans:
        if plan.error is not None:
            state = f"[red]error: {plan.error}[/]"
        elif plan.stale:
            state = "[yellow]stale[/]"
        else:
            state = "[green]fresh[/]"
        content = (
            f"needs: {', '.join(plan.missing)}"
            if plan.missing
            else ("curated" if plan.stale else "-")
        )
        table.add_row(plan.unit.kind.value, plan.unit.unit_id, plan.digest, state, content)

    for err in discovery.errors:
        table.add_row(
            err.kind.value if err.kind else "-", err.unit_id, "-", "[red]invalid[/]", err.reason
        )

    console.print(table)

    stale = sum(1 for p in plans if p.stale)
    enrich = sum(1 for p in plans if p.needs_enrichment)
    console.print(
        f"\n{len(plans)} unit(s) · {stale} stale · {enrich} need enrichment"
        + (f" · [red]{len(discovery.errors)} invalid[/]" if discovery.errors else "")
    )
    if discovery.errors:
        raise typer.Exit(1)
