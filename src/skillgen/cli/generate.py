"""skillgen generate CLI command.

Regenerates the JSON artifact of every unit whose content digest changed.

Usage:
  skillgen generate [--force] [--dry-run] [--source-root PATH] [--output-dir PATH]

Flags:
  --force            Regenerate every unit regardless of recorded digests
                     (fully curated units still never call the model)
  --dry-run          Show what would be regenerated; write nothing, call nothing
  --source-root      Plugin source directory (default: paths.source_root)
  --output-dir       Generated artifact directory (default: paths.output_dir)
  --model            LiteLLM model for enrichment (default: enrichment.model)

Exit codes: 0 success · 1 a unit failed or a precondition was unmet · 130 cancelled.
"""

from __future__ import annotations

import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Iterator

import typer
from rich.console import Console
from rich.table import Table

from skillgen.cli.common import discover, load_settings
from skillgen.cli.errors import err_cancelled, err_no_api_key
from skillgen.enrich.adapter import EnrichmentAdapter
from skillgen.enrich.llm_client import api_key_env
from skillgen.models import RunSummary, UnitState
from skillgen.pipeline.orchestrator import FatalPipelineError, Pipeline
from skillgen.pipeline.writer import ArtifactStore

console = Console()


def generate_cmd(
    force: Annotated[
        bool,
        typer.Option("--force", help="Regenerate all units, ignoring recorded digests."),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be regenerated without writing."),
    ] = False,
    source_root: Annotated[
        Path | None,
        typer.Option("--source-root", help="Plugin source directory."),
    ] = None,
    output_dir: Annotated[
        Path | None,
        typer.Option("--output-dir", "-o", help="Generated artifact directory."),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", help="LiteLLM model for enrichment (provider/model)."),
    ] = None,
) -> None:
    """Regenerate JSON artifacts for changed plugins, skills and diagrams."""
    settings = load_settings(console, source_root, output_dir, model)
    discovery = discover(console, settings)

    console.print(
        f"Found {len(discovery.units)} unit(s) in [bold]{settings.source_root}[/]"
        + (" [dim](dry run)[/]" if dry_run else "")
    )

    enrichment_cfg = settings.config.enrichment
    cancel = threading.Event()
    pipeline = Pipeline(
        ArtifactStore(settings.output_dir),
        lambda: EnrichmentAdapter.from_config(enrichment_cfg),
        console=console,
        force=force,
        dry_run=dry_run,
        cancel=cancel,
    )

    try:
        with _cancel_on_sigint(cancel):
            summary = pipeline.run(discovery)
    except FatalPipelineError:
        console.print(err_no_api_key(enrichment_cfg.model, api_key_env(enrichment_cfg.model)))
        raise typer.Exit(1)

    _print_summary(summary)
    raise typer.Exit(summary.exit_code)


# ------------------------------------------------------------------
# Cancellation
# ------------------------------------------------------------------


@contextmanager
def _cancel_on_sigint(cancel: threading.Event) -> Iterator[None]:
    """Turn the first Ctrl-C into a between-units stop; a second one aborts."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = signal.getsignal(signal.SIGINT)

    def _handler(signum, frame):
        if cancel.is_set():
            signal.signal(signal.SIGINT, previous)
            raise KeyboardInterrupt
        cancel.set()
        console.print("\n  [yellow]Stopping after the current unit… (Ctrl-C again to abort)[/]")

    signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


# ------------------------------------------------------------------
# Summary
# ------------------------------------------------------------------


def _print_summary(summary: RunSummary) -> None:
    parts = [
        f"[green]{summary.generated} generated[/]",
        f"{summary.unchanged} unchanged",
        f"[red]{summary.failed} failed[/]" if summary.failed else "0 failed",
    ]
    if summary.planned:
        parts.insert(0, f"[yellow]{summary.planned} to regenerate[/]")
    console.print("\n" + " · ".join(parts))

    failures = [o for o in summary.sorted_outcomes() if o.state is UnitState.FAILED]
    if summary.discovery_errors or failures:
        table = Table(title="Failed units", title_justify="left", show_lines=False)
        table.add_column("Kind")
        table.add_column("Unit", style="bold")
        table.add_column("Reason", style="red")
        for err in summary.discovery_errors:
            table.add_row(err.kind.value if err.kind else "-", err.unit_id, err.reason)
        for outcome in failures:
            table.add_row(outcome.kind.value, outcome.unit_id, outcome.reason)
        console.print(table)

    if summary.cancelled:
        remaining = sum(1 for o in summary.outcomes if o.state is UnitState.CANCELLED)
        console.print(err_cancelled(remaining))
