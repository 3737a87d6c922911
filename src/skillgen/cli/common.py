"""Shared CLI helpers: config resolution and source discovery."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console

from skillgen.cli.errors import err_config, err_no_source_root
from skillgen.config import ConfigError, SkillgenConfig, load_config
from skillgen.sources.reader import DiscoveryResult, SourceRootError, read_sources


@dataclass
class Settings:
    config: SkillgenConfig
    source_root: Path
    output_dir: Path
    marketplace: Path | None


def load_settings(
    console: Console,
    source_root: Path | None = None,
    output_dir: Path | None = None,
    model: str | None = None,
) -> Settings:
    """Load config and apply CLI flag overrides (exit 1 on invalid config)."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)

    if model:
        cfg.enrichment.model = model

    marketplace = Path(cfg.paths.marketplace) if cfg.paths.marketplace else None
    return Settings(
        config=cfg,
        source_root=source_root or Path(cfg.paths.source_root),
        output_dir=output_dir or Path(cfg.paths.output_dir),
        marketplace=marketplace,
    )


def discover(console: Console, settings: Settings) -> DiscoveryResult:
    """Read all source units (exit 1 if the source root is missing)."""
    try:
        return read_sources(settings.source_root, settings.marketplace)
    except SourceRootError:
        console.print(err_no_source_root(str(settings.source_root)))
        raise typer.Exit(1)
