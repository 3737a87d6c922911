"""skillgen CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from skillgen.cli.generate import generate_cmd
from skillgen.cli.status import status_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("skillgen")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"skillgen {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="skillgen",
    help=(
        "skillgen — incremental content generation for the plugin gallery site.\n\n"
        "  skillgen generate  Regenerate JSON artifacts for changed plugins and skills.\n"
        "  skillgen status    Show which units are fresh, stale, or need enrichment."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """skillgen — incremental content generation."""


app.command("generate")(generate_cmd)
app.command("status")(status_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed skillgen version."""
    typer.echo(f"skillgen {_installed_version()}")


if __name__ == "__main__":
    app()
