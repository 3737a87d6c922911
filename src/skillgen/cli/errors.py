"""skillgen rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from skillgen.cli.errors import err_no_api_key
    console.print(err_no_api_key("deepseek/deepseek-chat", "DEEPSEEK_API_KEY"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_api_key(model: str, env_var: str | None) -> str:
    """Enrichment is needed but no credential is configured for *model*."""
    env_var = env_var or "<PROVIDER>_API_KEY"
    return (
        f"[red]Error:[/] Some units need enrichment but no API key is set for '{model}'.\n"
        f"  Set:  export {env_var}=sk-...\n"
        "  Or curate the missing fields in website.toml so no enrichment is needed."
    )


def err_no_source_root(path: str) -> str:
    """Source root directory does not exist."""
    return (
        f"[red]Error:[/] Source root not found: '{path}'\n"
        "  Pass --source-root PATH or set paths.source_root in skillgen.yaml."
    )


def err_config(message: str) -> str:
    """Config file is invalid."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {message}\n"
        "  Fix skillgen.yaml (or ~/.skillgen/config.yaml) and re-run."
    )


def err_cancelled(remaining: int) -> str:
    """Run was interrupted between units."""
    return (
        f"[yellow]Cancelled:[/] {remaining} unit(s) were not processed.\n"
        "  Re-run  skillgen generate  to finish; completed units will be skipped."
    )
