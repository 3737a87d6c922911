"""skillgen configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (SKILLGEN_MODEL, SKILLGEN_TIMEOUT)
  3. Per-project skillgen.yaml  (working directory)
  4. Global ~/.skillgen/config.yaml  (model defaults only — no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".skillgen"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "skillgen.yaml"

# Fields that suggest an API key — forbidden in global config.
# Does NOT match legitimate config keys like max_tokens.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(["paths", "enrichment"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class PathsCfg:
    """Source and output locations (skillgen.yaml: paths:).

    Relative paths are resolved against the working directory by the CLI.
    """

    source_root: str = "claude"
    output_dir: str = "website/src/content/generated"
    marketplace: str | None = ".claude-plugin/marketplace.json"


@dataclass
class EnrichmentCfg:
    """Generative enrichment settings (skillgen.yaml: enrichment:).

    Attributes:
        model: LiteLLM model string in 'provider/model' format.
        timeout: Per-request timeout in seconds; enforced on every call.
        max_tokens: Maximum output tokens per enrichment response.
        seed: Fixed sampling seed for repeatable output.
    """

    model: str = "deepseek/deepseek-chat"
    timeout: float = 60.0
    max_tokens: int = 2048
    seed: int = 42


@dataclass
class SkillgenConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    paths: PathsCfg = field(default_factory=PathsCfg)
    enrichment: EnrichmentCfg = field(default_factory=EnrichmentCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file '{path}' is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{path}' must contain a mapping at the top level.")
    return data


def _validate(cfg: SkillgenConfig) -> None:
    if cfg.enrichment.timeout <= 0:
        raise ConfigError(
            f"enrichment.timeout must be a positive number of seconds, got {cfg.enrichment.timeout}"
        )
    if cfg.enrichment.max_tokens < 1:
        raise ConfigError(
            f"enrichment.max_tokens must be >= 1, got {cfg.enrichment.max_tokens}"
        )


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> SkillgenConfig:
    """Build a *SkillgenConfig* from a merged raw YAML dict."""
    cfg = SkillgenConfig()

    try:
        if "paths" in data:
            p = data["paths"] or {}
            cfg.paths = PathsCfg(
                source_root=str(p.get("source_root", cfg.paths.source_root)),
                output_dir=str(p.get("output_dir", cfg.paths.output_dir)),
                marketplace=p.get("marketplace", cfg.paths.marketplace),
            )

        if "enrichment" in data:
            e = data["enrichment"] or {}
            cfg.enrichment = EnrichmentCfg(
                model=str(e.get("model", cfg.enrichment.model)),
                timeout=float(e.get("timeout", cfg.enrichment.timeout)),
                max_tokens=int(e.get("max_tokens", cfg.enrichment.max_tokens)),
                seed=int(e.get("seed", cfg.enrichment.seed)),
            )
    except (TypeError, ValueError, AttributeError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    return cfg


def _apply_env_overrides(cfg: SkillgenConfig) -> SkillgenConfig:
    """Apply SKILLGEN_* environment variable overrides (layer 2)."""
    if model := os.environ.get("SKILLGEN_MODEL"):
        cfg.enrichment.model = model
    if timeout := os.environ.get("SKILLGEN_TIMEOUT"):
        try:
            cfg.enrichment.timeout = float(timeout)
        except ValueError as exc:
            raise ConfigError(f"SKILLGEN_TIMEOUT must be a number, got '{timeout}'") from exc
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> SkillgenConfig:
    """Load and return a merged *SkillgenConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *skillgen.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If global config contains API-key-like fields, a file is
            not valid YAML, or a value has the wrong type.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _read_yaml(project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    _validate(cfg)
    return cfg
