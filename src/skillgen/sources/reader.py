"""Source Reader — discover plugin, skill and diagram units from a source tree.

Layout (rooted at the configured source root):

  <root>/<plugin>/PLUGIN.md                     required for a plugin
  <root>/<plugin>/website.toml                  optional curated data
  <root>/<plugin>/hooks/hooks.json              with [philosophy] → diagram unit
  <root>/<plugin>/skills/<skill>/SKILL.md       required for a skill
  <root>/<plugin>/skills/<skill>/website.toml   optional curated data

Raw parts are recorded exactly as read (no normalization) in a fixed order per
kind; the hasher joins them with BOUNDARY:

  plugin:  PLUGIN.md, website.toml, sorted skill names (newline-joined), marketplace.json
  skill:   SKILL.md, website.toml, owning plugin name
  diagram: hooks.json, plugin website.toml, each SKILL.md in sorted skill order

A missing root is fatal (SourceRootError). A malformed descriptor is recorded
as a DiscoveryError and the unit is skipped.
"""

from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from skillgen.models import DiscoveryError, SourceUnit, UnitKind, sort_key
from skillgen.sources.frontmatter import parse_front_matter

PLUGIN_DOC = "PLUGIN.md"
SKILL_DOC = "SKILL.md"
WEBSITE_TOML = "website.toml"
HOOKS_JSON = Path("hooks") / "hooks.json"
SKILLS_DIR = "skills"

_ADDITION_KEYS = ("id", "event", "type", "label", "description", "effect")
_COMPARISON_KEYS = ("before_label", "before", "after_label", "after")
_SECTION_TEXT_KEYS = (
    "highlight_title",
    "highlight_content",
    "comparison_before_label",
    "comparison_before",
    "comparison_after_label",
    "comparison_after",
)


class SourceRootError(FileNotFoundError):
    """Raised when the source root directory does not exist."""


@dataclass
class Marketplace:
    name: str
    owner: str


@dataclass
class DiscoveryResult:
    units: list[SourceUnit] = field(default_factory=list)
    errors: list[DiscoveryError] = field(default_factory=list)
    marketplace: Marketplace | None = None

    def by_kind(self, kind: UnitKind) -> list[SourceUnit]:
        return [u for u in self.units if u.kind is kind]


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------


def read_sources(root: Path, marketplace_path: Path | None = None) -> DiscoveryResult:
    """Discover every source unit under *root*.

    Args:
        root: Directory containing one subdirectory per plugin.
        marketplace_path: Optional marketplace manifest (JSON) used for
            install commands in plugin payloads.

    Returns:
        DiscoveryResult with units sorted by kind then unit id.

    Raises:
        SourceRootError: If *root* is not an existing directory.
    """
    if not root.is_dir():
        raise SourceRootError(f"Source root not found: '{root}'")

    result = DiscoveryResult()
    marketplace_text = ""
    if marketplace_path is not None and marketplace_path.is_file():
        try:
            marketplace_text = marketplace_path.read_text(encoding="utf-8")
            result.marketplace = _parse_marketplace(marketplace_text)
        except (OSError, ValueError) as exc:
            result.errors.append(
                DiscoveryError("marketplace", None, f"{marketplace_path.name}: {exc}")
            )

    seen_skills: dict[str, str] = {}

    for plugin_dir in _sorted_dirs(root):
        if not (plugin_dir / PLUGIN_DOC).is_file():
            continue
        plugin_name = plugin_dir.name
        skill_names = [
            d.name for d in _sorted_dirs(plugin_dir / SKILLS_DIR) if (d / SKILL_DOC).is_file()
        ]

        website: dict[str, Any] | None = None
        website_text = ""
        try:
            website_text, website = _read_toml(plugin_dir / WEBSITE_TOML)
            result.units.append(
                _load_plugin(
                    plugin_dir, skill_names, website_text, website, marketplace_text,
                    result.marketplace,
                )
            )
        except (OSError, ValueError) as exc:
            result.errors.append(DiscoveryError(plugin_name, UnitKind.PLUGIN, str(exc)))

        skill_texts: list[str] = []
        for skill_name in skill_names:
            skill_dir = plugin_dir / SKILLS_DIR / skill_name
            try:
                skill_texts.append((skill_dir / SKILL_DOC).read_text(encoding="utf-8"))
            except (OSError, ValueError):
                skill_texts.append("")
            if skill_name in seen_skills:
                result.errors.append(
                    DiscoveryError(
                        skill_name,
                        UnitKind.SKILL,
                        f"duplicate skill name (already defined by plugin '{seen_skills[skill_name]}')",
                    )
                )
                continue
            seen_skills[skill_name] = plugin_name
            try:
                result.units.append(_load_skill(skill_dir, plugin_name))
            except (OSError, ValueError) as exc:
                result.errors.append(DiscoveryError(skill_name, UnitKind.SKILL, str(exc)))

        if website is None or not (plugin_dir / HOOKS_JSON).is_file():
            continue
        if "philosophy" not in website:
            continue
        try:
            result.units.append(
                _load_diagram(plugin_dir, website_text, website, skill_names, skill_texts)
            )
        except (OSError, ValueError) as exc:
            result.errors.append(DiscoveryError(plugin_name, UnitKind.DIAGRAM, str(exc)))

    result.units.sort(key=lambda u: sort_key(u.kind, u.unit_id))
    result.errors.sort(key=lambda e: (e.kind is None, sort_key(e.kind or UnitKind.PLUGIN, e.unit_id)))
    return result


# ------------------------------------------------------------------
# Per-kind loaders
# ------------------------------------------------------------------


def _load_plugin(
    plugin_dir: Path,
    skill_names: list[str],
    website_text: str,
    website: dict[str, Any],
    marketplace_text: str,
    marketplace: Marketplace | None,
) -> SourceUnit:
    doc_text = (plugin_dir / PLUGIN_DOC).read_text(encoding="utf-8")
    front, _ = _front_matter(doc_text, PLUGIN_DOC)
    curated = _table(website, "plugin", WEBSITE_TOML)
    where = f"{WEBSITE_TOML} [plugin]"

    fields: dict[str, Any] = {
        "name": plugin_dir.name,
        "skills": list(skill_names),
        "display_name": _opt_str(curated, "display_name", where)
        or _opt_str(front, "displayName", PLUGIN_DOC),
        "tagline": _opt_str(curated, "tagline", where) or _opt_str(front, "tagline", PLUGIN_DOC),
        "short_description": _opt_str(curated, "short_description", where),
        "full_description": _opt_str(curated, "full_description", where),
        "use_cases": _opt_items(curated, "use_cases", ("title", "description"), (), where),
        "marketplace": marketplace,
    }
    return SourceUnit(
        unit_id=plugin_dir.name,
        kind=UnitKind.PLUGIN,
        raw_parts=(doc_text, website_text, "\n".join(skill_names), marketplace_text),
        fields=fields,
        path=plugin_dir,
    )


def _load_skill(skill_dir: Path, plugin_name: str) -> SourceUnit:
    doc_text = (skill_dir / SKILL_DOC).read_text(encoding="utf-8")
    front, _ = _front_matter(doc_text, SKILL_DOC)
    website_text, website = _read_toml(skill_dir / WEBSITE_TOML)
    curated = _table(website, "skill", WEBSITE_TOML)
    where = f"{WEBSITE_TOML} [skill]"

    workflow = curated.get("workflow")
    if isinstance(workflow, dict):
        workflow = {"workflow": workflow.get("steps")}
    else:
        workflow = {"workflow": workflow}

    fields: dict[str, Any] = {
        "name": skill_dir.name,
        "plugin_name": plugin_name,
        "display_name": _opt_str(curated, "display_name", where)
        or _opt_str(front, "displayName", SKILL_DOC),
        "tagline": _opt_str(curated, "tagline", where) or _opt_str(front, "tagline", SKILL_DOC),
        "short_summary": _opt_str(curated, "short_summary", where),
        "full_summary": _opt_str(curated, "full_summary", where),
        "highlights": _opt_items(curated, "highlights", ("title", "description"), (), where),
        "workflow": _opt_items(workflow, "workflow", ("name", "description"), ("details",), where),
    }
    return SourceUnit(
        unit_id=skill_dir.name,
        kind=UnitKind.SKILL,
        raw_parts=(doc_text, website_text, plugin_name),
        fields=fields,
        path=skill_dir,
    )


def _load_diagram(
    plugin_dir: Path,
    website_text: str,
    website: dict[str, Any],
    skill_names: list[str],
    skill_texts: list[str],
) -> SourceUnit:
    hooks_text = (plugin_dir / HOOKS_JSON).read_text(encoding="utf-8")
    hooks = json.loads(hooks_text)
    if not isinstance(hooks, dict) or not isinstance(hooks.get("hooks"), dict):
        raise ValueError(f"{HOOKS_JSON.as_posix()}: expected an object with a 'hooks' mapping")

    philosophy = _table(website, "philosophy", WEBSITE_TOML)
    raw_sections = philosophy.get("sections", [])
    if not isinstance(raw_sections, list):
        raise ValueError(f"{WEBSITE_TOML} [philosophy]: 'sections' must be an array of tables")

    sections: list[dict[str, Any]] = []
    for i, raw in enumerate(raw_sections):
        where = f"{WEBSITE_TOML} [philosophy] section {i + 1}"
        if not isinstance(raw, dict):
            raise ValueError(f"{where}: expected a table")
        sections.append(_load_section(raw, where))

    diagram = _table(website, "diagram", WEBSITE_TOML)
    tooltips = diagram.get("tooltips", {})
    if not isinstance(tooltips, dict) or not all(isinstance(v, str) for v in tooltips.values()):
        raise ValueError(f"{WEBSITE_TOML} [diagram.tooltips]: values must be strings")

    fields: dict[str, Any] = {
        "plugin_name": plugin_dir.name,
        "intro": _opt_str(philosophy, "intro", f"{WEBSITE_TOML} [philosophy]"),
        "hook_events": list(hooks["hooks"].keys()),
        "skills": list(skill_names),
        "sections": sections,
        "tooltips": {k: v for k, v in tooltips.items() if v.strip()},
    }
    return SourceUnit(
        unit_id=plugin_dir.name,
        kind=UnitKind.DIAGRAM,
        raw_parts=(hooks_text, website_text, *skill_texts),
        fields=fields,
        path=plugin_dir,
    )


def _load_section(raw: dict[str, Any], where: str) -> dict[str, Any]:
    """Validate one [[philosophy.sections]] table; only known keys are kept."""
    title = _opt_str(raw, "title", where)
    content = _opt_str(raw, "content", where)
    if not title or not content:
        raise ValueError(f"{where}: 'title' and 'content' are required")

    section: dict[str, Any] = {
        "id": _opt_str(raw, "id", where),
        "title": title,
        "content": content,
        "enhanced_content": _opt_str(raw, "enhanced_content", where),
        "additions": _opt_items(raw, "additions", _ADDITION_KEYS, (), where) or [],
        "highlight": _highlight(raw, where),
        "related_skills": _str_list(raw, "related_skills", where),
    }
    for key in _SECTION_TEXT_KEYS:
        section[key] = _opt_str(raw, key, where)
    return section


def _highlight(raw: dict[str, Any], where: str) -> dict[str, Any] | None:
    value = raw.get("highlight")
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValueError(f"{where}: 'highlight' must be a table")
    highlight: dict[str, Any] = {}
    for key in ("type", "title", "content"):
        text = _opt_str(value, key, f"{where} highlight")
        if text is None:
            raise ValueError(f"{where}: highlight is missing '{key}'")
        highlight[key] = text
    comparison = value.get("comparison")
    if comparison is not None:
        if not isinstance(comparison, dict):
            raise ValueError(f"{where}: 'highlight.comparison' must be a table")
        highlight["comparison"] = {}
        for key in _COMPARISON_KEYS:
            text = _opt_str(comparison, key, f"{where} highlight.comparison")
            if text is None:
                raise ValueError(f"{where}: highlight.comparison is missing '{key}'")
            highlight["comparison"][key] = text
    return highlight


# ------------------------------------------------------------------
# Parsing helpers
# ------------------------------------------------------------------


def _sorted_dirs(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted((d for d in directory.iterdir() if d.is_dir()), key=lambda d: d.name)


def _read_toml(path: Path) -> tuple[str, dict[str, Any]]:
    """Return (raw text, parsed table); ("", {}) when the file is absent."""
    if not path.is_file():
        return "", {}
    text = path.read_text(encoding="utf-8")
    try:
        return text, tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"{path.name}: invalid TOML: {exc}") from exc


def _front_matter(text: str, name: str) -> tuple[dict[str, Any], str]:
    try:
        return parse_front_matter(text)
    except ValueError as exc:
        raise ValueError(f"{name}: {exc}") from exc


def _parse_marketplace(text: str) -> Marketplace:
    data = json.loads(text)
    try:
        name = data["name"]
        owner = data["owner"]["name"]
    except (KeyError, TypeError) as exc:
        raise ValueError("expected 'name' and 'owner.name'") from exc
    if not isinstance(name, str) or not isinstance(owner, str):
        raise ValueError("'name' and 'owner.name' must be strings")
    return Marketplace(name=name, owner=owner)


def _table(data: dict[str, Any], key: str, where: str) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"{where}: [{key}] must be a table")
    return value


def _opt_str(data: dict[str, Any], key: str, where: str) -> str | None:
    """Return a stripped non-empty string, or None if absent / blank."""
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{where}: '{key}' must be a string")
    return value.strip() or None


def _opt_items(
    data: dict[str, Any],
    key: str,
    required: tuple[str, ...],
    optional: tuple[str, ...],
    where: str,
) -> list[dict[str, str]] | None:
    """Return a list of string-valued tables, or None if absent / empty."""
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        raise ValueError(f"{where}: '{key}' must be an array of tables")
    items: list[dict[str, str]] = []
    for i, raw in enumerate(value):
        if not isinstance(raw, dict):
            raise ValueError(f"{where}: {key}[{i}] must be a table")
        item: dict[str, str] = {}
        for name in required:
            text = _opt_str(raw, name, f"{where} {key}[{i}]")
            if text is None:
                raise ValueError(f"{where}: {key}[{i}] is missing '{name}'")
            item[name] = text
        for name in optional:
            text = _opt_str(raw, name, f"{where} {key}[{i}]")
            if text is not None:
                item[name] = text
        items.append(item)
    return items or None


def _str_list(data: dict[str, Any], key: str, where: str) -> list[str]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(s, str) for s in value):
        raise ValueError(f"{where}: '{key}' must be an array of strings")
    return list(value)
