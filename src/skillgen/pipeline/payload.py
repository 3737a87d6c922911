"""Payload assembly: identity fields + curated fields + generated gap-fillers.

Curated values always win. Generated values are used only for fields the
source descriptor leaves empty. Payload keys are camelCase because the static
site consumes them directly.
"""

from __future__ import annotations

import re
from typing import Any

from skillgen.models import SourceUnit, UnitKind

# Static lifecycle markers on the workflow diagram's rounded rectangle.
DIAGRAM_EVENTS: tuple[dict[str, Any], ...] = (
    {"id": "SessionStart", "edge": "top", "position": 0.33, "label": "Session Start"},
    {"id": "UserPromptSubmit", "edge": "top", "position": 0.67, "label": "User Prompt Submit"},
    {"id": "PreToolUse", "edge": "right", "position": 0.25, "label": "Pre Tool Use"},
    {"id": "PostToolUse", "edge": "right", "position": 0.5, "label": "Post Tool Use"},
    {"id": "PostToolUseFailure", "edge": "right", "position": 0.75, "label": "Post Tool Use Failure"},
    {"id": "ExitPlanMode", "edge": "bottom", "position": 0.33, "label": "Exit Plan Mode"},
    {"id": "EnterPlanMode", "edge": "bottom", "position": 0.67, "label": "Enter Plan Mode"},
    {"id": "SubagentStop", "edge": "left", "position": 0.33, "label": "Subagent Stop"},
    {"id": "SubagentSpawn", "edge": "left", "position": 0.67, "label": "Subagent Spawn"},
)

DIAGRAM_RECT: dict[str, int] = {"width": 600, "height": 400, "rx": 24}

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def to_display_name(name: str) -> str:
    """Convert a hyphenated id to Title Case: ``write-plan`` → ``Write Plan``."""
    return " ".join(word[:1].upper() + word[1:] for word in name.split("-"))


def to_id(title: str) -> str:
    """Convert a title to a kebab-case id: ``Error Recovery`` → ``error-recovery``."""
    return _NON_ALNUM_RE.sub("-", title.lower()).strip("-")


def _pick(curated: Any, generated: dict[str, Any], key: str, default: Any = None) -> Any:
    if curated:
        return curated
    value = generated.get(key)
    return value if value else default


def build_payload(unit: SourceUnit, generated: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return the artifact payload for *unit*.

    Args:
        unit: Source unit with curated fields.
        generated: Validated enrichment fields (snake_case keys), or None when
            enrichment was not needed.
    """
    gen = generated or {}
    if unit.kind is UnitKind.PLUGIN:
        return _plugin_payload(unit, gen)
    if unit.kind is UnitKind.SKILL:
        return _skill_payload(unit, gen)
    return _diagram_payload(unit, gen)


def _plugin_payload(unit: SourceUnit, gen: dict[str, Any]) -> dict[str, Any]:
    f = unit.fields
    skills = list(f["skills"])
    payload: dict[str, Any] = {
        "name": f["name"],
        "displayName": f.get("display_name") or to_display_name(f["name"]),
        "tagline": f.get("tagline") or "",
        "shortDescription": _pick(f.get("short_description"), gen, "short_description", ""),
        "fullDescription": _pick(f.get("full_description"), gen, "full_description", ""),
        "useCases": _pick(f.get("use_cases"), gen, "use_cases", []),
        "skillCount": len(skills),
        "skills": skills,
    }
    marketplace = f.get("marketplace")
    if marketplace is not None:
        payload["marketplaceCommand"] = f"/plugin marketplace add {marketplace.owner}/skills"
        payload["installCommand"] = f"/plugin install {f['name']}@{marketplace.name}"
    return payload


def _skill_payload(unit: SourceUnit, gen: dict[str, Any]) -> dict[str, Any]:
    f = unit.fields
    return {
        "name": f["name"],
        "displayName": f.get("display_name") or to_display_name(f["name"]),
        "pluginName": f["plugin_name"],
        "tagline": _pick(f.get("tagline"), gen, "tagline", ""),
        "shortSummary": _pick(f.get("short_summary"), gen, "short_summary", ""),
        "fullSummary": _pick(f.get("full_summary"), gen, "full_summary", ""),
        "highlights": _pick(f.get("highlights"), gen, "highlights", []),
        "workflow": {"steps": _pick(f.get("workflow"), gen, "workflow", [])},
    }


def _diagram_payload(unit: SourceUnit, gen: dict[str, Any]) -> dict[str, Any]:
    f = unit.fields
    curated_tooltips: dict[str, str] = f.get("tooltips") or {}
    generated_tooltips: dict[str, str] = gen.get("tooltips") or {}
    generated_contents: dict[str, str] = gen.get("enhanced_contents") or {}

    events = []
    for event in DIAGRAM_EVENTS:
        tooltip = (
            curated_tooltips.get(event["id"])
            or generated_tooltips.get(event["id"])
            or f"{event['label']} event"
        )
        events.append({**event, "tooltip": tooltip})

    philosophies = []
    for section in f["sections"]:
        title = section["title"]
        philosophies.append(
            {
                "id": section.get("id") or to_id(title),
                "title": title,
                "content": section["content"],
                "enhancedContent": section.get("enhanced_content")
                or generated_contents.get(title)
                or section["content"],
                "additions": list(section.get("additions") or []),
                "highlight": build_highlight(section),
                "relatedSkills": list(section.get("related_skills") or []),
            }
        )

    payload: dict[str, Any] = {
        "diagram": {"events": events, "rect": dict(DIAGRAM_RECT)},
        "philosophies": philosophies,
    }
    if f.get("intro"):
        payload["intro"] = f["intro"]
    return payload


def build_highlight(section: dict[str, Any]) -> dict[str, Any]:
    """Highlight card for a philosophy section.

    Precedence: explicit ``highlight`` table → flat ``highlight_title`` /
    ``highlight_content`` fields (with comparison when all four comparison
    fields are present) → generic insight titled after the section.
    """
    if isinstance(section.get("highlight"), dict):
        return dict(section["highlight"])

    if section.get("highlight_title") and section.get("highlight_content"):
        highlight: dict[str, Any] = {
            "type": "insight" if section.get("comparison_before") else "feature",
            "title": section["highlight_title"],
            "content": section["highlight_content"],
        }
        keys = (
            "comparison_before_label",
            "comparison_before",
            "comparison_after_label",
            "comparison_after",
        )
        if all(section.get(k) for k in keys):
            highlight["comparison"] = {
                "before_label": section["comparison_before_label"],
                "before": section["comparison_before"],
                "after_label": section["comparison_after_label"],
                "after": section["comparison_after"],
            }
        return highlight

    return {
        "type": "insight",
        "title": section["title"],
        "content": "Key insight for this philosophy section.",
    }
