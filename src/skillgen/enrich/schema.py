"""Enrichment response schemas: which fields a unit needs and how to validate them.

Length limits: prompts ask for a target length; validation enforces a hard
limit with headroom so a slightly long answer is still accepted.

  field                 prompt target   hard limit
  tagline               80 chars        120 chars
  short_description     120 chars       180 chars
  short_summary         120 chars       180 chars
  full_* text           2-3 sentences   1200 chars
  tooltip               60 chars        90 chars
  use_cases/highlights  3-5 items       1-8 items
  workflow steps        -               1-12 items

Response keys are camelCase; validated results use snake_case.
"""

from __future__ import annotations

import json
from typing import Any

from skillgen.enrich.errors import FieldConstraintError, MalformedResponseError, MissingFieldError
from skillgen.models import SourceUnit, UnitKind
from skillgen.pipeline.payload import DIAGRAM_EVENTS

TAGLINE_MAX = 120
SHORT_TEXT_MAX = 180
FULL_TEXT_MAX = 1200
TOOLTIP_MAX = 90
ITEMS_MAX = 8
STEPS_MAX = 12

# Required descriptive fields per kind (snake_case, in prompt order).
REQUIRED_FIELDS: dict[UnitKind, tuple[str, ...]] = {
    UnitKind.PLUGIN: ("short_description", "full_description", "use_cases"),
    UnitKind.SKILL: ("tagline", "short_summary", "full_summary", "highlights", "workflow"),
    UnitKind.DIAGRAM: ("tooltips", "enhanced_contents"),
}

_CAMEL: dict[str, str] = {
    "tagline": "tagline",
    "short_description": "shortDescription",
    "full_description": "fullDescription",
    "use_cases": "useCases",
    "short_summary": "shortSummary",
    "full_summary": "fullSummary",
    "highlights": "highlights",
    "workflow": "workflow",
    "tooltips": "tooltips",
    "enhanced_contents": "enhancedContents",
}


def missing_fields(unit: SourceUnit) -> list[str]:
    """Required descriptive fields the curated descriptor leaves empty."""
    f = unit.fields
    if unit.kind is UnitKind.DIAGRAM:
        missing: list[str] = []
        if _uncurated_events(unit):
            missing.append("tooltips")
        if _uncurated_sections(unit):
            missing.append("enhanced_contents")
        return missing
    return [name for name in REQUIRED_FIELDS[unit.kind] if not f.get(name)]


def _uncurated_events(unit: SourceUnit) -> list[str]:
    tooltips = unit.fields.get("tooltips") or {}
    return [e["id"] for e in DIAGRAM_EVENTS if not tooltips.get(e["id"])]


def _uncurated_sections(unit: SourceUnit) -> list[str]:
    return [s["title"] for s in unit.fields["sections"] if not s.get("enhanced_content")]


# ------------------------------------------------------------------
# Response validation
# ------------------------------------------------------------------


def parse_response(text: str) -> dict[str, Any]:
    """Decode the raw completion text into a JSON object."""
    if not text.strip():
        raise MalformedResponseError("empty response from model")
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise MalformedResponseError(f"response is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedResponseError("response JSON is not an object")
    return data


def validate_fields(unit: SourceUnit, data: dict[str, Any], wanted: list[str]) -> dict[str, Any]:
    """Validate the *wanted* fields of a decoded response for *unit*.

    Returns:
        Mapping of snake_case field name → validated value.

    Raises:
        MissingFieldError: A wanted field is absent or empty.
        FieldConstraintError: A wanted field violates its type / length rules.
    """
    result: dict[str, Any] = {}
    for name in wanted:
        key = _CAMEL[name]
        value = data.get(key)
        if value is None or value == "" or value == [] or value == {}:
            raise MissingFieldError(key)
        result[name] = _VALIDATORS[name](unit, key, value)
    return result


def _text(key: str, value: Any, limit: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise FieldConstraintError(f"'{key}' must be a non-empty string")
    text = value.strip()
    if len(text) > limit:
        raise FieldConstraintError(f"'{key}' is {len(text)} chars (limit {limit})")
    return text


def _items(
    key: str,
    value: Any,
    required: tuple[str, ...],
    optional: tuple[str, ...] = (),
    max_items: int = ITEMS_MAX,
) -> list[dict[str, str]]:
    if not isinstance(value, list):
        raise FieldConstraintError(f"'{key}' must be an array")
    if not 1 <= len(value) <= max_items:
        raise FieldConstraintError(f"'{key}' has {len(value)} items (expected 1-{max_items})")
    items: list[dict[str, str]] = []
    for i, raw in enumerate(value):
        if not isinstance(raw, dict):
            raise FieldConstraintError(f"'{key}[{i}]' must be an object")
        item: dict[str, str] = {}
        for name in required:
            if name not in raw or raw[name] in (None, ""):
                raise MissingFieldError(f"{key}[{i}].{name}")
            item[name] = _text(f"{key}[{i}].{name}", raw[name], FULL_TEXT_MAX)
        for name in optional:
            if raw.get(name):
                item[name] = _text(f"{key}[{i}].{name}", raw[name], FULL_TEXT_MAX)
        items.append(item)
    return items


def _mapping(key: str, value: Any, needed: list[str], limit: int) -> dict[str, str]:
    if not isinstance(value, dict):
        raise FieldConstraintError(f"'{key}' must be an object")
    result: dict[str, str] = {}
    for name in needed:
        if name not in value or value[name] in (None, ""):
            raise MissingFieldError(f"{key}.{name}")
        result[name] = _text(f"{key}.{name}", value[name], limit)
    return result


def _v_tagline(unit: SourceUnit, key: str, value: Any) -> str:
    return _text(key, value, TAGLINE_MAX)


def _v_short(unit: SourceUnit, key: str, value: Any) -> str:
    return _text(key, value, SHORT_TEXT_MAX)


def _v_full(unit: SourceUnit, key: str, value: Any) -> str:
    return _text(key, value, FULL_TEXT_MAX)


def _v_cards(unit: SourceUnit, key: str, value: Any) -> list[dict[str, str]]:
    return _items(key, value, ("title", "description"))


def _v_workflow(unit: SourceUnit, key: str, value: Any) -> list[dict[str, str]]:
    # Accept both {"steps": [...]} (requested shape) and a bare array.
    if isinstance(value, dict):
        if "steps" not in value:
            raise MissingFieldError(f"{key}.steps")
        value = value["steps"]
    return _items(f"{key}.steps", value, ("name", "description"), ("details",), STEPS_MAX)


def _v_tooltips(unit: SourceUnit, key: str, value: Any) -> dict[str, str]:
    return _mapping(key, value, _uncurated_events(unit), TOOLTIP_MAX)


def _v_enhanced(unit: SourceUnit, key: str, value: Any) -> dict[str, str]:
    return _mapping(key, value, _uncurated_sections(unit), FULL_TEXT_MAX)


_VALIDATORS = {
    "tagline": _v_tagline,
    "short_description": _v_short,
    "full_description": _v_full,
    "use_cases": _v_cards,
    "short_summary": _v_short,
    "full_summary": _v_full,
    "highlights": _v_cards,
    "workflow": _v_workflow,
    "tooltips": _v_tooltips,
    "enhanced_contents": _v_enhanced,
}
