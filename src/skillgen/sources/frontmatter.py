"""YAML front matter splitter for PLUGIN.md / SKILL.md documents.

A document has front matter when its first line is exactly ``---``; the block
runs to the next line that is exactly ``---``. Documents without front matter
parse to an empty mapping and the full text as body.
"""

from __future__ import annotations

from typing import Any

import yaml

_DELIMITER = "---"


class FrontMatterError(ValueError):
    """Raised when a front matter block is unterminated, invalid YAML, or not a mapping."""


def parse_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Split *text* into (front matter mapping, body).

    Raises:
        FrontMatterError: If the block is unterminated, not valid YAML,
            or does not contain a mapping.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip("\r\n") != _DELIMITER:
        return {}, text

    for i in range(1, len(lines)):
        if lines[i].rstrip("\r\n") == _DELIMITER:
            block = "".join(lines[1:i])
            body = "".join(lines[i + 1 :])
            break
    else:
        raise FrontMatterError("front matter block is not terminated by '---'")

    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        raise FrontMatterError(f"front matter is not valid YAML: {exc}") from exc

    if data is None:
        return {}, body
    if not isinstance(data, dict):
        raise FrontMatterError("front matter must be a mapping of key: value pairs")
    return data, body
