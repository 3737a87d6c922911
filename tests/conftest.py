"""Shared pytest fixtures."""

from __future__ import annotations

import itertools
import json
from pathlib import Path
from types import SimpleNamespace

import pytest

from skillgen.pipeline.writer import ArtifactStore

PLUGIN_CURATED_TOML = """\
[plugin]
display_name = "Amplify"
tagline = "Ground every answer"
short_description = "Research-first workflows for Claude Code."
full_description = "Amplify adds research and planning skills. It keeps sessions grounded."

[[plugin.use_cases]]
title = "Grounded research"
description = "Collect sources before answering."
"""

SKILL_CURATED_TOML = """\
[skill]
tagline = "Plan before you build"
short_summary = "Turns a goal into a reviewable plan."
full_summary = "Writes a structured plan. Each task has verification steps."

[[skill.highlights]]
title = "Structured tasks"
description = "Every task lists files and checks."

[[skill.workflow]]
name = "Gather context"
description = "Read the relevant files."

[[skill.workflow]]
name = "Write plan"
description = "Produce the task list."
details = "Tasks include dependencies and verification gates."
"""

HOOKS_JSON = json.dumps(
    {
        "description": "Lifecycle hooks",
        "hooks": {
            "SessionStart": [{"hooks": [{"type": "command", "command": "start.sh"}]}],
            "PostToolUseFailure": [{"hooks": [{"type": "command", "command": "recover.sh"}]}],
        },
    },
    indent=2,
)

PHILOSOPHY_TOML = """\
[philosophy]
intro = "How the plugin thinks."

[[philosophy.sections]]
title = "Error Recovery"
content = "When tools fail, re-align to the plan."
highlight_title = "Preventing Goal Drift"
highlight_content = "Re-check the plan before retrying."
related_skills = ["recover-from-errors"]
"""


class SourceTree:
    """Builds a plugin source tree under *root* for tests."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def plugin(
        self,
        name: str,
        doc: str | None = None,
        website: str | None = None,
        hooks: str | None = None,
    ) -> Path:
        plugin_dir = self.root / name
        plugin_dir.mkdir(parents=True, exist_ok=True)
        if doc is None:
            doc = f"---\ndisplayName: {name.title()}\ntagline: The {name} plugin\n---\n\n# {name}\n"
        (plugin_dir / "PLUGIN.md").write_text(doc, encoding="utf-8")
        if website is not None:
            (plugin_dir / "website.toml").write_text(website, encoding="utf-8")
        if hooks is not None:
            (plugin_dir / "hooks").mkdir(exist_ok=True)
            (plugin_dir / "hooks" / "hooks.json").write_text(hooks, encoding="utf-8")
        return plugin_dir

    def skill(
        self,
        plugin: str,
        name: str,
        doc: str | None = None,
        website: str | None = None,
    ) -> Path:
        skill_dir = self.root / plugin / "skills" / name
        skill_dir.mkdir(parents=True, exist_ok=True)
        if doc is None:
            doc = f"---\nname: {name}\ndescription: Use when testing {name}.\n---\n\n# {name}\n"
        (skill_dir / "SKILL.md").write_text(doc, encoding="utf-8")
        if website is not None:
            (skill_dir / "website.toml").write_text(website, encoding="utf-8")
        return skill_dir


@pytest.fixture
def tree(tmp_path: Path) -> SourceTree:
    """Empty source root at tmp_path/claude."""
    return SourceTree(tmp_path / "claude")


@pytest.fixture
def curated_tree(tree: SourceTree) -> SourceTree:
    """One fully curated plugin with one fully curated skill."""
    tree.plugin("amplify", website=PLUGIN_CURATED_TOML)
    tree.skill("amplify", "write-plan", website=SKILL_CURATED_TOML)
    return tree


@pytest.fixture
def clock():
    """Deterministic generatedAt values; each call returns a new timestamp."""
    counter = itertools.count()
    return lambda: f"2024-01-01T00:00:{next(counter):02d}.000Z"


@pytest.fixture
def store(tmp_path: Path, clock) -> ArtifactStore:
    return ArtifactStore(tmp_path / "generated", clock=clock)


@pytest.fixture
def samples() -> SimpleNamespace:
    """Sample descriptor texts."""
    return SimpleNamespace(
        plugin_toml=PLUGIN_CURATED_TOML,
        skill_toml=SKILL_CURATED_TOML,
        hooks_json=HOOKS_JSON,
        philosophy_toml=PHILOSOPHY_TOML,
    )
