"""Mapping of task template fields onto issue tracker fields."""

from __future__ import annotations

import json
from typing import Any, Optional, Sequence

from .models import EffectSpec, TaskNode

TEMPLATE_VERSION = "0.2.0"
DEFAULT_PRIORITY = 2

_PRIORITIES = {"critical": 0, "high": 1, "medium": 2, "low": 3}
_ESTIMATE_MINUTES = {"trivial": 15, "small": 60, "medium": 240, "large": 480}

# Characters escaped in compact JSON so the text is safe inside HTML.
_HTML_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


def map_priority(priority: str) -> int:
    """Return the numeric tracker priority; 2 (medium) when empty or unknown."""
    return _PRIORITIES.get(priority.lower(), DEFAULT_PRIORITY)


def map_estimate(estimate: str) -> int:
    """Return the estimate in minutes; 0 means the estimate is left out."""
    return _ESTIMATE_MINUTES.get(estimate.lower(), 0)


def _string_list(raw: Any) -> Optional[list[str]]:
    """Return raw as a list of strings, or None for an absent or N/A value."""
    if isinstance(raw, list) and all(isinstance(item, str) for item in raw):
        return list(raw)
    return None


def _effect(item: Any) -> Optional[EffectSpec]:
    if item is None:
        return EffectSpec()
    if not isinstance(item, dict):
        return None
    kind = item.get("type") or ""
    target = item.get("target") or ""
    if not isinstance(kind, str) or not isinstance(target, str):
        return None
    return EffectSpec(type=kind, target=target)


def _describe_effects(raw: Any) -> str:
    """Render effects: a plain string, a list of effects, or '' for N/A."""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, list):
        effects = [_effect(item) for item in raw]
        if all(effect is not None for effect in effects):
            return "; ".join(f"{e.type}: {e.target}" for e in effects)
    return ""


def compose_description(task: TaskNode) -> str:
    """Build a markdown description; sections without data are left out."""
    parts = [task.goal]

    if task.inputs:
        parts.append("\n\n## Inputs\n")
        parts.extend(
            f"- **{spec.name}** (`{spec.type}`): {spec.constraints} -- Source: {spec.source}\n"
            for spec in task.inputs
        )

    if task.outputs:
        parts.append("\n## Outputs\n")
        parts.extend(
            f"- **{spec.name}** (`{spec.type}`): {spec.constraints} -- Dest: {spec.destination}\n"
            for spec in task.outputs
        )

    constraints = _string_list(task.constraints)
    if constraints:
        parts.append("\n## Constraints\n")
        parts.extend(f"- {item}\n" for item in constraints)

    if task.non_goals:
        parts.append("\n## Non-Goals\n")
        parts.extend(f"- {item}\n" for item in task.non_goals)

    if task.error_cases:
        parts.append("\n## Error Cases\n")
        parts.extend(
            f"- **{case.condition}**: {case.behavior} -> {case.output}\n"
            for case in task.error_cases
        )

    return "".join(parts)


def _compact_json(value: Any) -> str:
    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    for char, escaped in _HTML_ESCAPES:
        text = text.replace(char, escaped)
    return text


def build_template_metadata(task: TaskNode) -> str:
    """Return the machine-readable template metadata as a compact JSON string."""
    metadata = {
        "_template": {
            "version": TEMPLATE_VERSION,
            "task_id": task.task_id,
            "files_scope": _string_list(task.files_scope) or [],
            "effects": _describe_effects(task.effects),
            "inputs": [spec.to_dict() for spec in task.inputs],
            "outputs": [spec.to_dict() for spec in task.outputs],
        }
    }
    return _compact_json(metadata)


def format_acceptance(criteria: Optional[Sequence[str]]) -> str:
    """Join acceptance criteria into a markdown checklist."""
    return "\n".join(f"- {item}" for item in criteria or ())