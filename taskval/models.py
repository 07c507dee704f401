"""Data model for task documents and validation findings."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional


class Severity(str, Enum):
    """How critical a validation finding is."""

    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


@dataclass
class ValidationError:
    """A single validation finding with enough context to fix it."""

    rule: str
    severity: Severity
    path: str
    message: str
    suggestion: str = ""
    context: str = ""

    def __str__(self) -> str:
        text = f"[{self.severity.value}] {self.rule} at '{self.path}': {self.message}"
        if self.suggestion:
            text += f" -> Fix: {self.suggestion}"
        return text

    def to_dict(self) -> dict[str, str]:
        """Return the JSON form, leaving out an empty suggestion or context."""
        out = {
            "rule": self.rule,
            "severity": self.severity.value,
            "path": self.path,
            "message": self.message,
        }
        if self.suggestion:
            out["suggestion"] = self.suggestion
        if self.context:
            out["context"] = self.context
        return out


@dataclass
class ValidationStats:
    """Summary counts of a validation run."""

    total_tasks: int = 0
    error_count: int = 0
    warning_count: int = 0
    info_count: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total_tasks": self.total_tasks,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "info_count": self.info_count,
        }


@dataclass
class ValidationResult:
    """All findings of a validation run, plus the parsed graph on success."""

    valid: bool = True
    errors: list[ValidationError] = field(default_factory=list)
    stats: ValidationStats = field(default_factory=ValidationStats)
    graph: Optional["TaskGraph"] = None

    def add_error(self, error: ValidationError) -> None:
        """Record a finding and update the counts; errors make the result invalid."""
        self.errors.append(error)
        if error.severity is Severity.ERROR:
            self.stats.error_count += 1
            self.valid = False
        elif error.severity is Severity.WARNING:
            self.stats.warning_count += 1
        elif error.severity is Severity.INFO:
            self.stats.info_count += 1

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form; the parsed graph is never included."""
        out: dict[str, Any] = {"valid": self.valid}
        if self.errors:
            out["errors"] = [e.to_dict() for e in self.errors]
        out["stats"] = self.stats.to_dict()
        return out


@dataclass(frozen=True)
class NotApplicable:
    """An explicit N/A marker for a contextual field."""

    status: str
    reason: str


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TypeError(f"{what} must be a JSON object, got {type(data).__name__}")
    return data


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _texts(data: Mapping[str, Any], key: str) -> list[str]:
    return list(data.get(key) or [])


@dataclass
class InputSpec:
    """An input a task requires."""

    name: str = ""
    type: str = ""
    constraints: str = ""
    source: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "InputSpec":
        data = _require_mapping(data, "input")
        return cls(
            name=_text(data, "name"),
            type=_text(data, "type"),
            constraints=_text(data, "constraints"),
            source=_text(data, "source"),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "type": self.type,
            "constraints": self.constraints,
            "source": self.source,
        }


@dataclass
class OutputSpec:
    """An output a task produces."""

    name: str = ""
    type: str = ""
    constraints: str = ""
    destination: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OutputSpec":
        data = _require_mapping(data, "output")
        return cls(
            name=_text(data, "name"),
            type=_text(data, "type"),
            constraints=_text(data, "constraints"),
            destination=_text(data, "destination"),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "type": self.type,
            "constraints": self.constraints,
            "destination": self.destination,
        }


@dataclass
class EffectSpec:
    """A declared side effect."""

    type: str = ""
    target: str = ""


@dataclass
class ErrorSpec:
    """An expected failure mode."""

    condition: str = ""
    behavior: str = ""
    output: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ErrorSpec":
        data = _require_mapping(data, "error case")
        return cls(
            condition=_text(data, "condition"),
            behavior=_text(data, "behavior"),
            output=_text(data, "output"),
        )


@dataclass
class Defaults:
    """Inheritable default field values."""

    constraints: list[str] = field(default_factory=list)
    acceptance: list[str] = field(default_factory=list)
    non_goals: list[str] = field(default_factory=list)


@dataclass
class Milestone:
    """A named grouping of tasks."""

    name: str = ""
    depends_on_milestones: list[str] = field(default_factory=list)
    task_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Milestone":
        data = _require_mapping(data, "milestone")
        return cls(
            name=_text(data, "name"),
            depends_on_milestones=_texts(data, "depends_on_milestones"),
            task_ids=_texts(data, "task_ids"),
        )


def _parse_list_or_na(
    raw: Any, field_name: str, what: str
) -> tuple[Optional[list[str]], Optional[NotApplicable]]:
    if raw is None:
        return None, None
    if isinstance(raw, list) and all(isinstance(item, str) for item in raw):
        return list(raw), None
    if isinstance(raw, dict):
        status = raw.get("status") or ""
        reason = raw.get("reason") or ""
        if isinstance(status, str) and isinstance(reason, str) and status == "N/A":
            return None, NotApplicable(status=status, reason=reason)
    raise ValueError(
        f'{field_name} must be either an array of {what} or '
        f'{{"status": "N/A", "reason": "..."}}, got: {json.dumps(raw, ensure_ascii=False)}'
    )


@dataclass
class TaskNode:
    """A single task; contextual fields keep their raw decoded JSON (None when absent)."""

    task_id: str = ""
    task_name: str = ""
    goal: str = ""
    inputs: list[InputSpec] = field(default_factory=list)
    outputs: list[OutputSpec] = field(default_factory=list)
    acceptance: list[str] = field(default_factory=list)
    depends_on: Any = None
    constraints: Any = None
    files_scope: Any = None
    non_goals: list[str] = field(default_factory=list)
    effects: Any = None
    error_cases: list[ErrorSpec] = field(default_factory=list)
    priority: str = ""
    estimate: str = ""
    notes: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TaskNode":
        data = _require_mapping(data, "task node")
        return cls(
            task_id=_text(data, "task_id"),
            task_name=_text(data, "task_name"),
            goal=_text(data, "goal"),
            inputs=[InputSpec.from_dict(i) for i in data.get("inputs") or []],
            outputs=[OutputSpec.from_dict(o) for o in data.get("outputs") or []],
            acceptance=_texts(data, "acceptance"),
            depends_on=data.get("depends_on"),
            constraints=data.get("constraints"),
            files_scope=data.get("files_scope"),
            non_goals=_texts(data, "non_goals"),
            effects=data.get("effects"),
            error_cases=[ErrorSpec.from_dict(e) for e in data.get("error_cases") or []],
            priority=_text(data, "priority"),
            estimate=_text(data, "estimate"),
            notes=_text(data, "notes"),
        )

    def parse_depends_on(self) -> tuple[Optional[list[str]], Optional[NotApplicable]]:
        """Return (task ids, N/A marker); both None when the field is absent.

        Raises ValueError when the field has neither form.
        """
        return _parse_list_or_na(self.depends_on, "depends_on", "task IDs")

    def parse_files_scope(self) -> tuple[Optional[list[str]], Optional[NotApplicable]]:
        """Return (file paths, N/A marker); both None when the field is absent.

        Raises ValueError when the field has neither form.
        """
        return _parse_list_or_na(self.files_scope, "files_scope", "file paths")


@dataclass
class TaskGraph:
    """The top-level task graph document."""

    version: str = ""
    types: dict[str, dict[str, str]] = field(default_factory=dict)
    defaults: Optional[Defaults] = None
    milestones: list[Milestone] = field(default_factory=list)
    tasks: list[TaskNode] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TaskGraph":
        data = _require_mapping(data, "task graph")
        raw_defaults = data.get("defaults")
        defaults = None
        if raw_defaults is not None:
            raw_defaults = _require_mapping(raw_defaults, "defaults")
            defaults = Defaults(
                constraints=_texts(raw_defaults, "constraints"),
                acceptance=_texts(raw_defaults, "acceptance"),
                non_goals=_texts(raw_defaults, "non_goals"),
            )
        return cls(
            version=_text(data, "version"),
            types={k: dict(v) for k, v in (data.get("types") or {}).items()},
            defaults=defaults,
            milestones=[Milestone.from_dict(m) for m in data.get("milestones") or []],
            tasks=[TaskNode.from_dict(t) for t in data.get("tasks") or []],
        )