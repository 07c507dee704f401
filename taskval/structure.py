"""Structural (tier 1) validation of task nodes and task graphs."""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Optional

from .models import Severity, ValidationError, ValidationResult

TASK_ID_PATTERN = r"^[a-z0-9]+(-[a-z0-9]+)*$"
PRIORITIES = ("critical", "high", "medium", "low")
ESTIMATES = ("trivial", "small", "medium", "large", "unknown")

# A check inspects a value at a path and records at most one message per path.
_Check = Callable[[Any, str, dict], None]


def _add(found: dict[str, str], path: str, message: str) -> None:
    found.setdefault(path, message)


def _child(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _string(
    *,
    min_length: int = 0,
    pattern: Optional[str] = None,
    enum: Optional[Iterable[str]] = None,
) -> _Check:
    compiled = re.compile(pattern) if pattern else None
    allowed = tuple(enum) if enum is not None else None

    def check(value: Any, path: str, found: dict[str, str]) -> None:
        if not isinstance(value, str):
            _add(found, path, f"Expected type string, got {_type_name(value)}")
        elif len(value) < min_length:
            _add(found, path, f"String length must be at least {min_length} (minLength)")
        elif compiled is not None and not compiled.fullmatch(value):
            _add(found, path, f"Value does not match pattern '{pattern}'")
        elif allowed is not None and value not in allowed:
            _add(found, path, f"Value must be one of the enum values: {', '.join(allowed)}")

    return check


def _array(items: _Check, *, min_items: int = 0) -> _Check:
    def check(value: Any, path: str, found: dict[str, str]) -> None:
        if not isinstance(value, list):
            _add(found, path, f"Expected type array, got {_type_name(value)}")
            return
        if len(value) < min_items:
            _add(found, path, f"Array must hold at least {min_items} item(s) (minItems)")
        for i, item in enumerate(value):
            items(item, f"{path}[{i}]", found)

    return check


def _object(properties: Mapping[str, _Check], required: Iterable[str] = ()) -> _Check:
    required = tuple(required)

    def check(value: Any, path: str, found: dict[str, str]) -> None:
        if not isinstance(value, dict):
            _add(found, path, f"Expected type object, got {_type_name(value)}")
            return
        for name in required:
            if name not in value:
                _add(found, _child(path, name), "Missing required property")
        for name, item in value.items():
            checker = properties.get(name)
            if checker is None:
                _add(found, _child(path, name), "Additional property is not allowed")
            else:
                checker(item, _child(path, name), found)

    return check


def _map_of(values: _Check) -> _Check:
    def check(value: Any, path: str, found: dict[str, str]) -> None:
        if not isinstance(value, dict):
            _add(found, path, f"Expected type object, got {_type_name(value)}")
            return
        for name, item in value.items():
            values(item, _child(path, name), found)

    return check


def _one_of(description: str, *options: _Check) -> _Check:
    def check(value: Any, path: str, found: dict[str, str]) -> None:
        matches = 0
        for option in options:
            trial: dict[str, str] = {}
            option(value, path, trial)
            if not trial:
                matches += 1
        if matches != 1:
            _add(found, path, f"Value does not match oneOf the allowed forms: {description}")

    return check


_ANY_STRING = _string()
_NON_EMPTY = _string(min_length=1)
_STRING_LIST = _array(_ANY_STRING)

_NOT_APPLICABLE = _object(
    {"status": _string(enum=("N/A",)), "reason": _NON_EMPTY},
    required=("status", "reason"),
)


def _fields(*names: str) -> _Check:
    return _object({name: _ANY_STRING for name in names}, required=names)


_INPUT = _fields("name", "type", "constraints", "source")
_OUTPUT = _fields("name", "type", "constraints", "destination")
_EFFECT = _fields("type", "target")
_ERROR_CASE = _fields("condition", "behavior", "output")

_LIST_OR_NA = _one_of("an array of strings, or an N/A object", _STRING_LIST, _NOT_APPLICABLE)

_TASK_NODE = _object(
    {
        "task_id": _string(pattern=TASK_ID_PATTERN),
        "task_name": _NON_EMPTY,
        "goal": _NON_EMPTY,
        "inputs": _array(_INPUT),
        "outputs": _array(_OUTPUT),
        "acceptance": _array(_NON_EMPTY, min_items=1),
        "depends_on": _LIST_OR_NA,
        "constraints": _LIST_OR_NA,
        "files_scope": _LIST_OR_NA,
        "non_goals": _STRING_LIST,
        "effects": _one_of(
            "a string, an array of effects, or an N/A object",
            _ANY_STRING,
            _array(_EFFECT),
            _NOT_APPLICABLE,
        ),
        "error_cases": _array(_ERROR_CASE),
        "priority": _string(enum=PRIORITIES),
        "estimate": _string(enum=ESTIMATES),
        "notes": _ANY_STRING,
    },
    required=("task_id", "task_name", "goal", "inputs", "outputs", "acceptance"),
)

_MILESTONE = _object(
    {
        "name": _NON_EMPTY,
        "depends_on_milestones": _STRING_LIST,
        "task_ids": _STRING_LIST,
    },
    required=("name", "task_ids"),
)

_TASK_GRAPH = _object(
    {
        "version": _NON_EMPTY,
        "types": _map_of(_map_of(_ANY_STRING)),
        "defaults": _object(
            {"constraints": _STRING_LIST, "acceptance": _STRING_LIST, "non_goals": _STRING_LIST}
        ),
        "milestones": _array(_MILESTONE),
        "tasks": _array(_TASK_NODE, min_items=1),
    },
    required=("version", "tasks"),
)


def generate_schema_suggestion(path: str, msg: str) -> str:
    """Return fix advice for a structural error, or an empty string."""
    lower = msg.lower()
    if "required" in lower:
        return (
            f"Add the missing required field at '{path}'. Check the spec's Quick "
            "Reference (Appendix A) for the expected format."
        )
    if "pattern" in lower:
        if "task_id" in path:
            return (
                "task_id must be kebab-case (lowercase letters, numbers, hyphens). "
                "Example: 'my-task-name'. Pattern: ^[a-z0-9]+(-[a-z0-9]+)*$"
            )
        return (
            f"The value at '{path}' does not match the required pattern. "
            "Check the schema for the expected format."
        )
    if "enum" in lower or "const" in lower:
        return (
            f"The value at '{path}' must be one of the allowed values. "
            "Check the schema definition for valid options."
        )
    if "maxlength" in lower or "maximum" in lower:
        return f"The value at '{path}' exceeds the maximum length. Shorten it."
    if "minlength" in lower or "minimum" in lower:
        return f"The value at '{path}' is too short or empty. Provide a meaningful value."
    if "minitems" in lower:
        return f"The array at '{path}' must have at least one item. Add the required elements."
    if "additional" in lower:
        return (
            f"The field at '{path}' is not recognized. Remove it or check for typos. "
            "Valid fields are listed in the schema."
        )
    if "type" in lower:
        return (
            f"The value at '{path}' has the wrong type. Check the schema for the "
            "expected type (string, array, object, etc.)."
        )
    if "oneof" in lower:
        return (
            f"The value at '{path}' must match exactly one of the allowed schemas. "
            "Check the spec for valid formats."
        )
    return ""


class SchemaValidator:
    """Checks raw JSON documents against the task node and task graph structure."""

    def validate_task_node(self, data: str | bytes, result: ValidationResult) -> None:
        """Record structural errors of a single task node document."""
        self._validate(_TASK_NODE, data, result)

    def validate_task_graph(self, data: str | bytes, result: ValidationResult) -> None:
        """Record structural errors of a task graph document."""
        self._validate(_TASK_GRAPH, data, result)

    @staticmethod
    def _validate(schema: _Check, data: str | bytes, result: ValidationResult) -> None:
        found: dict[str, str] = {}
        try:
            document = json.loads(data)
        except ValueError as exc:
            _add(found, "", f"Input is not valid JSON: {exc}")
        else:
            schema(document, "", found)

        for path, message in found.items():
            path = path or "$"
            result.add_error(
                ValidationError(
                    rule="SCHEMA",
                    severity=Severity.ERROR,
                    path=path,
                    message=message,
                    suggestion=generate_schema_suggestion(path, message),
                )
            )