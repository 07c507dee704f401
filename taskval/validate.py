"""Full validation of a task document: structure first, then semantics."""

from __future__ import annotations

import json
from enum import Enum

from .models import TaskGraph, TaskNode, ValidationResult
from .semantic import SemanticValidator
from .structure import SchemaValidator


class Mode(str, Enum):
    """Whether the input is a single task node or a whole task graph."""

    SINGLE_TASK = "task"
    TASK_GRAPH = "graph"


def validate(data: str | bytes, mode: Mode | str) -> ValidationResult:
    """Validate a JSON document and return every finding.

    Semantic checks run only when the structural checks pass; the parsed graph
    is attached to the result only when the whole validation passes.
    Raises ValueError for an unknown mode.
    """
    try:
        mode = Mode(mode)
    except ValueError:
        raise ValueError(f"unknown validation mode: {mode!r}") from None

    result = ValidationResult(valid=True)
    schema = SchemaValidator()

    if mode is Mode.SINGLE_TASK:
        schema.validate_task_node(data, result)
        if not result.valid:
            return result
        try:
            task = TaskNode.from_dict(json.loads(data))
        except (ValueError, TypeError) as exc:
            raise ValueError(f"parsing task node: {exc}") from exc
        graph = TaskGraph(version="0.1.0", tasks=[task])
    else:
        schema.validate_task_graph(data, result)
        if not result.valid:
            return result
        try:
            graph = TaskGraph.from_dict(json.loads(data))
        except (ValueError, TypeError) as exc:
            raise ValueError(f"parsing task graph: {exc}") from exc

    SemanticValidator().validate_task_graph(graph, result)
    if result.valid:
        result.graph = graph
    return result