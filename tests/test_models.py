import pytest

from taskval.models import (
    Defaults,
    ErrorSpec,
    InputSpec,
    Milestone,
    NotApplicable,
    OutputSpec,
    Severity,
    TaskGraph,
    TaskNode,
    ValidationError,
    ValidationResult,
    ValidationStats,
)


def _finding(severity, rule="V1"):
    return ValidationError(rule=rule, severity=severity, path="tasks[0].goal", message="problem")


def _graph_dict():
    return {
        "version": "0.1.0",
        "defaults": {"constraints": ["Pure function"], "acceptance": [], "non_goals": ["Tax"]},
        "milestones": [{"name": "Phase 1", "task_ids": ["task-a"]}],
        "tasks": [
            {
                "task_id": "task-a",
                "task_name": "Task A",
                "goal": "Do A.",
                "inputs": [],
                "outputs": [],
                "acceptance": ["A is done"],
            },
            {
                "task_id": "task-b",
                "task_name": "Task B",
                "goal": "Do B.",
                "inputs": [],
                "outputs": [],
                "acceptance": ["B is done"],
                "depends_on": ["task-a"],
                "priority": "high",
            },
        ],
    }


@pytest.mark.parametrize(
    "severity, expected",
    [
        (Severity.ERROR, "ERROR"),
        (Severity.WARNING, "WARNING"),
        (Severity.INFO, "INFO"),
    ],
)
def test_severity_serialises_as_wire_string(severity, expected):
    assert _finding(severity).to_dict()["severity"] == expected


def test_add_error_updates_counts_and_validity():
    result = ValidationResult()
    result.add_error(_finding(Severity.WARNING))
    result.add_error(_finding(Severity.INFO))
    assert result.valid is True
    assert result.stats.warning_count == 1
    assert result.stats.info_count == 1
    assert result.stats.error_count == 0

    result.add_error(_finding(Severity.ERROR))
    assert result.valid is False
    assert result.stats.error_count == 1
    assert len(result.errors) == 3


def test_validation_error_str_includes_fix():
    err = ValidationError(
        rule="V2",
        severity=Severity.ERROR,
        path="tasks[1].task_id",
        message="Duplicate.",
        suggestion="Rename it.",
    )
    assert str(err) == "[ERROR] V2 at 'tasks[1].task_id': Duplicate. -> Fix: Rename it."


def test_validation_error_str_without_suggestion():
    err = _finding(Severity.WARNING, rule="V9")
    text = str(err)
    assert text.startswith("[WARNING] V9 at 'tasks[0].goal': problem")
    assert "-> Fix" not in text


def test_validation_error_to_dict_omits_empty_fields():
    err = _finding(Severity.ERROR, rule="V6")
    assert err.to_dict() == {
        "rule": "V6",
        "severity": "ERROR",
        "path": "tasks[0].goal",
        "message": "problem",
    }
    full = ValidationError("V4", Severity.ERROR, "tasks[0].depends_on", "m", "s", "c")
    assert full.to_dict()["suggestion"] == "s"
    assert full.to_dict()["context"] == "c"


def test_stats_to_dict_keys():
    stats = ValidationStats(total_tasks=4, error_count=1, warning_count=2, info_count=3)
    assert stats.to_dict() == {
        "total_tasks": 4,
        "error_count": 1,
        "warning_count": 2,
        "info_count": 3,
    }


def test_result_to_dict_excludes_graph():
    result = ValidationResult(
        valid=True,
        stats=ValidationStats(total_tasks=1),
        graph=TaskGraph(version="0.1.0", tasks=[TaskNode(task_id="test")]),
    )
    out = result.to_dict()
    assert "graph" not in out
    assert "errors" not in out
    assert out["stats"]["total_tasks"] == 1
    assert out["valid"] is True


def test_result_to_dict_lists_errors():
    result = ValidationResult()
    result.add_error(_finding(Severity.ERROR, rule="V5"))
    out = result.to_dict()
    assert out["valid"] is False
    assert [e["rule"] for e in out["errors"]] == ["V5"]


def test_parse_depends_on_list():
    task = TaskNode(depends_on=["task-a", "task-b"])
    assert task.parse_depends_on() == (["task-a", "task-b"], None)


def test_parse_depends_on_not_applicable():
    task = TaskNode(depends_on={"status": "N/A", "reason": "Standalone function"})
    ids, na = task.parse_depends_on()
    assert ids is None
    assert na == NotApplicable(status="N/A", reason="Standalone function")


def test_parse_depends_on_absent():
    assert TaskNode().parse_depends_on() == (None, None)


@pytest.mark.parametrize("raw", [42, "task-a", ["task-a", 1], {"status": "done", "reason": "x"}])
def test_parse_depends_on_rejects_other_forms(raw):
    with pytest.raises(ValueError, match="depends_on must be either an array of task IDs"):
        TaskNode(depends_on=raw).parse_depends_on()


def test_parse_files_scope_empty_list_is_not_absent():
    files, na = TaskNode(files_scope=[]).parse_files_scope()
    assert files == []
    assert na is None


def test_parse_files_scope_rejects_bad_object():
    with pytest.raises(ValueError, match="files_scope must be either an array of file paths"):
        TaskNode(files_scope={"reason": "missing status"}).parse_files_scope()


def test_task_graph_from_dict():
    graph = TaskGraph.from_dict(_graph_dict())
    assert graph.version == "0.1.0"
    assert [t.task_id for t in graph.tasks] == ["task-a", "task-b"]
    assert graph.milestones == [Milestone(name="Phase 1", depends_on_milestones=[], task_ids=["task-a"])]
    assert graph.defaults == Defaults(constraints=["Pure function"], acceptance=[], non_goals=["Tax"])
    assert graph.tasks[1].parse_depends_on() == (["task-a"], None)
    assert graph.tasks[1].priority == "high"
    assert graph.tasks[0].depends_on is None


def test_task_graph_without_defaults():
    data = _graph_dict()
    del data["defaults"]
    del data["milestones"]
    graph = TaskGraph.from_dict(data)
    assert graph.defaults is None
    assert graph.milestones == []


def test_task_node_from_dict_nested_specs():
    node = TaskNode.from_dict(
        {
            "task_id": "t",
            "task_name": "n",
            "goal": "g",
            "inputs": [{"name": "price", "type": "f64", "constraints": "price > 0", "source": "Order record"}],
            "outputs": [],
            "acceptance": ["ok"],
            "error_cases": [{"condition": "price is zero", "behavior": "Return error", "output": "invalid price"}],
            "notes": "Some notes",
        }
    )
    assert node.inputs == [InputSpec("price", "f64", "price > 0", "Order record")]
    assert node.error_cases == [ErrorSpec("price is zero", "Return error", "invalid price")]
    assert node.notes == "Some notes"
    assert node.estimate == ""


def test_input_output_spec_round_trip():
    inp = {"name": "x", "type": "int", "constraints": "x > 0", "source": "arg"}
    out = {"name": "y", "type": "int", "constraints": "y >= 0", "destination": "return"}
    assert InputSpec.from_dict(inp).to_dict() == inp
    assert OutputSpec.from_dict(out).to_dict() == out


def test_from_dict_rejects_non_objects():
    with pytest.raises(TypeError):
        TaskNode.from_dict(["not", "an", "object"])
    with pytest.raises(TypeError):
        TaskGraph.from_dict("text")