"""Semantic (tier 2) validation: checks that span tasks or judge wording."""

from __future__ import annotations

import re
from collections import deque

from .models import Severity, TaskGraph, ValidationError, ValidationResult

GOAL_FORBIDDEN_WORDS = ("try", "explore", "investigate", "look into")

_GOAL_FORBIDDEN = tuple(
    (word, re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE | re.ASCII))
    for word in GOAL_FORBIDDEN_WORDS
)

_VAGUE_PHRASES = tuple(
    (name, re.compile(pattern, re.IGNORECASE | re.ASCII))
    for name, pattern in (
        ("works correctly", r"\b(works? correctly)\b"),
        ("is correct", r"\b(is correct)\b"),
        ("is good", r"\b(is good)\b"),
        ("looks right", r"\b(looks? right)\b"),
        ("properly", r"\b(properly)\b"),
        ("as expected", r"\b(as expected)\b"),
        ("should work", r"\b(should work)\b"),
        ("is fine", r"\b(is fine)\b"),
    )
)

_CONTEXTUAL_FIELDS = ("depends_on", "constraints", "files_scope")

# Task names starting with one of these are taken to be implementation tasks.
_IMPL_VERBS = ("implement", "add", "fix", "create", "build", "write")

_NA_HINT = '{"status": "N/A", "reason": "..."}'


class SemanticValidator:
    """Checks a parsed task graph for problems a structural check cannot see."""

    def validate_task_graph(self, graph: TaskGraph, result: ValidationResult) -> None:
        """Run every semantic check on the graph, recording findings in result."""
        result.stats.total_tasks = len(graph.tasks)
        task_index = {task.task_id: i for i, task in enumerate(graph.tasks)}

        self._check_unique_task_ids(graph, result)
        self._check_dependency_references(graph, task_index, result)
        self._check_dag_acyclicity(graph, task_index, result)
        self._check_goal_quality(graph, result)
        self._check_acceptance_quality(graph, result)
        self._check_contextual_fields(graph, result)
        self._check_files_scope(graph, result)
        self._check_milestones(graph, task_index, result)

    @staticmethod
    def _check_unique_task_ids(graph: TaskGraph, result: ValidationResult) -> None:
        seen: dict[str, int] = {}
        for i, task in enumerate(graph.tasks):
            if task.task_id in seen:
                result.add_error(
                    ValidationError(
                        rule="V2",
                        severity=Severity.ERROR,
                        path=f"tasks[{i}].task_id",
                        message=(
                            f"Duplicate task_id '{task.task_id}' — first occurrence "
                            f"at tasks[{seen[task.task_id]}]."
                        ),
                        suggestion=(
                            "Every task_id must be globally unique within the project. "
                            "Rename one of the duplicates."
                        ),
                        context=task.task_id,
                    )
                )
            seen[task.task_id] = i

    @staticmethod
    def _check_dependency_references(
        graph: TaskGraph, task_index: dict[str, int], result: ValidationResult
    ) -> None:
        for i, task in enumerate(graph.tasks):
            path = f"tasks[{i}].depends_on"
            try:
                deps, _ = task.parse_depends_on()
            except ValueError as exc:
                result.add_error(
                    ValidationError(
                        rule="V4",
                        severity=Severity.ERROR,
                        path=path,
                        message=str(exc),
                        suggestion=(
                            f"depends_on must be an array of task_id strings or {_NA_HINT}."
                        ),
                    )
                )
                continue

            for dep in deps or ():
                if dep not in task_index:
                    result.add_error(
                        ValidationError(
                            rule="V4",
                            severity=Severity.ERROR,
                            path=path,
                            message=(
                                f"Task '{task.task_id}' depends on '{dep}', but no task "
                                "with that task_id exists in the graph."
                            ),
                            suggestion=(
                                f"Either add a task with task_id '{dep}' to the graph, or "
                                f"remove '{dep}' from the depends_on list of task "
                                f"'{task.task_id}'."
                            ),
                            context=dep,
                        )
                    )
                if dep == task.task_id:
                    result.add_error(
                        ValidationError(
                            rule="V5",
                            severity=Severity.ERROR,
                            path=path,
                            message=(
                                f"Task '{task.task_id}' depends on itself — this creates "
                                "a trivial cycle."
                            ),
                            suggestion="Remove the self-reference from depends_on.",
                            context=dep,
                        )
                    )

    @staticmethod
    def _check_dag_acyclicity(
        graph: TaskGraph, task_index: dict[str, int], result: ValidationResult
    ) -> None:
        dependents: dict[str, list[str]] = {task.task_id: [] for task in graph.tasks}
        in_degree: dict[str, int] = {task.task_id: 0 for task in graph.tasks}

        for task in graph.tasks:
            try:
                deps, _ = task.parse_depends_on()
            except ValueError:
                continue  # reported by the reference check
            for dep in deps or ():
                if dep not in task_index:
                    continue  # reported by the reference check
                dependents[dep].append(task.task_id)
                in_degree[task.task_id] += 1

        queue = deque(task_id for task_id, degree in in_degree.items() if degree == 0)
        visited = 0
        while queue:
            node = queue.popleft()
            visited += 1
            for neighbour in dependents[node]:
                in_degree[neighbour] -= 1
                if in_degree[neighbour] == 0:
                    queue.append(neighbour)

        if visited < len(graph.tasks):
            members = [task_id for task_id, degree in in_degree.items() if degree > 0]
            joined = ", ".join(members)
            result.add_error(
                ValidationError(
                    rule="V5",
                    severity=Severity.ERROR,
                    path="tasks",
                    message=(
                        f"Dependency graph contains a cycle. {len(members)} task(s) are "
                        f"involved: [{joined}]. A valid task graph must be a DAG "
                        "(Directed Acyclic Graph)."
                    ),
                    suggestion=(
                        "Review the depends_on fields of the listed tasks. Break the cycle "
                        "by removing one dependency or decomposing a task into sub-tasks."
                    ),
                    context=joined,
                )
            )

    @staticmethod
    def _check_goal_quality(graph: TaskGraph, result: ValidationResult) -> None:
        for i, task in enumerate(graph.tasks):
            path = f"tasks[{i}].goal"
            for word, pattern in _GOAL_FORBIDDEN:
                if pattern.search(task.goal):
                    result.add_error(
                        ValidationError(
                            rule="V6",
                            severity=Severity.ERROR,
                            path=path,
                            message=(
                                f"Goal contains the forbidden word/phrase '{word}'. Goals "
                                "must describe testable outcomes, not activities or "
                                "explorations."
                            ),
                            suggestion=(
                                "Rewrite the goal as a concrete, testable outcome. Instead "
                                f"of '{word} ...', describe what the system does when the "
                                "task is complete. Example: 'The function returns X when "
                                "given Y.'"
                            ),
                            context=task.goal,
                        )
                    )

            if task.goal.strip().startswith("To "):
                result.add_error(
                    ValidationError(
                        rule="V6",
                        severity=Severity.WARNING,
                        path=path,
                        message=(
                            "Goal starts with 'To ...' which suggests an activity rather "
                            "than a testable outcome."
                        ),
                        suggestion=(
                            "Rewrite as a state-of-the-world assertion. Example: Instead of "
                            "'To add search functionality', write 'The Search() function "
                            "returns ranked results from Weaviate hybrid search.'"
                        ),
                        context=task.goal,
                    )
                )

    @staticmethod
    def _check_acceptance_quality(graph: TaskGraph, result: ValidationResult) -> None:
        for i, task in enumerate(graph.tasks):
            for j, criterion in enumerate(task.acceptance):
                for name, pattern in _VAGUE_PHRASES:
                    if not pattern.search(criterion):
                        continue
                    result.add_error(
                        ValidationError(
                            rule="V7",
                            severity=Severity.WARNING,
                            path=f"tasks[{i}].acceptance[{j}]",
                            message=(
                                f"Acceptance criterion contains the vague phrase '{name}'. "
                                "Criteria must be independently verifiable with concrete "
                                "expected values."
                            ),
                            suggestion=(
                                "Replace with a specific assertion. Example: Instead of 'it "
                                "works correctly', write 'Given input \"test\", the function "
                                "returns [\"result1\", \"result2\"] with status 200.'"
                            ),
                            context=criterion,
                        )
                    )

    @staticmethod
    def _check_contextual_fields(graph: TaskGraph, result: ValidationResult) -> None:
        for i, task in enumerate(graph.tasks):
            for name in _CONTEXTUAL_FIELDS:
                if getattr(task, name) is not None:
                    continue
                result.add_error(
                    ValidationError(
                        rule="V9",
                        severity=Severity.WARNING,
                        path=f"tasks[{i}].{name}",
                        message=(
                            f"Contextual field '{name}' is missing from task "
                            f"'{task.task_id}'. Contextual fields should be explicitly "
                            f"present or set to {_NA_HINT}."
                        ),
                        suggestion=(
                            f"Either provide a value for '{name}' or explicitly mark it as "
                            'not applicable: {"status": "N/A", "reason": "your '
                            'justification here"}.'
                        ),
                    )
                )

    @staticmethod
    def _check_files_scope(graph: TaskGraph, result: ValidationResult) -> None:
        for i, task in enumerate(graph.tasks):
            if not task.task_name.lower().startswith(_IMPL_VERBS):
                continue
            try:
                files, not_applicable = task.parse_files_scope()
            except ValueError:
                continue  # reported elsewhere
            if files is None and not_applicable is None:
                result.add_error(
                    ValidationError(
                        rule="V10",
                        severity=Severity.WARNING,
                        path=f"tasks[{i}].files_scope",
                        message=(
                            f"Task '{task.task_id}' appears to be an implementation task "
                            "(name starts with an implementation verb) but has no "
                            "files_scope defined."
                        ),
                        suggestion=(
                            "Add a files_scope listing the files the agent should create or "
                            "modify. This prevents unintended changes to other parts of the "
                            "codebase."
                        ),
                    )
                )

    @staticmethod
    def _check_milestones(
        graph: TaskGraph, task_index: dict[str, int], result: ValidationResult
    ) -> None:
        milestone_index: dict[str, int] = {}
        for i, milestone in enumerate(graph.milestones):
            if milestone.name in milestone_index:
                result.add_error(
                    ValidationError(
                        rule="MILESTONE",
                        severity=Severity.ERROR,
                        path=f"milestones[{i}].name",
                        message=(
                            f"Duplicate milestone name '{milestone.name}' — first "
                            f"occurrence at milestones[{milestone_index[milestone.name]}]."
                        ),
                        suggestion=(
                            "Every milestone name must be unique. Rename one of the "
                            "duplicates."
                        ),
                    )
                )
            milestone_index[milestone.name] = i

            for task_id in milestone.task_ids:
                if task_id in task_index:
                    continue
                result.add_error(
                    ValidationError(
                        rule="MILESTONE",
                        severity=Severity.ERROR,
                        path=f"milestones[{i}].task_ids",
                        message=(
                            f"Milestone '{milestone.name}' references task_id '{task_id}', "
                            "but no task with that ID exists in the graph."
                        ),
                        suggestion=(
                            f"Add a task with task_id '{task_id}' or remove it from the "
                            "milestone."
                        ),
                    )
                )

        for i, milestone in enumerate(graph.milestones):
            for dep in milestone.depends_on_milestones:
                if dep in milestone_index:
                    continue
                result.add_error(
                    ValidationError(
                        rule="MILESTONE",
                        severity=Severity.ERROR,
                        path=f"milestones[{i}].depends_on_milestones",
                        message=(
                            f"Milestone '{milestone.name}' depends on milestone '{dep}', "
                            "but no milestone with that name exists."
                        ),
                        suggestion=(
                            f"Add a milestone named '{dep}' or remove it from "
                            "depends_on_milestones."
                        ),
                    )
                )