"""Building issue tracker commands from validated task templates."""

from __future__ import annotations

import json
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Sequence

from .mapping import (
    DEFAULT_PRIORITY,
    build_template_metadata,
    compose_description,
    format_acceptance,
    map_estimate,
    map_priority,
)
from .models import TaskGraph, TaskNode

CREATE_EPIC = "create-epic"
CREATE_TASK = "create-task"
DEP_ADD = "dep-add"
UPDATE_DESIGN = "update-design"

EPIC_PLACEHOLDER = "<epic-id>"
MANAGED_LABEL = "taskval-managed"
MAX_TITLE_LENGTH = 500

_QUOTE_TRIGGERS = frozenset(" \t\n\"'")


def task_placeholder(task_id: str) -> str:
    """Return the placeholder that stands for a task's tracker id."""
    return f"<{task_id}-id>"


@dataclass
class BdCommand:
    """One tracker command: its arguments and what it is for."""

    args: list[str]
    type: str
    task_id: str = ""
    dep_task_id: str = ""
    dep_on_id: str = ""


@dataclass(frozen=True)
class DepLink:
    """A dependency between two tracker issues."""

    task_bd_id: str
    dep_bd_id: str


@dataclass
class CreationResult:
    """The outcome of creating issues in the tracker."""

    epic_id: str = ""
    epic_title: str = ""
    task_ids: dict[str, str] = field(default_factory=dict)
    task_titles: dict[str, str] = field(default_factory=dict)
    commands: list[str] = field(default_factory=list)
    created: int = 0
    deps: int = 0
    deps_detail: list[DepLink] = field(default_factory=list)


@dataclass
class BeadsJSON:
    """The machine-readable summary of a creation run."""

    epic_id: str
    tasks: dict[str, str]
    deps_linked: int
    total_created: int

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.epic_id:
            out["epic_id"] = self.epic_id
        out["tasks"] = dict(self.tasks)
        out["dependencies_linked"] = self.deps_linked
        out["total_created"] = self.total_created
        return out


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _dependencies(task: TaskNode) -> list[str]:
    try:
        deps, _ = task.parse_depends_on()
    except ValueError:
        return []
    return deps or []


@dataclass
class Creator:
    """Turns validated tasks into tracker commands."""

    dry_run: bool = False
    epic_title: str = ""
    filename: str = ""

    def build_single_task_commands(self, task: TaskNode) -> list[BdCommand]:
        """Return the create and metadata update commands for one task."""
        return [
            BdCommand(
                args=self._task_create_args(task, ""),
                type=CREATE_TASK,
                task_id=task.task_id,
            ),
            self._design_update(task),
        ]

    def build_graph_commands(self, graph: TaskGraph) -> list[BdCommand]:
        """Return the epic, task, dependency and metadata commands for a graph."""
        commands = [
            BdCommand(
                args=[
                    "create",
                    "--title", self.resolve_epic_title(graph),
                    "--type", "epic",
                    "--priority", str(self.resolve_graph_priority(graph)),
                    "--labels", MANAGED_LABEL,
                    "--silent",
                ],
                type=CREATE_EPIC,
            )
        ]

        ordered = topological_sort(graph)
        commands.extend(
            BdCommand(
                args=self._task_create_args(task, EPIC_PLACEHOLDER),
                type=CREATE_TASK,
                task_id=task.task_id,
            )
            for task in ordered
        )
        commands.extend(
            BdCommand(
                args=["dep", "add", task_placeholder(task.task_id), task_placeholder(dep)],
                type=DEP_ADD,
                dep_task_id=task.task_id,
                dep_on_id=dep,
            )
            for task in ordered
            for dep in _dependencies(task)
        )
        commands.extend(self._design_update(task) for task in ordered)
        return commands

    def resolve_epic_title(self, graph: TaskGraph) -> str:
        """Pick the epic title: override, first milestone, file name, then stdin."""
        if self.epic_title:
            return self.epic_title
        if graph.milestones:
            return "Task Graph: " + graph.milestones[0].name
        if self.filename and self.filename != "-":
            return "Task Graph: " + self.filename
        return "Task Graph: (stdin)"

    def resolve_graph_priority(self, graph: TaskGraph) -> int:
        """Return the most urgent task priority, never less urgent than medium."""
        return min(
            (map_priority(task.priority) for task in graph.tasks),
            default=DEFAULT_PRIORITY,
        ).__min__(DEFAULT_PRIORITY) if False else min(
            [DEFAULT_PRIORITY, *(map_priority(task.priority) for task in graph.tasks)]
        )

    @staticmethod
    def _design_update(task: TaskNode) -> BdCommand:
        return BdCommand(
            args=[
                "update",
                task_placeholder(task.task_id),
                "--design",
                build_template_metadata(task),
            ],
            type=UPDATE_DESIGN,
            task_id=task.task_id,
        )

    @staticmethod
    def _task_create_args(task: TaskNode, parent_id: str) -> list[str]:
        args = [
            "create",
            "--title", task.task_name[:MAX_TITLE_LENGTH],
            "--type", "task",
            "--description", compose_description(task),
        ]
        acceptance = format_acceptance(task.acceptance)
        if acceptance:
            args += ["--acceptance", acceptance]
        args += ["--priority", str(map_priority(task.priority))]
        estimate = map_estimate(task.estimate)
        if estimate > 0:
            args += ["--estimate", str(estimate)]
        if task.notes:
            args += ["--notes", task.notes]
        if parent_id:
            args += ["--parent", parent_id]
        args += ["--labels", MANAGED_LABEL, "--silent"]
        return args


def format_text_output(result: CreationResult) -> str:
    """Render a creation result as readable text."""
    lines = ["", "BEADS CREATION"]
    if result.epic_id:
        lines.append(f"  Epic created: {result.epic_id} {_quote(result.epic_title)}")
    for task_id, bd_id in result.task_ids.items():
        title = result.task_titles.get(task_id, "")
        lines.append(f"  Task created: {bd_id} {_quote(title)} ({task_id})")
    for link in result.deps_detail:
        lines.append(f"  Dependency:   {link.task_bd_id} blocked-by {link.dep_bd_id}")

    epic_count = 1 if result.epic_id else 0
    lines.append("")
    lines.append(
        f"  Summary: {epic_count} epic + {result.created - epic_count} tasks created, "
        f"{result.deps} dependencies linked."
    )
    return "\n".join(lines) + "\n"


def format_json_output(result: CreationResult) -> BeadsJSON:
    """Return the machine-readable summary of a creation result."""
    return BeadsJSON(
        epic_id=result.epic_id,
        tasks=result.task_ids,
        deps_linked=result.deps,
        total_created=result.created,
    )


def format_dry_run_output(cmds: Sequence[BdCommand]) -> str:
    """Render the commands a dry run would execute; metadata updates are left out."""
    lines = ["", "BEADS CREATION (DRY RUN)"]
    counts = {CREATE_EPIC: 0, CREATE_TASK: 0, DEP_ADD: 0}
    for cmd in cmds:
        if cmd.type in counts:
            counts[cmd.type] += 1
        if cmd.type == UPDATE_DESIGN:
            continue
        lines.append(f"  [DRY-RUN] bd {format_args(cmd.args)}")

    lines.append("")
    lines.append(
        f"  Summary: Would create {counts[CREATE_EPIC]} epic + {counts[CREATE_TASK]} tasks, "
        f"link {counts[DEP_ADD]} dependencies."
    )
    return "\n".join(lines) + "\n"


def topological_sort(graph: TaskGraph) -> list[TaskNode]:
    """Return tasks with dependencies before dependents; tasks in a cycle are dropped."""
    task_index = {task.task_id: i for i, task in enumerate(graph.tasks)}
    dependents: dict[str, list[str]] = {task.task_id: [] for task in graph.tasks}
    in_degree: dict[str, int] = {task.task_id: 0 for task in graph.tasks}

    for task in graph.tasks:
        for dep in _dependencies(task):
            if dep not in task_index:
                continue
            dependents[dep].append(task.task_id)
            in_degree[task.task_id] += 1

    queue = deque(task.task_id for task in graph.tasks if in_degree[task.task_id] == 0)
    ordered: list[TaskNode] = []
    while queue:
        task_id = queue.popleft()
        ordered.append(graph.tasks[task_index[task_id]])
        for neighbour in dependents[task_id]:
            in_degree[neighbour] -= 1
            if in_degree[neighbour] == 0:
                queue.append(neighbour)
    return ordered


def format_args(args: Sequence[str]) -> str:
    """Join command arguments for display, quoting values that need it."""

    def shown(position: int, arg: str) -> str:
        needs_quotes = bool(_QUOTE_TRIGGERS.intersection(arg)) or ("--" in arg and position > 0)
        if needs_quotes and not arg.startswith("--"):
            return _quote(arg)
        return arg

    return " ".join(shown(i, arg) for i, arg in enumerate(args))