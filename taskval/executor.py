"""Running tracker commands through the external bd program."""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Mapping, Sequence
from typing import Optional

from .commands import (
    CREATE_EPIC,
    CREATE_TASK,
    DEP_ADD,
    EPIC_PLACEHOLDER,
    BdCommand,
    CreationResult,
    DepLink,
    task_placeholder,
)

BD_PROGRAM = "bd"


class BdError(Exception):
    """The bd program is missing, not set up, or a command of it failed."""


class CommandFailed(BdError):
    """A command failed part way through a run; holds what was created before."""

    def __init__(self, message: str, result: CreationResult) -> None:
        super().__init__(message)
        self.result = result


def pre_flight_check() -> None:
    """Check that bd is on PATH and that its database is initialised.

    Raises BdError with a readable message when either check fails.
    """
    bd_path = shutil.which(BD_PROGRAM)
    if bd_path is None:
        raise BdError(
            "bd not found on PATH. Install beads: "
            "go install github.com/steveyegge/beads/cmd/bd@latest"
        )

    try:
        completed = subprocess.run(
            [bd_path, "list", "--limit", "0"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
        )
    except OSError as exc:
        raise BdError(f"bd pre-flight check failed: {exc}") from exc

    if completed.returncode != 0:
        message = (completed.stderr or "").strip()
        if "no beads database" in message:
            raise BdError("beads not initialized. Run 'bd init' first")
        raise BdError(f"bd pre-flight check failed: {message}")


def run_bd_command(args: Sequence[str]) -> str:
    """Run one bd command and return its trimmed standard output (the issue id).

    Raises BdError with bd's error output when the command fails.
    """
    try:
        completed = subprocess.run(
            [BD_PROGRAM, *args],
            capture_output=True,
            text=True,
        )
    except OSError as exc:
        raise BdError(str(exc)) from exc

    if completed.returncode != 0:
        message = (completed.stderr or "").strip()
        raise BdError(message or f"exit status {completed.returncode}")
    return (completed.stdout or "").strip()


def replace_ids(args: Sequence[str], id_map: Mapping[str, str]) -> list[str]:
    """Return the arguments with every placeholder replaced by its real id."""

    def substituted(arg: str) -> str:
        for placeholder, actual in id_map.items():
            arg = arg.replace(placeholder, actual)
        return arg

    return [substituted(arg) for arg in args]


def _title_of(args: Sequence[str]) -> Optional[str]:
    for position, arg in enumerate(args[:-1]):
        if arg == "--title":
            return args[position + 1]
    return None


def execute_commands(cmds: Sequence[BdCommand]) -> CreationResult:
    """Run the commands in order, feeding created ids into later commands.

    Raises CommandFailed, carrying the partial result, when a command fails.
    """
    result = CreationResult()
    id_map: dict[str, str] = {}

    for cmd in cmds:
        args = replace_ids(cmd.args, id_map)
        try:
            bd_id = run_bd_command(args)
        except BdError as exc:
            raise CommandFailed(
                f"bd command failed: bd {' '.join(args)}\n"
                f"  Error: {exc}\n"
                f"  {result.created} issues created before failure",
                result,
            ) from exc

        if cmd.type == CREATE_EPIC:
            result.epic_id = bd_id
            title = _title_of(cmd.args)
            if title is not None:
                result.epic_title = title
            id_map[EPIC_PLACEHOLDER] = bd_id
            result.created += 1
        elif cmd.type == CREATE_TASK:
            result.task_ids[cmd.task_id] = bd_id
            title = _title_of(cmd.args)
            if title is not None:
                result.task_titles[cmd.task_id] = title
            id_map[task_placeholder(cmd.task_id)] = bd_id
            result.created += 1
        elif cmd.type == DEP_ADD:
            result.deps += 1
            result.deps_detail.append(
                DepLink(
                    task_bd_id=id_map.get(task_placeholder(cmd.dep_task_id), ""),
                    dep_bd_id=id_map.get(task_placeholder(cmd.dep_on_id), ""),
                )
            )

        result.commands.append("bd " + " ".join(args))

    return result