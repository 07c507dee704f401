import subprocess
from unittest import mock

import pytest

from taskval.commands import (
    CREATE_EPIC,
    CREATE_TASK,
    DEP_ADD,
    UPDATE_DESIGN,
    BdCommand,
    DepLink,
)
from taskval.executor import (
    BdError,
    CommandFailed,
    execute_commands,
    pre_flight_check,
    replace_ids,
    run_bd_command,
)


class FakeBd:
    """Stands in for subprocess.run, handing out the given ids in turn."""

    def __init__(self, ids, fail_on=None, stderr="boom"):
        self.ids = list(ids)
        self.fail_on = fail_on
        self.stderr = stderr
        self.calls = []

    def __call__(self, argv, **kwargs):
        self.calls.append(list(argv))
        if self.fail_on is not None and argv[1] == self.fail_on:
            return subprocess.CompletedProcess(argv, 1, stdout="", stderr=self.stderr)
        out = self.ids.pop(0) + "\n" if self.ids else ""
        return subprocess.CompletedProcess(argv, 0, stdout=out, stderr="")


def _commands():
    return [
        BdCommand(args=["create", "--title", "Epic", "--type", "epic", "--silent"], type=CREATE_EPIC),
        BdCommand(
            args=["create", "--title", "Task A", "--parent", "<epic-id>", "--silent"],
            type=CREATE_TASK,
            task_id="task-a",
        ),
        BdCommand(
            args=["create", "--title", "Task B", "--parent", "<epic-id>", "--silent"],
            type=CREATE_TASK,
            task_id="task-b",
        ),
        BdCommand(
            args=["dep", "add", "<task-b-id>", "<task-a-id>"],
            type=DEP_ADD,
            dep_task_id="task-b",
            dep_on_id="task-a",
        ),
        BdCommand(
            args=["update", "<task-a-id>", "--design", "{}"],
            type=UPDATE_DESIGN,
            task_id="task-a",
        ),
    ]


def test_replace_ids_substitutes_placeholders():
    id_map = {"<a-id>": "bd-1", "<b-id>": "bd-2"}
    assert replace_ids(["dep", "add", "<a-id>", "<b-id>"], id_map) == ["dep", "add", "bd-1", "bd-2"]


def test_replace_ids_leaves_input_untouched():
    args = ["update", "<a-id>", "--design", "{}"]
    replaced = replace_ids(args, {"<a-id>": "bd-1"})
    assert args == ["update", "<a-id>", "--design", "{}"]
    assert replaced == ["update", "bd-1", "--design", "{}"]


def test_replace_ids_without_match_keeps_arguments():
    args = ["create", "--title", "Plain"]
    assert replace_ids(args, {"<x-id>": "bd-9"}) == args


def test_execute_commands_records_ids_and_links():
    ids = ["bd-epic", "bd-a", "bd-b"]
    fake = FakeBd(ids)
    with mock.patch("subprocess.run", fake):
        result = execute_commands(_commands())

    assert result.epic_id == ids[0]
    assert result.epic_title == "Epic"
    assert result.task_ids == {"task-a": ids[1], "task-b": ids[2]}
    assert result.task_titles == {"task-a": "Task A", "task-b": "Task B"}
    assert result.created == len(ids)
    assert result.deps == 1
    assert result.deps_detail == [DepLink(task_bd_id=ids[2], dep_bd_id=ids[1])]
    assert fake.calls[1] == ["bd", "create", "--title", "Task A", "--parent", ids[0], "--silent"]
    assert result.commands[-1] == f"bd update {ids[1]} --design {{}}"
    assert len(result.commands) == len(_commands())


def test_execute_commands_failure_carries_partial_result():
    ids = ["bd-epic", "bd-a", "bd-b"]
    fake = FakeBd(ids, fail_on="dep", stderr="boom")
    with mock.patch("subprocess.run", fake):
        with pytest.raises(CommandFailed) as info:
            execute_commands(_commands())

    assert info.value.result.created == len(ids)
    assert info.value.result.deps == 0
    assert "boom" in str(info.value)
    assert f"{len(ids)} issues created before failure" in str(info.value)
    assert str(info.value).startswith("bd command failed: bd dep add bd-b bd-a")


def test_run_bd_command_returns_trimmed_output():
    fake = FakeBd(["bd-xyz"])
    with mock.patch("subprocess.run", fake):
        assert run_bd_command(["create", "--silent"]) == "bd-xyz"
    assert fake.calls == [["bd", "create", "--silent"]]


def test_run_bd_command_reports_stderr():
    fake = FakeBd([], fail_on="create", stderr="  something broke \n")
    with mock.patch("subprocess.run", fake):
        with pytest.raises(BdError, match="^something broke$"):
            run_bd_command(["create"])


def test_run_bd_command_empty_stderr_uses_exit_status():
    fake = FakeBd([], fail_on="create", stderr="")
    with mock.patch("subprocess.run", fake):
        with pytest.raises(BdError, match="exit status 1"):
            run_bd_command(["create"])


def test_pre_flight_check_missing_program():
    with mock.patch("shutil.which", return_value=None):
        with pytest.raises(BdError, match="bd not found on PATH"):
            pre_flight_check()


def test_pre_flight_check_uninitialised_database():
    fake = FakeBd([], fail_on="list", stderr="Error: no beads database found")
    with mock.patch("shutil.which", return_value="/usr/bin/bd"), mock.patch("subprocess.run", fake):
        with pytest.raises(BdError, match="beads not initialized. Run 'bd init' first"):
            pre_flight_check()


def test_pre_flight_check_other_failure():
    fake = FakeBd([], fail_on="list", stderr="disk on fire")
    with mock.patch("shutil.which", return_value="/usr/bin/bd"), mock.patch("subprocess.run", fake):
        with pytest.raises(BdError, match="bd pre-flight check failed: disk on fire"):
            pre_flight_check()


def test_pre_flight_check_success_runs_list():
    fake = FakeBd([])
    with mock.patch("shutil.which", return_value="/usr/bin/bd"), mock.patch("subprocess.run", fake):
        assert pre_flight_check() is None
    assert fake.calls == [["/usr/bin/bd", "list", "--limit", "0"]]