import json
import shlex
from datetime import datetime, timezone

import pytest

from gwq.log_manager import ExecutionType, TaskExecutionInfo, UnifiedExecution
from gwq.session import build_task_command, escape_for_shell, write_session_metadata


@pytest.mark.parametrize(
    "text",
    [
        "plain prompt",
        'say "hello"',
        "cost is $HOME and `whoami`",
        "back\\slash",
        "mixed \"$x\" `y` \\z",
    ],
)
def test_escape_round_trips_through_double_quotes(text):
    escaped = escape_for_shell(text)
    assert shlex.split(f'"{escaped}"') == [text]


def test_escape_leaves_plain_text_alone():
    assert escape_for_shell("fix the tests") == "fix the tests"


def test_build_task_command_tees_into_log_dir(tmp_path):
    execution = UnifiedExecution(execution_id="task-abc", prompt='do "it"')
    command = build_task_command(execution, tmp_path)

    assert command.startswith("claude --verbose --dangerously-skip-permissions")
    assert "--output-format stream-json" in command
    log_dir = tmp_path / "logs" / "executions"
    assert log_dir.is_dir()
    tokens = shlex.split(command)
    assert tokens[tokens.index("-p") + 1] == 'do "it"'
    assert tokens[-2] == "tee"
    log_path = tokens[-1]
    assert log_path.startswith(str(log_dir))
    assert log_path.endswith("-task-abc.jsonl")


def test_build_task_command_without_log_dir(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    execution = UnifiedExecution(execution_id="task-abc", prompt="hi")
    command = build_task_command(execution, blocker)
    assert "tee" not in command
    assert shlex.split(command)[-1] == "hi"


def test_write_session_metadata_contents(tmp_path):
    execution = UnifiedExecution(
        execution_id="task-1",
        execution_type=ExecutionType.TASK,
        session_id="sess",
        start_time=datetime(2024, 12, 6, 14, 30, 45, tzinfo=timezone.utc),
        repository="repo",
        working_dir="/work/dir",
        prompt="Build it",
        tags=["a", "b"],
        priority="high",
        task_info=TaskExecutionInfo(
            task_id="task-abc",
            task_name="Build Project",
            dependencies=["task-xyz"],
            task_priority=2,
        ),
    )
    path = write_session_metadata(execution, tmp_path)

    assert path.parent == tmp_path / "logs" / "metadata"
    assert path.name.endswith("-task-1.json")
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["execution_id"] == "task-1"
    assert data["execution_type"] == "task"
    assert data["status"] == "running"
    assert data["start_time"] == "2024-12-06T14:30:45Z"
    assert data["working_directory"] == "/work/dir"
    assert data["tags"] == ["a", "b"]
    assert data["tmux_session"].startswith("gwq-claude-task-1-")
    assert data["task_info"]["task_name"] == "Build Project"
    assert data["task_info"]["dependencies"] == ["task-xyz"]
    assert data["task_info"]["task_priority"] == 2


def test_write_session_metadata_without_task_info(tmp_path):
    execution = UnifiedExecution(execution_id="task-2", prompt="p")
    path = write_session_metadata(execution, tmp_path)
    data = json.loads(path.read_text(encoding="utf-8"))
    assert "task_info" not in data
    assert data["prompt"] == "p"


def test_write_session_metadata_fails_on_bad_dir(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    with pytest.raises(OSError):
        write_session_metadata(UnifiedExecution(execution_id="x"), blocker)