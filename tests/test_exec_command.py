import subprocess
import sys

import pytest

from gwq.exec_command import (
    ExecArgs,
    ExecArgsError,
    HelpRequested,
    execute_in_worktree,
    parse_config_value,
    parse_exec_args,
)


def test_parse_pattern_and_command():
    parsed = parse_exec_args(["feature", "--", "npm", "test"])
    assert parsed.pattern == "feature"
    assert parsed.command_args == ["npm", "test"]
    assert parsed.global_ is False
    assert parsed.stay is False


def test_parse_flags_long_and_short():
    parsed = parse_exec_args(["--stay", "-g", "project:feature", "--", "make", "build"])
    assert parsed == ExecArgs(
        pattern="project:feature", command_args=["make", "build"], global_=True, stay=True
    )
    short = parse_exec_args(["-s", "--global", "--", "ls"])
    assert short.stay is True and short.global_ is True and short.pattern == ""


def test_parse_first_pattern_wins():
    parsed = parse_exec_args(["one", "two", "--", "ls"])
    assert parsed.pattern == "one"


def test_parse_keeps_flags_after_separator():
    parsed = parse_exec_args(["--", "sh", "-c", "git pull -- x"])
    assert parsed.command_args == ["sh", "-c", "git pull -- x"]
    assert parsed.stay is False


def test_parse_missing_separator():
    with pytest.raises(ExecArgsError, match="missing -- separator"):
        parse_exec_args(["feature", "npm", "test"])


def test_parse_no_command():
    with pytest.raises(ExecArgsError, match="no command specified after --"):
        parse_exec_args(["feature", "--"])


def test_parse_unknown_flag():
    with pytest.raises(ExecArgsError, match="unknown flag: -x"):
        parse_exec_args(["-x", "--", "ls"])


@pytest.mark.parametrize("flag", ["-h", "--help"])
def test_parse_help(flag):
    with pytest.raises(HelpRequested):
        parse_exec_args([flag, "--", "ls"])


@pytest.mark.parametrize(
    "value, expected",
    [("true", True), ("false", False), ("42", 42), ("-7", -7)],
)
def test_parse_config_value_typed(value, expected):
    result = parse_config_value(value)
    assert result == expected
    assert type(result) is type(expected)


def test_parse_config_value_text():
    assert parse_config_value("~/worktrees") == "~/worktrees"
    assert parse_config_value("True") == "True"


def test_execute_runs_in_worktree(tmp_path):
    script = "import pathlib; pathlib.Path('out.txt').write_text('ran')"
    execute_in_worktree(tmp_path, [sys.executable, "-c", script], False)
    assert (tmp_path / "out.txt").read_text() == "ran"


def test_execute_nonzero_exit_raises(tmp_path):
    with pytest.raises(subprocess.CalledProcessError) as info:
        execute_in_worktree(tmp_path, [sys.executable, "-c", "raise SystemExit(3)"], False)
    assert info.value.returncode == 3


def test_execute_missing_command_raises(tmp_path):
    with pytest.raises(OSError):
        execute_in_worktree(tmp_path, [str(tmp_path / "no-such-program")], False)


def test_execute_empty_command_raises(tmp_path):
    with pytest.raises(ExecArgsError):
        execute_in_worktree(tmp_path, [], False)


@pytest.mark.parametrize("exit_code", [0, 2])
def test_execute_stay_starts_shell(tmp_path, monkeypatch, capsys, exit_code):
    shell = tmp_path / "fake-shell"
    shell.write_text("#!/bin/sh\ntouch shell-ran\n")
    shell.chmod(0o755)
    monkeypatch.setenv("SHELL", str(shell))
    command = [sys.executable, "-c", f"raise SystemExit({exit_code})"]
    if exit_code:
        with pytest.raises(subprocess.CalledProcessError):
            execute_in_worktree(tmp_path, command, True)
    else:
        execute_in_worktree(tmp_path, command, True)
    assert (tmp_path / "shell-ran").exists()
    assert f"Launching shell in: {tmp_path}" in capsys.readouterr().out