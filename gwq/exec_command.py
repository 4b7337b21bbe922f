"""Argument handling for running commands inside a worktree, and config value typing."""

from __future__ import annotations

import os
import re
import subprocess
from dataclasses import dataclass, field
from typing import Sequence

_USAGE = "gwq exec [pattern] -- command [args...]"
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class ExecArgsError(ValueError):
    """The arguments given to ``exec`` cannot be understood."""


class HelpRequested(Exception):
    """The user asked for help instead of running a command."""


@dataclass
class ExecArgs:
    """Parsed ``exec`` arguments."""

    pattern: str = ""
    command_args: list[str] = field(default_factory=list)
    global_: bool = False
    stay: bool = False


def parse_exec_args(args: Sequence[str]) -> ExecArgs:
    """Split ``exec`` arguments into flags, an optional pattern and the command.

    Everything after the first ``--`` is the command to run.
    """
    args = list(args)
    result = ExecArgs()
    try:
        separator = args.index("--")
    except ValueError:
        separator = None

    for arg in args if separator is None else args[:separator]:
        if arg in ("-g", "--global"):
            result.global_ = True
        elif arg in ("-s", "--stay"):
            result.stay = True
        elif arg in ("-h", "--help"):
            raise HelpRequested(_USAGE)
        elif arg.startswith("-"):
            raise ExecArgsError(f"unknown flag: {arg}")
        elif not result.pattern:
            result.pattern = arg

    if separator is None:
        raise ExecArgsError(f"missing -- separator. Use: {_USAGE}")
    command = args[separator + 1 :]
    if not command:
        raise ExecArgsError("no command specified after --")
    result.command_args = command
    return result


def execute_in_worktree(worktree_path, command_args: Sequence[str], stay: bool = False) -> None:
    """Run ``command_args`` with ``worktree_path`` as working directory.

    With ``stay`` an interactive shell is started there afterwards, whatever
    the command's outcome. A command that cannot start or exits non-zero
    raises once the shell (if any) has finished.
    """
    command = list(command_args)
    if not command:
        raise ExecArgsError("no command specified after --")

    failure: BaseException | None = None
    try:
        completed = subprocess.run(command, cwd=worktree_path, env=dict(os.environ))
        if completed.returncode != 0:
            failure = subprocess.CalledProcessError(completed.returncode, command)
    except OSError as exc:
        failure = exc

    if stay:
        shell = os.environ.get("SHELL") or "/bin/sh"
        print(f"Launching shell in: {worktree_path}")
        print("Type 'exit' to return to the original directory")
        try:
            subprocess.run([shell], cwd=worktree_path, env=dict(os.environ))
        except OSError:
            pass

    if failure is not None:
        raise failure


def parse_config_value(value: str):
    """Turn a command-line config value into a bool, an int, or leave it as text."""
    if value == "true":
        return True
    if value == "false":
        return False
    match = _LEADING_INT.match(value)
    if match:
        return int(match.group(1))
    return value