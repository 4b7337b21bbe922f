"""Text shown when picking tasks and executions interactively."""

from __future__ import annotations

from datetime import datetime, timedelta

from gwq.log_filters import truncate
from gwq.log_manager import UnifiedExecution
from gwq.task import Status, Task

_DISPLAY_TIME = "%Y-%m-%d %H:%M:%S"
_WORKTREE_MARKER = "/.worktrees/"

_ICONS = {
    Status.PENDING: "○",
    Status.WAITING: "⏳",
    Status.RUNNING: "●",
    Status.COMPLETED: "✓",
    Status.FAILED: "✗",
    Status.SKIPPED: "⤵",
    Status.CANCELLED: "✕",
}


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.astimezone()


def status_icon(status) -> str:
    """Single-character marker for a task status; ``?`` when unknown."""
    try:
        return _ICONS.get(Status(status), "?")
    except ValueError:
        return "?"


def format_relative_time(moment: datetime, now: datetime | None = None) -> str:
    """How long ago ``moment`` was, in whole minutes, hours or days."""
    current = _aware(now) if now is not None else datetime.now().astimezone()
    diff = current - _aware(moment)
    if diff < timedelta(minutes=1):
        return "just now"
    if diff < timedelta(hours=1):
        return f"{int(diff / timedelta(minutes=1))}m ago"
    if diff < timedelta(hours=24):
        return f"{int(diff / timedelta(hours=1))}h ago"
    return f"{int(diff / timedelta(hours=1) / 24)}d ago"


def extract_branch_from_path(working_dir: str) -> str:
    """Guess the branch from a working directory under ``.worktrees``."""
    if _WORKTREE_MARKER in working_dir:
        tail = working_dir.split(_WORKTREE_MARKER)[1]
        return "-".join(tail.split("-")[:-1])
    if working_dir:
        return "main"
    return "no-branch"


def format_task_preview(task: Task) -> str:
    """Multi-line description of a task for the preview pane."""
    lines = [
        f"Task: {task.name}\n",
        f"ID: {task.id}\n",
        f"Status: {Status(task.status).value}\n",
        f"Priority: {task.priority}\n",
        f"Created: {task.created_at.strftime(_DISPLAY_TIME)}\n",
    ]
    if task.worktree:
        lines.append(f"Worktree: {task.worktree}\n")
    if task.prompt:
        lines.append(f"\nPrompt: {truncate(task.prompt, 200)}\n")
    if task.depends_on:
        lines.append(f"\nDependencies: {', '.join(task.depends_on)}\n")
    return "".join(lines)


def format_task_line(task: Task, now: datetime | None = None) -> str:
    """One-line summary of a task for the selection list."""
    status = Status(task.status)
    relative = format_relative_time(task.created_at, now)
    return (
        f"{status_icon(status)} [{status.value}] {task.id} "
        f"({task.worktree}) - {task.name} - {relative}"
    )


def format_execution_line(
    execution: UnifiedExecution, now: datetime | None = None
) -> str:
    """One-line summary of an execution for the selection list."""
    branch = extract_branch_from_path(execution.working_dir)
    relative = format_relative_time(execution.start_time, now)
    return (
        f"[{execution.status.value}] {execution.execution_id} "
        f"({execution.working_dir} on {branch}) - {relative}"
    )


def format_execution_preview(execution: UnifiedExecution) -> str:
    """Multi-line description of an execution for the preview pane."""
    return (
        f"Execution: {execution.execution_id}\n"
        f"Status: {execution.status.value}\n"
        f"Started: {execution.start_time.strftime(_DISPLAY_TIME)}\n"
        f"Prompt: {execution.prompt}"
    )