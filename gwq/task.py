"""Task records for queued agent runs and their JSON form."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any


class Status(str, Enum):
    """Lifecycle state of a task."""

    PENDING = "pending"
    WAITING = "waiting"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """True for states a task never leaves."""
        return self in _TERMINAL


_TERMINAL = frozenset(
    {Status.COMPLETED, Status.FAILED, Status.CANCELLED, Status.SKIPPED}
)


class DependencyPolicy(str, Enum):
    """How a task reacts to its dependencies."""

    WAIT = "wait"


_FRACTION = re.compile(r"(\.\d{6})\d+")


def _now() -> datetime:
    return datetime.now().astimezone()


def _format_time(moment: datetime) -> str:
    return moment.isoformat()


def _parse_time(text: str) -> datetime:
    cleaned = _FRACTION.sub(r"\1", text.replace("Z", "+00:00"))
    moment = datetime.fromisoformat(cleaned)
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment


def _duration_to_ns(duration: timedelta) -> int:
    return round(duration / timedelta(microseconds=1)) * 1000


def _duration_from_ns(nanoseconds: int) -> timedelta:
    return timedelta(microseconds=nanoseconds / 1000)


@dataclass
class TaskConfig:
    """Execution switches for a task."""

    skip_permissions: bool = False
    auto_commit: bool = False
    backup_files: bool = False


@dataclass
class TaskResult:
    """Outcome of a finished task."""

    duration: timedelta = timedelta(0)
    exit_code: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "duration": _duration_to_ns(self.duration),
            "exit_code": self.exit_code,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskResult:
        return cls(
            duration=_duration_from_ns(int(data.get("duration", 0))),
            exit_code=int(data.get("exit_code", 0)),
        )


@dataclass
class Task:
    """Full task record as it is stored in the queue."""

    id: str = ""
    name: str = ""
    worktree: str = ""
    priority: int = 0
    status: Status = Status.PENDING
    created_at: datetime = field(default_factory=_now)
    prompt: str = ""
    depends_on: list[str] = field(default_factory=list)
    result: TaskResult | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    worktree_path: str = ""
    repository_root: str = ""
    session_id: str = ""
    verification_commands: list[str] = field(default_factory=list)
    base_branch: str = ""
    agent_type: str = ""
    blocks: list[str] = field(default_factory=list)
    dependency_policy: DependencyPolicy | None = None
    files_to_focus: list[str] = field(default_factory=list)
    config: TaskConfig = field(default_factory=TaskConfig)
    auto_create_worktree: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "worktree": self.worktree,
            "priority": self.priority,
            "status": self.status.value,
            "created_at": _format_time(self.created_at),
            "prompt": self.prompt,
            "depends_on": list(self.depends_on),
        }
        if self.result is not None:
            data["result"] = self.result.to_dict()
        if self.started_at is not None:
            data["started_at"] = _format_time(self.started_at)
        if self.completed_at is not None:
            data["completed_at"] = _format_time(self.completed_at)
        optional = {
            "worktree_path": self.worktree_path,
            "repository_root": self.repository_root,
            "session_id": self.session_id,
            "verification_commands": list(self.verification_commands),
            "base_branch": self.base_branch,
            "agent_type": self.agent_type,
            "blocks": list(self.blocks),
            "dependency_policy": (
                self.dependency_policy.value if self.dependency_policy else ""
            ),
            "files_to_focus": list(self.files_to_focus),
        }
        data.update({key: value for key, value in optional.items() if value})
        data["config"] = {
            "skip_permissions": self.config.skip_permissions,
            "auto_commit": self.config.auto_commit,
            "backup_files": self.config.backup_files,
        }
        if self.auto_create_worktree:
            data["auto_create_worktree"] = True
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        result = data.get("result")
        started = data.get("started_at")
        completed = data.get("completed_at")
        created = data.get("created_at")
        policy = data.get("dependency_policy")
        config = data.get("config") or {}
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            worktree=data.get("worktree", ""),
            priority=int(data.get("priority", 0)),
            status=Status(data.get("status") or Status.PENDING.value),
            created_at=_parse_time(created) if created else _now(),
            prompt=data.get("prompt", ""),
            depends_on=list(data.get("depends_on") or []),
            result=TaskResult.from_dict(result) if result else None,
            started_at=_parse_time(started) if started else None,
            completed_at=_parse_time(completed) if completed else None,
            worktree_path=data.get("worktree_path", ""),
            repository_root=data.get("repository_root", ""),
            session_id=data.get("session_id", ""),
            verification_commands=list(data.get("verification_commands") or []),
            base_branch=data.get("base_branch", ""),
            agent_type=data.get("agent_type", ""),
            blocks=list(data.get("blocks") or []),
            dependency_policy=DependencyPolicy(policy) if policy else None,
            files_to_focus=list(data.get("files_to_focus") or []),
            config=TaskConfig(
                skip_permissions=bool(config.get("skip_permissions", False)),
                auto_commit=bool(config.get("auto_commit", False)),
                backup_files=bool(config.get("backup_files", False)),
            ),
            auto_create_worktree=bool(data.get("auto_create_worktree", False)),
        )


@dataclass
class SimplifiedTask:
    """The essential fields of a task."""

    id: str = ""
    name: str = ""
    worktree: str = ""
    priority: int = 0
    status: Status = Status.PENDING
    created_at: datetime = field(default_factory=_now)
    prompt: str = ""
    depends_on: list[str] = field(default_factory=list)
    result: TaskResult | None = None

    def display_name(self) -> str:
        """The name, or the prompt shortened to 50 characters when unnamed."""
        if self.name:
            return self.name
        if len(self.prompt) > 50:
            return self.prompt[:47] + "..."
        return self.prompt

    def is_completed(self) -> bool:
        return self.status is Status.COMPLETED

    def is_failed(self) -> bool:
        return self.status is Status.FAILED

    def is_running(self) -> bool:
        return self.status is Status.RUNNING

    def duration(self) -> timedelta:
        """Run time taken from the result, zero when there is none."""
        return self.result.duration if self.result is not None else timedelta(0)

    def to_legacy_task(self) -> Task:
        """Expand into a full task record with the usual defaults."""
        task = Task(
            id=self.id,
            name=self.name,
            worktree=self.worktree,
            priority=self.priority,
            status=self.status,
            created_at=self.created_at,
            prompt=self.prompt,
            depends_on=self.depends_on,
            result=self.result,
            agent_type="claude",
            dependency_policy=DependencyPolicy.WAIT,
            config=TaskConfig(
                skip_permissions=True, auto_commit=False, backup_files=False
            ),
        )
        if self.result is not None and self.status is Status.COMPLETED:
            task.completed_at = self.created_at + self.result.duration
        return task


def new_simplified_task(
    task_id: str, name: str, worktree: str, prompt: str, priority: int
) -> SimplifiedTask:
    """Create a pending task stamped with the current time."""
    return SimplifiedTask(
        id=task_id,
        name=name,
        worktree=worktree,
        priority=priority,
        status=Status.PENDING,
        created_at=_now(),
        prompt=prompt,
        depends_on=[],
    )


def from_legacy_task(task: Task) -> SimplifiedTask:
    """Reduce a full task record, recomputing the duration from its timestamps."""
    result = task.result
    if (
        result is not None
        and task.started_at is not None
        and task.completed_at is not None
    ):
        result = replace(result, duration=task.completed_at - task.started_at)
    return SimplifiedTask(
        id=task.id,
        name=task.name,
        worktree=task.worktree,
        priority=task.priority,
        status=task.status,
        created_at=task.created_at,
        prompt=task.prompt,
        depends_on=task.depends_on,
        result=result,
    )