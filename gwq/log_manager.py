"""Execution metadata records and the on-disk log layout that holds them."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Callable

_log = logging.getLogger(__name__)

_FRACTION = re.compile(r"(\.\d{6})\d+")
_FILE_STAMP = "%Y%m%d-%H%M%S"


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.astimezone()


def _format_time(moment: datetime) -> str:
    return _aware(moment).isoformat()


def _parse_time(text: str) -> datetime:
    cleaned = _FRACTION.sub(r"\1", text.replace("Z", "+00:00"))
    return _aware(datetime.fromisoformat(cleaned))


def _now() -> datetime:
    return datetime.now().astimezone()


class ExecutionType(str, Enum):
    """Kind of work an execution performs."""

    TASK = "task"


class ExecutionStatus(str, Enum):
    """State of an execution."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTED = "aborted"


@dataclass
class TaskExecutionInfo:
    """Task details attached to a task execution."""

    task_id: str = ""
    task_name: str = ""
    worktree: str = ""
    worktree_path: str = ""
    dependencies: list[str] = field(default_factory=list)
    task_priority: int = 0
    prompt: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "task_name": self.task_name,
            "worktree": self.worktree,
            "worktree_path": self.worktree_path,
            "dependencies": list(self.dependencies),
            "task_priority": self.task_priority,
            "prompt": self.prompt,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskExecutionInfo:
        return cls(
            task_id=data.get("task_id", ""),
            task_name=data.get("task_name", ""),
            worktree=data.get("worktree", ""),
            worktree_path=data.get("worktree_path", ""),
            dependencies=list(data.get("dependencies") or []),
            task_priority=int(data.get("task_priority", 0)),
            prompt=data.get("prompt", ""),
        )


@dataclass
class UnifiedExecution:
    """Metadata describing one agent execution."""

    execution_id: str = ""
    execution_type: ExecutionType = ExecutionType.TASK
    session_id: str = ""
    start_time: datetime = field(default_factory=_now)
    end_time: datetime | None = None
    status: ExecutionStatus = ExecutionStatus.RUNNING
    repository: str = ""
    working_dir: str = ""
    prompt: str = ""
    tags: list[str] = field(default_factory=list)
    priority: str = ""
    task_info: TaskExecutionInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "execution_id": self.execution_id,
            "execution_type": self.execution_type.value,
            "session_id": self.session_id,
            "start_time": _format_time(self.start_time),
            "status": self.status.value,
            "repository": self.repository,
            "working_directory": self.working_dir,
            "prompt": self.prompt,
            "tags": list(self.tags),
            "priority": self.priority,
        }
        if self.end_time is not None:
            data["end_time"] = _format_time(self.end_time)
        if self.task_info is not None:
            data["task_info"] = self.task_info.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UnifiedExecution:
        start = data.get("start_time")
        end = data.get("end_time")
        info = data.get("task_info")
        return cls(
            execution_id=data.get("execution_id", ""),
            execution_type=ExecutionType(
                data.get("execution_type") or ExecutionType.TASK.value
            ),
            session_id=data.get("session_id", ""),
            start_time=_parse_time(start) if start else _now(),
            end_time=_parse_time(end) if end else None,
            status=ExecutionStatus(data.get("status") or ExecutionStatus.RUNNING.value),
            repository=data.get("repository", ""),
            working_dir=data.get("working_directory", ""),
            prompt=data.get("prompt", ""),
            tags=list(data.get("tags") or []),
            priority=str(data.get("priority") or ""),
            task_info=TaskExecutionInfo.from_dict(info) if info else None,
        )


class ExecutionNotFoundError(LookupError):
    """No metadata file exists for the requested execution."""


ExecutionFilter = Callable[[UnifiedExecution], bool]


class UnifiedLogManager:
    """Keeps execution metadata under ``<config_dir>/logs``."""

    def __init__(self, config_dir):
        self.log_dir = Path(config_dir) / "logs"
        for directory in (self._executions_dir, self._metadata_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise OSError(
                    f"failed to create log directory {directory}: {exc}"
                ) from exc

    @property
    def _executions_dir(self) -> Path:
        return self.log_dir / "executions"

    @property
    def _metadata_dir(self) -> Path:
        return self.log_dir / "metadata"

    def start_logging(self, execution: UnifiedExecution) -> Path:
        """Record initial metadata and return the path the log stream goes to."""
        self._executions_dir.mkdir(parents=True, exist_ok=True)
        stamp = execution.start_time.strftime(_FILE_STAMP)
        log_path = self._executions_dir / f"{stamp}-{execution.execution_id}.jsonl"
        self._save_metadata(execution)
        return log_path

    def save_execution(self, execution: UnifiedExecution) -> None:
        self._save_metadata(execution)

    def _metadata_files(self) -> list[Path]:
        return sorted(self._metadata_dir.iterdir())

    def _find_metadata_file(self, execution_id: str) -> Path | None:
        suffix = f"-{execution_id}.json"
        return next(
            (path for path in self._metadata_files() if path.name.endswith(suffix)),
            None,
        )

    def load_execution(self, execution_id: str) -> UnifiedExecution:
        path = self._find_metadata_file(execution_id)
        if path is None:
            raise ExecutionNotFoundError(
                f"metadata file not found for execution ID: {execution_id}"
            )
        return UnifiedExecution.from_dict(json.loads(path.read_text(encoding="utf-8")))

    def list_executions(self, *args: ExecutionFilter) -> list[UnifiedExecution]:
        """Executions passing every filter, newest first; broken files are skipped."""
        try:
            paths = self._metadata_files()
        except FileNotFoundError:
            return []

        executions = []
        for path in paths:
            if not path.name.endswith(".json"):
                continue
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                execution = UnifiedExecution.from_dict(data)
            except (OSError, ValueError, TypeError, AttributeError) as exc:
                _log.warning("failed to load metadata file %s: %s", path, exc)
                continue
            if all(accept(execution) for accept in args):
                executions.append(execution)

        executions.sort(key=lambda item: _aware(item.start_time), reverse=True)
        return executions

    def log_file(self, execution: UnifiedExecution) -> Path:
        """Dated log file location for an execution."""
        date_dir = execution.start_time.strftime("%Y-%m-%d")
        name = f"{execution.execution_type.value}-{execution.execution_id}.jsonl"
        return self._executions_dir / date_dir / name

    def cleanup_old_logs(self, older_than: timedelta) -> int:
        """Delete finished executions started before ``older_than`` ago.

        Returns the number of log files removed.
        """
        cutoff = _now() - older_than
        stale = [
            execution
            for execution in self.list_executions()
            if _aware(execution.start_time) < cutoff
            and execution.status is not ExecutionStatus.RUNNING
        ]

        deleted = 0
        for execution in stale:
            try:
                self.log_file(execution).unlink()
                deleted += 1
            except OSError:
                pass
            try:
                metadata = self._find_metadata_file(execution.execution_id)
            except OSError:
                metadata = None
            if metadata is not None:
                try:
                    metadata.unlink()
                except OSError as exc:
                    _log.warning("failed to delete metadata file %s: %s", metadata, exc)

        print(f"Cleaned {deleted} old execution logs")
        return deleted

    def _save_metadata(self, execution: UnifiedExecution) -> None:
        stamp = execution.start_time.strftime(_FILE_STAMP)
        path = self._metadata_dir / f"{stamp}-{execution.execution_id}.json"
        text = json.dumps(execution.to_dict(), indent=2, ensure_ascii=False)
        try:
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise OSError(f"failed to write metadata file: {exc}") from exc