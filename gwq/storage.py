"""File-backed queue of task records, one JSON file per task."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timedelta
from pathlib import Path

from gwq.task import Status, Task, TaskResult


class StorageError(Exception):
    """A task could not be stored or read."""


class TaskNotFoundError(StorageError, LookupError):
    """No stored task has the requested identity."""


_PENDING_STATES = (Status.PENDING, Status.WAITING)


def _is_task_file(name: str) -> bool:
    return name.endswith(".json") and len(name) > 5 and name.startswith("task-")


class Storage:
    """Persists tasks as ``task-<id>.json`` files in a queue directory."""

    def __init__(self, queue_dir):
        self.queue_dir = Path(queue_dir)
        try:
            self.queue_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"failed to create queue directory: {exc}") from exc
        self._lock = threading.RLock()

    def _task_path(self, task_id: str) -> Path:
        return self.queue_dir / f"task-{task_id}.json"

    def save_task(self, task: Task) -> None:
        if not task.id:
            raise StorageError("task ID cannot be empty")
        data = json.dumps(task.to_dict(), indent=2, ensure_ascii=False)
        with self._lock:
            try:
                self._task_path(task.id).write_text(data, encoding="utf-8")
            except OSError as exc:
                raise StorageError(f"failed to write task file: {exc}") from exc

    def load_task(self, task_id: str) -> Task:
        with self._lock:
            try:
                text = self._task_path(task_id).read_text(encoding="utf-8")
            except FileNotFoundError:
                raise TaskNotFoundError(f"task not found: {task_id}") from None
            except OSError as exc:
                raise StorageError(f"failed to read task file: {exc}") from exc
        try:
            return Task.from_dict(json.loads(text))
        except (ValueError, TypeError, AttributeError) as exc:
            raise StorageError(f"failed to unmarshal task: {exc}") from exc

    def delete_task(self, task_id: str) -> None:
        with self._lock:
            try:
                self._task_path(task_id).unlink()
            except FileNotFoundError:
                raise TaskNotFoundError(f"task not found: {task_id}") from None
            except OSError as exc:
                raise StorageError(f"failed to delete task file: {exc}") from exc

    def list_tasks(self) -> list[Task]:
        """All readable tasks; unreadable or malformed files are skipped."""
        with self._lock:
            try:
                entries = sorted(self.queue_dir.iterdir())
            except OSError as exc:
                raise StorageError(f"failed to read queue directory: {exc}") from exc
            tasks = []
            for entry in entries:
                if entry.is_dir() or not _is_task_file(entry.name):
                    continue
                try:
                    tasks.append(
                        Task.from_dict(json.loads(entry.read_text(encoding="utf-8")))
                    )
                except (OSError, ValueError, TypeError, AttributeError):
                    continue
            return tasks

    def update_task_status(self, task_id: str, status: Status) -> None:
        with self._lock:
            task = self.load_task(task_id)
            task.status = status
            now = datetime.now().astimezone()
            if status is Status.RUNNING:
                if task.started_at is None:
                    task.started_at = now
            elif status.is_terminal and task.completed_at is None:
                task.completed_at = now
            self.save_task(task)

    def update_task_result(self, task_id: str, result: TaskResult) -> None:
        with self._lock:
            task = self.load_task(task_id)
            task.result = result
            self.save_task(task)

    def update_task_session_id(self, task_id: str, session_id: str) -> None:
        with self._lock:
            task = self.load_task(task_id)
            task.session_id = session_id
            self.save_task(task)

    def find_task_by_session_id(self, session_id: str) -> Task:
        for task in self.list_tasks():
            if task.session_id == session_id:
                return task
        raise TaskNotFoundError(f"task not found for session: {session_id}")

    def get_tasks_by_status(self, status: Status) -> list[Task]:
        return [task for task in self.list_tasks() if task.status is status]

    def get_pending_tasks(self) -> list[Task]:
        return [task for task in self.list_tasks() if task.status in _PENDING_STATES]

    def cleanup(self, older_than: timedelta) -> int:
        """Remove finished tasks completed before ``older_than`` ago; return the count."""
        cutoff = datetime.now().astimezone() - older_than
        removed = 0
        with self._lock:
            for task in self.list_tasks():
                if not task.status.is_terminal:
                    continue
                if task.completed_at is not None and task.completed_at < cutoff:
                    try:
                        self._task_path(task.id).unlink()
                    except OSError:
                        continue
                    removed += 1
        return removed