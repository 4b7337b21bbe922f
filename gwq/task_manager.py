"""Creating, loading and selecting queued tasks."""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass, field
from typing import Any, Iterable

import yaml

from gwq.repository import RepositoryError, git_toplevel
from gwq.storage import Storage, StorageError
from gwq.task import SimplifiedTask, Status, Task, new_simplified_task

_SUPPORTED_VERSION = "1.0"
_DEFAULT_PRIORITY = 50


class TaskManagerError(Exception):
    """A task could not be created or found.

    ``created`` holds the tasks already created when a batch stops part way.
    """

    def __init__(self, message: str, created: list[Task] | None = None):
        super().__init__(message)
        self.created = created if created is not None else []


@dataclass
class CreateTaskRequest:
    """Parameters for a single new task."""

    name: str = ""
    worktree: str = ""
    base_branch: str = ""
    priority: int = 0
    depends_on: list[str] = field(default_factory=list)
    prompt: str = ""
    files_to_focus: list[str] = field(default_factory=list)
    verification_commands: list[str] = field(default_factory=list)
    auto_commit: bool = False
    repository: str = ""


def _generate_short_id() -> str:
    return secrets.token_hex(4)


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


class TaskManager:
    """Task operations backed by a :class:`Storage` queue."""

    def __init__(self, storage: Storage, config):
        self.storage = storage
        self.config = config

    def create_task(self, request: CreateTaskRequest) -> Task:
        if not request.name:
            raise TaskManagerError("task name is required")
        if not request.worktree:
            raise TaskManagerError("worktree must be specified")
        if not 1 <= request.priority <= 100:
            raise TaskManagerError("priority must be between 1 and 100")

        try:
            self._resolve_repository(request.repository)
        except TaskManagerError as exc:
            raise TaskManagerError(f"failed to resolve repository: {exc}") from exc

        simplified = new_simplified_task(
            _generate_short_id(),
            request.name,
            request.worktree,
            request.prompt,
            request.priority,
        )
        simplified.depends_on = request.depends_on
        task = simplified.to_legacy_task()
        task.worktree = request.worktree
        self._save(task)
        return task

    def create_tasks_from_file(self, file_path) -> list[Task]:
        """Create every task listed in a version 1.0 YAML task file."""
        try:
            with open(file_path, encoding="utf-8") as handle:
                text = handle.read()
        except OSError as exc:
            raise TaskManagerError(f"failed to read task file: {exc}") from exc

        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise TaskManagerError(f"failed to parse YAML: {exc}") from exc
        if document is None:
            document = {}
        if not isinstance(document, dict):
            raise TaskManagerError("failed to parse YAML: expected a mapping")

        version = _as_text(document.get("version"))
        if version != _SUPPORTED_VERSION:
            raise TaskManagerError(
                f"unsupported task file version: {version} (expected 1.0)"
            )

        try:
            self._resolve_repository(_as_text(document.get("repository")))
        except TaskManagerError as exc:
            raise TaskManagerError(
                f"failed to resolve default repository: {exc}"
            ) from exc

        entries = document.get("tasks") or []
        if not isinstance(entries, list):
            raise TaskManagerError("failed to parse YAML: tasks must be a list")

        created: list[Task] = []
        for entry in entries:
            entry = entry if isinstance(entry, dict) else {}
            try:
                created.append(self._create_task_from_entry(entry))
            except TaskManagerError as exc:
                raise TaskManagerError(
                    f"failed to create task {_as_text(entry.get('id'))}: {exc}",
                    created=created,
                ) from exc
        return created

    def find_task_by_pattern(self, pattern: str) -> Task:
        """Find the one task whose ID, name or worktree matches ``pattern``."""
        try:
            return self.storage.load_task(pattern)
        except StorageError:
            pass

        try:
            tasks = self.storage.list_tasks()
        except StorageError as exc:
            raise TaskManagerError(str(exc)) from exc

        lowered = pattern.lower()
        matches = [
            task
            for task in tasks
            if pattern in task.id
            or lowered in task.name.lower()
            or pattern in task.worktree
        ]
        if not matches:
            raise TaskManagerError(f"no task found matching pattern: {pattern}")
        if len(matches) > 1:
            raise TaskManagerError(
                f"multiple tasks match pattern '{pattern}': {len(matches)} matches"
            )
        return matches[0]

    def filter_tasks_by_status(self, tasks: Iterable[Task], status) -> list[Task]:
        return [task for task in tasks if task.status == status]

    def filter_tasks_by_priority(
        self, tasks: Iterable[Task], min_priority: int
    ) -> list[Task]:
        return [task for task in tasks if task.priority >= min_priority]

    def _resolve_repository(self, repo: str) -> str:
        if not repo:
            try:
                return git_toplevel(os.getcwd())
            except (OSError, RepositoryError) as exc:
                raise TaskManagerError(f"not in a git repository: {exc}") from exc
        try:
            return git_toplevel(repo)
        except RepositoryError as exc:
            raise TaskManagerError(f"not a git repository: {repo}") from exc

    def _create_task_from_entry(self, entry: dict) -> Task:
        task_id = _as_text(entry.get("id"))
        worktree = _as_text(entry.get("worktree"))
        if not task_id:
            raise TaskManagerError("task ID is required")
        if not worktree:
            raise TaskManagerError("worktree must be specified")

        repository = _as_text(entry.get("repository"))
        if repository:
            try:
                self._resolve_repository(repository)
            except TaskManagerError as exc:
                raise TaskManagerError(
                    f"failed to resolve repository: {exc}"
                ) from exc

        priority = int(entry.get("priority") or 0) or _DEFAULT_PRIORITY
        simplified = SimplifiedTask(
            id=task_id,
            name=_as_text(entry.get("name")),
            worktree=worktree,
            priority=priority,
            status=Status.PENDING,
            prompt=_as_text(entry.get("prompt")),
            depends_on=[_as_text(dep) for dep in entry.get("depends_on") or []],
        )
        task = simplified.to_legacy_task()
        self._save(task)
        return task

    def _save(self, task: Task) -> None:
        try:
            self.storage.save_task(task)
        except StorageError as exc:
            raise TaskManagerError(f"failed to save task: {exc}") from exc