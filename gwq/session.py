"""Shell commands and metadata files for agent runs started in terminal sessions."""

from __future__ import annotations

import json
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from gwq.log_manager import UnifiedExecution

_FILE_STAMP = "%Y%m%d-%H%M%S"
_CLAUDE_COMMAND = (
    "claude --verbose --dangerously-skip-permissions --output-format stream-json"
)
_DOUBLE_QUOTE_SPECIALS = {"\\", '"', "$", "`"}


def escape_for_shell(text: str) -> str:
    """Escape ``text`` so it can stand inside a double-quoted shell word."""
    return "".join(
        "\\" + char if char in _DOUBLE_QUOTE_SPECIALS else char for char in text
    )


def _rfc3339(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.astimezone()
    text = moment.isoformat(timespec="seconds")
    if moment.utcoffset() == timedelta(0):
        text = text[: -len("+00:00")] + "Z"
    return text


def build_task_command(execution: UnifiedExecution, config_dir) -> str:
    """Command line that runs the agent on the prompt and copies its stream to a log."""
    prompt = escape_for_shell(execution.prompt)
    base = f'{_CLAUDE_COMMAND} -p "{prompt}"'

    log_dir = Path(config_dir) / "logs" / "executions"
    stamp = datetime.now().strftime(_FILE_STAMP)
    log_file = log_dir / f"{stamp}-{execution.execution_id}.jsonl"
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        return base
    return f'{base} | tee "{log_file}"'


def write_session_metadata(execution: UnifiedExecution, config_dir) -> Path:
    """Write the metadata file describing a newly started session; return its path."""
    metadata_dir = Path(config_dir) / "logs" / "metadata"
    try:
        metadata_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OSError(f"failed to create metadata directory: {exc}") from exc

    stamp = datetime.now().strftime(_FILE_STAMP)
    path = metadata_dir / f"{stamp}-{execution.execution_id}.json"

    metadata: dict[str, Any] = {
        "execution_id": execution.execution_id,
        "session_id": execution.session_id,
        "execution_type": execution.execution_type.value,
        "start_time": _rfc3339(execution.start_time),
        "status": "running",
        "repository": execution.repository,
        "working_directory": execution.working_dir,
        "tmux_session": f"gwq-claude-{execution.execution_id}-{stamp}",
        "prompt": execution.prompt,
        "tags": list(execution.tags),
        "priority": execution.priority,
    }
    info = execution.task_info
    if info is not None:
        metadata["task_info"] = {
            "task_id": info.task_id,
            "task_name": info.task_name,
            "worktree": info.worktree,
            "worktree_path": info.worktree_path,
            "dependencies": list(info.dependencies),
            "task_priority": info.task_priority,
            "prompt": info.prompt,
        }

    text = json.dumps(metadata, indent=2, sort_keys=True, ensure_ascii=False)
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise OSError(f"failed to write metadata file: {exc}") from exc
    return Path(os.fspath(path))