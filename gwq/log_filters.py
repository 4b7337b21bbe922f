"""Selecting executions for display and cleanup, and rendering bare metadata."""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from fractions import Fraction
from typing import Iterable

from gwq.log_manager import UnifiedExecution

_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")

_UNIT_NS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_UNITS = "ns|us|µs|μs|ms|s|m|h"
_NUMBER = r"(?:\d+\.?\d*|\.\d+)"
_DURATION = re.compile(rf"[-+]?(?:{_NUMBER}(?:{_UNITS}))+")
_PART = re.compile(rf"({_NUMBER})({_UNITS})")


def filter_by_status(executions: Iterable[UnifiedExecution], status) -> list[UnifiedExecution]:
    return [execution for execution in executions if execution.status == status]


def filter_by_date(executions: Iterable[UnifiedExecution], date: str) -> list[UnifiedExecution]:
    """Executions started on ``date`` (YYYY-MM-DD); all of them if the date is invalid."""
    executions = list(executions)
    if not _DATE.fullmatch(date):
        return executions
    try:
        datetime.strptime(date, "%Y-%m-%d")
    except ValueError:
        return executions
    return [
        execution
        for execution in executions
        if execution.start_time.strftime("%Y-%m-%d") == date
    ]


def filter_by_content(executions: Iterable[UnifiedExecution], text: str) -> list[UnifiedExecution]:
    """Executions whose prompt or any tag contains ``text``, ignoring case."""
    needle = text.lower()
    return [
        execution
        for execution in executions
        if needle in execution.prompt.lower()
        or any(needle in tag.lower() for tag in execution.tags)
    ]


def _parse_go_duration(text: str) -> timedelta:
    if text in ("0", "+0", "-0"):
        return timedelta(0)
    if not _DURATION.fullmatch(text):
        raise ValueError(text)
    sign = -1 if text.startswith("-") else 1
    total = sum(
        Fraction(number) * _UNIT_NS[unit] for number, unit in _PART.findall(text)
    )
    return timedelta(microseconds=float(sign * total / 1000))


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``90m`` or ``1h30m``, also accepting days like ``30d``."""
    try:
        return _parse_go_duration(text)
    except ValueError:
        pass
    if text.endswith("d"):
        try:
            return _parse_go_duration(text[:-1] + "h") * 24
        except ValueError:
            pass
    raise ValueError(f"invalid duration format: {text}")


def truncate(text: str, max_len: int) -> str:
    """Shorten ``text`` to ``max_len`` characters, ending with an ellipsis."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def format_metadata_only(execution: UnifiedExecution) -> str:
    """Summary shown for an execution whose log file is missing."""
    started = execution.start_time.strftime("%Y-%m-%d %H:%M:%S")
    repository = truncate(execution.repository, 38)
    return (
        f"╭─ Execution: {execution.execution_id} ─────────────────────────────────────────╮\n"
        "│ Status: ⊘ Aborted (log file missing)                     │\n"
        f"│ Started: {started:<42} │\n"
        f"│ Repository: {repository:<38} │\n"
        "╰───────────────────────────────────────────────────────────╯\n"
        "\n"
        "💬 Prompt:\n"
        f"{execution.prompt}\n"
        "\n"
        "⚠️  Log file not found. This execution may have been interrupted "
        "or not properly initialized.\n"
    )