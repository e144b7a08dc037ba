"""
Plain text rendering of task progress: formatted counters, the one-line
progress summary and the per-event history of a task.
"""

import math
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from .progress.messages import action_message
from .progress.metrics import ProgressMetrics
from .progress.terminal import finish_outcome
from .progress.types import Phase, TaskKind, Timestamp, coerce_progress

UNKNOWN_ERROR = "Unknown error occurred."

WARNING_ACTIONS = frozenset(
    {
        "BACKUP_WARNING",
        "RESTORE_WARNING",
        "POST_BACKUP_PRUNE_FAILED",
        "POST_BACKUP_REPO_STATS_FAILED",
    }
)

_BYTE_UNITS = ["B", "KB", "MB", "GB", "TB", "PB"]


def format_bytes(size: Optional[float]) -> str:
    """Binary sized byte count with two decimals, e.g. ``1.50 MB``."""
    value = float(size or 0)
    unit = 0
    while value >= 1024 and unit < len(_BYTE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.2f} {_BYTE_UNITS[unit]}"


def format_seconds(seconds: Optional[float]) -> str:
    """Coarse remaining time in the largest fitting unit."""
    seconds = seconds or 0
    if seconds >= 86400:
        return f"{math.floor(seconds / 86400)}d"
    if seconds >= 3600:
        return f"{math.floor(seconds / 3600)}h"
    if seconds >= 60:
        return f"{math.floor(seconds / 60)}m"
    return f"{math.floor(seconds)}s"


def format_duration(seconds: Optional[float]) -> str:
    if not seconds:
        return "0s"
    if seconds < 1:
        return f"{round(seconds * 1000)}ms"

    hours = math.floor(seconds / 3600)
    minutes = math.floor((seconds % 3600) / 60)
    if hours >= 1:
        return f"{hours} h {minutes} min"
    if minutes >= 1:
        return f"{minutes} min"
    return f"{math.floor(seconds % 60)}s"


def format_time(timestamp: Optional[Timestamp]) -> str:
    """Wall clock time of an event, ``10:20:23 AM``.

    Accepts ISO-8601 strings and epoch milliseconds; anything else is shown
    as it came.
    """
    if timestamp is None:
        return ""
    try:
        if isinstance(timestamp, str):
            moment = datetime.fromisoformat(timestamp)
        else:
            moment = datetime.fromtimestamp(timestamp / 1000)
    except (ValueError, OverflowError, OSError):
        return str(timestamp)
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.strftime("%I:%M:%S %p")


def format_metrics(metrics: ProgressMetrics, kind: TaskKind | str) -> str:
    line = (
        f"{metrics.files_processed} / {metrics.total_files} Files"
        f" | {format_bytes(metrics.bytes_processed)} / {format_bytes(metrics.total_bytes)}"
        f" | {metrics.percent}%"
    )
    if TaskKind(kind) == TaskKind.BACKUP:
        line += f" | Remaining: {format_seconds(metrics.seconds_remaining)}"
    return line


class EventRow(BaseModel):
    index: int
    time: str
    phase: str
    message: str
    error: Optional[str] = None
    completed: bool = False
    failed: bool = False
    retrying: bool = False
    is_error: bool = False
    is_warning: bool = False

    @property
    def has_problem(self) -> bool:
        return self.error is not None or self.is_warning


class TaskHistory(BaseModel):
    title: str
    status: str
    duration: str
    rows: list[EventRow]


def build_history(
    log: Any, kind: TaskKind | str, task_id: str = "", in_progress: bool = False
) -> TaskHistory:
    """Event by event view of a task, as shown in its history panel."""
    kind = TaskKind(kind)
    progress = coerce_progress(log)

    if in_progress:
        status = f"{kind.value} In Progress"
    else:
        status = f"{kind.value} {finish_outcome(progress).value}"

    rows = []
    for index, event in enumerate(progress.events):
        finished = event.phase == Phase.FINISHED.value
        rows.append(
            EventRow(
                index=index,
                time=format_time(event.timestamp),
                phase=event.phase,
                message=action_message(event.action, kind),
                error=event.error,
                completed=finished and event.action == "TASK_COMPLETED",
                failed=finished and event.action == "FAILED_PERMANENTLY",
                retrying="RETRY_ATTEMPT_" in event.action,
                is_error=event.action == "TASK_FAILED",
                is_warning=event.action in WARNING_ACTIONS,
            )
        )

    duration = (
        format_duration(progress.duration / 1000) if progress.duration else "N/A"
    )
    return TaskHistory(
        title=f"{kind.value}-{task_id or progress.task_id or ''} Events",
        status=status,
        duration=duration,
        rows=rows,
    )


def error_detail(log: Any, index: int) -> str:
    """Error text of one step, requested on demand from the history view."""
    events = coerce_progress(log).events
    if not 0 <= index < len(events):
        return UNKNOWN_ERROR
    return events[index].error or UNKNOWN_ERROR


def render_history(history: TaskHistory) -> str:
    lines = [history.title, f"{history.status} | Duration: {history.duration}"]
    for row in history.rows:
        marker = "!" if row.has_problem else "✓"
        line = f"{marker} {row.time:>11}  {row.phase:<13} {row.message}"
        if row.error:
            line += f"  [error #{row.index}]"
        lines.append(line)
    return "\n".join(lines)
