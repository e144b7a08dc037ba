"""Progress counters derived from the restic data attached to events.

Backups report byte and file counters directly. Restores mostly report a
fraction done, so processed counters are estimated from it unless the
agent sends explicit restored counts. A summary record is final and
overrides whatever the partial counters said.
"""

import math
from typing import Any, Optional

from pydantic import BaseModel

from .types import Number, ResticData, TaskKind, TaskProgress, coerce_progress


class ProgressMetrics(BaseModel):
    files_processed: int = 0
    bytes_processed: int = 0
    total_files: int = 0
    total_bytes: int = 0
    percent: int = 0
    # Only restic backup reports an ETA
    seconds_remaining: Optional[int] = None


def _round(value: Number) -> int:
    if not math.isfinite(value):
        return 0
    # JavaScript's Math.round semantics, half rounds up
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def _count(value: Optional[Number]) -> int:
    if not value:
        return 0
    return max(_round(value), 0)


def latest_restic_data(log: TaskProgress | dict | None) -> Optional[ResticData]:
    """restic payload of the most recent event carrying one."""
    progress = coerce_progress(log)
    for event in reversed(progress.events):
        if event.restic_data is not None:
            return event.restic_data
    return None


def derive_metrics(
    log: Any, kind: TaskKind | str = TaskKind.BACKUP
) -> ProgressMetrics:
    """Files, bytes, percentage and ETA for a progress log. Never raises."""
    kind = TaskKind(kind)
    data = latest_restic_data(log)
    if data is None:
        return ProgressMetrics(
            seconds_remaining=0 if kind == TaskKind.BACKUP else None
        )

    total_files = _count(data.total_files_processed or data.total_files)
    total_bytes = _count(data.total_bytes_processed or data.total_bytes)

    if kind == TaskKind.BACKUP:
        files_processed = _count(data.files_done)
        bytes_processed = _count(data.bytes_done)
        percent = (
            _round(min(bytes_processed / total_bytes, 1) * 100) if total_bytes else 0
        )
        seconds_remaining: Optional[int] = _count(data.seconds_remaining)
    else:
        percent_done = data.percent_done or 0
        percent = _round(percent_done * 100)
        if data.total_bytes:
            total_bytes = _count(data.total_bytes)

        if data.bytes_restored:
            bytes_processed = _count(data.bytes_restored)
        elif data.total_bytes:
            bytes_processed = _count(percent_done * data.total_bytes)
        else:
            bytes_processed = 0

        if data.files_restored:
            files_processed = _count(data.files_restored)
        elif data.total_files:
            files_processed = _count(percent_done * data.total_files)
        else:
            files_processed = 0
        seconds_remaining = None

    if data.is_summary:
        percent = 100
        files_processed = total_files
        bytes_processed = total_bytes

    return ProgressMetrics(
        files_processed=files_processed,
        bytes_processed=bytes_processed,
        total_files=total_files,
        total_bytes=total_bytes,
        percent=min(max(percent, 0), 100),
        seconds_remaining=seconds_remaining,
    )
