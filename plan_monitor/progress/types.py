"""Event log models for backup and restore task progress.

Everything here is parsed from an untrusted server payload, so the models
are lenient: unknown keys are ignored, every field has a default, and
events or counters that fail validation are dropped rather than failing
the whole log.
"""

import math
import sys
from enum import Enum
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from ..logger import logger

Number = int | float
Timestamp = str | int | float


class TaskKind(str, Enum):
    BACKUP = "backup"
    RESTORE = "restore"


class Phase(str, Enum):
    INITIALIZING = "initializing"
    PRE_BACKUP = "pre-backup"
    BACKUP = "backup"
    POST_BACKUP = "post-backup"
    PRE_RESTORE = "pre-restore"
    RESTORE = "restore"
    POST_RESTORE = "post-restore"
    RETRY = "retry"
    FINISHED = "finished"


class FinishOutcome(str, Enum):
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


def _number_or_none(value: Any) -> Optional[Number]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value) if "." in value else int(value)
        except ValueError:
            return None
    if isinstance(value, int):
        # Larger ints cannot take part in float arithmetic
        return value if abs(value) <= sys.float_info.max else None
    if isinstance(value, float) and math.isfinite(value):
        return value
    return None


def _timestamp_or_none(value: Any) -> Optional[Timestamp]:
    if isinstance(value, bool):
        return None
    return value if isinstance(value, (str, int, float)) else None


class ResticData(BaseModel):
    """Counters reported by restic's JSON status and summary messages."""

    model_config = ConfigDict(extra="allow")

    message_type: Optional[str] = None
    percent_done: Optional[Number] = None
    seconds_elapsed: Optional[Number] = None
    seconds_remaining: Optional[Number] = None
    total_files: Optional[Number] = None
    files_done: Optional[Number] = None
    total_bytes: Optional[Number] = None
    bytes_done: Optional[Number] = None
    total_files_processed: Optional[Number] = None
    total_bytes_processed: Optional[Number] = None
    files_restored: Optional[Number] = None
    bytes_restored: Optional[Number] = None

    @field_validator("message_type", mode="before")
    @classmethod
    def _text_or_none(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    @field_validator(
        "percent_done",
        "seconds_elapsed",
        "seconds_remaining",
        "total_files",
        "files_done",
        "total_bytes",
        "bytes_done",
        "total_files_processed",
        "total_bytes_processed",
        "files_restored",
        "bytes_restored",
        mode="before",
    )
    @classmethod
    def _counter(cls, value: Any) -> Optional[Number]:
        return _number_or_none(value)

    @property
    def is_summary(self) -> bool:
        return self.message_type == "summary"


class ProgressEvent(BaseModel):
    """One lifecycle step appended by the agent."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    timestamp: Optional[Timestamp] = None
    phase: str = ""
    action: str = ""
    completed: bool = False
    error: Optional[str] = None
    restic_data: Optional[ResticData] = Field(default=None, alias="resticData")

    @field_validator("timestamp", mode="before")
    @classmethod
    def _time(cls, value: Any) -> Optional[Timestamp]:
        return _timestamp_or_none(value)

    @field_validator("phase", "action", mode="before")
    @classmethod
    def _code(cls, value: Any) -> str:
        if isinstance(value, Enum):
            value = value.value
        return value if isinstance(value, str) else ""

    @field_validator("completed", mode="before")
    @classmethod
    def _strict_flag(cls, value: Any) -> bool:
        # Only a literal true counts, "false" or 1 must not finish a task
        return value is True

    @field_validator("error", mode="before")
    @classmethod
    def _error_text(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return value if isinstance(value, str) else str(value)

    @field_validator("restic_data", mode="before")
    @classmethod
    def _payload(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, ResticData)) else None


class TaskProgress(BaseModel):
    """Progress log of one backup or restore task, as served by the agent."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    plan_id: Optional[str] = Field(default=None, alias="planId")
    task_id: Optional[str] = Field(
        default=None,
        alias="taskId",
        validation_alias=AliasChoices(
            "taskId", "backupId", "restoreId", "task_id"
        ),
    )
    status: Optional[str] = None
    start_time: Optional[Timestamp] = Field(default=None, alias="startTime")
    last_update: Optional[Timestamp] = Field(default=None, alias="lastUpdate")
    events: list[ProgressEvent] = Field(default_factory=list)
    duration: Optional[Number] = None  # milliseconds, set once finished

    @field_validator("plan_id", "task_id", "status", mode="before")
    @classmethod
    def _opaque_id(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, bool):
            return None
        return value if isinstance(value, str) else str(value)

    @field_validator("start_time", "last_update", mode="before")
    @classmethod
    def _time(cls, value: Any) -> Optional[Timestamp]:
        return _timestamp_or_none(value)

    @field_validator("duration", mode="before")
    @classmethod
    def _duration(cls, value: Any) -> Optional[Number]:
        return _number_or_none(value)

    @field_validator("events", mode="before")
    @classmethod
    def _drop_malformed_events(cls, value: Any) -> list[Any]:
        if not isinstance(value, list):
            return []
        events = []
        for index, raw in enumerate(value):
            try:
                events.append(ProgressEvent.model_validate(raw))
            except ValidationError as e:
                logger.debug(f"Dropping malformed progress event #{index}: {e}")
        return events


class ProgressResponse(BaseModel):
    """Envelope returned by the progress endpoint."""

    success: bool = False
    result: Optional[TaskProgress] = None
    error: Optional[str] = None


class ActionResponse(BaseModel):
    """Envelope returned by action endpoints such as cancel."""

    model_config = ConfigDict(extra="allow")

    success: bool = False
    error: Optional[str] = None


def coerce_progress(data: Any) -> TaskProgress:
    """Turn whatever the caller holds into a TaskProgress, never raising.

    Accepts a TaskProgress, a raw dict payload or None. Anything that does
    not validate becomes an empty log, which renders as "Initializing...".
    """
    if isinstance(data, TaskProgress):
        return data
    if isinstance(data, dict):
        try:
            return TaskProgress.model_validate(data)
        except ValidationError as e:
            logger.debug(f"Unusable progress payload, treating as empty: {e}")
    return TaskProgress()
