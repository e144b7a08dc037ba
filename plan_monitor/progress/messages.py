"""Human readable status lines for backup and restore progress logs.

Action codes come in two flavours: a fixed vocabulary looked up in a
per-kind table, and parametric codes (script hooks, retry attempts, retry
scheduling) that carry numbers inside the code itself. Parametric codes
are parsed first, in a fixed order; anything unrecognised is shown as-is
so new server vocabulary still renders.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

from .types import Phase, ProgressEvent, TaskKind, coerce_progress

INITIALIZING_MESSAGE = "Initializing..."

BACKUP_PHASE_NAMES: dict[str, str] = {
    Phase.INITIALIZING.value: "Initializing",
    Phase.PRE_BACKUP.value: "Pre-Backup",
    Phase.BACKUP.value: "Backup",
    Phase.POST_BACKUP.value: "Post-Backup",
    Phase.FINISHED.value: "Complete",
}

RESTORE_PHASE_NAMES: dict[str, str] = {
    Phase.INITIALIZING.value: "Initializing",
    Phase.PRE_RESTORE.value: "Pre-Restore",
    Phase.RESTORE.value: "Restore",
    Phase.POST_RESTORE.value: "Post-Restore",
    Phase.RETRY.value: "Retrying",
    Phase.FINISHED.value: "Complete",
}

BACKUP_ACTION_MESSAGES: dict[str, str] = {
    "INITIALIZE": "Starting Backup...",
    "PRE_BACKUP_START": "Preparing Backup...",
    "PRE_BACKUP_DRY_RUN_START": "Performing Dry Run...",
    "PRE_BACKUP_DRY_RUN_COMPLETE": "Dry Run Complete",
    "PRE_BACKUP_CHECKS_START": "Running Checks...",
    "PRE_BACKUP_CHECKS_COMPLETE": "Checks Complete",
    "PRE_BACKUP_SCRIPTS_START": "Running Scripts...",
    "PRE_BACKUP_SCRIPTS_COMPLETE": "Scripts Complete",
    "PRE_BACKUP_UNLOCK_STALE_LOCKS": "Unlocking Repository...",
    "PRE_BACKUP_COMPLETE": "Pre-Backup Complete",
    "BACKUP_OPERATION_START": "Backing Up Files...",
    "BACKUP_OPERATION_COMPLETE": "Backup Complete",
    "BACKUP_OPERATION_ERROR": "Backup Encountered Errors",
    "POST_BACKUP_START": "Finalizing...",
    "POST_BACKUP_SCRIPTS_START": "Running Cleanup Scripts...",
    "POST_BACKUP_SCRIPTS_COMPLETE": "Cleanup Scripts Complete",
    "POST_BACKUP_PRUNE_START": "Pruning Old Backups...",
    "POST_BACKUP_PRUNE_COMPLETE": "Pruning Complete",
    "POST_BACKUP_PRUNE_FAILED": "Pruning Failed",
    "POST_BACKUP_COMPLETE": "Post-Backup Complete",
    "POST_BACKUP_REPO_STATS_START": "Updating Repository Statistics...",
    "POST_BACKUP_REPO_STATS_COMPLETE": "Repository Statistics Updated",
    "POST_BACKUP_REPO_STATS_FAILED": "Failed to Update Repository Statistics",
    "TASK_COMPLETED": "Completed Successfully",
    "TASK_CANCELLED": "Backup Cancelled by User.",
    "TASK_FAILED": "Backup Failed with Error.",
    "FAILED_PERMANENTLY": "Failed Permanently",
    "ISO_CREATION_START": "Creating ISO...",
    "ISO_CREATION_COMPLETE": "ISO Created Successfully",
    "ISO_CREATION_FAILED": "ISO Creation Failed",
    "REMOTE_BACKUP_START": "Backing Up Data...",
    "REMOTE_BACKUP_COMPLETE": "Data Backup Complete",
    "REMOTE_BACKUP_FAILED": "Data Backup Failed",
    "ISO_ENCRYPTION_START": "Encrypting ISO...",
    "ISO_ENCRYPTION_COMPLETE": "ISO Encryption Complete",
    "ISO_UPLOAD_START": "Uploading ISO...",
    "ISO_UPLOAD_COMPLETE": "ISO Upload Complete",
    "ISO_UPLOAD_FAILED": "ISO Upload Failed",
    "BACKUP_WARNING": "Hiccup Detected During Backup",
}

RESTORE_ACTION_MESSAGES: dict[str, str] = {
    "INITIALIZE": "Starting Restore...",
    "PRE_RESTORE_START": "Preparing Restore...",
    "PRE_RESTORE_GET_SNAPSHOT": "Getting Snapshot to Restore...",
    "PRE_RESTORE_GET_SNAPSHOT_COMPLETE": "Snapshot Retrieved",
    "PRE_RESTORE_GET_SNAPSHOT_FAILED": "Failed to Retrieve Snapshot",
    "PRE_RESTORE_DRY_RUN_START": "Performing Dry Run...",
    "PRE_RESTORE_DRY_RUN_COMPLETE": "Dry Run Complete",
    "PRE_RESTORE_CHECKS_START": "Running Checks...",
    "PRE_RESTORE_CHECKS_COMPLETE": "Checks Complete",
    "PRE_RESTORE_UNLOCK_STALE_LOCKS": "Unlocking Repository...",
    "PRE_RESTORE_COMPLETE": "Pre-Restore Complete",
    "RESTORE_OPERATION_START": "Restoring Files...",
    "RESTORE_OPERATION_COMPLETE": "Restore Complete",
    "POST_RESTORE_START": "Finalizing...",
    "POST_RESTORE_COMPLETE": "Post-Restore Complete",
    "POST_RESTORE_REPO_STATS_START": "Updating Repository Statistics...",
    "POST_RESTORE_REPO_STATS_COMPLETE": "Repository Statistics Updated",
    "POST_RESTORE_WINDOWS_MOVE_START": "Moving Restored files from temp directory to target path...",
    "POST_RESTORE_WINDOWS_MOVE_ERROR": "Failed to Move Restored files from temp directory to target path",
    "POST_RESTORE_WINDOWS_MOVE_COMPLETE": "Moved Restored files to target path",
    "TASK_COMPLETED": "Completed Successfully",
    "TASK_FAILED": "Restore Failed with Error.",
    "TASK_CANCELLED": "Restore Cancelled by User.",
    "FAILED_PERMANENTLY": "Failed Permanently",
}

SCRIPT_HOOK_NAMES: dict[str, str] = {
    "ONBACKUPSTART": "Start Script",
    "ONBACKUPCOMPLETE": "Complete Script",
    "ONBACKUPERROR": "Error Script",
    "ONBACKUPFAILURE": "Failure Script",
    "ONBACKUPEND": "End Script",
}

_PHASE_NAMES = {TaskKind.BACKUP: BACKUP_PHASE_NAMES, TaskKind.RESTORE: RESTORE_PHASE_NAMES}
_ACTION_MESSAGES = {
    TaskKind.BACKUP: BACKUP_ACTION_MESSAGES,
    TaskKind.RESTORE: RESTORE_ACTION_MESSAGES,
}

# re.ASCII keeps \d and \w to what int() is guaranteed to parse
_SCRIPT_STEP_RE = re.compile(
    r"^(ONBACKUP\w+)_SCRIPT_(\d+)_(START|COMPLETE|FAIL|ERROR)$", re.ASCII
)
_RETRY_ATTEMPT_RE = re.compile(r"RETRY_ATTEMPT_(\d+)_OF_(\d+)_START", re.ASCII)
_RETRY_SCHEDULE_RE = {
    kind: re.compile(rf"{kind.value.upper()}_RETRY_(\d+)_OF_(\d+)_SCHEDULED", re.ASCII)
    for kind in TaskKind
}


@dataclass(frozen=True)
class ScriptStep:
    hook: str
    number: str
    state: str

    def message(self) -> str:
        script = SCRIPT_HOOK_NAMES.get(self.hook, "Script")
        if self.state == "START":
            return f"Running {script} {self.number}..."
        if self.state == "COMPLETE":
            return f"Script {self.number} Complete"
        if self.state == "FAIL":
            return f"Script {self.number} Failed"
        return f"Error in {script} {self.number}"


@dataclass(frozen=True)
class RetryAttempt:
    current: str
    total: str

    def message(self) -> str:
        return f"Retrying ({self.current}/{self.total})..."


@dataclass(frozen=True)
class RetrySchedule:
    current: int
    total: str

    def message(self) -> str:
        return f"Scheduling Retry ({self.current}/{self.total})..."


ParsedAction = ScriptStep | RetryAttempt | RetrySchedule


def parse_script_step(action: str) -> Optional[ScriptStep]:
    match = _SCRIPT_STEP_RE.match(action)
    if not match:
        return None
    hook, number, state = match.groups()
    return ScriptStep(hook=hook, number=number, state=state)


def parse_retry_attempt(action: str) -> Optional[RetryAttempt]:
    match = _RETRY_ATTEMPT_RE.search(action)
    if not match:
        return None
    return RetryAttempt(current=match.group(1), total=match.group(2))


def parse_retry_schedule(action: str, kind: TaskKind) -> Optional[RetrySchedule]:
    match = _RETRY_SCHEDULE_RE[kind].search(action)
    if not match:
        return None
    try:
        current = int(match.group(1))
    except ValueError:
        return None
    return RetrySchedule(current=current, total=match.group(2))


def parse_action(action: str, kind: TaskKind | str) -> Optional[ParsedAction]:
    """Try every parametric action pattern in priority order."""
    kind = TaskKind(kind)
    return (
        parse_script_step(action)
        or parse_retry_attempt(action)
        or parse_retry_schedule(action, kind)
    )


def action_message(action: str, kind: TaskKind | str = TaskKind.BACKUP) -> str:
    """Message for a single action code, falling back to the code itself."""
    kind = TaskKind(kind)
    if not isinstance(action, str):
        return ""
    parsed = parse_action(action, kind)
    if parsed is not None:
        return parsed.message()
    return _ACTION_MESSAGES[kind].get(action, action)


def phase_display(phase: str, kind: TaskKind | str = TaskKind.BACKUP) -> str:
    return _PHASE_NAMES[TaskKind(kind)].get(phase, phase)


def current_event(events: list[ProgressEvent]) -> Optional[ProgressEvent]:
    """The step the user is waiting on: last unfinished event, else the last one."""
    for event in reversed(events):
        if not event.completed:
            return event
    return events[-1] if events else None


def derive_message(log: Any, kind: TaskKind | str = TaskKind.BACKUP) -> str:
    """Single status line for a progress log.

    Accepts a TaskProgress, a raw payload dict or None and never raises on
    any of them. The result is never empty.
    """
    kind = TaskKind(kind)
    progress = coerce_progress(log)
    event = current_event(progress.events)
    if event is None:
        return INITIALIZING_MESSAGE

    phase = phase_display(event.phase, kind)
    action = action_message(event.action, kind)

    if event.phase == Phase.FINISHED.value:
        return action or phase
    if not action:
        return phase or INITIALIZING_MESSAGE
    if not phase:
        return action
    return f"{phase}: {action}"
