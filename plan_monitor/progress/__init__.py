"""
Task progress monitor.

Derives status lines, metrics and completion from the append-only event
logs the backup agent keeps for every backup and restore task, and polls
those logs while a task runs.
"""

from .cancel import CancellationIssuer, CancelResult
from .ledger import NotificationLedger
from .messages import action_message, derive_message
from .metrics import ProgressMetrics, derive_metrics, latest_restic_data
from .poller import ProgressPoller
from .terminal import finish_outcome, is_terminal
from .types import (
    ActionResponse,
    FinishOutcome,
    Phase,
    ProgressEvent,
    ProgressResponse,
    ResticData,
    TaskKind,
    TaskProgress,
)

__all__ = [
    "ActionResponse",
    "CancellationIssuer",
    "CancelResult",
    "FinishOutcome",
    "NotificationLedger",
    "Phase",
    "ProgressEvent",
    "ProgressMetrics",
    "ProgressPoller",
    "ProgressResponse",
    "ResticData",
    "TaskKind",
    "TaskProgress",
    "action_message",
    "derive_message",
    "derive_metrics",
    "finish_outcome",
    "is_terminal",
    "latest_restic_data",
]
