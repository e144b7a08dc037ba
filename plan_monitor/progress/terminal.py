from typing import Any, Optional

from .types import FinishOutcome, Phase, ProgressEvent, coerce_progress

FINISH_ACTIONS: dict[str, FinishOutcome] = {
    "TASK_COMPLETED": FinishOutcome.COMPLETED,
    "TASK_CANCELLED": FinishOutcome.CANCELLED,
    "FAILED_PERMANENTLY": FinishOutcome.FAILED,
}


def _is_finish(event: ProgressEvent) -> bool:
    return event.phase == Phase.FINISHED.value and event.completed is True


def is_terminal(log: Any) -> bool:
    """True once the agent appended a completed event in the finished phase.

    The coarse ``status`` field is ignored, it can lag behind or
    contradict the event log.
    """
    return any(_is_finish(event) for event in coerce_progress(log).events)


def finishing_event(log: Any) -> Optional[ProgressEvent]:
    for event in reversed(coerce_progress(log).events):
        if _is_finish(event):
            return event
    return None


def finish_outcome(log: Any) -> FinishOutcome:
    """Display label for how a finished task ended."""
    event = finishing_event(log)
    if event is None:
        return FinishOutcome.UNKNOWN
    return FINISH_ACTIONS.get(event.action, FinishOutcome.UNKNOWN)
