"""Composition root wiring pollers, completion effects and cancellation."""

from typing import AsyncIterator, Optional

from pydantic import BaseModel

from .cache import PlanCache
from .client import AgentClient
from .logger import logger
from .notify import Notifier
from .progress.cancel import CancellationIssuer, CancelResult
from .progress.ledger import NotificationLedger
from .progress.messages import derive_message
from .progress.metrics import ProgressMetrics, derive_metrics
from .progress.poller import ProgressPoller
from .progress.terminal import finish_outcome, is_terminal
from .progress.types import FinishOutcome, TaskKind, TaskProgress

COMPLETION_MESSAGES = {
    TaskKind.BACKUP: "Process Complete!",
    TaskKind.RESTORE: "Restoration Complete!",
}


class TaskSnapshot(BaseModel):
    """Everything a view needs to render one fetched progress log."""

    kind: TaskKind
    task_id: str
    progress: TaskProgress
    message: str
    metrics: ProgressMetrics
    finished: bool
    outcome: FinishOutcome

    @classmethod
    def from_progress(
        cls, kind: TaskKind | str, task_id: str, progress: TaskProgress
    ) -> "TaskSnapshot":
        kind = TaskKind(kind)
        finished = is_terminal(progress)
        return cls(
            kind=kind,
            task_id=task_id,
            progress=progress,
            message=derive_message(progress, kind),
            metrics=derive_metrics(progress, kind),
            finished=finished,
            outcome=finish_outcome(progress) if finished else FinishOutcome.UNKNOWN,
        )


class MonitorService:
    """Task progress monitor for one client process.

    Owns the notification ledger, so completion of a task is announced once
    however many ``watch`` subscriptions observe it. Create one per process
    (or per test).
    """

    def __init__(
        self,
        client: AgentClient,
        cache: PlanCache,
        notifier: Notifier,
        ledger: Optional[NotificationLedger] = None,
        interval: Optional[float] = None,
    ):
        self.client = client
        self.cache = cache
        self.notifier = notifier
        self.ledger = ledger if ledger is not None else NotificationLedger()
        self.interval = interval
        self._canceller = CancellationIssuer(client, cache, notifier)

    def _poller(
        self,
        kind: TaskKind,
        plan_id: str,
        source_id: str,
        source_type: str,
    ) -> ProgressPoller:
        async def fetch(task_id: str) -> TaskProgress:
            return await self.client.get_progress(
                kind, task_id, plan_id, source_id, source_type
            )

        def on_finished(progress: TaskProgress) -> None:
            owner = progress.plan_id or plan_id
            if owner:
                self.cache.invalidate(owner)
            self.notifier.success(COMPLETION_MESSAGES[kind])

        return ProgressPoller(
            kind, fetch, self.ledger, on_finished=on_finished, interval=self.interval
        )

    async def watch(
        self,
        kind: TaskKind | str,
        task_id: str,
        plan_id: str,
        source_id: str = "",
        source_type: str = "main",
    ) -> AsyncIterator[TaskSnapshot]:
        """Live view of a running task, one snapshot per successful fetch."""
        kind = TaskKind(kind)
        poller = self._poller(kind, plan_id, source_id, source_type)
        observer = poller.observe(task_id)
        try:
            async for progress in observer:
                yield TaskSnapshot.from_progress(kind, task_id, progress)
        finally:
            await observer.aclose()

    async def history(
        self,
        kind: TaskKind | str,
        task_id: str,
        plan_id: str,
        source_id: str = "",
        source_type: str = "main",
    ) -> Optional[TaskSnapshot]:
        """One-off view of a task, typically a finished one. None if the fetch failed."""
        kind = TaskKind(kind)
        poller = self._poller(kind, plan_id, source_id, source_type)
        progress = await poller.fetch_once(task_id)
        if progress is None:
            logger.warning(f"No progress available for {kind.value} {task_id}")
            return None
        return TaskSnapshot.from_progress(kind, task_id, progress)

    async def cancel(
        self, kind: TaskKind | str, task_id: str, plan_id: str
    ) -> CancelResult:
        return await self._canceller.cancel(kind, task_id, plan_id)
