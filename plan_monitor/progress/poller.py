import asyncio
import inspect
from typing import AsyncIterator, Awaitable, Callable, Optional

from ..config import settings
from ..exceptions import AgentRequestError
from ..logger import log_exception, logger
from .ledger import NotificationLedger
from .terminal import is_terminal
from .types import TaskKind, TaskProgress

FetchFunc = Callable[[str], Awaitable[TaskProgress]]
FinishedHandler = Callable[[TaskProgress], Awaitable[None] | None]


class ProgressPoller:
    """Polls one kind of task progress endpoint at a fixed interval.

    Each ``observe`` call is an independent subscription. Fetches within a
    subscription never overlap: the next sleep starts only after the
    previous fetch resolved. Subscriptions to the same task share nothing
    but the ledger, which makes the completion handler fire once per task.
    """

    # Consecutive failed fetches before the outage is logged as a warning
    warn_after = 5

    def __init__(
        self,
        kind: TaskKind | str,
        fetch: FetchFunc,
        ledger: NotificationLedger,
        on_finished: Optional[FinishedHandler] = None,
        interval: Optional[float] = None,
    ):
        self.kind = TaskKind(kind)
        self.interval = settings.poll_interval if interval is None else interval
        self._fetch = fetch
        self._ledger = ledger
        self._on_finished = on_finished

    @log_exception("Progress fetch for {task_id} failed, keeping last known state")
    async def _poll(self, task_id: str) -> Optional[TaskProgress]:
        try:
            return await self._fetch(task_id)
        except AgentRequestError as e:
            # Agent unreachable or answering with an error, no update this tick
            logger.debug(f"No progress for {self.kind.value} {task_id}: {e.message}")
            return None

    async def fetch_once(self, task_id: str) -> Optional[TaskProgress]:
        """Single fetch without polling or completion side effects.

        Returns None when the fetch failed.
        """
        return await self._poll(task_id)

    async def observe(self, task_id: str) -> AsyncIterator[TaskProgress]:
        """Yield every freshly fetched log until the task is finished.

        Failed fetches yield nothing and polling carries on. Closing the
        generator (leaving an ``async for`` early, cancelling the consuming
        task) stops polling without firing the completion handler.
        """
        logger.debug(f"Polling {self.kind.value} progress for {task_id}")
        failures = 0
        try:
            while True:
                progress = await self._poll(task_id)
                if progress is None:
                    failures += 1
                    if failures == self.warn_after:
                        logger.warning(
                            f"No progress for {self.kind.value} {task_id} "
                            f"after {failures} attempts, still polling"
                        )
                else:
                    failures = 0
                    if is_terminal(progress):
                        await self._finish(task_id, progress)
                        yield progress
                        return
                    yield progress
                await asyncio.sleep(self.interval)
        finally:
            logger.debug(f"Stopped polling {self.kind.value} progress for {task_id}")

    async def _finish(self, task_id: str, progress: TaskProgress) -> None:
        if not self._ledger.claim(self.kind, task_id):
            logger.debug(
                f"{self.kind.value} {task_id} finished, completion already handled"
            )
            return

        logger.info(f"{self.kind.value} {task_id} finished")
        if self._on_finished is None:
            return
        try:
            result = self._on_finished(progress)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(
                f"Completion handler failed for {self.kind.value} {task_id}: {e}",
                exc_info=True,
            )
