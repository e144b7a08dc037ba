from typing import Optional, Protocol

from pydantic import BaseModel

from ..cache import PlanCache
from ..exceptions import AgentRequestError
from ..logger import logger
from ..notify import Notifier
from .types import ActionResponse, TaskKind


class CancelClient(Protocol):
    async def cancel(
        self, kind: TaskKind | str, task_id: str, plan_id: str
    ) -> ActionResponse: ...


class CancelResult(BaseModel):
    success: bool
    error: Optional[str] = None


class CancellationIssuer:
    """Sends cancel requests and refreshes the owning plan once accepted.

    Cancelling is never retried: the agent treats a repeated cancel as a
    no-op, but a rejected one is for the user to see. Pollers are left
    alone, they stop when the cancellation shows up in the event log.
    """

    def __init__(self, client: CancelClient, cache: PlanCache, notifier: Notifier):
        self._client = client
        self._cache = cache
        self._notifier = notifier

    async def cancel(
        self, kind: TaskKind | str, task_id: str, plan_id: str
    ) -> CancelResult:
        kind = TaskKind(kind)
        self._notifier.info("Sending Cancel Request...")
        logger.info(f"Cancelling {kind.value} {task_id} of plan {plan_id}")

        try:
            response = await self._client.cancel(kind, task_id, plan_id)
            error = None if response.success else response.error or "Unknown Error."
        except AgentRequestError as e:
            error = e.message or "Unknown Error."

        if error is not None:
            logger.warning(f"Cancel of {kind.value} {task_id} rejected: {error}")
            self._notifier.error(f"Failed to cancel {kind.value} process. {error}")
            return CancelResult(success=False, error=error)

        self._cache.invalidate(plan_id)
        self._notifier.success(f"{kind.value.capitalize()} process Cancelled!")
        return CancelResult(success=True)
