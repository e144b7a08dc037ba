"""Plan state cache invalidated when tasks finish or get cancelled."""

from typing import Any, Callable, Optional, Protocol

from .logger import logger

InvalidateListener = Callable[[str], None]


class PlanCache(Protocol):
    def invalidate(self, plan_id: str) -> None: ...


class InMemoryPlanCache:
    """Keeps the last fetched representation of each plan.

    Invalidating a plan drops its entry and tells every listener, which is
    how plan level views (backup counts, last run time) know to refetch.
    """

    def __init__(self):
        self._entries: dict[str, Any] = {}
        self._stale: set[str] = set()
        self._listeners: list[InvalidateListener] = []

    def get(self, plan_id: str) -> Optional[Any]:
        return self._entries.get(plan_id)

    def set(self, plan_id: str, value: Any) -> None:
        self._entries[plan_id] = value
        self._stale.discard(plan_id)

    def is_stale(self, plan_id: str) -> bool:
        return plan_id in self._stale

    def on_invalidate(self, listener: InvalidateListener) -> None:
        self._listeners.append(listener)

    def invalidate(self, plan_id: str) -> None:
        logger.info(f"Invalidating cached state of plan {plan_id}")
        self._entries.pop(plan_id, None)
        self._stale.add(plan_id)
        for listener in self._listeners:
            try:
                listener(plan_id)
            except Exception as e:
                logger.error(
                    f"Plan cache listener {getattr(listener, '__name__', listener)} "
                    f"failed for plan {plan_id}: {e}",
                    exc_info=True,
                )
