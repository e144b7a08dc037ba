from .types import TaskKind


class NotificationLedger:
    """Remembers which tasks already had their completion side effect fired.

    One ledger is shared by every poller of a MonitorService, which makes
    it the only guard against two views of the same task both announcing
    its completion. Entries are never evicted, task ids are not reused.
    """

    def __init__(self):
        self._notified: set[tuple[TaskKind, str]] = set()

    def claim(self, kind: TaskKind | str, task_id: str) -> bool:
        """Mark the task notified. Returns True only for the first claim."""
        key = (TaskKind(kind), task_id)
        if key in self._notified:
            return False
        self._notified.add(key)
        return True

    def has(self, kind: TaskKind | str, task_id: str) -> bool:
        return (TaskKind(kind), task_id) in self._notified

    def reset(self) -> None:
        self._notified.clear()

    def __len__(self) -> int:
        return len(self._notified)
