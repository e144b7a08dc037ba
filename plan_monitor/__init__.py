"""
Client side monitor for backup plan tasks run by a remote backup agent.
"""

from .cache import InMemoryPlanCache, PlanCache
from .client import AgentClient
from .exceptions import AgentRequestError
from .notify import LogNotifier, Notifier, RecordingNotifier
from .service import MonitorService, TaskSnapshot

__all__ = [
    "AgentClient",
    "AgentRequestError",
    "InMemoryPlanCache",
    "LogNotifier",
    "MonitorService",
    "Notifier",
    "PlanCache",
    "RecordingNotifier",
    "TaskSnapshot",
]
