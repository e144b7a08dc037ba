import os

# Keep test runs from writing rotating log files into the working directory
os.environ.setdefault("PLAN_MONITOR_LOG_TO_FILE", "false")

import httpx  # noqa: E402
import pytest  # noqa: E402

from plan_monitor.cache import InMemoryPlanCache  # noqa: E402
from plan_monitor.client import AgentClient  # noqa: E402
from plan_monitor.notify import RecordingNotifier  # noqa: E402
from plan_monitor.progress.ledger import NotificationLedger  # noqa: E402

from .fixtures.fake_agent import FakeAgent  # noqa: E402


@pytest.fixture
def fake_agent():
    """Scriptable in-process backup agent."""
    return FakeAgent()


@pytest.fixture
async def agent_client(fake_agent):
    """AgentClient talking to the fake agent through an ASGI transport."""
    client = AgentClient(
        base_url="http://agent.test/api",
        transport=httpx.ASGITransport(app=fake_agent.app),
    )
    yield client
    await client.aclose()


@pytest.fixture
def ledger():
    return NotificationLedger()


@pytest.fixture
def plan_cache():
    return InMemoryPlanCache()


@pytest.fixture
def notifier():
    return RecordingNotifier()
