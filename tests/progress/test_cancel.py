"""Tests for cancellation requests."""

from unittest.mock import AsyncMock, Mock

import pytest

from plan_monitor.exceptions import AgentRequestError
from plan_monitor.progress.cancel import CancellationIssuer
from plan_monitor.progress.types import ActionResponse, TaskKind


@pytest.fixture
def cache():
    return Mock()


def issuer_for(client, cache, notifier) -> CancellationIssuer:
    return CancellationIssuer(client, cache, notifier)


class TestCancellationIssuer:
    @pytest.mark.asyncio
    async def test_accepted_backup_cancel(self, cache, notifier):
        """Test that an accepted cancel invalidates the plan and notifies success."""
        client = Mock()
        client.cancel = AsyncMock(return_value=ActionResponse(success=True))

        result = await issuer_for(client, cache, notifier).cancel("backup", "b1", "plan-7")

        assert result.success is True
        assert result.error is None
        client.cancel.assert_awaited_once_with(TaskKind.BACKUP, "b1", "plan-7")
        cache.invalidate.assert_called_once_with("plan-7")
        assert notifier.messages == [
            ("info", "Sending Cancel Request..."),
            ("success", "Backup process Cancelled!"),
        ]

    @pytest.mark.asyncio
    async def test_accepted_restore_cancel(self, cache, notifier):
        """Test the restore wording of the success notification."""
        client = Mock()
        client.cancel = AsyncMock(return_value=ActionResponse(success=True))

        await issuer_for(client, cache, notifier).cancel(TaskKind.RESTORE, "r1", "plan-7")

        assert notifier.of_level("success") == ["Restore process Cancelled!"]

    @pytest.mark.asyncio
    async def test_rejected_cancel(self, cache, notifier):
        """Test that a rejection surfaces the server error and keeps the cache."""
        client = Mock()
        client.cancel = AsyncMock(
            return_value=ActionResponse(success=False, error="Task already finished")
        )

        result = await issuer_for(client, cache, notifier).cancel("backup", "b1", "plan-7")

        assert result.success is False
        assert result.error == "Task already finished"
        cache.invalidate.assert_not_called()
        assert notifier.of_level("error") == [
            "Failed to cancel backup process. Task already finished"
        ]
        assert notifier.of_level("success") == []

    @pytest.mark.asyncio
    async def test_rejection_without_error_text(self, cache, notifier):
        """Test the fallback error text."""
        client = Mock()
        client.cancel = AsyncMock(return_value=ActionResponse(success=False))

        result = await issuer_for(client, cache, notifier).cancel("restore", "r1", "plan-7")

        assert result.error == "Unknown Error."
        assert notifier.of_level("error") == [
            "Failed to cancel restore process. Unknown Error."
        ]

    @pytest.mark.asyncio
    async def test_transport_failure(self, cache, notifier):
        """Test that a failed request is reported like a rejection."""
        client = Mock()
        client.cancel = AsyncMock(side_effect=AgentRequestError("connection refused"))

        result = await issuer_for(client, cache, notifier).cancel("backup", "b1", "plan-7")

        assert result.success is False
        assert result.error == "connection refused"
        cache.invalidate.assert_not_called()
        assert notifier.of_level("error") == [
            "Failed to cancel backup process. connection refused"
        ]

    @pytest.mark.asyncio
    async def test_never_retried(self, cache, notifier):
        """Test that a rejected cancel is sent exactly once."""
        client = Mock()
        client.cancel = AsyncMock(return_value=ActionResponse(success=False, error="busy"))

        await issuer_for(client, cache, notifier).cancel("backup", "b1", "plan-7")

        assert client.cancel.await_count == 1

    @pytest.mark.asyncio
    async def test_cancel_through_agent(self, agent_client, plan_cache, notifier, fake_agent):
        """Test a cancel round trip against the fake agent."""
        invalidated = []
        plan_cache.on_invalidate(invalidated.append)

        result = await issuer_for(agent_client, plan_cache, notifier).cancel(
            "backup", "b1", "plan-7"
        )

        assert result.success is True
        assert invalidated == ["plan-7"]
        assert fake_agent.requests[-1].path == "/api/backups/b1/action/cancel"
        assert fake_agent.requests[-1].params == {"planId": "plan-7"}
