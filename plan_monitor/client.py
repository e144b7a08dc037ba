"""
HTTP client for the backup agent's progress and cancel endpoints.
"""

from typing import Any, Literal, Optional

import httpx
from pydantic import ValidationError

from .config import settings
from .exceptions import AgentRequestError
from .logger import logger
from .progress.types import ActionResponse, TaskKind, TaskProgress, coerce_progress

_COLLECTIONS = {TaskKind.BACKUP: "backups", TaskKind.RESTORE: "restores"}


class AgentClient:
    """
    Thin async client for the agent API.

    Both endpoints answer with a JSON envelope ``{"success": bool, ...}``.
    The progress endpoint may also return the bare progress object.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        cookies: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        base_url = base_url or settings.api_url
        if not base_url.endswith("/"):
            base_url += "/"

        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout or settings.request_timeout,
            cookies=cookies if cookies is not None else settings.cookies,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def _send_request(
        self,
        method: Literal["GET", "POST"],
        path: str,
        params: Optional[dict[str, str]] = None,
    ) -> tuple[int, Any]:
        try:
            response = await self._client.request(method, path, params=params)
        except httpx.HTTPError as e:
            raise AgentRequestError(f"{method} {path} failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None
        return response.status_code, body

    async def get_progress(
        self,
        kind: TaskKind | str,
        task_id: str,
        plan_id: str,
        source_id: str = "",
        source_type: str = "main",
    ) -> TaskProgress:
        """Fetch the progress log of a backup or restore task."""
        kind = TaskKind(kind)
        path = f"{_COLLECTIONS[kind]}/{task_id}/progress"
        status_code, body = await self._send_request(
            "GET",
            path,
            params={"sourceId": source_id, "sourceType": source_type, "planId": plan_id},
        )

        if not isinstance(body, dict):
            raise AgentRequestError(
                f"Progress of {kind.value} {task_id}: unexpected response body",
                status_code,
            )
        if status_code >= 400 or body.get("success") is False:
            error = body.get("error") or f"HTTP {status_code}"
            raise AgentRequestError(
                f"Progress of {kind.value} {task_id}: {error}", status_code
            )

        payload = body.get("result") if "success" in body else body
        return coerce_progress(payload)

    async def cancel(
        self, kind: TaskKind | str, task_id: str, plan_id: str
    ) -> ActionResponse:
        """Ask the agent to cancel a running task.

        A rejection (``success: false``) is returned as data, only transport
        failures raise.
        """
        kind = TaskKind(kind)
        path = f"{_COLLECTIONS[kind]}/{task_id}/action/cancel"
        status_code, body = await self._send_request(
            "POST", path, params={"planId": plan_id}
        )

        if not isinstance(body, dict):
            return ActionResponse(success=False, error=f"HTTP {status_code}")
        try:
            result = ActionResponse.model_validate(body)
        except ValidationError as e:
            logger.warning(f"Malformed cancel response for {kind.value} {task_id}: {e}")
            return ActionResponse(success=False, error=f"HTTP {status_code}")
        if status_code >= 400 and result.success:
            return ActionResponse(success=False, error=result.error or f"HTTP {status_code}")
        return result

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AgentClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
