"""
Client for the workflow engine's public execution API.

Endpoints used:
- GET  /executions              cursor-paginated execution list
- GET  /executions/{id}         single execution, optionally with result data
- POST /executions/{id}/retry   re-run an execution
- GET  /workflows?active=true   active workflows (cached in memory)
"""

import time
from typing import Any, Callable, Optional

import httpx
import structlog

from app.services.remote_api import RemoteApiClient

logger = structlog.stdlib.get_logger(__name__)


class ExecutionApiClient(RemoteApiClient):
    service_name = "execution"

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout: float = 30.0,
        workflows_cache_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(
            base_url=f"{api_url.rstrip('/')}/api/v1",
            auth_headers={"X-N8N-API-KEY": api_key},
            timeout=timeout,
            transport=transport,
        )
        self.workflows_cache_ttl = workflows_cache_ttl
        self.clock = clock
        self._workflows_cache: Optional[dict[str, Any]] = None
        self._workflows_expires_at = 0.0

    async def get_executions(
        self,
        status: Optional[str] = None,
        workflow_id: Optional[str] = None,
        limit: int = 20,
        cursor: Optional[str] = None,
        include_data: bool = False,
    ) -> dict[str, Any]:
        """
        List workflow executions, most recent first.

        Args:
            status: Filter by status (success, error, canceled, waiting, running)
            workflow_id: Filter by workflow ID
            limit: Results per page (max 250)
            cursor: Pagination cursor from a previous response
            include_data: Embed the full execution result data in each item

        Returns:
            {"data": [...], "nextCursor": str | None}
        """
        params: dict[str, Any] = {}
        if status:
            params["status"] = status
        if workflow_id:
            params["workflowId"] = workflow_id
        if limit:
            params["limit"] = str(limit)
        if cursor:
            params["cursor"] = cursor
        if include_data:
            params["includeData"] = "true"

        return await self._request("GET", "/executions", params=params)

    async def get_execution(
        self, execution_id: str, include_data: bool = False
    ) -> dict[str, Any]:
        params = {"includeData": "true"} if include_data else None
        return await self._request("GET", f"/executions/{execution_id}", params=params)

    async def retry_execution(
        self, execution_id: str, load_workflow: bool = True
    ) -> dict[str, Any]:
        """Retry an execution, by default against the latest workflow version."""
        return await self._request(
            "POST",
            f"/executions/{execution_id}/retry",
            json_data={"loadWorkflow": load_workflow},
        )

    async def get_workflows(self) -> dict[str, Any]:
        """List active workflows, cached for `workflows_cache_ttl` seconds."""
        now = self.clock()
        if self._workflows_cache is not None and now < self._workflows_expires_at:
            return self._workflows_cache

        result = await self._request("GET", "/workflows", params={"active": "true"})
        self._workflows_cache = result
        self._workflows_expires_at = now + self.workflows_cache_ttl
        logger.debug("Refreshed workflows cache", ttl=self.workflows_cache_ttl)
        return result
