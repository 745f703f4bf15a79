"""
Shared HTTP plumbing for the remote execution and table APIs.

Both remotes authenticate with a static API-key header and answer JSON.
Non-2xx responses raise RemoteApiError; retrying is left to the callers.
"""

from typing import Any

import httpx
import structlog

from app.exceptions import RemoteApiError

logger = structlog.stdlib.get_logger(__name__)


class RemoteApiClient:
    """Thin authenticated wrapper around an httpx.AsyncClient."""

    service_name: str = "remote"

    def __init__(
        self,
        base_url: str,
        auth_headers: dict[str, str],
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.client = httpx.AsyncClient(
            base_url=base_url,
            headers={**auth_headers, "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_data: Any = None,
    ) -> Any:
        """Make an authenticated request and decode the JSON body.

        Returns:
            Decoded JSON, or None for empty responses (e.g. 204 No Content)

        Raises:
            RemoteApiError: If the remote answers with a non-2xx status
        """
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        response = await self.client.request(
            method, path, params=params or None, json=json_data
        )

        if not response.is_success:
            logger.warning(
                "Remote API request failed",
                service=self.service_name,
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise RemoteApiError(self.service_name, response.status_code, response.text)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()
