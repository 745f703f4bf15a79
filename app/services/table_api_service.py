"""
Client for the no-code database's table/record API.

All calls are scoped to the single configured database.
"""

from typing import Any, Optional

import httpx

from app.services.remote_api import RemoteApiClient


class TableApiClient(RemoteApiClient):
    service_name = "table"

    def __init__(
        self,
        api_url: str,
        api_key: str,
        database_id: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(
            base_url=api_url.rstrip("/"),
            auth_headers={"Softr-Api-Key": api_key},
            timeout=timeout,
            transport=transport,
        )
        self.database_id = database_id

    def _table_path(self, table_id: str) -> str:
        return f"/databases/{self.database_id}/tables/{table_id}"

    async def get_tables(self) -> list[dict[str, Any]]:
        """List all tables of the database (without fields)."""
        result = await self._request("GET", f"/databases/{self.database_id}/tables")
        return (result or {}).get("data") or []

    async def get_table(self, table_id: str) -> Optional[dict[str, Any]]:
        """Get a single table including its fields."""
        result = await self._request("GET", self._table_path(table_id))
        return (result or {}).get("data")

    async def search_records(
        self,
        table_id: str,
        condition: dict[str, Any],
        offset: int = 0,
        limit: int = 10,
    ) -> dict[str, Any]:
        """
        Search records of a table with a filter condition.

        Returns:
            {"data": [{"id": ..., "fields": {fieldId: value}}], "metadata": {"total": int}}
        """
        body = {
            "filter": {"condition": condition},
            "paging": {"offset": offset, "limit": limit},
        }
        return await self._request(
            "POST", f"{self._table_path(table_id)}/records/search", json_data=body
        ) or {}

    async def update_record(
        self, table_id: str, record_id: str, fields: dict[str, Any]
    ) -> Optional[dict[str, Any]]:
        """Update the given field ids of one record."""
        return await self._request(
            "PATCH",
            f"{self._table_path(table_id)}/records/{record_id}",
            json_data={"fields": fields},
        )

    async def delete_record(self, table_id: str, record_id: str) -> None:
        await self._request(
            "DELETE", f"{self._table_path(table_id)}/records/{record_id}"
        )
