"""
Keeps the local execution index in line with the remote execution API.

An empty index gets a full backfill of every page. Otherwise only the most
recent pages are walked, and the walk stops at the first page in which every
execution is already indexed with the same status.
"""

from typing import Any, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.services.execution_api_service import ExecutionApiClient
from app.services.execution_record_service import (
    count_execution_records,
    get_statuses_by_id,
    upsert_executions,
)
from app.services.sync_state import SyncState

logger = structlog.stdlib.get_logger(__name__)


class ExecutionSyncEngine:
    def __init__(
        self,
        client: ExecutionApiClient,
        session_factory: async_sessionmaker[AsyncSession],
        sync_state: SyncState,
        page_size: int = 50,
        order_number_key: str = "orderNumber",
    ):
        self.client = client
        self.session_factory = session_factory
        self.sync_state = sync_state
        self.page_size = page_size
        self.order_number_key = order_number_key

    async def sync(self) -> None:
        """
        Run one sync pass unless one is already running or the cooldown is active.

        Never raises: failures are logged and rows already upserted are kept.
        Callers must not rely on the index being fresh after this returns.
        """
        if not self.sync_state.try_acquire():
            return

        try:
            async with self.session_factory() as session:
                count = await count_execution_records(session)
            if count == 0:
                await self._full_backfill()
            else:
                await self._incremental_sync()
        except Exception as e:
            logger.exception("Execution sync failed", error=str(e))
        finally:
            self.sync_state.release()

    async def _fetch_page(self, cursor: Optional[str]) -> dict[str, Any]:
        return await self.client.get_executions(
            limit=self.page_size,
            cursor=cursor,
            include_data=True,
        ) or {}

    async def _upsert(self, executions: list[dict[str, Any]]) -> None:
        async with self.session_factory() as session:
            await upsert_executions(session, executions, self.order_number_key)
            await session.commit()

    async def _full_backfill(self) -> None:
        logger.info("Starting full execution backfill")
        cursor: Optional[str] = None
        total = 0

        while True:
            page = await self._fetch_page(cursor)
            executions = page.get("data") or []
            if not executions:
                break

            await self._upsert(executions)
            total += len(executions)

            cursor = page.get("nextCursor")
            if not cursor:
                break

        logger.info("Full execution backfill complete", executions_indexed=total)

    async def _incremental_sync(self) -> None:
        cursor: Optional[str] = None
        updated = 0

        while True:
            page = await self._fetch_page(cursor)
            executions = page.get("data") or []
            if not executions:
                break

            async with self.session_factory() as session:
                cached = await get_statuses_by_id(
                    session, (str(e["id"]) for e in executions)
                )
                to_sync = [
                    execution
                    for execution in executions
                    if str(execution["id"]) not in cached
                    or cached[str(execution["id"])] != execution.get("status")
                ]
                if to_sync:
                    await upsert_executions(session, to_sync, self.order_number_key)
                    await session.commit()

            # Pages arrive newest first, so an unchanged page means the rest is too
            if not to_sync:
                break
            updated += len(to_sync)

            cursor = page.get("nextCursor")
            if not cursor:
                break

        if updated:
            logger.info("Incremental execution sync complete", executions_updated=updated)
