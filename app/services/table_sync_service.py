"""
Local cache of the remote database's table and field schema.

The cache is only ever replaced as a whole: every sync deletes all cached
tables and fields and inserts the freshly fetched set in one transaction.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.models import FieldSchema, TableSchema
from app.services.table_api_service import TableApiClient
from app.utils.date_utils import isoformat_or_none, parse_remote_datetime

logger = structlog.stdlib.get_logger(__name__)


def _build_field(field: dict[str, Any]) -> FieldSchema:
    default_value = field.get("defaultValue")
    options = field.get("options")
    return FieldSchema(
        id=field["id"],
        name=field["name"],
        type=field["type"],
        required=bool(field.get("required", False)),
        readonly=bool(field.get("readonly", False)),
        locked=bool(field.get("locked", False)),
        allow_multiple_entries=bool(field.get("allowMultipleEntries", False)),
        default_value=str(default_value) if default_value is not None else None,
        options=json.dumps(options) if options else None,
        created_at=parse_remote_datetime(field.get("createdAt")),
        updated_at=parse_remote_datetime(field.get("updatedAt")),
    )


def _build_table(table: dict[str, Any], synced_at: datetime) -> TableSchema:
    return TableSchema(
        id=table["id"],
        name=table["name"],
        description=table.get("description"),
        primary_field_id=table.get("primaryFieldId"),
        default_view_id=table.get("defaultViewId"),
        synced_at=synced_at,
        fields=[_build_field(field) for field in table.get("fields") or []],
    )


class TableSyncEngine:
    def __init__(
        self,
        client: TableApiClient,
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self.client = client
        self.session_factory = session_factory

    async def sync(self) -> Optional[int]:
        """
        Replace the cached schema with the remote one.

        Returns:
            Number of tables cached, or None if the pass failed. A failed pass
            leaves the previous cache untouched.
        """
        try:
            count = await self._replace_cache()
        except Exception as e:
            logger.exception("Table schema sync failed", error=str(e))
            return None

        logger.info("Table schema synced", tables_synced=count)
        return count

    async def _replace_cache(self) -> int:
        table_list = await self.client.get_tables()
        # Any failed detail fetch aborts the pass before the cache is touched
        detailed = await asyncio.gather(
            *(self.client.get_table(table["id"]) for table in table_list)
        )
        tables = [table for table in detailed if table]

        synced_at = datetime.now(timezone.utc)
        async with self.session_factory.begin() as session:
            await session.execute(delete(FieldSchema))
            await session.execute(delete(TableSchema))
            session.add_all([_build_table(table, synced_at) for table in tables])

        return len(tables)


async def get_cached_tables(session: AsyncSession) -> list[TableSchema]:
    """All cached tables with their fields, by name. Empty before the first sync."""
    result = await session.execute(
        select(TableSchema)
        .options(selectinload(TableSchema.fields))
        .order_by(TableSchema.name.asc())
    )
    return list(result.scalars().all())


async def has_cached_data(session: AsyncSession) -> bool:
    result = await session.execute(select(func.count()).select_from(TableSchema))
    return result.scalar_one() > 0


def serialize_field(field: FieldSchema) -> dict:
    return {
        "id": field.id,
        "name": field.name,
        "type": field.type,
        "required": field.required,
        "readonly": field.readonly,
        "locked": field.locked,
        "allowMultipleEntries": field.allow_multiple_entries,
        "defaultValue": field.default_value,
        "options": json.loads(field.options) if field.options else None,
        "createdAt": isoformat_or_none(field.created_at),
        "updatedAt": isoformat_or_none(field.updated_at),
    }


def serialize_table(table: TableSchema) -> dict:
    return {
        "id": table.id,
        "name": table.name,
        "description": table.description,
        "primaryFieldId": table.primary_field_id,
        "defaultViewId": table.default_view_id,
        "syncedAt": isoformat_or_none(table.synced_at),
        "fields": [serialize_field(field) for field in table.fields],
    }
