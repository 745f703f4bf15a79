from typing import Any

import structlog
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from app.deps.db import SessionDep
from app.deps.services import (
    AuditLogDep,
    RecordSearchDep,
    TableApiDep,
    TableSyncDep,
    TaskSubmitterDep,
)
from app.services.audit_log_service import AuditLogEntry
from app.services.table_sync_service import (
    get_cached_tables,
    has_cached_data,
    serialize_table,
)

logger = structlog.stdlib.get_logger(__name__)

router = APIRouter(prefix="/tables", tags=["Tables"])

SYNC_FAILED_MESSAGE = "Table sync failed; the previously cached schema was kept"


class RecordUpdateRequest(BaseModel):
    fieldId: str
    value: Any = None


@router.get("")
async def list_tables(session: SessionDep, table_sync: TableSyncDep):
    """Cached tables with their fields; the schema is synced on first use."""
    synced = False
    if not await has_cached_data(session):
        count = await table_sync.sync()
        synced = count is not None
        logger.info("Initial table sync", tables_synced=count)

    tables = await get_cached_tables(session)
    return {
        "tables": [serialize_table(table) for table in tables],
        "synced": synced,
        "error": None if synced or tables else SYNC_FAILED_MESSAGE,
    }


@router.post("/sync")
async def sync_tables(session: SessionDep, table_sync: TableSyncDep):
    count = await table_sync.sync()
    tables = await get_cached_tables(session)

    if count is None:
        return {
            "tables": [serialize_table(table) for table in tables],
            "synced": False,
            "error": SYNC_FAILED_MESSAGE,
        }
    return {
        "tables": [serialize_table(table) for table in tables],
        "synced": True,
        "error": None,
        "message": f"Synced {count} tables",
    }


@router.get("/search")
async def search_records(
    session: SessionDep,
    table_sync: TableSyncDep,
    search_engine: RecordSearchDep,
    q: str = "",
):
    if not q.strip():
        return {"results": [], "query": q, "error": None}

    if not await has_cached_data(session):
        await table_sync.sync()

    results = await search_engine.search(q)
    return {
        "results": [group.model_dump() for group in results],
        "query": q,
        "error": None,
    }


@router.patch("/{table_id}/records/{record_id}")
async def update_record(
    table_id: str,
    record_id: str,
    body: RecordUpdateRequest,
    client: TableApiDep,
    tasks: TaskSubmitterDep,
    audit_log: AuditLogDep,
):
    if not body.fieldId:
        raise HTTPException(status_code=400, detail="Missing fieldId")

    await client.update_record(table_id, record_id, {body.fieldId: body.value})

    tasks.submit(
        audit_log.append(
            AuditLogEntry(
                action="record_update",
                table_id=table_id,
                record_id=record_id,
                field=body.fieldId,
                new_value=body.value,
            )
        ),
        name="audit_log",
    )
    return {"ok": True}


@router.delete("/{table_id}/records/{record_id}")
async def delete_record(
    table_id: str,
    record_id: str,
    client: TableApiDep,
    tasks: TaskSubmitterDep,
    audit_log: AuditLogDep,
):
    await client.delete_record(table_id, record_id)

    tasks.submit(
        audit_log.append(
            AuditLogEntry(
                action="record_delete",
                table_id=table_id,
                record_id=record_id,
            )
        ),
        name="audit_log",
    )
    return {"ok": True}
