"""
Execution API endpoints.

Provides endpoints for:
- Browsing remote executions page by page
- Looking up indexed executions by order number
- Viewing the node timeline of one execution
- Triggering a sync of the local execution index
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Query, status

from app.deps.db import SessionDep
from app.deps.services import ExecutionApiDep, ExecutionSyncDep, TaskSubmitterDep
from app.exceptions import RemoteApiError
from app.models import ExecutionStatus
from app.services.execution_data import extract_custom_value, extract_node_timeline
from app.services.execution_record_service import (
    get_executions_by_order_number,
    serialize_execution_record,
)
from app.settings import settings

logger = structlog.stdlib.get_logger(__name__)

router = APIRouter(prefix="/executions", tags=["Executions"])

EXECUTIONS_PAGE_SIZE = 10


@router.get("")
async def list_executions(
    client: ExecutionApiDep,
    sync_engine: ExecutionSyncDep,
    tasks: TaskSubmitterDep,
    status_filter: Optional[ExecutionStatus] = Query(None, alias="status"),
    workflow_id: Optional[str] = Query(None, alias="workflowId"),
    cursor: Optional[str] = None,
):
    """
    One page of remote executions, with the order number of each.

    Also kicks off a background refresh of the local execution index.
    """
    tasks.submit(sync_engine.sync(), name="execution_sync")

    try:
        workflows = (await client.get_workflows() or {}).get("data") or []
    except Exception as e:
        logger.warning("Failed to load workflows", error=str(e))
        workflows = []

    filters = {
        "status": status_filter.value if status_filter else "",
        "workflowId": workflow_id or "",
    }

    try:
        response = await client.get_executions(
            status=status_filter.value if status_filter else None,
            workflow_id=workflow_id,
            cursor=cursor,
            limit=EXECUTIONS_PAGE_SIZE,
            include_data=True,
        ) or {}
    except RemoteApiError as e:
        logger.error("Failed to load executions", error=str(e))
        return {
            "executions": [],
            "nextCursor": None,
            "workflows": workflows,
            "filters": filters,
            "error": str(e),
        }

    executions = [
        {
            "id": execution.get("id"),
            "workflowId": execution.get("workflowId"),
            "status": execution.get("status"),
            "startedAt": execution.get("startedAt"),
            "stoppedAt": execution.get("stoppedAt"),
            "mode": execution.get("mode"),
            "orderNumber": extract_custom_value(execution, settings.ORDER_NUMBER_KEY),
        }
        for execution in response.get("data") or []
    ]

    return {
        "executions": executions,
        "nextCursor": response.get("nextCursor"),
        "workflows": workflows,
        "filters": filters,
        "error": None,
    }


@router.get("/by-order")
async def get_order_executions(
    session: SessionDep,
    order_number: Optional[str] = Query(None, alias="orderNumber"),
):
    """Indexed executions for an order number, most recent first."""
    if not order_number:
        return {"executions": []}

    records = await get_executions_by_order_number(session, order_number)
    return {"executions": [serialize_execution_record(r) for r in records]}


@router.post("/sync", status_code=status.HTTP_202_ACCEPTED)
async def trigger_sync(sync_engine: ExecutionSyncDep, tasks: TaskSubmitterDep):
    """Start an execution sync in the background; a no-op if one ran recently."""
    tasks.submit(sync_engine.sync(), name="execution_sync")
    return {"status": "accepted"}


@router.get("/{execution_id}/nodes")
async def get_execution_nodes(execution_id: str, client: ExecutionApiDep):
    """Nodes that ran in an execution, in start order."""
    try:
        execution = await client.get_execution(execution_id, include_data=True)
    except RemoteApiError as e:
        logger.error(
            "Failed to fetch execution detail",
            execution_id=execution_id,
            error=str(e),
        )
        return {"nodes": [], "error": str(e)}

    return {"nodes": [node.model_dump() for node in extract_node_timeline(execution)]}
