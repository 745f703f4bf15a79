"""
Execution details for the workflows linked to an order.

Orders reference their executions by URL (workflow and finisher); both are
resolved to an execution id and fetched concurrently.
"""

import asyncio
from typing import Any, Optional

import structlog
from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from app.deps.services import ExecutionApiDep
from app.exceptions import RemoteApiError
from app.services.execution_api_service import ExecutionApiClient
from app.services.execution_data import build_execution_detail, extract_execution_id

logger = structlog.stdlib.get_logger(__name__)

router = APIRouter(prefix="/order-workflow-detail", tags=["Executions"])


class RetryRequest(BaseModel):
    url: str = ""


async def _fetch_detail(
    client: ExecutionApiClient, url: Optional[str]
) -> Optional[dict[str, Any]]:
    execution_id = extract_execution_id(url)
    if not execution_id:
        return None
    try:
        execution = await client.get_execution(execution_id, include_data=True)
    except RemoteApiError as e:
        logger.error(
            "Failed to fetch execution", execution_id=execution_id, error=str(e)
        )
        return None
    if not execution:
        return None
    return build_execution_detail(execution)


@router.get("")
async def get_order_workflow_detail(
    client: ExecutionApiDep,
    workflow_url: str = Query("", alias="workflowUrl"),
    finisher_url: str = Query("", alias="finisherUrl"),
):
    workflow, finisher = await asyncio.gather(
        _fetch_detail(client, workflow_url),
        _fetch_detail(client, finisher_url),
    )
    return {"workflow": workflow, "finisher": finisher}


@router.post("")
async def retry_order_workflow(body: RetryRequest, client: ExecutionApiDep):
    """Retry the execution referenced by a workflow URL, on the latest workflow."""
    execution_id = extract_execution_id(body.url)
    logger.info("Retry requested", url=body.url, execution_id=execution_id)

    if not execution_id:
        raise HTTPException(status_code=400, detail="No execution ID found in URL")

    result = await client.retry_execution(execution_id, load_workflow=True)
    logger.info("Execution retried", execution_id=execution_id)
    return {"ok": True, "result": result}
