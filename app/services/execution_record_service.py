"""
Service for the local execution index.

Rows are keyed by the remote execution id and only ever created or updated:
- Upsert executions from already-fetched API pages
- Look up cached statuses for a set of execution ids
- Query executions by order number
"""

from typing import Any, Iterable, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import ExecutionRecord
from app.services.execution_data import extract_custom_value
from app.utils.date_utils import isoformat_or_none, parse_remote_datetime

logger = structlog.stdlib.get_logger(__name__)


def _stringify(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


async def count_execution_records(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(ExecutionRecord))
    return result.scalar_one()


async def get_statuses_by_id(
    session: AsyncSession,
    execution_ids: Iterable[str],
) -> dict[str, str]:
    """
    Cached status for each of the given execution ids that is already indexed.

    Args:
        session: Database session
        execution_ids: Remote execution ids

    Returns:
        Mapping of execution id -> cached status (absent ids are omitted)
    """
    ids = list(execution_ids)
    if not ids:
        return {}
    result = await session.execute(
        select(ExecutionRecord.execution_id, ExecutionRecord.status).where(
            ExecutionRecord.execution_id.in_(ids)
        )
    )
    return {execution_id: status for execution_id, status in result.all()}


async def upsert_executions(
    session: AsyncSession,
    executions: list[dict[str, Any]],
    order_number_key: str,
) -> int:
    """
    Insert or update one row per execution item of an API page.

    The order number is read from the item itself (fetched with includeData),
    so no extra API calls are made. New rows get every column; existing rows
    only get order_number, status and stopped_at refreshed, since the other
    columns never change once an execution has started. New items without a
    workflow id are skipped.

    Args:
        session: Database session
        executions: Raw execution items from the execution API
        order_number_key: Custom data key holding the order number

    Returns:
        Number of items applied
    """
    ids = [str(execution["id"]) for execution in executions]
    result = await session.execute(
        select(ExecutionRecord).where(ExecutionRecord.execution_id.in_(ids))
    )
    existing = {record.execution_id: record for record in result.scalars().all()}

    applied = 0
    for execution in executions:
        execution_id = str(execution["id"])
        order_number = _stringify(extract_custom_value(execution, order_number_key))
        stopped_at = parse_remote_datetime(execution.get("stoppedAt"))

        record = existing.get(execution_id)
        if record is None:
            workflow_id = execution.get("workflowId")
            if workflow_id is None:
                logger.warning(
                    "Skipping execution without workflow id", execution_id=execution_id
                )
                continue
            record = ExecutionRecord(
                execution_id=execution_id,
                order_number=order_number,
                workflow_id=str(workflow_id),
                status=execution.get("status"),
                started_at=parse_remote_datetime(execution.get("startedAt")),
                stopped_at=stopped_at,
                mode=execution.get("mode"),
            )
            session.add(record)
            existing[execution_id] = record
        else:
            record.order_number = order_number
            record.status = execution.get("status")
            record.stopped_at = stopped_at
        applied += 1

    await session.flush()
    return applied


async def get_executions_by_order_number(
    session: AsyncSession,
    order_number: str,
) -> list[ExecutionRecord]:
    """Cached executions for an order, most recently started first."""
    result = await session.execute(
        select(ExecutionRecord)
        .where(ExecutionRecord.order_number == order_number)
        .order_by(ExecutionRecord.started_at.desc())
    )
    return list(result.scalars().all())


def serialize_execution_record(record: ExecutionRecord) -> dict:
    return {
        "id": record.execution_id,
        "orderNumber": record.order_number,
        "workflowId": record.workflow_id,
        "status": record.status,
        "startedAt": isoformat_or_none(record.started_at),
        "stoppedAt": isoformat_or_none(record.stopped_at),
        "mode": record.mode,
    }
