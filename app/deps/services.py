from typing import Annotated

from fastapi import Depends

from app.factories import (
    audit_log_factory,
    execution_api_client_factory,
    execution_sync_engine_factory,
    record_search_engine_factory,
    table_api_client_factory,
    table_sync_engine_factory,
    task_submitter_factory,
)
from app.services.audit_log_service import AuditLogAppender
from app.services.execution_api_service import ExecutionApiClient
from app.services.execution_sync_service import ExecutionSyncEngine
from app.services.record_search_service import RecordSearchEngine
from app.services.table_api_service import TableApiClient
from app.services.table_sync_service import TableSyncEngine
from app.utils.background import TaskSubmitter

ExecutionApiDep = Annotated[ExecutionApiClient, Depends(execution_api_client_factory)]
TableApiDep = Annotated[TableApiClient, Depends(table_api_client_factory)]
ExecutionSyncDep = Annotated[
    ExecutionSyncEngine, Depends(execution_sync_engine_factory)
]
TableSyncDep = Annotated[TableSyncEngine, Depends(table_sync_engine_factory)]
RecordSearchDep = Annotated[RecordSearchEngine, Depends(record_search_engine_factory)]
TaskSubmitterDep = Annotated[TaskSubmitter, Depends(task_submitter_factory)]
AuditLogDep = Annotated[AuditLogAppender, Depends(audit_log_factory)]
