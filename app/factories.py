from functools import lru_cache

from app.deps.db import AsyncSessionLocal
from app.exceptions import ConfigurationError
from app.services.audit_log_service import AuditLogAppender, StructlogAuditLogAppender
from app.services.execution_api_service import ExecutionApiClient
from app.services.execution_sync_service import ExecutionSyncEngine
from app.services.record_search_service import RecordSearchEngine
from app.services.sync_state import SyncState
from app.services.table_api_service import TableApiClient
from app.services.table_sync_service import TableSyncEngine
from app.settings import settings
from app.utils.background import TaskSubmitter


def _require(name: str) -> str:
    value = getattr(settings, name)
    if not value:
        raise ConfigurationError(f"{name} environment variable is not set")
    return value


@lru_cache
def execution_api_client_factory() -> ExecutionApiClient:
    return ExecutionApiClient(
        api_url=_require("EXECUTION_API_URL"),
        api_key=_require("EXECUTION_API_KEY"),
        timeout=settings.EXECUTION_API_TIMEOUT_SECONDS,
        workflows_cache_ttl=settings.WORKFLOWS_CACHE_TTL_SECONDS,
    )


@lru_cache
def table_api_client_factory() -> TableApiClient:
    return TableApiClient(
        api_url=settings.TABLE_API_URL,
        api_key=_require("TABLE_API_KEY"),
        database_id=_require("TABLE_DATABASE_ID"),
        timeout=settings.TABLE_API_TIMEOUT_SECONDS,
    )


@lru_cache
def execution_sync_state_factory() -> SyncState:
    """Process-wide guard shared by every execution sync trigger."""
    return SyncState(cooldown_seconds=settings.EXECUTION_SYNC_COOLDOWN_SECONDS)


@lru_cache
def execution_sync_engine_factory() -> ExecutionSyncEngine:
    return ExecutionSyncEngine(
        client=execution_api_client_factory(),
        session_factory=AsyncSessionLocal,
        sync_state=execution_sync_state_factory(),
        page_size=settings.EXECUTION_SYNC_PAGE_SIZE,
        order_number_key=settings.ORDER_NUMBER_KEY,
    )


@lru_cache
def table_sync_engine_factory() -> TableSyncEngine:
    return TableSyncEngine(
        client=table_api_client_factory(),
        session_factory=AsyncSessionLocal,
    )


@lru_cache
def record_search_engine_factory() -> RecordSearchEngine:
    return RecordSearchEngine(
        client=table_api_client_factory(),
        session_factory=AsyncSessionLocal,
        search_fields=settings.TABLE_SEARCH_FIELDS,
        limit=settings.TABLE_SEARCH_LIMIT,
    )


@lru_cache
def task_submitter_factory() -> TaskSubmitter:
    return TaskSubmitter()


@lru_cache
def audit_log_factory() -> AuditLogAppender:
    return StructlogAuditLogAppender()


@lru_cache
def scheduler_factory():
    """Factory function for creating APScheduler instance.

    Returns:
        AsyncIOScheduler: Configured scheduler running the periodic execution sync

    Note:
        The scheduler is cached as a singleton. Only one instance will be created
        per worker process.
    """
    from app.services.scheduler_service import get_scheduler

    return get_scheduler()
