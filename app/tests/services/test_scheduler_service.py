from datetime import timedelta

from app.factories import execution_api_client_factory, execution_sync_engine_factory
from app.services.scheduler_service import (
    EXECUTION_SYNC_JOB_ID,
    get_scheduler,
    run_execution_sync,
)
from app.settings import settings


def test_execution_sync_job_is_registered():
    scheduler = get_scheduler()

    job = scheduler.get_job(EXECUTION_SYNC_JOB_ID)

    assert job is not None
    assert job.func is run_execution_sync
    assert job.trigger.interval == timedelta(
        seconds=settings.EXECUTION_SYNC_INTERVAL_SECONDS
    )
    assert job.max_instances == 1
    assert job.coalesce is True


async def test_scheduled_sync_is_skipped_without_credentials(monkeypatch):
    monkeypatch.setattr(settings, "EXECUTION_API_URL", "")
    execution_api_client_factory.cache_clear()
    execution_sync_engine_factory.cache_clear()

    await run_execution_sync()

    assert execution_sync_engine_factory.cache_info().currsize == 0
