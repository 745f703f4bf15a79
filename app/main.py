from contextlib import asynccontextmanager

import structlog
from fastapi import APIRouter, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.exceptions import ConfigurationError, RemoteApiError
from app.factories import (
    execution_api_client_factory,
    scheduler_factory,
    table_api_client_factory,
    task_submitter_factory,
)
from app.routes import executions, health, order_workflow, tables
from app.settings import settings
from app.utils.logging import setup_logger
from app.utils.migrations import run_migrations
from app.utils.sentry import init_sentry

logger = structlog.stdlib.get_logger(__name__)


async def _close_clients():
    for factory in (execution_api_client_factory, table_api_client_factory):
        if factory.cache_info().currsize:
            await factory().close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        await run_migrations()

    if settings.SCHEDULER_ENABLED:
        scheduler = scheduler_factory()
        scheduler.start()

    yield

    if settings.SCHEDULER_ENABLED:
        scheduler = scheduler_factory()
        scheduler.shutdown(wait=True)

    await task_submitter_factory().drain()
    await _close_clients()


init_sentry()
app = FastAPI(lifespan=lifespan)
setup_logger(app)


api_router = APIRouter(prefix="/api")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"title": "Validation error", "description": exc.errors()},
    )


@app.exception_handler(RemoteApiError)
async def remote_api_exception_handler(request: Request, exc: RemoteApiError):
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={
            "title": f"{exc.service} API error",
            "description": exc.body,
            "status": exc.status_code,
        },
    )


@app.exception_handler(ConfigurationError)
async def configuration_exception_handler(request: Request, exc: ConfigurationError):
    logger.error("Service not configured", error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"title": "Service not configured", "description": str(exc)},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"title": "Internal Server Error", "description": str(exc)},
    )


api_router.include_router(health.router)
api_router.include_router(executions.router)
api_router.include_router(order_workflow.router)
api_router.include_router(tables.router)
app.include_router(api_router)
