import logging
import time

import structlog
from asgi_correlation_id import CorrelationIdMiddleware
from asgi_correlation_id.context import correlation_id
from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from structlog.typing import Processor
from uvicorn.protocols.utils import get_path_with_query_string

from app.settings import LogFormat, settings

# Libraries that log every request/poll at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "apscheduler", "sqlalchemy.engine")

HEALTH_PATH = "/api/health"


def _shared_processors(log_format: LogFormat) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.stdlib.ExtraAdder(),
        structlog.processors.CallsiteParameterAdder(
            [
                structlog.processors.CallsiteParameter.PATHNAME,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
        ),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if log_format == LogFormat.JSON:
        processors.append(structlog.processors.format_exc_info)
    return processors


def configure_logging(
    log_format: LogFormat = settings.LOG_FORMAT,
    log_level: str = settings.LOG_LEVEL,
) -> None:
    """
    Send structlog and stdlib records (uvicorn, alembic, apscheduler) through
    one structlog formatter on the root logger.
    """
    shared = _shared_processors(log_format)
    renderer: Processor = (
        structlog.dev.ConsoleRenderer()
        if log_format == LogFormat.CONSOLE
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    for name in ("uvicorn", "uvicorn.error"):
        logging.getLogger(name).handlers.clear()
        logging.getLogger(name).propagate = True

    # Replaced by AccessLogMiddleware
    logging.getLogger("uvicorn.access").handlers.clear()
    logging.getLogger("uvicorn.access").propagate = False

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logger(app: FastAPI) -> None:
    configure_logging()
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(CorrelationIdMiddleware)


access_logger = structlog.stdlib.get_logger("api.access")


class AccessLogMiddleware(BaseHTTPMiddleware):
    """
    Binds the request id for every log line of a request (background tasks
    started by the request inherit it) and writes one access log entry.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        structlog.contextvars.clear_contextvars()
        request_id = correlation_id.get()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start_time = time.perf_counter()
        response = Response(status_code=500)
        try:
            response = await call_next(request)
        except Exception:
            structlog.stdlib.get_logger("api.error").exception("Uncaught exception")
            raise
        finally:
            duration = time.perf_counter() - start_time
            self._log_access(request, response.status_code, request_id, duration)

        response.headers["X-Process-Time"] = f"{duration:.6f}"
        return response

    @staticmethod
    def _log_access(
        request: Request, status_code: int, request_id: str | None, duration: float
    ) -> None:
        url = get_path_with_query_string(request.scope)  # type: ignore
        http_version = request.scope["http_version"]
        # Health probes would drown out real traffic
        log = (
            access_logger.debug
            if request.url.path == HEALTH_PATH and status_code < 400
            else access_logger.info
        )
        log(
            f'"{request.method} {url} HTTP/{http_version}" {status_code}',
            http={
                "url": str(request.url),
                "status_code": status_code,
                "method": request.method,
                "request_id": request_id,
                "version": http_version,
            },
            duration=duration,
            endpoint=request.url.path,
        )
