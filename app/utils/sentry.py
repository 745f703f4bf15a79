import sentry_sdk
import structlog

from app.settings import settings

logger = structlog.stdlib.get_logger(__name__)


def init_sentry() -> bool:
    """Initialise Sentry when a DSN is configured. Returns whether it was."""
    if not settings.SENTRY_DSN:
        return False

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        send_default_pii=False,
        environment=settings.SENTRY_ENVIRONMENT or None,
    )
    logger.info(
        "Sentry initialised",
        environment=settings.SENTRY_ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )
    return True
