"""Run the alembic migrations from inside the application's event loop."""

import structlog
from alembic import command
from alembic.config import Config
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from app.settings import settings

logger = structlog.stdlib.get_logger(__name__)


async def run_migrations(alembic_ini: str = "alembic.ini"):
    """Upgrade the database to the latest revision.

    The connection is handed to alembic via config.attributes so env.py
    does not start a second event loop.
    """
    engine = create_async_engine(
        str(settings.DATABASE_URL),
        poolclass=pool.NullPool,
        future=True,
    )

    def run_upgrade(connection, cfg):
        cfg.attributes["connection"] = connection
        command.upgrade(cfg, "head")

    alembic_cfg = Config(alembic_ini)

    logger.info("Running database migrations")
    try:
        async with engine.begin() as conn:
            await conn.run_sync(run_upgrade, alembic_cfg)
    finally:
        await engine.dispose()
    logger.info("Database migrations complete")
