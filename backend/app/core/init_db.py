"""
Database initialization script.

Tables are also created lazily on first write; run this to create the
whole schema up front:

    python -m backend.app.core.init_db
"""

import asyncio

from backend.app.core.config import get_settings
from backend.app.core.database import Base, engine
from backend.app.core.logging import get_logger, setup_logging
from backend.app.models import AccessLogORM, BriefingORM, IncidentORM  # noqa: F401

settings = get_settings()
logger = get_logger(__name__)


async def init_database():
    """Create incidents, briefings and access_logs if missing."""
    logger.info(f"Initializing database at {engine.url.render_as_string(hide_password=True)}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    logger.info(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    setup_logging(level=settings.log_level)
    asyncio.run(init_database())
