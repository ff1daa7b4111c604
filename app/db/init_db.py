"""
Create all tables known to the models (idempotent: existing tables are left alone).

Run once per environment:
  python -m app.db.init_db
"""
import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

import app.auth.models  # noqa: F401  (registers users on Base.metadata)
import app.core.models  # noqa: F401
from app.core.config import settings
from app.core.logging import configure_logging
from app.db.session import Base, engine

logger = logging.getLogger(__name__)


async def init_db(bind: AsyncEngine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Ensured tables: %s", ", ".join(sorted(Base.metadata.tables)))


async def main() -> None:
    configure_logging(settings.log_level)
    try:
        await init_db(engine)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
