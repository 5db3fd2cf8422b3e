"""Periodic deletion of messages past the retention period."""

import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from wacrm.config import settings
from wacrm.core.telemetry import setup_worker_telemetry
from wacrm.db.repositories import MessageRepository
from wacrm.db.session import async_session_maker
from wacrm.models.message import MESSAGE_RETENTION

logger = logging.getLogger(__name__)


async def purge_expired_messages(db: AsyncSession, now: datetime | None = None) -> int:
    """Delete messages created more than 30 days ago. Returns count deleted."""
    cutoff = (now or datetime.now(timezone.utc)) - MESSAGE_RETENTION
    deleted = await MessageRepository(db).delete_created_before(cutoff)
    if deleted:
        logger.info(f"Deleted {deleted} messages created before {cutoff.isoformat()}")
    return deleted


async def main() -> None:
    """Main retention loop."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    setup_worker_telemetry()
    logger.info("Starting retention worker...")
    logger.info(f"Purging expired messages every {settings.RETENTION_INTERVAL_SECONDS} seconds")

    while True:
        try:
            async with async_session_maker() as db:
                await purge_expired_messages(db)
        except Exception as e:
            logger.error(f"Error in retention loop: {e}")

        await asyncio.sleep(settings.RETENTION_INTERVAL_SECONDS)


if __name__ == "__main__":
    asyncio.run(main())
