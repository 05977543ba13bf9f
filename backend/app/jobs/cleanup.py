"""
Expired activity cleanup.

Deletes activities whose ``expire_at`` (the activity date plus
``ACTIVITY_EXPIRY_DAYS``) has passed, together with their RSVPs. The
lifecycle never looks at ``expire_at`` itself; this job is the only reader.

Usage:
    python -m app.jobs.cleanup
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from app.database import SessionLocal
from app.logging_config import setup_logging
from app.services import activity_service

# Register every mapper before the first query.
from app.models.user import User            # noqa: F401
from app.models.activity import Activity    # noqa: F401
from app.models.rsvp import ActivityRsvp    # noqa: F401

logger = logging.getLogger(__name__)


async def purge_expired_activities(now: Optional[datetime] = None, session_factory=SessionLocal) -> int:
    now = now or datetime.now(timezone.utc)
    async with session_factory() as db:
        removed = await activity_service.purge_expired(db, now)
    logger.info("Cleanup finished at %s: %d activities removed", now.isoformat(), removed)
    return removed


def main() -> None:
    setup_logging()
    asyncio.run(purge_expired_activities())


if __name__ == "__main__":
    main()
