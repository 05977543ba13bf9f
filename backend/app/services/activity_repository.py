"""Storage for activities and their RSVP rows.

The database is the single source of truth: every read re-populates the
instance from the store, and RSVPs are changed by targeted row inserts and
deletes (push/pull) rather than by rewriting the whole activity.
"""
import logging
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.activity import Activity, ActivityStatus
from app.models.rsvp import ActivityRsvp
from app.services.errors import StorageError

logger = logging.getLogger(__name__)

# Columns that never change once an activity exists.
IMMUTABLE_FIELDS = frozenset({"activity_id", "creator_user_id", "created_at"})

SORTS = {
    "newest": Activity.created_at.desc(),
    "date": Activity.date.asc(),
}


class ActivityRepository:
    """Async data access for ``Activity`` documents."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _storage_error(self, action: str) -> StorageError:
        """Roll back the failed unit of work and build the error to raise."""
        await self.db.rollback()
        logger.exception("Storage failure while trying to %s", action)
        return StorageError("We're sorry. Something went wrong. Please try again.")

    def _select(self):
        return (
            select(Activity)
            .options(selectinload(Activity.rsvps))
            .execution_options(populate_existing=True)
        )

    async def find(
        self,
        statuses: Optional[Iterable[ActivityStatus]] = None,
        creator_user_id: Optional[str] = None,
        sort: str = "newest",
    ) -> list[Activity]:
        query = self._select()
        if statuses is not None:
            query = query.where(Activity.status.in_(list(statuses)))
        if creator_user_id is not None:
            query = query.where(Activity.creator_user_id == creator_user_id)
        query = query.order_by(SORTS[sort])
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as exc:
            raise await self._storage_error("list activities") from exc
        return list(result.scalars().all())

    async def find_by_id(self, activity_id: str) -> Optional[Activity]:
        try:
            result = await self.db.execute(self._select().where(Activity.activity_id == activity_id))
        except SQLAlchemyError as exc:
            raise await self._storage_error(f"load activity {activity_id}") from exc
        return result.scalars().first()

    async def create(self, fields: dict[str, Any]) -> Activity:
        activity = Activity(**fields)
        self.db.add(activity)
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise await self._storage_error("create an activity") from exc
        return await self.find_by_id(activity.activity_id)

    async def update_fields(self, activity_id: str, fields: dict[str, Any]) -> Optional[Activity]:
        """Set the given columns. Returns None if the activity is gone."""
        values = {k: v for k, v in fields.items() if k not in IMMUTABLE_FIELDS}
        try:
            result = await self.db.execute(
                update(Activity).where(Activity.activity_id == activity_id).values(**values)
            )
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise await self._storage_error(f"update activity {activity_id}") from exc
        if result.rowcount == 0:
            return None
        return await self.find_by_id(activity_id)

    async def push_rsvp(self, activity_id: str, entry: dict[str, str]) -> None:
        self.db.add(ActivityRsvp(activity_id=activity_id, **entry))
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise await self._storage_error(f"add an RSVP to activity {activity_id}") from exc

    async def _pull(self, activity_id: str, *criteria) -> int:
        try:
            result = await self.db.execute(
                delete(ActivityRsvp).where(ActivityRsvp.activity_id == activity_id, *criteria)
            )
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise await self._storage_error(f"remove an RSVP from activity {activity_id}") from exc
        return result.rowcount

    async def pull_rsvp(self, activity_id: str, email: str) -> int:
        """Remove every RSVP made with the real address ``email``. Returns how many were removed."""
        return await self._pull(activity_id, ActivityRsvp.email == email, ActivityRsvp.has_email.is_(True))

    async def pull_rsvp_row(self, activity_id: str, rsvp_id: int) -> int:
        """Remove a single RSVP row."""
        return await self._pull(activity_id, ActivityRsvp.rsvp_id == rsvp_id)

    async def delete_by_id(self, activity_id: str) -> bool:
        activity = await self.find_by_id(activity_id)
        if activity is None:
            return False
        try:
            await self.db.delete(activity)
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise await self._storage_error(f"delete activity {activity_id}") from exc
        return True

    async def delete_expired(self, now: datetime) -> int:
        """Delete every activity whose ``expire_at`` lies before ``now``."""
        try:
            result = await self.db.execute(select(Activity).where(Activity.expire_at < now))
            expired = list(result.scalars().all())
            for activity in expired:
                await self.db.delete(activity)
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise await self._storage_error("purge expired activities") from exc
        return len(expired)
