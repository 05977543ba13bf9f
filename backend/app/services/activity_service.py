"""Activity lifecycle: states, transitions and visibility.

Responsibilities:
- Status assignment on create (admins publish directly, others go to review)
- Admin-only approve / reject, only from a review state
- Edit rules: non-admin edits always send the activity back to review
- Read and listing visibility
- Leader reference resolution and expiry date
- Best-effort notifications after each committed transition

    (create) ──admin──────────────────────────────► published
        └──member──► unpublished_under_review ──approve──► published
                         │                                  │
                       reject (deleted)             edit by creator
                                                            ▼
                        reject (deleted) ◄── published_under_review ──approve──► published
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.activity import Activity, ActivityStatus, LISTABLE_STATUSES, REVIEW_STATUSES
from app.services import emails, user_service
from app.services.activity_repository import ActivityRepository
from app.services.errors import InvalidTransition, NotFound, ValidationError
from app.services.notifier import Notifier, dispatch
from app.services.policy import (
    ActivityPolicy,
    ActorContext,
    default_status_for,
    edited_status_for,
    require,
)

logger = logging.getLogger(__name__)

# Review actions and the states they may start from.
VALID_TRANSITIONS = {
    "approve": REVIEW_STATUSES,
    "reject": REVIEW_STATUSES,
}

EDITABLE_FIELDS = ("title", "body", "date", "leader_name")


def _check_transition(activity: Activity, action: str) -> None:
    if activity.status not in VALID_TRANSITIONS[action]:
        logger.warning(
            "Refused %s on activity %s: status is %s", action, activity.activity_id, activity.status.value
        )
        raise InvalidTransition(f"Cannot {action} an activity that is {activity.status.value}")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def expire_at_for(date: datetime) -> datetime:
    return _as_utc(date) + timedelta(days=settings.ACTIVITY_EXPIRY_DAYS)


def _require_text(**fields: Optional[str]) -> dict[str, str]:
    cleaned = {name: (value or "").strip() for name, value in fields.items()}
    missing = [name for name, value in cleaned.items() if not value]
    if missing:
        raise ValidationError(f"Please fill in: {', '.join(missing)}")
    return cleaned


async def _leader_fields(
    db: AsyncSession, leader_name: Optional[str], leader_username: Optional[str]
) -> dict[str, Any]:
    """Resolve the leader; a resolved user's name fills a blank leader name."""
    leader = await user_service.resolve_leader(db, leader_username)
    name = (leader_name or "").strip() or (leader.name if leader else "")
    if not name:
        raise ValidationError("Please give the activity a leader")
    return {"leader_name": name, "leader_user_id": leader.user_id if leader else None}


async def _load(repo: ActivityRepository, activity_id: str) -> Activity:
    activity = await repo.find_by_id(activity_id)
    if activity is None:
        raise NotFound("Activity not found")
    return activity


async def _creator_email(db: AsyncSession, activity: Activity) -> Optional[str]:
    creator = await user_service.resolve_user(db, activity.creator_user_id)
    if creator is None:
        logger.warning("Creator %s of activity %s no longer exists", activity.creator_user_id, activity.activity_id)
        return None
    return creator.email or None


# ── Create ─────────────────────────────────────────────────────────

async def create_activity(
    db: AsyncSession,
    actor: ActorContext,
    title: Optional[str],
    body: Optional[str],
    date: datetime,
    leader_name: Optional[str] = None,
    leader_username: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> Activity:
    """Create an activity. Admins publish directly; everyone else waits for review."""
    require(ActivityPolicy.can_create(actor))
    text = _require_text(title=title, body=body)
    if date is None:
        raise ValidationError("Please fill in: date")

    fields = {
        **text,
        **await _leader_fields(db, leader_name, leader_username),
        "date": _as_utc(date),
        "expire_at": expire_at_for(date),
        "creator_user_id": actor.user_id,
        "status": default_status_for(actor),
    }
    activity = await ActivityRepository(db).create(fields)
    logger.info(
        "Created activity '%s' (%s) by %s as %s",
        activity.title, activity.activity_id, actor.user_id, activity.status.value,
    )

    if notifier is not None and activity.status == ActivityStatus.unpublished_under_review:
        admins = await user_service.admin_emails(db)
        names = await user_service.leader_display_names(db, [activity])
        await dispatch(notifier, emails.submitted_for_review(activity, admins, names))
    return activity


# ── Read ───────────────────────────────────────────────────────────

async def get_activity(db: AsyncSession, actor: ActorContext, activity_id: str) -> Activity:
    """Single activity, subject to read visibility."""
    activity = await _load(ActivityRepository(db), activity_id)
    require(ActivityPolicy.can_view(actor, activity))
    return activity


async def get_editable_activity(db: AsyncSession, actor: ActorContext, activity_id: str) -> Activity:
    """Single activity, for the edit page."""
    activity = await _load(ActivityRepository(db), activity_id)
    require(ActivityPolicy.can_edit(actor, activity))
    return activity


async def list_activities(db: AsyncSession, sort: str = "newest") -> list[Activity]:
    """Public listing. Never includes activities that are unpublished."""
    return await ActivityRepository(db).find(statuses=LISTABLE_STATUSES, sort=sort)


async def list_user_activities(db: AsyncSession, user_id: str) -> list[Activity]:
    return await ActivityRepository(db).find(statuses=LISTABLE_STATUSES, creator_user_id=user_id)


async def list_my_activities(db: AsyncSession, actor: ActorContext) -> list[Activity]:
    """Everything the actor created, whatever its status."""
    require(ActivityPolicy.can_create(actor))
    return await ActivityRepository(db).find(creator_user_id=actor.user_id)


async def list_pending_activities(db: AsyncSession, actor: ActorContext) -> list[Activity]:
    """Review queue for admins."""
    require(ActivityPolicy.can_review(actor))
    return await ActivityRepository(db).find(statuses=REVIEW_STATUSES, sort="newest")


# ── Edit ───────────────────────────────────────────────────────────

async def edit_activity(
    db: AsyncSession,
    actor: ActorContext,
    activity_id: str,
    updates: dict[str, Any],
    notifier: Optional[Notifier] = None,
) -> Activity:
    """Apply an edit. A non-admin edit always lands in ``published_under_review``.

    ``updates`` may hold ``title``, ``body``, ``date``, ``leader_name`` and
    ``leader_username``; an empty ``leader_username`` clears the leader user.
    """
    repo = ActivityRepository(db)
    activity = await _load(repo, activity_id)
    require(ActivityPolicy.can_edit(actor, activity))

    fields: dict[str, Any] = {k: updates[k] for k in EDITABLE_FIELDS if updates.get(k) is not None}
    for name in ("title", "body"):
        if name in fields:
            fields.update(_require_text(**{name: fields[name]}))
    if "date" in fields:
        fields["expire_at"] = expire_at_for(fields["date"])
        fields["date"] = _as_utc(fields["date"])
    if "leader_username" in updates or "leader_name" in fields:
        if "leader_username" in updates:
            username = updates["leader_username"]
        else:
            leader = await user_service.resolve_user(db, activity.leader_user_id)
            username = leader.username if leader else None
        fields.update(await _leader_fields(db, fields.get("leader_name", activity.leader_name), username))
    fields["status"] = edited_status_for(actor)

    before = activity.status
    updated = await repo.update_fields(activity_id, fields)
    if updated is None:
        raise NotFound("Activity not found")
    logger.info(
        "Edited activity %s by %s: %s -> %s", activity_id, actor.user_id, before.value, updated.status.value
    )

    if notifier is not None:
        admins = await user_service.admin_emails(db)
        names = await user_service.leader_display_names(db, [updated])
        if updated.status == ActivityStatus.published_under_review:
            message = emails.edited_for_review(updated, admins, names)
        else:
            message = emails.edited_by_admin(updated, admins, names)
        await dispatch(notifier, message)
    return updated


# ── Review ─────────────────────────────────────────────────────────

async def approve_activity(
    db: AsyncSession,
    actor: ActorContext,
    activity_id: str,
    notifier: Optional[Notifier] = None,
) -> Activity:
    """Publish an activity under review (admin only)."""
    repo = ActivityRepository(db)
    activity = await _load(repo, activity_id)
    require(ActivityPolicy.can_review(actor))
    _check_transition(activity, "approve")

    updated = await repo.update_fields(activity_id, {"status": ActivityStatus.published})
    if updated is None:
        raise NotFound("Activity not found")
    logger.info("Approved activity %s by admin %s", activity_id, actor.user_id)

    if notifier is not None:
        recipients = [await _creator_email(db, updated), actor.email]
        names = await user_service.leader_display_names(db, [updated])
        await dispatch(notifier, emails.approved(updated, list(dict.fromkeys(r for r in recipients if r)), names))
    return updated


async def reject_activity(
    db: AsyncSession,
    actor: ActorContext,
    activity_id: str,
    feedback: str = "",
    notifier: Optional[Notifier] = None,
) -> None:
    """Delete an activity under review and tell its creator why (admin only)."""
    repo = ActivityRepository(db)
    activity = await _load(repo, activity_id)
    require(ActivityPolicy.can_review(actor))
    _check_transition(activity, "reject")

    creator_email = await _creator_email(db, activity)
    if not await repo.delete_by_id(activity_id):
        raise NotFound("Activity not found")
    logger.info("Rejected and deleted activity %s by admin %s", activity_id, actor.user_id)

    if notifier is not None and creator_email:
        await dispatch(notifier, emails.rejected(activity, creator_email, (feedback or "").strip()))


# ── Delete ─────────────────────────────────────────────────────────

async def delete_activity(db: AsyncSession, actor: ActorContext, activity_id: str) -> None:
    repo = ActivityRepository(db)
    activity = await _load(repo, activity_id)
    require(ActivityPolicy.can_delete(actor, activity))
    if not await repo.delete_by_id(activity_id):
        raise NotFound("Activity not found")
    logger.info("Deleted activity %s by %s", activity_id, actor.user_id)


# ── Digest and expiry ──────────────────────────────────────────────

async def send_digest(db: AsyncSession, recipient: str, notifier: Notifier) -> int:
    """Email the public listing to ``recipient``. Returns how many activities it held."""
    recipient = (recipient or "").strip()
    if not recipient:
        raise ValidationError("Please give an email address for the digest")
    activities = await list_activities(db, sort="date")
    if activities:
        names = await user_service.leader_display_names(db, activities)
        await dispatch(notifier, emails.digest(activities, recipient, names))
    return len(activities)


async def purge_expired(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """Delete activities past their ``expire_at``. Not used by the lifecycle itself."""
    now = _as_utc(now or datetime.now(timezone.utc))
    removed = await ActivityRepository(db).delete_expired(now)
    logger.info("Purged %d expired activities", removed)
    return removed
