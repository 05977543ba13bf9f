"""RSVP ledger: sign-ups attached to an activity.

An activity holds at most one RSVP per non-empty email. Emails are compared
with exact, case-sensitive string equality. A sign-up without an email is
stored under the placeholder ``"<name> (no email)"`` with ``has_email`` unset;
such rows are never checked for duplicates, get no confirmation mail, and
are cancelled one row at a time.

Known gap: the duplicate check and the insert are separate round trips, so
two concurrent sign-ups with the same email can both land.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity import Activity
from app.models.rsvp import ActivityRsvp
from app.services import emails
from app.services.activity_repository import ActivityRepository
from app.services.errors import ActivityBoardError, DuplicateRsvp, NotFound, ValidationError
from app.services.notifier import Notifier, dispatch
from app.services.policy import ActivityPolicy, ActorContext, require
from app.services.user_service import leader_display_names

logger = logging.getLogger(__name__)

PLACEHOLDER_SUFFIX = " (no email)"


def placeholder_email(name: str) -> str:
    return f"{name}{PLACEHOLDER_SUFFIX}"


def build_entry(name: Optional[str], phone: Optional[str], email: Optional[str] = None) -> dict[str, Any]:
    """Validate a sign-up form and return the row to store."""
    name = (name or "").strip()
    phone = (phone or "").strip()
    if not name or not phone:
        raise ValidationError("Please fill in your name and phone number.")
    email = (email or "").strip()
    return {
        "name": name,
        "email": email or placeholder_email(name),
        "phone": phone,
        "has_email": bool(email),
    }


@dataclass
class BatchSignUpResult:
    joined: list[Activity] = field(default_factory=list)
    duplicates: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def any_joined(self) -> bool:
        return bool(self.joined)


async def _load(repo: ActivityRepository, activity_id: str) -> Activity:
    activity = await repo.find_by_id(activity_id)
    if activity is None:
        raise NotFound("Activity not found")
    return activity


async def _append(repo: ActivityRepository, activity_id: str, entry: dict[str, Any]) -> Activity:
    activity = await _load(repo, activity_id)
    require(ActivityPolicy.can_rsvp(activity))

    if entry["has_email"]:
        if any(r.has_email and r.email == entry["email"] for r in activity.rsvps):
            raise DuplicateRsvp(f"{entry['email']} is already signed up for \"{activity.title}\"")

    await repo.push_rsvp(activity_id, entry)
    logger.info("RSVP added to activity %s (%d before)", activity_id, len(activity.rsvps))
    return await _load(repo, activity_id)


async def add_rsvp(
    db: AsyncSession,
    activity_id: str,
    name: Optional[str],
    phone: Optional[str],
    email: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> Activity:
    """Sign one person up for one activity and confirm by email."""
    entry = build_entry(name, phone, email)
    activity = await _append(ActivityRepository(db), activity_id, entry)

    if notifier is not None and entry["has_email"]:
        names = await leader_display_names(db, [activity])
        await dispatch(notifier, emails.rsvp_confirmation([activity], entry["email"], names))
    return activity


async def cancel_rsvp(db: AsyncSession, actor: ActorContext, activity_id: str, email: str) -> Activity:
    """Remove the RSVP held under ``email``.

    For a placeholder address only the oldest matching row is removed;
    a real address removes every row holding it.
    """
    repo = ActivityRepository(db)
    activity = await _load(repo, activity_id)
    require(ActivityPolicy.can_cancel_rsvp(actor, activity, email))

    matches = [r for r in activity.rsvps if r.email == email]
    if matches and not any(r.has_email for r in matches):
        removed = await repo.pull_rsvp_row(activity_id, matches[0].rsvp_id)
    else:
        removed = await repo.pull_rsvp(activity_id, email)
    if removed == 0:
        raise NotFound(f"No RSVP for {email} on this activity")
    logger.info("RSVP %s cancelled on activity %s by %s", email, activity_id, actor.user_id or "anonymous")
    return await _load(repo, activity_id)


async def batch_sign_up(
    db: AsyncSession,
    activity_ids: list[str],
    name: Optional[str],
    phone: Optional[str],
    email: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> BatchSignUpResult:
    """Sign up for several activities at once.

    Each activity is attempted independently; a duplicate or missing
    activity is recorded and the rest still go through. One summary email
    covers every activity joined.
    """
    entry = build_entry(name, phone, email)
    if not activity_ids:
        raise ValidationError("Please select at least one activity.")

    repo = ActivityRepository(db)
    result = BatchSignUpResult()
    for activity_id in dict.fromkeys(activity_ids):
        try:
            result.joined.append(await _append(repo, activity_id, entry))
        except DuplicateRsvp:
            result.duplicates.append(activity_id)
        except ActivityBoardError as exc:
            logger.warning("Batch sign-up skipped activity %s: %s", activity_id, exc.message)
            result.failures[activity_id] = exc.kind

    if result.joined and notifier is not None and entry["has_email"]:
        names = await leader_display_names(db, result.joined)
        await dispatch(notifier, emails.rsvp_confirmation(result.joined, entry["email"], names))
    return result


async def list_rsvps(db: AsyncSession, actor: ActorContext, activity_id: str) -> list[ActivityRsvp]:
    """RSVPs in submission order; creator, leader or admin only."""
    activity = await _load(ActivityRepository(db), activity_id)
    require(ActivityPolicy.can_list_rsvps(actor, activity))
    return list(activity.rsvps)
