"""Centralized authorization rules for activities and RSVPs.

Every check takes an explicit ``ActorContext`` and returns
``(allowed, reason)``. Services call ``require`` to turn a refusal into
``Forbidden`` before touching the store.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from app.models.activity import Activity, ActivityStatus, LISTABLE_STATUSES
from app.services.errors import Forbidden


@dataclass(frozen=True)
class ActorContext:
    """Identity of whoever is calling an operation."""

    user_id: Optional[str] = None
    is_admin: bool = False
    email: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None

    @classmethod
    def anonymous(cls) -> "ActorContext":
        return cls()


def require(check: Tuple[bool, str]) -> None:
    """Raise ``Forbidden`` with the policy's reason when a check fails."""
    allowed, reason = check
    if not allowed:
        raise Forbidden(reason)


class ActivityPolicy:
    """Permission checks for the activity lifecycle and RSVP ledger."""

    @staticmethod
    def is_creator(actor: ActorContext, activity: Activity) -> bool:
        return actor.authenticated and activity.creator_user_id == actor.user_id

    @staticmethod
    def is_leader(actor: ActorContext, activity: Activity) -> bool:
        return actor.authenticated and activity.leader_user_id == actor.user_id

    @staticmethod
    def is_owner(actor: ActorContext, activity: Activity) -> bool:
        """Admin, creator or leader."""
        return (
            actor.is_admin
            or ActivityPolicy.is_creator(actor, activity)
            or ActivityPolicy.is_leader(actor, activity)
        )

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def can_create(actor: ActorContext) -> Tuple[bool, str]:
        if not actor.authenticated:
            return False, "Please log in to add an activity"
        return True, ""

    @staticmethod
    def can_view(actor: ActorContext, activity: Activity) -> Tuple[bool, str]:
        if activity.status in LISTABLE_STATUSES:
            return True, ""
        if ActivityPolicy.is_owner(actor, activity):
            return True, ""
        return False, "This activity is still under review"

    @staticmethod
    def can_edit(actor: ActorContext, activity: Activity) -> Tuple[bool, str]:
        if not actor.authenticated:
            return False, "Please log in to edit this activity"
        if actor.is_admin:
            return True, ""
        if not ActivityPolicy.is_creator(actor, activity):
            return False, "Only the creator or an admin may edit this activity"
        if activity.status not in LISTABLE_STATUSES:
            return False, "This activity cannot be edited until it has been approved"
        return True, ""

    @staticmethod
    def can_delete(actor: ActorContext, activity: Activity) -> Tuple[bool, str]:
        if actor.is_admin or ActivityPolicy.is_creator(actor, activity):
            return True, ""
        return False, "Only the creator or an admin may delete this activity"

    @staticmethod
    def can_review(actor: ActorContext) -> Tuple[bool, str]:
        """Approve and reject are reserved for admins."""
        if actor.is_admin:
            return True, ""
        return False, "Only admins may approve or reject activities"

    @staticmethod
    def can_answer_questions(actor: ActorContext) -> Tuple[bool, str]:
        if actor.is_admin:
            return True, ""
        return False, "Only admins may answer questions"

    # ─────────────────────────────────────────────────────────────
    # RSVPs
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def can_rsvp(activity: Activity) -> Tuple[bool, str]:
        """Sign-ups are open to anyone, but only on listed activities."""
        if activity.status in LISTABLE_STATUSES:
            return True, ""
        return False, "This activity is not open for sign-up"

    @staticmethod
    def can_list_rsvps(actor: ActorContext, activity: Activity) -> Tuple[bool, str]:
        if ActivityPolicy.is_owner(actor, activity):
            return True, ""
        return False, "Only the creator, leader or an admin may view RSVPs"

    @staticmethod
    def can_cancel_rsvp(actor: ActorContext, activity: Activity, email: str) -> Tuple[bool, str]:
        """The RSVP holder or anyone who owns the activity."""
        if ActivityPolicy.is_owner(actor, activity):
            return True, ""
        if actor.email and actor.email == email:
            return True, ""
        return False, "You cannot cancel this RSVP"


def default_status_for(actor: ActorContext) -> ActivityStatus:
    """Admins publish directly, everyone else goes through review."""
    return ActivityStatus.published if actor.is_admin else ActivityStatus.unpublished_under_review


def edited_status_for(actor: ActorContext) -> ActivityStatus:
    return ActivityStatus.published if actor.is_admin else ActivityStatus.published_under_review
