"""Email bodies for lifecycle, RSVP, digest and question notifications."""
from datetime import datetime
from html import escape
from typing import Iterable, Mapping, Optional

import pytz

from app.config import settings
from app.models.activity import Activity
from app.services.notifier import EmailMessage


SUFFIXES = {1: "st", 2: "nd", 3: "rd"}


def _ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return f"{day}th"
    return f"{day}{SUFFIXES.get(day % 10, 'th')}"


def format_date(value: datetime, tz_name: Optional[str] = None) -> str:
    """Render e.g. ``March 3rd 2026, 6:30 pm`` in the display timezone.

    Naive datetimes (as SQLite returns them) are taken to be UTC.
    """
    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    local = value.astimezone(pytz.timezone(tz_name or settings.DISPLAY_TIMEZONE))
    hour = local.hour % 12 or 12
    meridiem = "am" if local.hour < 12 else "pm"
    return f"{local:%B} {_ordinal(local.day)} {local:%Y}, {hour}:{local:%M} {meridiem}"


def render_activities(
    heading: str,
    activities: Iterable[Activity],
    leader_names: Optional[Mapping[str, str]] = None,
) -> str:
    """Numbered list of activity cards under an ``<h2>`` heading."""
    leader_names = leader_names or {}
    parts = [f"<h2>{escape(heading)}</h2>"]
    for counter, activity in enumerate(activities, start=1):
        leader = leader_names.get(activity.activity_id) or activity.leader_name
        parts.append(
            f"<h3>{counter}. <b>{escape(activity.title)}</b></h3>"
            f"<p><b>Occurs at:</b> {format_date(activity.date)}</p>"
            f"<p><b>Leader:</b> {escape(leader)}</p>"
            f"<p><b>Description:</b> {escape(activity.body)}</p>"
        )
    return "".join(parts)


# ── Lifecycle ──────────────────────────────────────────────────────

def submitted_for_review(activity: Activity, admin_emails: list[str], leader_names=None) -> EmailMessage:
    subject = "New activity submitted for review"
    return EmailMessage(subject, render_activities(subject, [activity], leader_names), admin_emails)


def edited_for_review(activity: Activity, admin_emails: list[str], leader_names=None) -> EmailMessage:
    subject = "Published activity edited and waiting for review"
    return EmailMessage(subject, render_activities(subject, [activity], leader_names), admin_emails)


def edited_by_admin(activity: Activity, admin_emails: list[str], leader_names=None) -> EmailMessage:
    subject = "Published activity edited by an admin"
    return EmailMessage(subject, render_activities(subject, [activity], leader_names), admin_emails)


def approved(activity: Activity, recipients: list[str], leader_names=None) -> EmailMessage:
    subject = "Your activity has been approved and published"
    return EmailMessage(subject, render_activities(subject, [activity], leader_names), recipients)


def rejected(activity: Activity, creator_email: str, feedback: str) -> EmailMessage:
    subject = f"Your activity \"{activity.title}\" was not approved"
    body = (
        f"<h2>{escape(subject)}</h2>"
        f"<p>An administrator reviewed your activity and removed it with the following feedback:</p>"
        f"<blockquote>{escape(feedback) if feedback else 'No feedback was given.'}</blockquote>"
        f"<p>You are welcome to submit it again with the changes above.</p>"
    )
    return EmailMessage(subject, body, [creator_email])


# ── RSVPs ──────────────────────────────────────────────────────────

def rsvp_confirmation(activities: list[Activity], recipient: str, leader_names=None) -> EmailMessage:
    subject = "You are signed up for the following activities"
    return EmailMessage(subject, render_activities(subject, activities, leader_names), [recipient])


def digest(activities: list[Activity], recipient: str, leader_names=None) -> EmailMessage:
    subject = "Upcoming activities"
    return EmailMessage(subject, render_activities(subject, activities, leader_names), [recipient])


# ── Questions ──────────────────────────────────────────────────────

def question_to_admins(name: str, email: str, question: str, admin_emails: list[str]) -> EmailMessage:
    subject = f"Question from {name}"
    body = (
        f"<h2>{escape(subject)}</h2>"
        f"<p><b>Reply to:</b> {escape(email) if email else 'no email given'}</p>"
        f"<p>{escape(question)}</p>"
    )
    return EmailMessage(subject, body, admin_emails)


def answer_to_user(subject: str, answer: str, recipient: str) -> EmailMessage:
    body = f"<h2>{escape(subject)}</h2><p>{escape(answer)}</p>"
    return EmailMessage(subject, body, [recipient])
