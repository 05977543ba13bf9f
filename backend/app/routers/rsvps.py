"""RSVP API routes, nested under an activity."""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_actor
from app.schemas.activity import ActivityOut, RsvpCreate, RsvpOut
from app.services import rsvp_ledger
from app.services.notifier import Notifier, get_notifier
from app.services.policy import ActorContext

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{activity_id}/rsvps", response_model=list[RsvpOut])
async def list_rsvps(
    activity_id: str,
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """RSVPs in submission order (creator, leader or admin)."""
    return await rsvp_ledger.list_rsvps(db, actor, activity_id)


@router.post("/{activity_id}/rsvps", response_model=ActivityOut, status_code=status.HTTP_201_CREATED)
async def add_rsvp(
    activity_id: str,
    payload: RsvpCreate,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    activity = await rsvp_ledger.add_rsvp(
        db, activity_id, name=payload.name, phone=payload.phone, email=payload.email, notifier=notifier
    )
    return ActivityOut.from_activity(activity)


@router.delete("/{activity_id}/rsvps/{email}", response_model=ActivityOut)
async def cancel_rsvp(
    activity_id: str,
    email: str,
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Cancel the RSVP held under ``email`` (holder, creator, leader or admin)."""
    activity = await rsvp_ledger.cancel_rsvp(db, actor, activity_id, email)
    return ActivityOut.from_activity(activity)
