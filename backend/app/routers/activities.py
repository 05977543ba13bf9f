"""Activity API routes: delegates to activity_service for lifecycle rules."""
import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_actor
from app.schemas.activity import ActivityCreate, ActivityOut, ActivityReject, ActivityUpdate, DigestRequest
from app.services import activity_service
from app.services.notifier import Notifier, get_notifier
from app.services.policy import ActorContext

logger = logging.getLogger(__name__)
router = APIRouter()


def _out(activities) -> list[ActivityOut]:
    return [ActivityOut.from_activity(a) for a in activities]


@router.post("/", response_model=ActivityOut, status_code=status.HTTP_201_CREATED)
async def create_activity(
    payload: ActivityCreate,
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Create an activity. Admins publish directly; others go to review."""
    activity = await activity_service.create_activity(
        db,
        actor,
        title=payload.title,
        body=payload.body,
        date=payload.date,
        leader_name=payload.leader_name,
        leader_username=payload.leader_username,
        notifier=notifier,
    )
    return ActivityOut.from_activity(activity)


@router.get("/", response_model=list[ActivityOut])
async def list_activities(db: AsyncSession = Depends(get_db)):
    """Landing page listing, newest first."""
    return _out(await activity_service.list_activities(db))


@router.get("/sign-up", response_model=list[ActivityOut])
async def list_sign_up_activities(db: AsyncSession = Depends(get_db)):
    """Activities open for sign-up, soonest first."""
    return _out(await activity_service.list_activities(db, sort="date"))


@router.get("/mine", response_model=list[ActivityOut])
async def list_my_activities(actor: ActorContext = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    """Everything the caller created, including activities under review."""
    return _out(await activity_service.list_my_activities(db, actor))


@router.get("/pending", response_model=list[ActivityOut])
async def list_pending_activities(actor: ActorContext = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    """Admin review queue."""
    return _out(await activity_service.list_pending_activities(db, actor))


@router.get("/user/{user_id}", response_model=list[ActivityOut])
async def list_user_activities(user_id: str, db: AsyncSession = Depends(get_db)):
    return _out(await activity_service.list_user_activities(db, user_id))


@router.post("/digest")
async def send_digest(
    payload: DigestRequest,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Email the current listing to an address."""
    count = await activity_service.send_digest(db, payload.email, notifier)
    return {"status": "ok", "activities": count}


@router.get("/{activity_id}", response_model=ActivityOut)
async def get_activity(
    activity_id: str,
    edit: bool = Query(False, description="Load for the edit page (edit permission required)"),
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    if edit:
        activity = await activity_service.get_editable_activity(db, actor, activity_id)
    else:
        activity = await activity_service.get_activity(db, actor, activity_id)
    return ActivityOut.from_activity(activity)


@router.put("/{activity_id}", response_model=ActivityOut)
async def edit_activity(
    activity_id: str,
    payload: ActivityUpdate,
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Edit an activity. Non-admin edits go back to review."""
    activity = await activity_service.edit_activity(
        db, actor, activity_id, payload.model_dump(exclude_unset=True), notifier=notifier
    )
    return ActivityOut.from_activity(activity)


@router.delete("/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_activity(
    activity_id: str,
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    await activity_service.delete_activity(db, actor, activity_id)


@router.post("/{activity_id}/approve", response_model=ActivityOut)
async def approve_activity(
    activity_id: str,
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    activity = await activity_service.approve_activity(db, actor, activity_id, notifier=notifier)
    return ActivityOut.from_activity(activity)


@router.post("/{activity_id}/reject", status_code=status.HTTP_200_OK)
async def reject_activity(
    activity_id: str,
    payload: ActivityReject,
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Reject an activity under review. The activity is deleted."""
    await activity_service.reject_activity(db, actor, activity_id, payload.feedback, notifier=notifier)
    return {"status": "ok", "activity_id": activity_id}
