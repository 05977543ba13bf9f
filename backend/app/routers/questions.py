"""Visitor questions to admins and admin answers."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_actor
from app.schemas.sign_up import AnswerIn, QuestionIn
from app.services import question_service
from app.services.notifier import Notifier, get_notifier
from app.services.policy import ActorContext

router = APIRouter()


@router.post("/")
async def ask_question(
    payload: QuestionIn,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    sent = await question_service.ask_admins(db, notifier, payload.name, payload.question, payload.email)
    return {"status": "ok", "sent": sent}


@router.post("/answer")
async def answer_question(
    payload: AnswerIn,
    actor: ActorContext = Depends(get_actor),
    notifier: Notifier = Depends(get_notifier),
):
    sent = await question_service.answer_question(
        actor, notifier, payload.recipient, payload.subject, payload.answer
    )
    return {"status": "ok", "sent": sent}
