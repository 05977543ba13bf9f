"""Questions from visitors to the admins, and admin answers."""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.services import emails, user_service
from app.services.errors import ValidationError
from app.services.notifier import Notifier, dispatch
from app.services.policy import ActivityPolicy, ActorContext, require

logger = logging.getLogger(__name__)


async def ask_admins(
    db: AsyncSession, notifier: Notifier, name: str, question: str, email: Optional[str] = None
) -> bool:
    name, question = (name or "").strip(), (question or "").strip()
    if not name or not question:
        raise ValidationError("Please give your name and a question.")
    admins = await user_service.admin_emails(db)
    logger.info("Question from %s forwarded to %d admin(s)", name, len(admins))
    return await dispatch(notifier, emails.question_to_admins(name, (email or "").strip(), question, admins))


async def answer_question(
    actor: ActorContext, notifier: Notifier, recipient: str, subject: str, answer: str
) -> bool:
    require(ActivityPolicy.can_answer_questions(actor))
    recipient, answer = (recipient or "").strip(), (answer or "").strip()
    if not recipient or not answer:
        raise ValidationError("Please give a recipient and an answer.")
    subject = (subject or "").strip() or "An answer to your question"
    logger.info("Admin %s answered a question from %s", actor.user_id, recipient)
    return await dispatch(notifier, emails.answer_to_user(subject, answer, recipient))
