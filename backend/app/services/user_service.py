"""User registration, login and reference resolution."""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.user import User
from app.security import hash_password, verify_password
from app.services.errors import InvalidReference, StorageError, ValidationError

logger = logging.getLogger(__name__)


async def _scalar(db: AsyncSession, query) -> Optional[User]:
    try:
        result = await db.execute(query)
    except SQLAlchemyError as exc:
        logger.exception("Storage failure while loading users")
        raise StorageError("We're sorry. Something went wrong. Please try again.") from exc
    return result.scalars().first()


async def resolve_user(db: AsyncSession, user_id: Optional[str]) -> Optional[User]:
    """Dereference a weak user reference. Returns None when it cannot be resolved."""
    if not user_id:
        return None
    return await _scalar(db, select(User).where(User.user_id == user_id))


async def find_by_username(db: AsyncSession, username: str) -> Optional[User]:
    return await _scalar(db, select(User).where(User.username == username))


async def resolve_leader(db: AsyncSession, username: Optional[str]) -> Optional[User]:
    """Look up the user named as an activity's leader.

    A blank username clears the leader. An unknown one blocks the operation.
    """
    if not username or not username.strip():
        return None
    leader = await find_by_username(db, username.strip())
    if leader is None:
        raise InvalidReference(f"No user with the username '{username.strip()}' exists. "
                               "Correct the leader username or leave it blank.")
    return leader


async def leader_display_names(db: AsyncSession, activities) -> dict[str, str]:
    """Map activity id to its leader user's name, for activities whose leader resolves."""
    names = {}
    for activity in activities:
        leader = await resolve_user(db, activity.leader_user_id)
        if leader is not None:
            names[activity.activity_id] = leader.name
    return names


async def admin_emails(db: AsyncSession) -> list[str]:
    """Addresses of every admin who has an email on file."""
    try:
        result = await db.execute(select(User.email).where(User.admin.is_(True), User.email != ""))
    except SQLAlchemyError as exc:
        logger.exception("Storage failure while loading admin emails")
        raise StorageError("We're sorry. Something went wrong. Please try again.") from exc
    return [email for email in result.scalars().all() if email]


async def register(
    db: AsyncSession,
    name: str,
    username: str,
    phone: str,
    password: str,
    password2: str,
    signature: str,
    email: Optional[str] = None,
) -> User:
    """Create a regular (non-admin) user after validating the form."""
    errors = []
    if not all(v and v.strip() for v in (name, username, phone, password, password2, signature)):
        errors.append("Please fill in all fields (email is optional but strongly recommended).")
    if password != password2:
        errors.append("Passwords do not match.")
    if len(password or "") < settings.MIN_PASSWORD_LENGTH:
        errors.append(f"Password should be at least {settings.MIN_PASSWORD_LENGTH} characters in length.")
    if errors:
        raise ValidationError(" ".join(errors))

    if await find_by_username(db, username.strip()) is not None:
        raise ValidationError("Username is not available.")

    user = User(
        name=name.strip(),
        username=username.strip(),
        email=(email or "").strip(),
        phone=phone.strip(),
        password_hash=hash_password(password),
        signature=signature.strip(),
        admin=False,
    )
    db.add(user)
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Storage failure while registering %s", username)
        raise StorageError("We're sorry. Something went wrong. Please try again.") from exc
    logger.info("Registered user %s (%s)", user.username, user.user_id)
    return user


async def authenticate(db: AsyncSession, username: str, password: str) -> User:
    user = await find_by_username(db, username)
    if user is None:
        raise ValidationError("That username is not registered.")
    if not verify_password(password, user.password_hash):
        logger.warning("Failed login for %s", username)
        raise ValidationError("Password is incorrect.")
    logger.info("User %s logged in", username)
    return user
