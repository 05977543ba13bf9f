"""Request-scoped dependencies: the acting user and the browsing session."""
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.services import user_service
from app.services.policy import ActorContext


async def get_actor(
    actor_user_id: Optional[str] = Query(None, description="ID of the user performing the request"),
    db: AsyncSession = Depends(get_db),
) -> ActorContext:
    """Resolve the caller. No id means an anonymous visitor."""
    if not actor_user_id:
        return ActorContext.anonymous()
    user = await user_service.resolve_user(db, actor_user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return ActorContext(user_id=user.user_id, is_admin=bool(user.admin), email=user.email or None)


def get_session_id(x_session_id: str = Header(..., alias="X-Session-Id")) -> str:
    return x_session_id
