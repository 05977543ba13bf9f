"""User API routes: registration, login, logout."""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_session_id
from app.schemas.user import UserLogin, UserOut, UserRegister
from app.services import user_service
from app.services.cart_service import CartStore, get_cart_store

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(payload: UserRegister, db: AsyncSession = Depends(get_db)):
    """Create a regular user. The admin flag is never set here."""
    return await user_service.register(db, **payload.model_dump())


@router.post("/login", response_model=UserOut)
async def login(payload: UserLogin, db: AsyncSession = Depends(get_db)):
    return await user_service.authenticate(db, payload.username, payload.password)


@router.post("/logout")
def logout(session_id: str = Depends(get_session_id), carts: CartStore = Depends(get_cart_store)):
    """End the browsing session; its sign-up cart goes with it."""
    carts.clear(session_id)
    logger.info("Session %s logged out", session_id)
    return {"status": "ok"}


@router.get("/{user_id}", response_model=UserOut)
async def get_user(user_id: str, db: AsyncSession = Depends(get_db)):
    """Fetch a single user by ID."""
    user = await user_service.resolve_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
