"""Sign-up cart and batch sign-up routes."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_session_id
from app.schemas.sign_up import BatchSignUpOut, BatchSignUpRequest, CartChange, CartItemIn, CartOut
from app.services import activity_service, rsvp_ledger
from app.services.cart_service import CartStore, get_cart_store
from app.services.notifier import Notifier, get_notifier
from app.services.policy import ActorContext

logger = logging.getLogger(__name__)
router = APIRouter()


def _cart_out(carts: CartStore, session_id: str) -> CartOut:
    return CartOut.model_validate(carts.get(session_id), from_attributes=True)


@router.get("/cart", response_model=CartOut)
def get_cart(session_id: str = Depends(get_session_id), carts: CartStore = Depends(get_cart_store)):
    return _cart_out(carts, session_id)


@router.post("/cart", response_model=CartChange)
async def add_to_cart(
    payload: CartItemIn,
    session_id: str = Depends(get_session_id),
    carts: CartStore = Depends(get_cart_store),
    db: AsyncSession = Depends(get_db),
):
    """Add a publicly listed activity to the cart. Adding twice is a no-op."""
    activity = await activity_service.get_activity(db, ActorContext.anonymous(), payload.activity_id)
    changed = carts.add(session_id, activity.activity_id, activity.title)
    return CartChange(changed=changed, cart=_cart_out(carts, session_id))


@router.delete("/cart/{activity_id}", response_model=CartChange)
def remove_from_cart(
    activity_id: str,
    session_id: str = Depends(get_session_id),
    carts: CartStore = Depends(get_cart_store),
):
    """``changed`` is false when the activity was already absent."""
    changed = carts.remove(session_id, activity_id)
    return CartChange(changed=changed, cart=_cart_out(carts, session_id))


@router.delete("/cart", response_model=CartOut)
def clear_cart(session_id: str = Depends(get_session_id), carts: CartStore = Depends(get_cart_store)):
    carts.clear(session_id)
    return _cart_out(carts, session_id)


@router.post("/", response_model=BatchSignUpOut)
async def batch_sign_up(
    payload: BatchSignUpRequest,
    session_id: str = Depends(get_session_id),
    carts: CartStore = Depends(get_cart_store),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Sign up for every listed activity (or the whole cart) in one go."""
    activity_ids = payload.activity_ids
    if activity_ids is None:
        activity_ids = carts.get(session_id).activity_ids

    result = await rsvp_ledger.batch_sign_up(
        db, activity_ids, name=payload.name, phone=payload.phone, email=payload.email, notifier=notifier
    )
    if result.any_joined:
        carts.clear(session_id)
    logger.info(
        "Batch sign-up for session %s: %d joined, %d duplicate, %d failed",
        session_id, len(result.joined), len(result.duplicates), len(result.failures),
    )
    return BatchSignUpOut(
        joined=[a.activity_id for a in result.joined],
        duplicates=result.duplicates,
        failures=result.failures,
    )
