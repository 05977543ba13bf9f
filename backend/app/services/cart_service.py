"""Per-session sign-up cart.

The cart only buffers activities a visitor intends to sign up for in one
batch. It lives in memory, keyed by session id, and is never an
authorization gate.

Known gap: a cart is dropped only on logout or after a sign-up that joined
something, so carts of abandoned sessions stay in memory until restart.
"""
import logging
import threading
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartItem:
    activity_id: str
    title: str


@dataclass
class Cart:
    items: list[CartItem] = field(default_factory=list)

    def __contains__(self, activity_id: str) -> bool:
        return any(item.activity_id == activity_id for item in self.items)

    @property
    def activity_ids(self) -> list[str]:
        return [item.activity_id for item in self.items]


class CartStore:
    """Session-id keyed carts. A cart is created on first add."""

    def __init__(self):
        self._carts: dict[str, Cart] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Cart:
        with self._lock:
            cart = self._carts.get(session_id)
            return Cart(list(cart.items)) if cart else Cart()

    def add(self, session_id: str, activity_id: str, title: str) -> bool:
        """Append an activity. Returns False when it was already in the cart."""
        with self._lock:
            cart = self._carts.setdefault(session_id, Cart())
            if activity_id in cart:
                return False
            cart.items.append(CartItem(activity_id, title))
        logger.debug("Cart %s: added %s", session_id, activity_id)
        return True

    def remove(self, session_id: str, activity_id: str) -> bool:
        """Drop an activity. Returns False when it was already absent."""
        with self._lock:
            cart = self._carts.get(session_id)
            if cart is None or activity_id not in cart:
                return False
            cart.items = [item for item in cart.items if item.activity_id != activity_id]
        return True

    def clear(self, session_id: str) -> None:
        with self._lock:
            self._carts.pop(session_id, None)
        logger.debug("Cart %s cleared", session_id)


cart_store = CartStore()


def get_cart_store() -> CartStore:
    """FastAPI dependency, overridden in tests."""
    return cart_store
