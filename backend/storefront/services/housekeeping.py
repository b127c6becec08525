import logging
from datetime import timedelta

from storefront.config import settings
from storefront.db import SessionLocal
from storefront.repositories.cart_repo import CartRepository
from storefront.services.checkout_service import CheckoutService
from storefront.utils.clock import utcnow
from storefront.utils.transactions import atomic

log = logging.getLogger(__name__)


def purge_expired_sessions(session_factory=SessionLocal) -> dict:
    """Delete anonymous carts past the cart cookie lifetime and expired checkout sessions."""
    db = session_factory()
    try:
        with atomic(db):
            cutoff = utcnow() - timedelta(days=settings.CART_SESSION_DAYS)
            carts = CartRepository(db).delete_anonymous_older_than(cutoff)
            sessions = CheckoutService(db).delete_expired()
        if carts or sessions:
            log.info("purged %d anonymous carts and %d checkout sessions", carts, sessions)
        return {"carts": carts, "checkout_sessions": sessions}
    finally:
        db.close()
