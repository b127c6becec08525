import logging
import uuid
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.context import RequestContext
from storefront.errors import ValidationFailed
from storefront.models.address import Address
from storefront.models.checkout_session import CheckoutSession
from storefront.schemas.address_schema import ShippingAddress, parse_model
from storefront.utils.clock import utcnow
from storefront.utils.transactions import atomic

log = logging.getLogger(__name__)


class CheckoutService:
    """Shipping address and payment method picked between cart and order placement."""

    def __init__(self, db: Session):
        self.db = db

    def get_session(self, ctx: RequestContext) -> Optional[CheckoutSession]:
        if not ctx.checkout_session_id:
            return None
        cs = self.db.get(CheckoutSession, ctx.checkout_session_id)
        if cs is None or cs.expires_at <= utcnow():
            return None
        if cs.user_id is not None and cs.user_id != ctx.user_id:
            return None
        return cs

    def _get_or_create_session(self, ctx: RequestContext) -> CheckoutSession:
        cs = self.get_session(ctx)
        if cs is None:
            if not ctx.checkout_session_id or self.db.get(CheckoutSession, ctx.checkout_session_id):
                ctx.checkout_session_id = uuid.uuid4().hex
            cs = CheckoutSession(id=ctx.checkout_session_id, user_id=ctx.user_id)
            self.db.add(cs)
        cs.expires_at = utcnow() + timedelta(hours=settings.CHECKOUT_SESSION_HOURS)
        if cs.user_id is None:
            cs.user_id = ctx.user_id
        return cs

    def save_shipping_address(self, ctx: RequestContext, address) -> ShippingAddress:
        addr = parse_model(ShippingAddress, address)
        with atomic(self.db):
            cs = self._get_or_create_session(ctx)
            cs.shipping_address = addr.model_dump()
            user = ctx.user
            if user is not None and not user.addresses:
                # first address a signed-in user enters becomes their default
                user.addresses.append(Address(is_default=True, **addr.model_dump()))
        return addr

    def get_shipping_address(self, ctx: RequestContext) -> Optional[ShippingAddress]:
        cs = self.get_session(ctx)
        if cs and cs.shipping_address:
            try:
                return parse_model(ShippingAddress, cs.shipping_address)
            except ValidationFailed:
                log.warning("ignoring invalid shipping address in checkout session %s", cs.id)
        if ctx.user is not None:
            default = next((a for a in ctx.user.addresses if a.is_default), None)
            if default:
                return parse_model(ShippingAddress, default.as_shipping_address())
        return None

    def save_payment_method(self, ctx: RequestContext, method: str) -> str:
        if method not in settings.PAYMENT_METHODS:
            raise ValidationFailed("Invalid payment method")
        if method not in settings.ENABLED_PAYMENT_METHODS:
            raise ValidationFailed("Payment method is not available yet")
        with atomic(self.db):
            cs = self._get_or_create_session(ctx)
            cs.payment_method = method
        return method

    def get_payment_method(self, ctx: RequestContext) -> Optional[str]:
        cs = self.get_session(ctx)
        return cs.payment_method if cs else None

    def clear(self, ctx: RequestContext) -> None:
        """Delete the session row; the caller owns the transaction."""
        if ctx.checkout_session_id:
            cs = self.db.get(CheckoutSession, ctx.checkout_session_id)
            if cs is not None:
                self.db.delete(cs)
                self.db.flush()
        ctx.checkout_session_id = None

    def delete_expired(self) -> int:
        expired = self.db.query(CheckoutSession).filter(CheckoutSession.expires_at <= utcnow()).all()
        for cs in expired:
            self.db.delete(cs)
        self.db.flush()
        return len(expired)
