from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String

from storefront.db import Base
from storefront.utils.clock import utcnow


class CheckoutSession(Base):
    """Shipping address and payment method chosen during checkout, keyed by cookie."""

    __tablename__ = "checkout_sessions"
    id = Column(String(64), primary_key=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True
    )
    shipping_address = Column(JSON, nullable=True)
    payment_method = Column(String(32), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
