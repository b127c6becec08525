from dataclasses import dataclass
from typing import Optional

from storefront.errors import AuthenticationRequired, PermissionDenied
from storefront.models.user import User


@dataclass
class RequestContext:
    """Who is calling and which anonymous cart/checkout session they carry."""

    user: Optional[User] = None
    session_cart_id: Optional[str] = None
    checkout_session_id: Optional[str] = None

    @property
    def user_id(self) -> Optional[int]:
        return self.user.id if self.user else None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def require_user(self, message: str = "Not authenticated") -> User:
        if self.user is None:
            raise AuthenticationRequired(message)
        return self.user

    def require_admin(self) -> User:
        user = self.require_user("Unauthorized")
        if not user.is_admin:
            raise PermissionDenied("Unauthorized")
        return user
