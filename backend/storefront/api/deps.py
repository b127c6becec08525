import logging
import uuid
from typing import Optional

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.context import RequestContext
from storefront.db import get_db
from storefront.models.user import User

log = logging.getLogger(__name__)


def _set_cookie(response: Response, name: str, value: str, max_age: int):
    response.set_cookie(name, value, max_age=max_age, httponly=True, samesite="lax", path="/")


def set_checkout_cookie(response: Response, ctx: RequestContext):
    if ctx.checkout_session_id:
        _set_cookie(
            response,
            settings.CHECKOUT_COOKIE_NAME,
            ctx.checkout_session_id,
            settings.CHECKOUT_SESSION_HOURS * 3600,
        )
    else:
        response.delete_cookie(settings.CHECKOUT_COOKIE_NAME, path="/")


def _load_user(db: Session, raw) -> Optional[User]:
    if not raw:
        return None
    try:
        user_id = int(raw)
    except ValueError:
        log.warning("ignoring malformed %s header: %r", settings.AUTH_USER_HEADER, raw)
        return None
    return db.get(User, user_id)


def get_context(request: Request, response: Response, db: Session = Depends(get_db)) -> RequestContext:
    """
    Build the per-request context from the identity header and cookies.
    An anonymous cart session id is issued on first contact.
    """
    cart_id = request.cookies.get(settings.CART_COOKIE_NAME)
    if not cart_id:
        cart_id = uuid.uuid4().hex
        _set_cookie(response, settings.CART_COOKIE_NAME, cart_id, settings.CART_SESSION_DAYS * 86400)
    return RequestContext(
        user=_load_user(db, request.headers.get(settings.AUTH_USER_HEADER)),
        session_cart_id=cart_id,
        checkout_session_id=request.cookies.get(settings.CHECKOUT_COOKIE_NAME),
    )
