from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storefront.api.deps import get_context, set_checkout_cookie
from storefront.context import RequestContext
from storefront.db import get_db
from storefront.schemas.address_schema import ShippingAddress
from storefront.services.order_service import OrderService

router = APIRouter(tags=["orders"])


class PlaceOrderIn(BaseModel):
    # both fall back to the checkout session when omitted
    shipping_address: Optional[ShippingAddress] = None
    payment_method: Optional[str] = None


@router.post("", summary="Place order from the current cart")
def place_order(
    response: Response,
    payload: Optional[PlaceOrderIn] = None,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    payload = payload or PlaceOrderIn()
    resp = OrderService(db).place_order(ctx, payload.shipping_address, payload.payment_method)
    set_checkout_cookie(response, ctx)
    return {"success": True, **resp}


@router.get("", summary="My orders")
def list_orders(
    page: int = Query(1, ge=1),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    return OrderService(db).list_orders(ctx, page=page)


@router.get("/{order_id}", summary="One of my orders")
def get_order(order_id: int, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    return OrderService(db).get_order(ctx, order_id)
