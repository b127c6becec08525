from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storefront.api.deps import get_context, set_checkout_cookie
from storefront.context import RequestContext
from storefront.db import get_db
from storefront.schemas.address_schema import ShippingAddress
from storefront.services.checkout_service import CheckoutService

router = APIRouter(prefix="/api/checkout", tags=["checkout"])


class PaymentMethodIn(BaseModel):
    payment_method: str


@router.get("", summary="Current checkout selections")
def get_checkout(ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    svc = CheckoutService(db)
    address = svc.get_shipping_address(ctx)
    return {
        "shippingAddress": address.model_dump() if address else None,
        "paymentMethod": svc.get_payment_method(ctx),
    }


@router.put("/shipping", summary="Save shipping address")
def save_shipping(
    payload: ShippingAddress,
    response: Response,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    CheckoutService(db).save_shipping_address(ctx, payload)
    set_checkout_cookie(response, ctx)
    return {"success": True, "message": "Shipping address saved"}


@router.put("/payment", summary="Save payment method")
def save_payment(
    payload: PaymentMethodIn,
    response: Response,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    CheckoutService(db).save_payment_method(ctx, payload.payment_method)
    set_checkout_cookie(response, ctx)
    return {"success": True, "message": "Payment method saved"}


@router.delete("", summary="Clear checkout session")
def clear_checkout(response: Response, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    svc = CheckoutService(db)
    svc.clear(ctx)
    db.commit()
    set_checkout_cookie(response, ctx)
    return {"success": True}
