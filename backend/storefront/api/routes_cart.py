from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from storefront.api.deps import get_context
from storefront.context import RequestContext
from storefront.db import get_db
from storefront.services.cart_service import CartService, cart_to_dict

router = APIRouter(prefix="/api/cart", tags=["cart"])


class AddItemIn(BaseModel):
    product_id: int
    qty: int = Field(1, gt=0)


class UpdateItemIn(BaseModel):
    qty: int = Field(..., ge=0)


class CouponIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)


@router.get("", summary="Get cart")
def get_cart(ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    return CartService(db).get_cart(ctx)


@router.post("/items", summary="Add item to cart")
def add_item(payload: AddItemIn, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    cart = CartService(db).add_item(ctx, payload.product_id, payload.qty)
    return {"success": True, "message": "Added to cart", "cart": cart_to_dict(cart)}


@router.patch("/items/{product_id}", summary="Change item quantity (0 removes it)")
def update_item(
    product_id: int,
    payload: UpdateItemIn,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    cart = CartService(db).update_item(ctx, product_id, payload.qty)
    return {"success": True, "message": "Cart updated", "cart": cart_to_dict(cart)}


@router.delete("/items/{product_id}", summary="Remove item")
def remove_item(product_id: int, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    cart = CartService(db).remove_item(ctx, product_id)
    return {"success": True, "message": "Cart updated", "cart": cart_to_dict(cart)}


@router.delete("", summary="Clear cart")
def clear_cart(ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    CartService(db).clear(ctx)
    return {"success": True, "message": "Cart cleared"}


@router.post("/coupon", summary="Apply coupon")
def apply_coupon(payload: CouponIn, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    cart = CartService(db).apply_coupon(ctx, payload.code)
    return {"success": True, "message": "Coupon applied successfully", "cart": cart_to_dict(cart)}


@router.delete("/coupon", summary="Remove coupon")
def remove_coupon(ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    cart = CartService(db).remove_coupon(ctx)
    return {"success": True, "message": "Coupon removed", "cart": cart_to_dict(cart)}


@router.post("/merge", summary="Merge the anonymous cart into the signed-in user's cart")
def merge_cart(ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    message = CartService(db).merge_anonymous_cart(ctx)
    return {"success": True, "message": message}
