from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_context
from storefront.context import RequestContext
from storefront.db import get_db
from storefront.services.wishlist_service import WishlistService

router = APIRouter(prefix="/api/wishlist", tags=["wishlist"])


@router.get("")
def get_wishlist(ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    return {"success": True, "data": WishlistService(db).list(ctx)}


@router.post("/{product_id}")
def add_to_wishlist(product_id: int, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    WishlistService(db).add(ctx, product_id)
    return {"success": True, "message": "Added to wishlist"}


@router.delete("/{product_id}")
def remove_from_wishlist(product_id: int, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    WishlistService(db).remove(ctx, product_id)
    return {"success": True, "message": "Removed from wishlist"}


@router.post("/{product_id}/toggle")
def toggle_wishlist(product_id: int, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    added = WishlistService(db).toggle(ctx, product_id)
    return {
        "success": True,
        "message": "Added to wishlist" if added else "Removed from wishlist",
        "isInWishlist": added,
    }
