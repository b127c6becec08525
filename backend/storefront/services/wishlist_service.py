from typing import List

from sqlalchemy.orm import Session

from storefront.context import RequestContext
from storefront.errors import Conflict, NotFound
from storefront.models.wishlist import WishlistItem
from storefront.repositories.product_repo import ProductRepository
from storefront.services.pricing import format_money
from storefront.utils.transactions import atomic


class WishlistService:
    def __init__(self, db: Session):
        self.db = db
        self.product_repo = ProductRepository(db)

    def _entry(self, user_id: int, product_id: int):
        return (
            self.db.query(WishlistItem)
            .filter(WishlistItem.user_id == user_id, WishlistItem.product_id == product_id)
            .first()
        )

    def list(self, ctx: RequestContext) -> List[dict]:
        if not ctx.is_authenticated:
            return []
        rows = (
            self.db.query(WishlistItem)
            .filter(WishlistItem.user_id == ctx.user_id)
            .order_by(WishlistItem.created_at.desc(), WishlistItem.id.desc())
            .all()
        )
        return [
            {
                "productId": r.product_id,
                "name": r.product.name,
                "slug": r.product.slug,
                "price": format_money(r.product.price),
                "image": r.product.image,
                "stock": r.product.stock,
            }
            for r in rows
        ]

    def add(self, ctx: RequestContext, product_id: int) -> None:
        user = ctx.require_user("Please sign in to add items to wishlist")
        if not self.product_repo.get(product_id):
            raise NotFound("Product not found")
        if self._entry(user.id, product_id):
            raise Conflict("Item already in wishlist")
        with atomic(self.db):
            self.db.add(WishlistItem(user_id=user.id, product_id=product_id))

    def remove(self, ctx: RequestContext, product_id: int) -> None:
        user = ctx.require_user("Please sign in to manage wishlist")
        entry = self._entry(user.id, product_id)
        if not entry:
            raise NotFound("Item not in wishlist")
        with atomic(self.db):
            self.db.delete(entry)

    def toggle(self, ctx: RequestContext, product_id: int) -> bool:
        """Returns whether the product is in the wishlist afterwards."""
        user = ctx.require_user("Please sign in to use wishlist")
        if self._entry(user.id, product_id):
            self.remove(ctx, product_id)
            return False
        self.add(ctx, product_id)
        return True
