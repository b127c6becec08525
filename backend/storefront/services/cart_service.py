import logging
from typing import Optional

from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.context import RequestContext
from storefront.errors import NotFound, ValidationFailed
from storefront.models.cart import Cart
from storefront.models.coupon import find_coupon
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.services.pricing import (
    ZERO,
    PriceSummary,
    PricingRules,
    calculate_discount,
    calculate_prices,
    format_money,
    sum_items,
    validate_coupon,
)
from storefront.utils.clock import utcnow
from storefront.utils.transactions import atomic

log = logging.getLogger(__name__)


def clamp_quantity(qty: int, max_qty: Optional[int] = None) -> int:
    max_qty = max_qty or settings.MAX_QUANTITY_PER_ITEM
    return max(1, min(int(qty), max_qty))


def cart_to_dict(cart: Optional[Cart]) -> dict:
    if cart is None:
        return {
            "id": None,
            "items": [],
            "couponCode": None,
            **PriceSummary.empty().as_strings(),
        }
    return {
        "id": cart.id,
        "items": [
            {
                "productId": it.product_id,
                "name": it.name,
                "slug": it.slug,
                "image": it.image,
                "price": it.price,
                "qty": it.quantity,
            }
            for it in cart.items
        ],
        "couponCode": cart.coupon_code,
        "itemsPrice": format_money(cart.items_price),
        "discountPrice": format_money(cart.discount_price),
        "shippingPrice": format_money(cart.shipping_price),
        "taxPrice": format_money(cart.tax_price),
        "totalPrice": format_money(cart.total_price),
    }


class CartService:
    def __init__(self, db: Session, rules: Optional[PricingRules] = None):
        self.db = db
        self.rules = rules
        self.cart_repo = CartRepository(db)
        self.product_repo = ProductRepository(db)

    def find_cart(self, ctx: RequestContext) -> Optional[Cart]:
        if ctx.user_id is not None:
            return self.cart_repo.get_by_user(ctx.user_id)
        if ctx.session_cart_id:
            return self.cart_repo.get_by_session(ctx.session_cart_id)
        return None

    def _get_or_create(self, ctx: RequestContext) -> Cart:
        cart = self.find_cart(ctx)
        if cart:
            return cart
        if ctx.user_id is None and not ctx.session_cart_id:
            raise ValidationFailed("No cart session")
        return self.cart_repo.create(ctx.user_id, ctx.session_cart_id)

    def _require_cart(self, ctx: RequestContext) -> Cart:
        cart = self.find_cart(ctx)
        if not cart:
            raise NotFound("Cart not found")
        return cart

    def recalculate(self, cart: Cart) -> PriceSummary:
        """Recompute every derived price field from the full item list."""
        items_price = sum_items(cart.items)
        discount = ZERO
        if cart.coupon_code:
            coupon = find_coupon(self.db, cart.coupon_code)
            try:
                validate_coupon(coupon, items_price)
                discount = calculate_discount(coupon, items_price)
            except ValidationFailed as e:
                log.info("dropping coupon %s from cart %s: %s", cart.coupon_code, cart.id, e.message)
                cart.coupon_code = None

        if cart.items:
            summary = calculate_prices(items_price, discount, self.rules)
        else:
            summary = PriceSummary.empty()

        cart.items_price = summary.items_price
        cart.discount_price = summary.discount_price
        cart.shipping_price = summary.shipping_price
        cart.tax_price = summary.tax_price
        cart.total_price = summary.total_price
        cart.updated_at = utcnow()
        self.db.flush()
        return summary

    def get_cart(self, ctx: RequestContext) -> dict:
        return cart_to_dict(self.find_cart(ctx))

    def add_item(self, ctx: RequestContext, product_id: int, quantity: int = 1) -> Cart:
        if quantity <= 0:
            raise ValidationFailed("Quantity must be positive")
        product = self.product_repo.get(product_id)
        if not product:
            raise NotFound("Product not found")
        with atomic(self.db):
            cart = self._get_or_create(ctx)
            existing = self.cart_repo.find_item(cart, product_id)
            if existing:
                quantity = existing.quantity + quantity
            self.cart_repo.add_or_update_item(cart, product, clamp_quantity(quantity))
            self.recalculate(cart)
        return cart

    def update_item(self, ctx: RequestContext, product_id: int, quantity: int) -> Cart:
        if quantity < 0:
            raise ValidationFailed("Quantity cannot be negative")
        with atomic(self.db):
            cart = self._require_cart(ctx)
            if quantity == 0:
                self.cart_repo.remove_item(cart, product_id)
            else:
                item = self.cart_repo.find_item(cart, product_id)
                if not item:
                    raise NotFound("Item not in cart")
                item.quantity = clamp_quantity(quantity)
            self.recalculate(cart)
        return cart

    def remove_item(self, ctx: RequestContext, product_id: int) -> Cart:
        return self.update_item(ctx, product_id, 0)

    def clear(self, ctx: RequestContext) -> None:
        with atomic(self.db):
            cart = self.find_cart(ctx)
            if cart:
                self.cart_repo.delete(cart)

    def apply_coupon(self, ctx: RequestContext, code: str) -> Cart:
        with atomic(self.db):
            cart = self._require_cart(ctx)
            coupon = find_coupon(self.db, code)
            validate_coupon(coupon, sum_items(cart.items))
            cart.coupon_code = coupon.code
            self.recalculate(cart)
        return cart

    def remove_coupon(self, ctx: RequestContext) -> Cart:
        with atomic(self.db):
            cart = self._require_cart(ctx)
            cart.coupon_code = None
            self.recalculate(cart)
        return cart

    def merge_anonymous_cart(self, ctx: RequestContext) -> str:
        """Fold the session's anonymous cart into the signed-in user's cart."""
        user = ctx.require_user()
        if not ctx.session_cart_id:
            return "No anonymous cart to merge"
        with atomic(self.db):
            anonymous = self.cart_repo.get_by_session(ctx.session_cart_id)
            if not anonymous:
                return "No anonymous cart to merge"
            user_cart = self.cart_repo.get_by_user(user.id)
            if user_cart:
                cart = self.cart_repo.merge_guest_into_customer(
                    anonymous, user_cart, settings.MAX_QUANTITY_PER_ITEM
                )
            else:
                anonymous.user_id = user.id
                cart = anonymous
            self.recalculate(cart)
        log.info("merged anonymous cart %s into cart %s for user %s", ctx.session_cart_id, cart.id, user.id)
        return "Cart merged successfully"
