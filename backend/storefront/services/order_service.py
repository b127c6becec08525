import logging
import math
import os
from typing import Optional

from filelock import FileLock, Timeout
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.context import RequestContext
from storefront.errors import Conflict, NotFound, ValidationFailed
from storefront.models.coupon import find_coupon
from storefront.models.order import Order, OrderItem, OrderStatus
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.address_schema import ShippingAddress, parse_model
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService
from storefront.services.pricing import (
    RAISE,
    InvalidPrice,
    PricingRules,
    format_money,
    parse_price,
    sum_items,
)
from storefront.utils.transactions import atomic

log = logging.getLogger(__name__)


def order_to_dict(order: Order, with_user: bool = False) -> dict:
    data = {
        "id": order.id,
        "userId": order.user_id,
        "shippingAddress": order.shipping_address,
        "paymentMethod": order.payment_method,
        "itemsPrice": format_money(order.items_price),
        "shippingPrice": format_money(order.shipping_price),
        "taxPrice": format_money(order.tax_price),
        "discountPrice": format_money(order.discount_price),
        "totalPrice": format_money(order.total_price),
        "couponCode": order.coupon_code,
        "status": order.status.value,
        "isPaid": order.is_paid,
        "paidAt": order.paid_at.isoformat() if order.paid_at else None,
        "isDelivered": order.is_delivered,
        "deliveredAt": order.delivered_at.isoformat() if order.delivered_at else None,
        "createdAt": order.created_at.isoformat(),
        "items": [
            {
                "productId": it.product_id,
                "name": it.name,
                "slug": it.slug,
                "image": it.image,
                "price": format_money(it.price),
                "qty": it.quantity,
            }
            for it in order.items
        ],
    }
    if with_user:
        data["user"] = (
            {"id": order.user.id, "name": order.user.name, "email": order.user.email}
            if order.user
            else None
        )
        data["totalItems"] = sum(it.quantity for it in order.items)
    return data


def paginate(rows, total: int, page: int, size: int, key: str) -> dict:
    total_pages = math.ceil(total / size) if size else 0
    return {
        key: rows,
        "currentPage": page,
        "totalPages": total_pages,
        "totalOrders": total,
        "hasMore": page < total_pages,
    }


class OrderService:
    def __init__(self, db: Session, rules: Optional[PricingRules] = None):
        self.db = db
        self.order_repo = OrderRepository(db)
        self.product_repo = ProductRepository(db)
        self.cart_repo = CartRepository(db)
        self.carts = CartService(db, rules=rules)
        self.checkout = CheckoutService(db)

    def _lock_for(self, user_id: int) -> FileLock:
        locks_dir = os.path.join(settings.LOCKS_DIR, "storefront_locks")
        os.makedirs(locks_dir, exist_ok=True)
        return FileLock(os.path.join(locks_dir, f"place_order_{user_id}.lock"))

    def place_order(
        self,
        ctx: RequestContext,
        shipping_address=None,
        payment_method: Optional[str] = None,
    ) -> dict:
        """
        Turn the caller's cart into an order.

        Order, order lines, stock decrements, coupon usage and the removal of
        the cart and checkout session commit together or not at all. A
        per-user file lock serialises concurrent submissions; the second
        one finds the cart already emptied.
        """
        user = ctx.require_user("Please sign in to place an order")
        try:
            with self._lock_for(user.id).acquire(timeout=10):
                order = self._place_order(ctx, shipping_address, payment_method)
        except Timeout:
            raise Conflict("Another checkout is in progress, try again later")
        log.info("placed order %s for user %s total=%s", order.id, user.id, order.total_price)
        return {"orderId": order.id, "message": "Order placed successfully"}

    def _resolve_address(self, ctx: RequestContext, shipping_address) -> ShippingAddress:
        if shipping_address is not None:
            return parse_model(ShippingAddress, shipping_address)
        address = self.checkout.get_shipping_address(ctx)
        if address is None:
            raise ValidationFailed("Shipping address is required")
        return address

    def _resolve_payment_method(self, ctx: RequestContext, payment_method: Optional[str]) -> str:
        method = payment_method or self.checkout.get_payment_method(ctx)
        if not method:
            raise ValidationFailed("Payment method is required")
        if method not in settings.ENABLED_PAYMENT_METHODS:
            raise ValidationFailed("Payment method is not available")
        return method

    def _place_order(self, ctx: RequestContext, shipping_address, payment_method) -> Order:
        self.db.expire_all()
        cart = self.carts.find_cart(ctx)
        if not cart or not cart.items:
            raise ValidationFailed("Your cart is empty")
        try:
            sum_items(cart.items, on_invalid=RAISE)
        except InvalidPrice:
            raise ValidationFailed("Your cart contains an item with an invalid price")
        address = self._resolve_address(ctx, shipping_address)
        method = self._resolve_payment_method(ctx, payment_method)

        with atomic(self.db):
            summary = self.carts.recalculate(cart)
            order = Order(
                user_id=ctx.user_id,
                shipping_address=address.model_dump(),
                payment_method=method,
                items_price=summary.items_price,
                shipping_price=summary.shipping_price,
                tax_price=summary.tax_price,
                discount_price=summary.discount_price,
                total_price=summary.total_price,
                coupon_code=cart.coupon_code,
                status=OrderStatus.PENDING,
                is_paid=False,
                is_delivered=False,
            )
            for it in cart.items:
                order.items.append(
                    OrderItem(
                        product_id=it.product_id,
                        name=it.name,
                        slug=it.slug,
                        image=it.image,
                        price=parse_price(it.price),
                        quantity=it.quantity,
                    )
                )
            self.db.add(order)
            self.db.flush()

            # lock rows in id order so concurrent checkouts cannot deadlock
            for it in sorted(cart.items, key=lambda i: i.product_id):
                product = self.product_repo.get_for_update(it.product_id)
                if product is None:
                    raise Conflict(f"{it.name} is no longer available")
                if product.stock < it.quantity:
                    raise Conflict(f"Not enough stock for {it.name}. Available={product.stock}")
                product.stock -= it.quantity

            if order.coupon_code:
                coupon = find_coupon(self.db, order.coupon_code)
                if coupon is not None:
                    coupon.used_count = (coupon.used_count or 0) + 1

            self.cart_repo.delete(cart)
            self.checkout.clear(ctx)
        return order

    def list_orders(self, ctx: RequestContext, page: int = 1) -> dict:
        user = ctx.require_user()
        page = max(1, page)
        size = settings.ORDERS_PER_PAGE
        orders, total = self.order_repo.list_for_user(user.id, page, size)
        return paginate([order_to_dict(o) for o in orders], total, page, size, "orders")

    def get_order(self, ctx: RequestContext, order_id: int) -> dict:
        user = ctx.require_user()
        order = self.order_repo.get_for_user(order_id, user.id)
        if not order:
            raise NotFound("Order not found")
        return order_to_dict(order)
