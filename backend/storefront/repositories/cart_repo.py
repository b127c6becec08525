from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from storefront.models.cart import Cart
from storefront.models.cart_item import CartItem
from storefront.models.product import Product
from storefront.services.pricing import format_money


class CartRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_user(self, user_id: int) -> Optional[Cart]:
        return self.db.query(Cart).filter(Cart.user_id == user_id).first()

    def get_by_session(self, session_cart_id: str) -> Optional[Cart]:
        return (
            self.db.query(Cart)
            .filter(Cart.session_cart_id == session_cart_id, Cart.user_id.is_(None))
            .first()
        )

    def create(self, user_id: Optional[int], session_cart_id: Optional[str]) -> Cart:
        c = Cart(user_id=user_id, session_cart_id=session_cart_id)
        self.db.add(c)
        self.db.flush()
        return c

    def find_item(self, cart: Cart, product_id: int) -> Optional[CartItem]:
        return next((it for it in cart.items if it.product_id == product_id), None)

    def add_or_update_item(self, cart: Cart, product: Product, quantity: int) -> CartItem:
        """Set the line for ``product`` to ``quantity``; the snapshot is taken when the line is created."""
        item = self.find_item(cart, product.id)
        if item is None:
            item = CartItem(
                product_id=product.id,
                name=product.name,
                slug=product.slug,
                image=product.image,
                price=format_money(product.price),
            )
            cart.items.append(item)
        item.quantity = quantity
        self.db.flush()
        return item

    def remove_item(self, cart: Cart, product_id: int) -> bool:
        item = self.find_item(cart, product_id)
        if item is None:
            return False
        cart.items.remove(item)
        self.db.flush()
        return True

    def merge_guest_into_customer(self, guest_cart: Cart, customer_cart: Cart, max_qty: int) -> Cart:
        # shared products sum their quantities, the rest move over
        for git in list(guest_cart.items):
            found = self.find_item(customer_cart, git.product_id)
            if found:
                found.quantity = min(found.quantity + git.quantity, max_qty)
            else:
                customer_cart.items.append(
                    CartItem(
                        product_id=git.product_id,
                        name=git.name,
                        slug=git.slug,
                        image=git.image,
                        price=git.price,
                        quantity=min(git.quantity, max_qty),
                    )
                )
        if not customer_cart.coupon_code and guest_cart.coupon_code:
            customer_cart.coupon_code = guest_cart.coupon_code
        self.db.delete(guest_cart)
        self.db.flush()
        return customer_cart

    def delete(self, cart: Cart):
        self.db.delete(cart)
        self.db.flush()

    def delete_anonymous_older_than(self, cutoff: datetime) -> int:
        stale = (
            self.db.query(Cart)
            .filter(Cart.user_id.is_(None), Cart.updated_at < cutoff)
            .all()
        )
        for c in stale:
            self.db.delete(c)
        self.db.flush()
        return len(stale)
