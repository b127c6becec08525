"""
Cart pricing: items subtotal, coupon discounts, shipping, tax and total.

All amounts are Decimal values quantized to cents with ROUND_HALF_UP.
Each component is rounded before the total is summed, so
``items - discount + shipping + tax == total`` holds exactly.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional

from storefront.config import settings
from storefront.errors import ValidationFailed
from storefront.utils.clock import utcnow

log = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

SKIP = "skip"
RAISE = "raise"


class InvalidPrice(ValueError):
    pass


def money(value) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value) -> str:
    return str(money(value if value is not None else ZERO))


def parse_price(raw) -> Decimal:
    """Parse a stored price snapshot; raises InvalidPrice for anything not a finite, non-negative number."""
    if raw is None or isinstance(raw, bool):
        raise InvalidPrice(f"invalid price: {raw!r}")
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise InvalidPrice(f"invalid price: {raw!r}")
    if not value.is_finite() or value < 0:
        raise InvalidPrice(f"invalid price: {raw!r}")
    return value


@dataclass(frozen=True)
class PricingRules:
    free_shipping_threshold: Decimal
    shipping_price: Decimal
    tax_rate: Decimal

    @classmethod
    def from_settings(cls) -> "PricingRules":
        return cls(
            free_shipping_threshold=settings.FREE_SHIPPING_THRESHOLD,
            shipping_price=settings.SHIPPING_PRICE,
            tax_rate=settings.TAX_RATE,
        )


@dataclass(frozen=True)
class PriceSummary:
    items_price: Decimal
    discount_price: Decimal
    shipping_price: Decimal
    tax_price: Decimal
    total_price: Decimal

    @classmethod
    def empty(cls) -> "PriceSummary":
        return cls(ZERO, ZERO, ZERO, ZERO, ZERO)

    def as_strings(self) -> dict:
        return {
            "itemsPrice": format_money(self.items_price),
            "discountPrice": format_money(self.discount_price),
            "shippingPrice": format_money(self.shipping_price),
            "taxPrice": format_money(self.tax_price),
            "totalPrice": format_money(self.total_price),
        }


def sum_items(items: Iterable, on_invalid: str = SKIP) -> Decimal:
    """
    Subtotal of ``price * quantity`` over items exposing ``price`` and ``quantity``.

    on_invalid:
      - "skip": lines whose price does not parse are logged and left out
      - "raise": the first such line raises InvalidPrice
    """
    total = Decimal("0")
    for item in items:
        try:
            price = parse_price(item.price)
        except InvalidPrice:
            if on_invalid == RAISE:
                raise
            log.warning(
                "excluding cart line product_id=%s from subtotal: price=%r",
                getattr(item, "product_id", None),
                item.price,
            )
            continue
        total += price * int(item.quantity)
    return money(total)


def calculate_prices(
    items_price, discount=ZERO, rules: Optional[PricingRules] = None
) -> PriceSummary:
    rules = rules or PricingRules.from_settings()
    items_price = money(items_price)
    discount = max(ZERO, min(money(discount), items_price))
    subtotal = items_price - discount

    if subtotal >= rules.free_shipping_threshold:
        shipping = ZERO
    else:
        shipping = money(rules.shipping_price)
    tax = money(subtotal * rules.tax_rate)

    return PriceSummary(
        items_price=items_price,
        discount_price=discount,
        shipping_price=shipping,
        tax_price=tax,
        total_price=subtotal + shipping + tax,
    )


def calculate_discount(coupon, subtotal) -> Decimal:
    """Discount for a coupon (``kind``, ``value``, ``max_discount``), never above the subtotal or the cap."""
    subtotal = money(subtotal)
    if subtotal <= 0:
        return ZERO
    value = money(coupon.value)
    if coupon.kind == "percentage":
        discount = money(subtotal * value / HUNDRED)
    elif coupon.kind == "fixed":
        discount = value
    else:
        raise ValueError(f"unknown coupon kind: {coupon.kind!r}")
    if coupon.max_discount is not None:
        discount = min(discount, money(coupon.max_discount))
    return max(ZERO, min(discount, subtotal))


def validate_coupon(coupon, subtotal, now: Optional[datetime] = None) -> None:
    if coupon is None:
        raise ValidationFailed("Invalid coupon code")
    now = now or utcnow()
    if (coupon.valid_from and now < coupon.valid_from) or (
        coupon.valid_until and now > coupon.valid_until
    ):
        raise ValidationFailed("Coupon has expired")
    if coupon.usage_limit is not None and (coupon.used_count or 0) >= coupon.usage_limit:
        raise ValidationFailed("Coupon usage limit reached")
    minimum = money(coupon.min_purchase or 0)
    if money(subtotal) < minimum:
        raise ValidationFailed(f"Minimum purchase of ${minimum} required")
