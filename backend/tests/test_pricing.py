from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from storefront.errors import ValidationFailed
from storefront.services.pricing import (
    RAISE,
    InvalidPrice,
    PricingRules,
    calculate_discount,
    calculate_prices,
    format_money,
    parse_price,
    sum_items,
    validate_coupon,
)

RULES = PricingRules(
    free_shipping_threshold=Decimal("50.00"),
    shipping_price=Decimal("10.00"),
    tax_rate=Decimal("0.10"),
)


def line(price, quantity, product_id=1):
    return SimpleNamespace(price=price, quantity=quantity, product_id=product_id)


def coupon(kind="percentage", value="10", max_discount=None, min_purchase="0", **extra):
    fields = dict(
        code="TEST",
        kind=kind,
        value=Decimal(value),
        max_discount=Decimal(max_discount) if max_discount is not None else None,
        min_purchase=Decimal(min_purchase),
        valid_from=None,
        valid_until=None,
        usage_limit=None,
        used_count=0,
    )
    fields.update(extra)
    return SimpleNamespace(**fields)


def test_below_threshold_pays_shipping():
    s = calculate_prices(Decimal("40.00"), rules=RULES)
    assert s.shipping_price == Decimal("10.00")
    assert s.tax_price == Decimal("4.00")
    assert s.total_price == Decimal("54.00")


def test_above_threshold_ships_free():
    s = calculate_prices(Decimal("60.00"), rules=RULES)
    assert s.shipping_price == Decimal("0.00")
    assert s.tax_price == Decimal("6.00")
    assert s.total_price == Decimal("66.00")


def test_threshold_itself_ships_free():
    s = calculate_prices(Decimal("50.00"), rules=RULES)
    assert s.shipping_price == Decimal("0.00")
    assert s.total_price == Decimal("55.00")

    s = calculate_prices(Decimal("49.99"), rules=RULES)
    assert s.shipping_price == Decimal("10.00")
    assert s.tax_price == Decimal("5.00")
    assert s.total_price == Decimal("64.99")


def test_tax_rounds_half_up():
    s = calculate_prices(Decimal("0.05"), rules=RULES)
    assert s.tax_price == Decimal("0.01")
    s = calculate_prices(Decimal("12.25"), rules=RULES)
    assert s.tax_price == Decimal("1.23")


def test_discount_applies_before_shipping_and_tax():
    # 60 - 15 = 45 falls under the threshold again
    s = calculate_prices(Decimal("60.00"), Decimal("15.00"), rules=RULES)
    assert s.discount_price == Decimal("15.00")
    assert s.shipping_price == Decimal("10.00")
    assert s.tax_price == Decimal("4.50")
    assert s.total_price == Decimal("59.50")


def test_discount_never_exceeds_items():
    s = calculate_prices(Decimal("20.00"), Decimal("30.00"), rules=RULES)
    assert s.discount_price == Decimal("20.00")
    assert s.tax_price == Decimal("0.00")
    assert s.total_price == Decimal("10.00")


@pytest.mark.parametrize("items, discount", [
    ("0.01", "0"),
    ("19.99", "2.00"),
    ("33.33", "3.33"),
    ("49.995", "0"),
    ("123.45", "24.69"),
    ("999.99", "50"),
])
def test_components_add_up_to_total(items, discount):
    s = calculate_prices(Decimal(items), Decimal(discount), rules=RULES)
    assert s.items_price - s.discount_price + s.shipping_price + s.tax_price == s.total_price
    for value in (s.items_price, s.discount_price, s.shipping_price, s.tax_price, s.total_price):
        assert value == value.quantize(Decimal("0.01"))


def test_default_rules_come_from_settings():
    s = calculate_prices(Decimal("40.00"))
    assert s.total_price == Decimal("54.00")


def test_as_strings_uses_two_decimals():
    s = calculate_prices(Decimal("60"), rules=RULES)
    assert s.as_strings() == {
        "itemsPrice": "60.00",
        "discountPrice": "0.00",
        "shippingPrice": "0.00",
        "taxPrice": "6.00",
        "totalPrice": "66.00",
    }
    assert format_money(Decimal("1.005")) == "1.01"
    assert format_money(None) == "0.00"


def test_parse_price_accepts_decimal_strings():
    assert parse_price("12.50") == Decimal("12.50")
    assert parse_price(" 3 ") == Decimal("3")
    assert parse_price(Decimal("0")) == Decimal("0")


@pytest.mark.parametrize("raw", [None, "", "abc", "NaN", "Infinity", "-1.00", True])
def test_parse_price_rejects_garbage(raw):
    with pytest.raises(InvalidPrice):
        parse_price(raw)


def test_sum_items_skips_invalid_lines(caplog):
    items = [line("10.00", 2), line("abc", 5, product_id=7), line("0.99", 1)]
    assert sum_items(items) == Decimal("20.99")
    assert "product_id=7" in caplog.text


def test_sum_items_can_reject_invalid_lines():
    with pytest.raises(InvalidPrice):
        sum_items([line("10.00", 1), line("NaN", 1)], on_invalid=RAISE)


def test_sum_items_empty():
    assert sum_items([]) == Decimal("0.00")


def test_percentage_discount():
    assert calculate_discount(coupon(value="10"), Decimal("45.00")) == Decimal("4.50")


def test_percentage_discount_is_capped():
    c = coupon(value="20", max_discount="50")
    assert calculate_discount(c, Decimal("400.00")) == Decimal("50.00")
    assert calculate_discount(c, Decimal("100.00")) == Decimal("20.00")


def test_fixed_discount_never_exceeds_subtotal():
    c = coupon(kind="fixed", value="5")
    assert calculate_discount(c, Decimal("30.00")) == Decimal("5.00")
    assert calculate_discount(c, Decimal("3.00")) == Decimal("3.00")
    assert calculate_discount(c, Decimal("0")) == Decimal("0.00")


def test_fixed_discount_is_capped():
    c = coupon(kind="fixed", value="20", max_discount="5")
    assert calculate_discount(c, Decimal("100.00")) == Decimal("5.00")
    assert calculate_discount(c, Decimal("3.00")) == Decimal("3.00")


def test_validate_coupon_unknown_code():
    with pytest.raises(ValidationFailed) as exc:
        validate_coupon(None, Decimal("10"))
    assert exc.value.message == "Invalid coupon code"


def test_validate_coupon_window():
    now = datetime(2024, 6, 1)
    expired = coupon(valid_until=now - timedelta(days=1))
    future = coupon(valid_from=now + timedelta(days=1))
    for c in (expired, future):
        with pytest.raises(ValidationFailed) as exc:
            validate_coupon(c, Decimal("10"), now=now)
        assert exc.value.message == "Coupon has expired"
    validate_coupon(coupon(valid_until=now + timedelta(days=1)), Decimal("10"), now=now)


def test_validate_coupon_usage_limit():
    with pytest.raises(ValidationFailed) as exc:
        validate_coupon(coupon(usage_limit=3, used_count=3), Decimal("10"))
    assert exc.value.message == "Coupon usage limit reached"


def test_validate_coupon_minimum_purchase():
    c = coupon(min_purchase="100")
    with pytest.raises(ValidationFailed) as exc:
        validate_coupon(c, Decimal("99.99"))
    assert exc.value.message == "Minimum purchase of $100.00 required"
    validate_coupon(c, Decimal("100.00"))
