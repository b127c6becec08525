from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from conftest import auth

from storefront.context import RequestContext
from storefront.errors import NotFound, ValidationFailed
from storefront.main import app
from storefront.models.cart import Cart
from storefront.services.cart_service import CartService, clamp_quantity


def quantities(cart_body):
    return {it["productId"]: it["qty"] for it in cart_body["items"]}


def test_get_cart_without_cart_returns_empty_shape(client):
    res = client.get("/api/cart")
    assert res.status_code == 200
    assert res.json() == {
        "id": None,
        "items": [],
        "couponCode": None,
        "itemsPrice": "0.00",
        "discountPrice": "0.00",
        "shippingPrice": "0.00",
        "taxPrice": "0.00",
        "totalPrice": "0.00",
    }
    assert "sessionCartId" in res.cookies


def test_add_item_to_cart(client, make_product):
    p = make_product("green-tea", price="10.00", image="/img/tea.png")
    res = client.post("/api/cart/items", json={"product_id": p.id, "qty": 2})
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    cart = body["cart"]
    assert cart["items"] == [
        {
            "productId": p.id,
            "name": "Green Tea",
            "slug": "green-tea",
            "image": "/img/tea.png",
            "price": "10.00",
            "qty": 2,
        }
    ]
    assert cart["itemsPrice"] == "20.00"
    assert cart["shippingPrice"] == "10.00"
    assert cart["taxPrice"] == "2.00"
    assert cart["totalPrice"] == "32.00"


def test_adding_same_product_sums_quantities(client, make_product):
    p = make_product("coffee", price="10.00")
    client.post("/api/cart/items", json={"product_id": p.id, "qty": 2})
    res = client.post("/api/cart/items", json={"product_id": p.id, "qty": 3})
    cart = res.json()["cart"]
    assert quantities(cart) == {p.id: 5}
    # 50.00 reaches the free shipping threshold
    assert cart["shippingPrice"] == "0.00"
    assert cart["totalPrice"] == "55.00"


def test_adding_again_keeps_the_price_snapshot(client, make_product, db):
    p = make_product("coffee", price="10.00")
    client.post("/api/cart/items", json={"product_id": p.id, "qty": 1})

    p.price = Decimal("20.00")
    p.name = "Dark Coffee"
    db.commit()

    cart = client.post("/api/cart/items", json={"product_id": p.id, "qty": 1}).json()["cart"]
    line = cart["items"][0]
    assert line["qty"] == 2
    assert line["price"] == "10.00"
    assert line["name"] == "Coffee"
    assert cart["itemsPrice"] == "20.00"


def test_quantity_is_clamped_to_maximum(client, make_product):
    p = make_product("rice", price="1.00")
    client.post("/api/cart/items", json={"product_id": p.id, "qty": 98})
    res = client.post("/api/cart/items", json={"product_id": p.id, "qty": 5})
    assert quantities(res.json()["cart"]) == {p.id: 99}

    res = client.patch(f"/api/cart/items/{p.id}", json={"qty": 500})
    assert quantities(res.json()["cart"]) == {p.id: 99}


def test_add_unknown_product_is_not_found(client):
    res = client.post("/api/cart/items", json={"product_id": 12345, "qty": 1})
    assert res.status_code == 404
    assert res.json() == {"success": False, "message": "Product not found"}


def test_add_zero_quantity_is_rejected(client, make_product):
    p = make_product("salt")
    res = client.post("/api/cart/items", json={"product_id": p.id, "qty": 0})
    assert res.status_code == 422


def test_update_to_zero_removes_line(client, make_product):
    a = make_product("apples", price="3.00")
    b = make_product("bread", price="4.00")
    client.post("/api/cart/items", json={"product_id": a.id, "qty": 1})
    client.post("/api/cart/items", json={"product_id": b.id, "qty": 1})

    res = client.patch(f"/api/cart/items/{a.id}", json={"qty": 0})
    assert res.status_code == 200
    cart = res.json()["cart"]
    assert quantities(cart) == {b.id: 1}
    assert cart["itemsPrice"] == "4.00"

    res = client.delete(f"/api/cart/items/{b.id}")
    cart = res.json()["cart"]
    assert cart["items"] == []
    assert cart["totalPrice"] == "0.00"
    assert cart["shippingPrice"] == "0.00"


def test_update_without_cart_is_not_found(client):
    res = client.patch("/api/cart/items/1", json={"qty": 2})
    assert res.status_code == 404
    assert res.json()["message"] == "Cart not found"


def test_update_missing_line_is_not_found(client, make_product):
    a = make_product("apples")
    client.post("/api/cart/items", json={"product_id": a.id, "qty": 1})
    res = client.patch(f"/api/cart/items/{a.id + 100}", json={"qty": 2})
    assert res.status_code == 404
    assert res.json()["message"] == "Item not in cart"


def test_clear_cart(client, make_product):
    p = make_product("honey")
    client.post("/api/cart/items", json={"product_id": p.id, "qty": 1})
    res = client.delete("/api/cart")
    assert res.json() == {"success": True, "message": "Cart cleared"}
    assert client.get("/api/cart").json()["id"] is None


def test_signed_in_user_gets_own_cart(client, make_product, customer):
    p = make_product("oats")
    client.post("/api/cart/items", json={"product_id": p.id, "qty": 2}, headers=auth(customer))
    # the anonymous view of the same browser is still empty
    assert client.get("/api/cart").json()["items"] == []
    assert quantities(client.get("/api/cart", headers=auth(customer)).json()) == {p.id: 2}


def test_apply_coupon(client, make_product):
    p = make_product("jam", price="15.00")
    client.post("/api/cart/items", json={"product_id": p.id, "qty": 3})
    res = client.post("/api/cart/coupon", json={"code": "welcome10"})
    assert res.status_code == 200
    cart = res.json()["cart"]
    assert cart["couponCode"] == "WELCOME10"
    assert cart["itemsPrice"] == "45.00"
    assert cart["discountPrice"] == "4.50"
    assert cart["shippingPrice"] == "10.00"
    assert cart["taxPrice"] == "4.05"
    assert cart["totalPrice"] == "54.55"

    res = client.delete("/api/cart/coupon")
    cart = res.json()["cart"]
    assert cart["couponCode"] is None
    assert cart["discountPrice"] == "0.00"
    assert cart["totalPrice"] == "59.50"


def test_unknown_coupon_is_rejected(client, make_product):
    p = make_product("jam")
    client.post("/api/cart/items", json={"product_id": p.id, "qty": 1})
    res = client.post("/api/cart/coupon", json={"code": "NOPE"})
    assert res.status_code == 400
    assert res.json() == {"success": False, "message": "Invalid coupon code"}


def test_coupon_below_minimum_is_rejected(client, make_product):
    p = make_product("jam", price="20.00")
    client.post("/api/cart/items", json={"product_id": p.id, "qty": 1})
    res = client.post("/api/cart/coupon", json={"code": "SAVE20"})
    assert res.status_code == 400
    assert res.json()["message"] == "Minimum purchase of $100.00 required"


def test_coupon_dropped_when_cart_no_longer_qualifies(client, make_product):
    p = make_product("cheese", price="60.00")
    client.post("/api/cart/items", json={"product_id": p.id, "qty": 2})
    cart = client.post("/api/cart/coupon", json={"code": "SAVE20"}).json()["cart"]
    assert cart["discountPrice"] == "24.00"

    cart = client.patch(f"/api/cart/items/{p.id}", json={"qty": 1}).json()["cart"]
    assert cart["couponCode"] is None
    assert cart["discountPrice"] == "0.00"
    assert cart["totalPrice"] == "66.00"


def test_merge_sums_shared_products(make_product, customer, client, db):
    a = make_product("apples", price="2.00")
    b = make_product("bread", price="3.00")

    other_device = TestClient(app)
    other_device.post("/api/cart/items", json={"product_id": a.id, "qty": 1}, headers=auth(customer))
    other_device.post("/api/cart/items", json={"product_id": b.id, "qty": 1}, headers=auth(customer))

    client.post("/api/cart/items", json={"product_id": a.id, "qty": 2})
    session_cart_id = client.cookies.get("sessionCartId")

    res = client.post("/api/cart/merge", headers=auth(customer))
    assert res.json() == {"success": True, "message": "Cart merged successfully"}

    cart = client.get("/api/cart", headers=auth(customer)).json()
    assert quantities(cart) == {a.id: 3, b.id: 1}
    assert cart["itemsPrice"] == "9.00"
    assert db.query(Cart).filter(Cart.session_cart_id == session_cart_id, Cart.user_id.is_(None)).first() is None
    assert client.get("/api/cart").json()["items"] == []


def test_merge_without_user_cart_reowns_anonymous_cart(make_product, customer, client):
    a = make_product("apples")
    client.post("/api/cart/items", json={"product_id": a.id, "qty": 2})
    anonymous_id = client.get("/api/cart").json()["id"]

    res = client.post("/api/cart/merge", headers=auth(customer))
    assert res.json()["message"] == "Cart merged successfully"
    cart = client.get("/api/cart", headers=auth(customer)).json()
    assert cart["id"] == anonymous_id
    assert quantities(cart) == {a.id: 2}


def test_merge_with_nothing_to_merge(client, customer):
    res = client.post("/api/cart/merge", headers=auth(customer))
    assert res.json() == {"success": True, "message": "No anonymous cart to merge"}


def test_merge_requires_sign_in(client):
    res = client.post("/api/cart/merge")
    assert res.status_code == 401


def test_insertion_order_does_not_change_totals(db, make_product):
    a = make_product("apples", price="2.50")
    b = make_product("bread", price="3.75")
    svc = CartService(db)

    first = svc.add_item(RequestContext(session_cart_id="one"), a.id, 2)
    first = svc.add_item(RequestContext(session_cart_id="one"), b.id, 3)
    second = svc.add_item(RequestContext(session_cart_id="two"), b.id, 3)
    second = svc.add_item(RequestContext(session_cart_id="two"), a.id, 2)

    assert first.total_price == second.total_price
    assert first.items_price == Decimal("16.25")


def test_invalid_price_line_is_left_out_of_totals(db, make_product):
    a = make_product("apples", price="2.00")
    b = make_product("bread", price="3.00")
    ctx = RequestContext(session_cart_id="s1")
    svc = CartService(db)
    cart = svc.add_item(ctx, a.id, 1)
    cart.items[0].price = "not-a-price"
    db.commit()

    cart = svc.add_item(ctx, b.id, 2)
    assert cart.items_price == Decimal("6.00")
    assert len(cart.items) == 2


def test_service_rejects_non_positive_quantity(db, make_product):
    p = make_product("apples")
    with pytest.raises(ValidationFailed):
        CartService(db).add_item(RequestContext(session_cart_id="s1"), p.id, 0)
    with pytest.raises(NotFound):
        CartService(db).update_item(RequestContext(session_cart_id="s1"), p.id, 1)


def test_clamp_quantity():
    assert clamp_quantity(0) == 1
    assert clamp_quantity(5) == 5
    assert clamp_quantity(150) == 99
    assert clamp_quantity(7, max_qty=3) == 3
