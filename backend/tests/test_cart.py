"""
Cart tests.

Verifies:
- Carts are created lazily, one open cart per user
- Adds accumulate on the same line; no stock check
- Item operations are scoped to the caller's cart
"""

import pytest
from sqlalchemy import false
from sqlalchemy.exc import IntegrityError

from storefront.extensions import db
from storefront.models import Cart, CartItem
from storefront.services import cart_service
from storefront.validation import NotFoundError, ValidationError


class TestCartService:

    def test_get_or_create_is_stable(self, customer):
        first = cart_service.get_or_create_cart(customer.id)
        second = cart_service.get_or_create_cart(customer.id)
        assert first == second
        assert db.session.query(Cart).filter_by(user_id=customer.id).count() == 1

    def test_second_open_cart_rejected_by_index(self, db_session, customer):
        cart_service.get_or_create_cart(customer.id)
        db_session.add(Cart(user_id=customer.id, status="open"))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_ordered_cart_does_not_block_new_open_cart(self, db_session, customer):
        cart_id = cart_service.get_or_create_cart(customer.id)
        db.session.get(Cart, cart_id).status = "ordered"
        db_session.commit()

        new_id = cart_service.get_or_create_cart(customer.id)
        assert new_id != cart_id

    def test_add_accumulates_quantity(self, customer, make_product):
        product = make_product(price=2500)
        cart_service.add_item(customer.id, product.id, 2)
        snapshot = cart_service.add_item(customer.id, product.id, 3)

        assert len(snapshot["items"]) == 1
        line = snapshot["items"][0]
        assert line["quantity"] == 5
        assert line["line_total_cents"] == 12500
        assert snapshot["total_cents"] == 12500

    def test_concurrent_first_add_accumulates(self, customer, make_product, monkeypatch):
        product = make_product(price=1000)
        cart_id = cart_service.get_or_create_cart(customer.id)
        real_lock = cart_service.lock_for_update
        calls = []

        def lock_after_competing_add(query):
            calls.append(1)
            if len(calls) == 1:
                # another request commits the same line between our read and insert
                db.session.add(CartItem(cart_id=cart_id, product_id=product.id, quantity=2))
                db.session.commit()
                return real_lock(query.filter(false()))
            return real_lock(query)

        monkeypatch.setattr(cart_service, "lock_for_update", lock_after_competing_add)
        snapshot = cart_service.add_item(customer.id, product.id, 3)

        assert len(calls) == 2
        assert [line["quantity"] for line in snapshot["items"]] == [5]
        assert db.session.query(CartItem).filter_by(cart_id=cart_id).count() == 1

    def test_add_beyond_stock_is_allowed(self, customer, make_product):
        product = make_product(stock=1)
        snapshot = cart_service.add_item(customer.id, product.id, 10)
        assert snapshot["items"][0]["quantity"] == 10

    def test_add_unknown_product(self, customer):
        with pytest.raises(NotFoundError):
            cart_service.add_item(customer.id, 99999, 1)

    @pytest.mark.parametrize("qty", [0, -1, "abc", 1.5])
    def test_add_rejects_bad_quantity(self, customer, make_product, qty):
        product = make_product()
        with pytest.raises(ValidationError):
            cart_service.add_item(customer.id, product.id, qty)

    def test_add_requires_product(self, customer):
        with pytest.raises(ValidationError):
            cart_service.add_item(customer.id, None, 1)

    def test_set_quantity_and_remove(self, customer, make_product):
        product = make_product()
        snapshot = cart_service.add_item(customer.id, product.id, 1)
        item_id = snapshot["items"][0]["id"]

        snapshot = cart_service.set_item_quantity(customer.id, item_id, 4)
        assert snapshot["items"][0]["quantity"] == 4

        snapshot = cart_service.remove_item(customer.id, item_id)
        assert snapshot == {"items": [], "total_cents": 0}

    def test_cannot_touch_another_users_item(self, customer, other_customer, make_product):
        product = make_product()
        snapshot = cart_service.add_item(other_customer.id, product.id, 1)
        foreign_item = snapshot["items"][0]["id"]

        with pytest.raises(NotFoundError):
            cart_service.set_item_quantity(customer.id, foreign_item, 2)
        with pytest.raises(NotFoundError):
            cart_service.remove_item(customer.id, foreign_item)

        assert db.session.get(CartItem, foreign_item).quantity == 1

    def test_clear(self, customer, make_product):
        cart_service.add_item(customer.id, make_product().id, 1)
        cart_service.add_item(customer.id, make_product().id, 2)
        assert cart_service.clear(customer.id)["items"] == []


class TestCartRoutes:

    def test_requires_auth(self, client, db_session):
        assert client.get("/api/cart").status_code == 401

    def test_add_and_read(self, client, customer_headers, make_product):
        product = make_product(price=4000)
        resp = client.post(
            "/api/cart/add",
            json={"productId": product.id, "quantity": 2},
            headers=customer_headers,
        )
        assert resp.status_code == 200
        assert resp.json["total_cents"] == 8000

        resp = client.get("/api/cart", headers=customer_headers)
        assert resp.json["items"][0]["product_id"] == product.id

    def test_add_unknown_product_404(self, client, customer_headers):
        resp = client.post("/api/cart/add", json={"productId": 424242}, headers=customer_headers)
        assert resp.status_code == 404

    def test_patch_unknown_item_404(self, client, customer_headers):
        resp = client.patch("/api/cart/item/999", json={"quantity": 1}, headers=customer_headers)
        assert resp.status_code == 404
