"""
Catalog, account, user admin, contacts and health endpoint tests.
"""

import pytest

from storefront.extensions import db
from storefront.models import Address, Product
from storefront.services import account_service, cart_service, checkout_service


# =============================================================================
# PRODUCTS
# =============================================================================

class TestProducts:

    def test_public_list_hides_archived(self, client, make_product):
        visible = make_product(name="Onions", category="Vegetables")
        make_product(name="Old stock", is_active=False)

        resp = client.get("/api/products")
        assert resp.status_code == 200
        assert [p["id"] for p in resp.json["items"]] == [visible.id]
        assert resp.json["total"] == 1
        assert resp.json["items"][0]["price_cents"] == visible.price

    def test_filters_and_limit(self, client, make_product):
        make_product(name="Green Apples", category="Fruits")
        make_product(name="Bananas", category="Fruits")
        make_product(name="Paneer", category="Dairy")

        resp = client.get("/api/products?category=Fruits")
        assert {p["name"] for p in resp.json["items"]} == {"Green Apples", "Bananas"}

        resp = client.get("/api/products?q=apple")
        assert [p["name"] for p in resp.json["items"]] == ["Green Apples"]

        resp = client.get("/api/products?limit=500")
        assert resp.json["limit"] == 100

    def test_get_product(self, client, make_product):
        product = make_product()
        assert client.get(f"/api/products/{product.id}").json["id"] == product.id
        assert client.get("/api/products/99999").status_code == 404

    def test_create_with_price_alias(self, client, admin_headers):
        resp = client.post("/api/products", json={
            "name": "Ghee", "price_cents": 55000, "stock": 10, "tags": ["dairy"],
        }, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json["price_cents"] == 55000
        assert resp.json["category"] == "General"
        assert resp.json["tags"] == ["dairy"]

    @pytest.mark.parametrize("payload", [
        {"name": "X", "stock": 1},
        {"name": "X", "price_cents": -1, "stock": 1},
        {"name": "X", "price_cents": 100, "stock": -5},
        {"name": "X", "price_cents": 1.5, "stock": 1},
        {"name": "X", "price_cents": 100, "stock": 1, "sku": "nope"},
    ])
    def test_create_validation(self, client, admin_headers, payload):
        resp = client.post("/api/products", json=payload, headers=admin_headers)
        assert resp.status_code == 400

    def test_customer_cannot_create(self, client, customer_headers):
        resp = client.post("/api/products", json={"name": "X", "price": 1, "stock": 1}, headers=customer_headers)
        assert resp.status_code == 403

    def test_update_archive_restore(self, client, admin_headers, make_product):
        product = make_product()

        resp = client.put(f"/api/products/{product.id}", json={"stock": 42}, headers=admin_headers)
        assert resp.json["stock"] == 42

        resp = client.patch(f"/api/products/{product.id}/archive", headers=admin_headers)
        assert resp.json["is_active"] is False
        assert client.get(f"/api/products/{product.id}").status_code == 404

        resp = client.get("/api/products/admin/all", headers=admin_headers)
        assert product.id in [p["id"] for p in resp.json["items"]]

        resp = client.patch(f"/api/products/{product.id}/restore", headers=admin_headers)
        assert resp.json["is_active"] is True

    def test_update_requires_fields(self, client, admin_headers, make_product):
        product = make_product()
        resp = client.put(f"/api/products/{product.id}", json={}, headers=admin_headers)
        assert resp.status_code == 400

    def test_delete(self, client, admin_headers, make_product):
        product = make_product()
        resp = client.delete(f"/api/products/{product.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert db.session.get(Product, product.id) is None

    def test_delete_with_order_history_conflicts(self, client, admin_headers, customer, make_product):
        product = make_product()
        cart_service.add_item(customer.id, product.id, 1)
        checkout_service.place_cod_order(customer)

        resp = client.delete(f"/api/products/{product.id}", headers=admin_headers)
        assert resp.status_code == 409


# =============================================================================
# ACCOUNT
# =============================================================================

ADDRESS = {
    "line1": "4 Park Street", "city": "Kolkata", "state": "WB", "postal_code": "700016",
}


class TestAccount:

    def test_me(self, client, customer, customer_headers):
        resp = client.get("/api/account/me", headers=customer_headers)
        assert resp.json["email"] == customer.email
        assert "password_hash" not in resp.json

    def test_add_address_defaults(self, client, customer_headers):
        resp = client.post("/api/account/addresses", json=ADDRESS, headers=customer_headers)
        assert resp.status_code == 201
        assert resp.json["type"] == "shipping"
        assert resp.json["country"] == "India"
        assert resp.json["is_default"] is False

    def test_add_address_validation(self, client, customer_headers):
        resp = client.post("/api/account/addresses", json={"line1": "x"}, headers=customer_headers)
        assert resp.status_code == 400
        resp = client.post(
            "/api/account/addresses", json={**ADDRESS, "type": "office"}, headers=customer_headers
        )
        assert resp.status_code == 400

    def test_single_default_address(self, customer):
        first = account_service.add_address(customer.id, {**ADDRESS, "is_default": True})
        second = account_service.add_address(customer.id, {**ADDRESS, "is_default": True})

        defaults = db.session.query(Address).filter_by(user_id=customer.id, is_default=True).all()
        assert [a.id for a in defaults] == [second.id]

        account_service.update_address(customer.id, first.id, {"is_default": True})
        defaults = db.session.query(Address).filter_by(user_id=customer.id, is_default=True).all()
        assert [a.id for a in defaults] == [first.id]

    def test_addresses_scoped_to_owner(self, client, other_customer, headers_for, customer):
        address = account_service.add_address(customer.id, ADDRESS)
        headers = headers_for(other_customer)

        assert client.get("/api/account/addresses", headers=headers).json == []
        resp = client.put(f"/api/account/addresses/{address.id}", json={"city": "X"}, headers=headers)
        assert resp.status_code == 404
        resp = client.delete(f"/api/account/addresses/{address.id}", headers=headers)
        assert resp.status_code == 404

    def test_delete_address(self, client, customer, customer_headers):
        address = account_service.add_address(customer.id, ADDRESS)
        resp = client.delete(f"/api/account/addresses/{address.id}", headers=customer_headers)
        assert resp.status_code == 204


# =============================================================================
# USERS (ADMIN)
# =============================================================================

class TestUsersAdmin:

    def test_list_and_update(self, client, admin_headers, customer):
        resp = client.get("/api/users/admin", headers=admin_headers)
        assert resp.json["total"] == 2

        resp = client.put(
            f"/api/users/admin/{customer.id}", json={"is_active": False}, headers=admin_headers
        )
        assert resp.status_code == 200
        assert resp.json["is_active"] is False

    @pytest.mark.parametrize("payload", [{}, {"role": "superuser"}])
    def test_update_validation(self, client, admin_headers, customer, payload):
        resp = client.put(f"/api/users/admin/{customer.id}", json=payload, headers=admin_headers)
        assert resp.status_code == 400

    def test_update_unknown_user(self, client, admin_headers):
        resp = client.put("/api/users/admin/9999", json={"role": "admin"}, headers=admin_headers)
        assert resp.status_code == 404


# =============================================================================
# CONTACTS
# =============================================================================

class TestContacts:

    def test_submit_and_triage(self, client, db_session, admin_headers):
        resp = client.post("/api/contacts", json={
            "name": "Ravi", "email": "ravi@example.com", "message": "Where is my order?",
        })
        assert resp.status_code == 201
        contact_id = resp.json["id"]
        assert resp.json["status"] == "new"

        resp = client.get("/api/contacts/admin", headers=admin_headers)
        assert resp.json["items"][0]["id"] == contact_id

        resp = client.put(
            f"/api/contacts/admin/{contact_id}", json={"status": "responded"}, headers=admin_headers
        )
        assert resp.json["status"] == "responded"

        resp = client.put(
            f"/api/contacts/admin/{contact_id}", json={"status": "archived"}, headers=admin_headers
        )
        assert resp.status_code == 400

        assert client.delete(f"/api/contacts/admin/{contact_id}", headers=admin_headers).status_code == 200
        assert client.delete(f"/api/contacts/admin/{contact_id}", headers=admin_headers).status_code == 404

    def test_submit_requires_fields(self, client, db_session):
        resp = client.post("/api/contacts", json={"name": "Ravi"})
        assert resp.status_code == 400


# =============================================================================
# SYSTEM
# =============================================================================

def test_health(client, db_session):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json["status"] == "healthy"
    assert resp.json["checks"]["database"]["status"] == "healthy"


def test_unknown_route_is_json(client, db_session):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.json == {"error": "Not found"}
