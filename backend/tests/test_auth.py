"""
Authentication and authorization tests.

Verifies:
- Register/login issue JWTs; duplicates and bad credentials are rejected
- Protected endpoints return 401 without a valid token
- Admin endpoints check the role stored in the database
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from storefront.extensions import db
from storefront.models import User
from storefront.services import auth_service


class TestRegisterAndLogin:

    def test_register(self, client, db_session, admin_events):
        resp = client.post("/api/auth/register", json={
            "name": "Asha",
            "email": "Asha@Example.com",
            "password": "s3cret-pass",
            "phone": "9000000001",
        })
        assert resp.status_code == 201
        assert resp.json["user"]["email"] == "asha@example.com"
        assert resp.json["user"]["role"] == "customer"

        claims = auth_service.decode_token(resp.json["token"])
        assert claims["sub"] == str(resp.json["user"]["id"])
        assert claims["role"] == "customer"
        assert admin_events[0][0] == "user:created"

        stored = db.session.query(User).filter_by(email="asha@example.com").one()
        assert stored.password_hash != "s3cret-pass"

    @pytest.mark.parametrize("missing", ["name", "email", "password", "phone"])
    def test_register_missing_fields(self, client, db_session, missing):
        payload = {"name": "A", "email": "a@example.com", "password": "pw", "phone": "1"}
        payload.pop(missing)
        resp = client.post("/api/auth/register", json=payload)
        assert resp.status_code == 400

    def test_register_duplicate_email(self, client, customer):
        resp = client.post("/api/auth/register", json={
            "name": "Dup", "email": customer.email.upper(), "password": "pw", "phone": "1",
        })
        assert resp.status_code == 409

    def test_login(self, client, customer):
        resp = client.post("/api/auth/login", json={"email": customer.email, "password": "Password123!"})
        assert resp.status_code == 200
        assert resp.json["user"]["id"] == customer.id
        assert resp.json["token"]

    def test_login_wrong_password(self, client, customer):
        resp = client.post("/api/auth/login", json={"email": customer.email, "password": "nope"})
        assert resp.status_code == 401

    def test_login_unknown_email(self, client, db_session):
        resp = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "x"})
        assert resp.status_code == 401

    def test_login_disabled_account(self, client, make_user):
        user = make_user(is_active=False)
        resp = client.post("/api/auth/login", json={"email": user.email, "password": "Password123!"})
        assert resp.status_code == 403


class TestTokens:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/cart"),
            ("POST", "/api/orders/place"),
            ("GET", "/api/orders"),
            ("POST", "/api/payment/create-order"),
            ("POST", "/api/payment/verify"),
            ("GET", "/api/account/me"),
            ("GET", "/api/orders/admin"),
            ("GET", "/api/users/admin"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/cart", headers={"Authorization": "Bearer not.a.jwt"})
        assert resp.status_code == 401

    def test_expired_token(self, app, client, customer):
        past = datetime.now(timezone.utc) - timedelta(days=1)
        token = jwt.encode(
            {"sub": str(customer.id), "iat": past - timedelta(days=7), "exp": past},
            app.config["JWT_SECRET"],
            algorithm="HS256",
        )
        resp = client.get("/api/cart", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_token_for_disabled_user(self, db_session, client, customer, customer_headers):
        customer.is_active = False
        db_session.commit()
        resp = client.get("/api/cart", headers=customer_headers)
        assert resp.status_code == 401


class TestAdminAccess:

    def test_customer_gets_403(self, client, customer_headers):
        resp = client.get("/api/users/admin", headers=customer_headers)
        assert resp.status_code == 403

    def test_demoted_admin_loses_access(self, db_session, client, admin, admin_headers):
        assert client.get("/api/users/admin", headers=admin_headers).status_code == 200

        admin.role = "customer"
        db_session.commit()
        assert client.get("/api/users/admin", headers=admin_headers).status_code == 403

    def test_role_claim_is_not_trusted(self, app, client, customer):
        forged = jwt.encode(
            {"sub": str(customer.id), "role": "admin",
             "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            app.config["JWT_SECRET"],
            algorithm="HS256",
        )
        resp = client.get("/api/users/admin", headers={"Authorization": f"Bearer {forged}"})
        assert resp.status_code == 403
