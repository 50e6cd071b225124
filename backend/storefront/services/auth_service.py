# Overview: Service-layer operations for auth; password hashing, JWT issue/decode, register and login.

"""
Authentication Service

Passwords are hashed with bcrypt (cost from BCRYPT_ROUNDS, default 12).
Access tokens are stateless HS256 JWTs carrying sub, email, name and role,
valid for JWT_EXPIRES_DAYS. Role claims are informational only: admin
checks re-read the role from the database (see decorators.require_admin).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..validation import AuthError, ConflictError, ForbiddenError, ValidationError
from . import notification_service


def hash_password(password: str) -> str:
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Returns True if password matches hash, False otherwise."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed hash in the database
        return False


def issue_token(user: User) -> str:
    now = datetime.now(timezone.utc)
    days = current_app.config.get("JWT_EXPIRES_DAYS", 7)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(days=days),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def decode_token(token: str) -> dict:
    """
    Verify signature and expiry.

    Raises:
        AuthError: token invalid, expired or the secret is not configured
    """
    secret = current_app.config.get("JWT_SECRET")
    if not secret:
        raise AuthError("Invalid token")
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.PyJWTError:
        raise AuthError("Invalid token")


def _normalize_email(email) -> str:
    return str(email or "").strip().lower()


def create_user(*, name: str, email: str, password: str, phone: str, role: str = "customer") -> User:
    """Insert a user. Caller commits."""
    user = User(
        name=name.strip(),
        email=_normalize_email(email),
        phone=str(phone).strip(),
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.session.add(user)
    db.session.flush()
    return user


def register(payload: dict) -> tuple[User, str]:
    """
    Create a customer account and sign them in.

    Raises:
        ValidationError: missing fields
        ConflictError: email already registered
    """
    payload = payload or {}
    name = (payload.get("name") or "").strip()
    email = _normalize_email(payload.get("email"))
    password = payload.get("password") or ""
    phone = str(payload.get("phone") or "").strip()

    if not name or not email or not password:
        raise ValidationError("name, email and password required")
    if not phone:
        raise ValidationError("phone number required")

    if db.session.query(User.id).filter_by(email=email).first():
        raise ConflictError("Email already in use")

    try:
        user = create_user(name=name, email=email, password=password, phone=phone)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email already in use")

    current_app.logger.info("User %s registered", user.id)
    notification_service.emit_to_admins(notification_service.USER_CREATED, {"user": user.to_dict()})
    return user, issue_token(user)


def login(payload: dict) -> tuple[User, str]:
    """
    Raises:
        ValidationError: missing fields
        AuthError: unknown email or wrong password
        ForbiddenError: account disabled
    """
    payload = payload or {}
    email = _normalize_email(payload.get("email"))
    password = payload.get("password") or ""
    if not email or not password:
        raise ValidationError("email and password required")

    user = db.session.query(User).filter_by(email=email).first()
    if not user:
        raise AuthError("Invalid credentials")
    if not user.is_active:
        raise ForbiddenError("Account disabled")
    if not verify_password(password, user.password_hash):
        raise AuthError("Invalid credentials")

    return user, issue_token(user)
