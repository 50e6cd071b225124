# Overview: Admin user management; paginated listing and role / active flag updates.

from __future__ import annotations

from ..extensions import db
from ..models import User, USER_ROLES
from ..validation import NotFoundError, ValidationError, require_choice

MAX_PAGE_SIZE = 200


def list_users(page: int = 1, limit: int = 100) -> dict:
    limit = max(1, min(limit or 100, MAX_PAGE_SIZE))
    page = max(page or 1, 1)

    query = db.session.query(User).order_by(User.id.asc())
    total = query.count()
    users = query.offset((page - 1) * limit).limit(limit).all()
    return {
        "items": [u.to_dict() for u in users],
        "page": page,
        "limit": limit,
        "total": total,
    }


def update_user(user_id: int, payload: dict) -> User:
    """
    Admin update of role and/or is_active.

    Raises:
        ValidationError: nothing to update, or an unknown role
        NotFoundError: unknown user
    """
    payload = payload or {}
    role = payload.get("role")
    is_active = payload.get("is_active")

    if role is None and is_active is None:
        raise ValidationError("No fields to update")
    if role is not None:
        require_choice(role, USER_ROLES, "role")

    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    if role is not None:
        user.role = role
    if is_active is not None:
        user.is_active = bool(is_active)

    db.session.commit()
    return user
