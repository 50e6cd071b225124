# Overview: Service-layer operations for the caller's own profile and address book.

"""
Account service.

Every address lookup is scoped to the caller's user id; another user's
address is reported as not found. When an address is saved with
is_default=True the flag is cleared on the user's other addresses in the
same transaction, so a user has at most one default.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Address, User, ADDRESS_TYPES
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    require_choice,
    validate_payload,
)
from .concurrency import run_with_retry


ADDRESS_POLICY = ModelValidationPolicy(
    writable_fields={
        "type", "line1", "line2", "city", "state", "postal_code", "country", "is_default",
    },
    required_on_create={"line1", "city", "state", "postal_code"},
)


def get_profile(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def list_addresses(user_id: int) -> list[Address]:
    return (
        db.session.query(Address)
        .filter_by(user_id=user_id)
        .order_by(Address.id.desc())
        .all()
    )


def _clear_other_defaults(user_id: int, keep_id: int) -> None:
    db.session.query(Address).filter(
        Address.user_id == user_id,
        Address.id != keep_id,
        Address.is_default.is_(True),
    ).update({"is_default": False}, synchronize_session="fetch")


def _validate_address_patch(payload: dict, *, partial: bool) -> dict:
    try:
        patch = validate_payload(model=Address, payload=payload, policy=ADDRESS_POLICY, partial=partial)
    except ValidationError as exc:
        if str(exc).startswith("Missing required fields"):
            raise ValidationError("Missing address fields")
        raise
    if "type" in patch:
        require_choice(patch["type"], ADDRESS_TYPES, "address type")
    return patch


def add_address(user_id: int, payload: dict) -> Address:
    patch = _validate_address_patch(payload, partial=False)
    patch.setdefault("type", "shipping")
    if not patch.get("country"):
        patch["country"] = "India"
    patch["is_default"] = bool(patch.get("is_default"))

    def _op():
        address = Address(user_id=user_id, **patch)
        db.session.add(address)
        db.session.flush()
        if address.is_default:
            _clear_other_defaults(user_id, address.id)
        db.session.commit()
        return address

    return run_with_retry(_op)


def update_address(user_id: int, address_id: int, payload: dict) -> Address:
    """Partial update; absent fields are left unchanged."""
    patch = _validate_address_patch(payload, partial=True)

    def _op():
        address = db.session.query(Address).filter_by(id=address_id, user_id=user_id).first()
        if not address:
            raise NotFoundError("Address not found")
        for key, value in patch.items():
            setattr(address, key, value)
        if patch.get("is_default"):
            _clear_other_defaults(user_id, address.id)
        db.session.commit()
        return address

    return run_with_retry(_op)


def delete_address(user_id: int, address_id: int) -> None:
    def _op():
        deleted = db.session.query(Address).filter_by(id=address_id, user_id=user_id).delete()
        if not deleted:
            raise NotFoundError("Address not found")
        db.session.commit()

    run_with_retry(_op)
