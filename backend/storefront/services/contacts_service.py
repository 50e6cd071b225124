# Overview: Support contact messages; public submission and admin triage.

from __future__ import annotations

from ..extensions import db
from ..models import Contact, CONTACT_STATUSES
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    require_choice,
    validate_payload,
)

CONTACT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "subject", "category", "message"},
    required_on_create={"name", "email", "message"},
)

MAX_PAGE_SIZE = 200


def create_contact(payload: dict) -> Contact:
    try:
        patch = validate_payload(model=Contact, payload=payload, policy=CONTACT_POLICY, partial=False)
    except ValidationError as exc:
        if str(exc).startswith("Missing required fields"):
            raise ValidationError("name, email, and message are required")
        raise

    contact = Contact(status="new", **patch)
    db.session.add(contact)
    db.session.commit()
    return contact


def list_contacts(page: int = 1, limit: int = 100) -> dict:
    """Newest first."""
    limit = max(1, min(limit or 100, MAX_PAGE_SIZE))
    page = max(page or 1, 1)

    query = db.session.query(Contact).order_by(Contact.id.desc())
    total = query.count()
    contacts = query.offset((page - 1) * limit).limit(limit).all()
    return {
        "items": [c.to_dict() for c in contacts],
        "page": page,
        "limit": limit,
        "total": total,
    }


def update_contact_status(contact_id: int, status) -> Contact:
    require_choice(status, CONTACT_STATUSES, "status")

    contact = db.session.get(Contact, contact_id)
    if not contact:
        raise NotFoundError("Contact not found")

    contact.status = status
    db.session.commit()
    return contact


def delete_contact(contact_id: int) -> None:
    deleted = db.session.query(Contact).filter_by(id=contact_id).delete()
    if not deleted:
        raise NotFoundError("Contact not found")
    db.session.commit()
