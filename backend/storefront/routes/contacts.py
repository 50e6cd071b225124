# Overview: Flask API routes for support contact messages.

from flask import Blueprint, request, jsonify, current_app

from ..services import contacts_service
from ..validation import NotFoundError, ValidationError
from ..decorators import require_admin

contacts_bp = Blueprint("contacts", __name__, url_prefix="/api/contacts")


@contacts_bp.post("")
def create_contact_route():
    """Public contact form. Request body: {"name", "email", "subject", "category", "message"}"""
    try:
        contact = contacts_service.create_contact(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to submit message")
        return jsonify({"error": "Failed to submit message"}), 500
    return jsonify(contact.to_dict()), 201


@contacts_bp.get("/admin")
@require_admin
def admin_list_contacts_route():
    result = contacts_service.list_contacts(
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", 100, type=int),
    )
    return jsonify(result)


@contacts_bp.put("/admin/<int:contact_id>")
@require_admin
def admin_update_contact_route(contact_id: int):
    data = request.get_json(silent=True) or {}
    try:
        contact = contacts_service.update_contact_status(contact_id, data.get("status"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(contact.to_dict())


@contacts_bp.delete("/admin/<int:contact_id>")
@require_admin
def admin_delete_contact_route(contact_id: int):
    try:
        contacts_service.delete_contact(contact_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"message": "Contact deleted"})
