# Overview: Flask API routes for the caller's profile and saved addresses.

from flask import Blueprint, request, jsonify, g

from ..services import account_service
from ..validation import NotFoundError, ValidationError
from ..decorators import require_auth

account_bp = Blueprint("account", __name__, url_prefix="/api/account")


@account_bp.get("/me")
@require_auth
def me_route():
    try:
        user = account_service.get_profile(g.current_user.id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(user.to_dict())


@account_bp.get("/addresses")
@require_auth
def list_addresses_route():
    addresses = account_service.list_addresses(g.current_user.id)
    return jsonify([a.to_dict() for a in addresses])


@account_bp.post("/addresses")
@require_auth
def add_address_route():
    """
    Request body:
    {
        "type": "shipping",  (billing | shipping, default shipping)
        "line1": "...", "line2": "...", "city": "...", "state": "...",
        "postal_code": "...", "country": "India", "is_default": true
    }
    """
    try:
        address = account_service.add_address(g.current_user.id, request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(address.to_dict()), 201


@account_bp.put("/addresses/<int:address_id>")
@require_auth
def update_address_route(address_id: int):
    try:
        address = account_service.update_address(
            g.current_user.id, address_id, request.get_json(silent=True) or {}
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(address.to_dict())


@account_bp.delete("/addresses/<int:address_id>")
@require_auth
def delete_address_route(address_id: int):
    try:
        account_service.delete_address(g.current_user.id, address_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return "", 204
