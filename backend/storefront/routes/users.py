# Overview: Flask API routes for admin user management.

from flask import Blueprint, request, jsonify

from ..services import users_service
from ..validation import NotFoundError, ValidationError
from ..decorators import require_admin

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("/admin")
@require_admin
def admin_list_users_route():
    result = users_service.list_users(
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", 100, type=int),
    )
    return jsonify(result)


@users_bp.put("/admin/<int:user_id>")
@require_admin
def admin_update_user_route(user_id: int):
    """Request body: {"role": "admin"|"customer", "is_active": bool}"""
    try:
        user = users_service.update_user(user_id, request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(user.to_dict())
