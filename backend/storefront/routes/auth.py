# Overview: Flask API routes for registration and login; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import auth_service
from ..validation import AuthError, ConflictError, ForbiddenError, ValidationError

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Create a customer account.

    Request body: {"name", "email", "password", "phone"}

    Returns:
        201: {"user": {...}, "token": "<jwt>"}
        400: missing fields
        409: email already in use
    """
    payload = request.get_json(silent=True) or {}
    try:
        user, token = auth_service.register(payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Registration failed")
        return jsonify({"error": "Registration failed"}), 500

    return jsonify({"user": user.to_dict(), "token": token}), 201


@auth_bp.post("/login")
def login_route():
    payload = request.get_json(silent=True) or {}
    try:
        user, token = auth_service.login(payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthError as e:
        return jsonify({"error": str(e)}), 401
    except ForbiddenError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Login failed")
        return jsonify({"error": "Login failed"}), 500

    return jsonify({"user": user.to_dict(), "token": token})
