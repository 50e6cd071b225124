# Overview: Request authentication decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import User
from .services import auth_service
from .validation import AuthError


def _load_user_from_request():
    """
    Resolve the Bearer token to an active User.

    Raises:
        AuthError: header missing, token invalid/expired, user gone or disabled
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthError("Missing token")

    token = auth_header.split(" ", 1)[1]
    claims = auth_service.decode_token(token)

    try:
        user_id = int(claims.get("sub"))
    except (TypeError, ValueError):
        raise AuthError("Invalid token")

    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        raise AuthError("Invalid token")
    return user


def require_auth(f):
    """
    Require a valid access token.

    Sets g.current_user to the authenticated User. Returns 401 if the header
    is missing, the token is invalid or expired, or the account is disabled.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            g.current_user = _load_user_from_request()
        except AuthError as e:
            return jsonify({"error": str(e)}), 401
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """
    Require an authenticated admin.

    The role is read from the database row, not from the token claims, so a
    demoted admin loses access immediately.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            user = _load_user_from_request()
        except AuthError as e:
            return jsonify({"error": str(e)}), 401

        if not user.is_admin:
            return jsonify({"error": "Admin access required"}), 403

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function
