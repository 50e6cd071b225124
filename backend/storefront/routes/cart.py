# Overview: Flask API routes for the caller's cart; every response is the full cart snapshot.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import cart_service
from ..validation import NotFoundError, ValidationError
from ..decorators import require_auth

cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.get("")
@require_auth
def get_cart_route():
    try:
        return jsonify(cart_service.get_cart_snapshot(g.current_user.id))
    except Exception:
        current_app.logger.exception("Failed to load cart")
        return jsonify({"error": "Failed to load cart"}), 500


@cart_bp.post("/add")
@require_auth
def add_to_cart_route():
    """
    Request body: {"productId": 12, "quantity": 2}

    Returns:
        200: {"items": [...], "total_cents": 20000}
        400: missing/invalid productId or quantity
        404: unknown product
    """
    data = request.get_json(silent=True) or {}
    try:
        snapshot = cart_service.add_item(
            g.current_user.id,
            data.get("productId", data.get("product_id")),
            data.get("quantity", 1),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to add to cart")
        return jsonify({"error": "Failed to add to cart"}), 500
    return jsonify(snapshot)


@cart_bp.patch("/item/<int:item_id>")
@require_auth
def update_cart_item_route(item_id: int):
    data = request.get_json(silent=True) or {}
    try:
        snapshot = cart_service.set_item_quantity(g.current_user.id, item_id, data.get("quantity"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(snapshot)


@cart_bp.delete("/item/<int:item_id>")
@require_auth
def remove_cart_item_route(item_id: int):
    try:
        snapshot = cart_service.remove_item(g.current_user.id, item_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(snapshot)


@cart_bp.delete("/clear")
@require_auth
def clear_cart_route():
    return jsonify(cart_service.clear(g.current_user.id))
