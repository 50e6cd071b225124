# Overview: Flask API routes for orders; COD placement, listings, admin updates and cancellation.

# backend/storefront/routes/orders.py
"""
Order API Routes

- POST  /api/orders/place             COD checkout from the caller's cart
- GET   /api/orders                   caller's orders, newest first
- PATCH /api/orders/<id>/cancel       caller cancels their own order
- GET   /api/orders/admin             all orders, paginated (admin)
- PATCH /api/orders/admin/<id>        set status / payment_status (admin)

Online payment checkout lives under /api/payment (see routes/payments.py).
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import checkout_service, order_service
from ..services.order_service import OrderStatusUpdate
from ..validation import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    optional_int,
)
from ..decorators import require_auth, require_admin

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("/place")
@require_auth
def place_order_route():
    """
    Place a cash-on-delivery order.

    Request body: {"shipping_address_id": 3}  (optional)

    Returns:
        201: {"order": {...}}
        400: empty cart / invalid address
        409: insufficient stock, {"error", "details": {"product_id", ...}}
    """
    data = request.get_json(silent=True) or {}
    try:
        address_id = optional_int(data.get("shipping_address_id"), "shipping_address_id")
        order = checkout_service.place_cod_order(g.current_user, address_id)
    except ConflictError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to place order")
        return jsonify({"error": "Failed to place order"}), 500

    return jsonify({"order": order.to_dict()}), 201


@orders_bp.get("")
@require_auth
def list_my_orders_route():
    return jsonify(order_service.list_orders_for_user(g.current_user.id))


@orders_bp.patch("/<int:order_id>/cancel")
@require_auth
def cancel_order_route(order_id: int):
    try:
        order = order_service.cancel_order(order_id, g.current_user)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ForbiddenError as e:
        return jsonify({"error": str(e)}), 403
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to cancel order %s", order_id)
        return jsonify({"error": "Failed to cancel order"}), 500

    return jsonify({"order": order.to_dict()})


# =============================================================================
# ADMIN
# =============================================================================

@orders_bp.get("/admin")
@require_admin
def admin_list_orders_route():
    result = order_service.admin_list_orders(
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", 50, type=int),
    )
    return jsonify(result)


@orders_bp.patch("/admin/<int:order_id>")
@require_admin
def admin_update_order_route(order_id: int):
    """
    Request body: {"status": "shipped"} and/or {"payment_status": "paid"}
    """
    update = OrderStatusUpdate.from_payload(request.get_json(silent=True))
    try:
        order = order_service.update_status(order_id, update)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update order %s", order_id)
        return jsonify({"error": "Failed to update order"}), 500

    return jsonify({"order": order.to_dict()})
