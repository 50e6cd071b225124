# Overview: Flask API routes for online payments; gateway checkout, verification, refunds and webhooks.

# backend/storefront/routes/payments.py
"""
Online Payment API Routes

Two-phase checkout:
1. POST /api/payment/create-order  pending order + gateway order
2. POST /api/payment/verify        signature check, finalize (stock, cart)
   POST /api/payment/failure       client-reported failure

Refunds:
- POST /api/payment/refund/<order_id>   gateway refund (owner or admin)
- GET  /api/payment/refund/<order_id>   refund transactions

Gateway callbacks:
- POST /api/payment/webhook  raw body, X-Razorpay-Signature header

GatewayError with a gateway description is surfaced as 400, otherwise 500.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import checkout_service, payment_service
from ..services.gateway_service import GatewayError
from ..services.payment_service import PaymentVerificationError, WebhookSignatureError
from ..validation import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    optional_int,
)
from ..decorators import require_auth


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payment")


def _gateway_error_response(e: GatewayError, fallback: str):
    if e.description:
        return jsonify({"error": e.description}), 400
    current_app.logger.error("%s: %s", fallback, e)
    return jsonify({"error": fallback}), 500


# =============================================================================
# CHECKOUT
# =============================================================================

@payments_bp.post("/create-order")
@require_auth
def create_payment_order_route():
    """
    Start an online payment for the caller's cart.

    Request body: {"shipping_address_id": 3}  (optional)

    Returns:
        201: {"order": {"id", "total_cents", "gateway_order_id",
                        "gateway_key_id", "amount", "currency"}}
        400: empty cart / invalid address / gateway rejected
        409: insufficient stock
    """
    data = request.get_json(silent=True) or {}
    try:
        address_id = optional_int(data.get("shipping_address_id"), "shipping_address_id")
        handle = checkout_service.create_online_order(g.current_user, address_id)
    except ConflictError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except GatewayError as e:
        return _gateway_error_response(e, "Failed to create payment order")
    except Exception:
        current_app.logger.exception("Failed to create payment order")
        return jsonify({"error": "Failed to create payment order"}), 500

    return jsonify({"order": handle}), 201


@payments_bp.post("/verify")
@require_auth
def verify_payment_route():
    """
    Request body:
    {
        "gateway_order_id": "order_...",
        "gateway_payment_id": "pay_...",
        "signature": "<hex hmac>"
    }

    Returns:
        200: {"success": true, "order_id": 42}
        400: {"success": false, "error": ...} bad signature / missing fields
        404: unknown gateway order
        409: order no longer awaiting payment, or stock ran out
    """
    data = request.get_json(silent=True) or {}
    try:
        result = payment_service.verify_payment(
            data.get("gateway_order_id") or data.get("razorpay_order_id"),
            data.get("gateway_payment_id") or data.get("razorpay_payment_id"),
            data.get("signature") or data.get("razorpay_signature"),
        )
    except PaymentVerificationError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except ValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"success": False, "error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"success": False, "error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Payment verification failed")
        return jsonify({"success": False, "error": "Payment verification failed"}), 500

    return jsonify({"success": True, "order_id": result["order_id"]})


@payments_bp.post("/failure")
@require_auth
def payment_failure_route():
    data = request.get_json(silent=True) or {}
    try:
        payment_service.record_failure(
            data.get("gateway_order_id") or data.get("order_id"),
            data.get("error"),
            user_id=g.current_user.id,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to record payment failure")
        return jsonify({"error": "Failed to record payment failure"}), 500

    return jsonify({"success": True, "message": "Payment failure recorded"})


# =============================================================================
# REFUNDS
# =============================================================================

@payments_bp.post("/refund/<int:order_id>")
@require_auth
def refund_order_route(order_id: int):
    """
    Request body: {"reason": "...", "amount_cents": 2500}  (both optional)

    Returns:
        200: {"success": true, "refund": {"id", "amount", "status", "order_id"}}
        400: not paid / already refunded / bad amount / gateway rejected
        403: not the owner or an admin
        404: unknown order
    """
    data = request.get_json(silent=True) or {}
    try:
        refund = payment_service.refund_order(
            order_id,
            g.current_user,
            reason=data.get("reason"),
            amount_cents=data.get("amount_cents", data.get("amount")),
        )
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ForbiddenError as e:
        return jsonify({"error": str(e)}), 403
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except GatewayError as e:
        return _gateway_error_response(e, "Failed to process refund")
    except Exception:
        current_app.logger.exception("Refund failed for order %s", order_id)
        return jsonify({"error": "Failed to process refund"}), 500

    return jsonify({"success": True, "refund": refund})


@payments_bp.get("/refund/<int:order_id>")
@require_auth
def refund_status_route(order_id: int):
    try:
        refunds = payment_service.list_refunds(order_id, g.current_user)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ForbiddenError as e:
        return jsonify({"error": str(e)}), 403

    return jsonify({"refunds": [r.to_dict() for r in refunds]})


# =============================================================================
# WEBHOOK
# =============================================================================

@payments_bp.post("/webhook")
def webhook_route():
    """Gateway callback. No auth header; the body signature is the credential."""
    raw_body = request.get_data(cache=False)
    signature = request.headers.get("X-Razorpay-Signature")
    try:
        payment_service.handle_webhook(raw_body, signature)
    except WebhookSignatureError as e:
        current_app.logger.warning("Rejected webhook: %s", e)
        return jsonify({"error": str(e)}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Webhook processing failed")
        return jsonify({"error": "Webhook processing failed"}), 500

    return jsonify({"status": "ok"})
