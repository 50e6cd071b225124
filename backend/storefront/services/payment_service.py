# Overview: Online payment reconciliation; verification, failure, gateway refunds and webhooks.

"""
Payment Service

Second phase of online checkout plus everything the gateway calls back into.

PAYMENT STATE:
- pending  -> paid      verify_payment with a valid signature
- pending  -> failed    bad signature, or record_failure
- paid     -> refunded  refund_order for the full captured amount
                        (partial refunds leave the order 'paid')

verify_payment is the authoritative finalize path. Webhook payment events
are logged only; webhook refund events update the refund transaction.

GatewayRefund (refund_order) is the only path that moves money at the
gateway. Customer cancellation writes its own refund record without a
gateway call (see order_service.cancel_order); the two are kept separate.
"""

from __future__ import annotations

import json

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Order, Transaction, User
from ..validation import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    coerce_positive_int,
)
from . import notification_service
from .cart_service import close_cart, find_open_cart
from .concurrency import lock_for_update, run_with_retry
from .gateway_service import get_gateway, verify_webhook_signature
from .stock_service import InsufficientStockError, return_stock_for_order, take_stock_for_order


class PaymentVerificationError(ValidationError):
    """Signature mismatch; the order has been marked failed."""


class WebhookSignatureError(ValidationError):
    pass


# Razorpay refund.status -> transactions.status
REFUND_STATUS_MAP = {
    "processed": "completed",
    "failed": "failed",
    "pending": "pending",
}


# =============================================================================
# VERIFICATION
# =============================================================================

def verify_payment(gateway_order_id: str, gateway_payment_id: str, signature: str) -> dict:
    """
    Verify the gateway checkout signature and finalize the order.

    Valid signature, in one transaction: take stock for every order item,
    mark the order paid/processing, complete the payment transaction with
    the gateway payment id, close the user's open cart.

    Returns:
        {"success": True, "order_id": int, "already_paid": bool}

    Raises:
        ValidationError: missing fields
        PaymentVerificationError: signature mismatch (order marked failed)
        NotFoundError: no order for the gateway order id
        ConflictError: order no longer awaiting payment
        InsufficientStockError: stock ran out between checkout and capture
    """
    if not gateway_order_id or not gateway_payment_id or not signature:
        raise ValidationError("Missing payment verification details")

    gateway = get_gateway()

    if not gateway.verify_payment_signature(gateway_order_id, gateway_payment_id, signature):
        def _fail():
            order = _mark_payment_failed(gateway_order_id)
            db.session.commit()
            return order

        order = run_with_retry(_fail)
        current_app.logger.warning(
            "Payment signature mismatch for gateway order %s (order %s)",
            gateway_order_id,
            order.id if order else None,
        )
        raise PaymentVerificationError("Payment verification failed")

    def _op():
        order = lock_for_update(
            db.session.query(Order).filter_by(tracking_number=gateway_order_id)
        ).first()
        if not order:
            raise NotFoundError("Order not found")

        if order.payment_status == "paid":
            return order, True

        if order.payment_status != "pending" or order.status == "cancelled":
            raise ConflictError(
                f"Order {order.id} is not awaiting payment",
                details={"order_id": order.id, "payment_status": order.payment_status},
            )

        take_stock_for_order(order.id)

        order.payment_status = "paid"
        order.status = "processing"

        payments = db.session.query(Transaction).filter_by(order_id=order.id, type="payment").all()
        for txn in payments:
            txn.status = "completed"
            txn.reference = gateway_payment_id

        cart = find_open_cart(order.user_id, for_update=True)
        if cart:
            close_cart(cart)

        db.session.commit()
        return order, False

    try:
        order, already_paid = run_with_retry(_op)
    except InsufficientStockError as exc:
        # The customer has been charged; this needs a manual refund.
        current_app.logger.error(
            "Payment %s captured for gateway order %s but product %s is out of stock",
            gateway_payment_id,
            gateway_order_id,
            exc.product_id,
        )
        raise

    if not already_paid:
        current_app.logger.info("Order %s paid (payment %s)", order.id, gateway_payment_id)
        user = db.session.get(User, order.user_id) if order.user_id else None
        notification_service.emit_to_admins(notification_service.ORDER_CREATED, {
            "order": order.to_dict(),
            "user": {"id": user.id, "name": user.name, "email": user.email} if user else {"id": order.user_id},
        })

    return {"success": True, "order_id": order.id, "already_paid": already_paid}


def record_failure(
    gateway_order_id: str,
    error: dict | str | None = None,
    *,
    user_id: int | None = None,
) -> Order | None:
    """
    Client-reported payment failure. Same terminal state as a bad signature.

    With user_id, only that user's order is touched. Idempotent; orders that
    are no longer pending are left alone.
    """
    if not gateway_order_id:
        raise ValidationError("Missing order ID")

    def _op():
        order = _mark_payment_failed(gateway_order_id, user_id=user_id)
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info(
        "Payment failure recorded for gateway order %s (order %s): %s",
        gateway_order_id,
        order.id if order else None,
        error,
    )
    return order


def _mark_payment_failed(gateway_order_id: str, *, user_id: int | None = None) -> Order | None:
    query = db.session.query(Order).filter_by(tracking_number=gateway_order_id, payment_status="pending")
    if user_id is not None:
        query = query.filter_by(user_id=user_id)
    order = lock_for_update(query).first()
    if not order:
        return None

    order.payment_status = "failed"
    order.status = "cancelled"

    db.session.query(Transaction).filter_by(
        order_id=order.id, reference=gateway_order_id, type="payment"
    ).update({"status": "failed"}, synchronize_session="fetch")
    return order


# =============================================================================
# GATEWAY REFUNDS
# =============================================================================

def refund_order(
    order_id: int,
    actor: User,
    reason: str | None = None,
    amount_cents=None,
) -> dict:
    """
    Refund a paid online order through the gateway.

    The order row stays locked across the gateway call so concurrent refund
    requests for the same order serialize. Not retried: a retry after the
    gateway accepted the refund would refund twice.

    Full refund -> payment_status 'refunded'. Partial refund -> stays 'paid'.
    Either way the order is cancelled and its stock returned (once).

    Raises:
        NotFoundError, ForbiddenError, ValidationError, GatewayError
    """
    gateway = get_gateway()

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError("Order not found")

        if not actor.is_admin and actor.id != order.user_id:
            raise ForbiddenError("Unauthorized to refund this order")

        if order.payment_status != "paid":
            raise ValidationError("Order is not paid or already refunded")

        payment = (
            db.session.query(Transaction)
            .filter_by(order_id=order.id, type="payment", status="completed")
            .order_by(Transaction.id.desc())
            .first()
        )
        if not payment or not payment.reference:
            raise ValidationError("Payment ID not found for this order")

        already_refunded = _refunded_total(order.id)
        refundable = payment.amount_cents - already_refunded

        if amount_cents is None or amount_cents == "":
            amount = refundable
        else:
            amount = coerce_positive_int(amount_cents, "amount_cents")
        if amount <= 0:
            raise ValidationError("Nothing left to refund for this order")
        if amount > refundable:
            raise ValidationError("Refund amount cannot exceed payment amount")

        refund = gateway.refund_payment(
            payment.reference,
            amount=amount,
            notes={
                "order_id": str(order.id),
                "reason": reason or "Customer requested refund",
            },
        )

        stock_already_returned = order.status == "cancelled"
        is_full = already_refunded + amount == payment.amount_cents

        order.payment_status = "refunded" if is_full else "paid"
        order.status = "cancelled"

        refund_status = REFUND_STATUS_MAP.get(refund.get("status"), "pending")
        db.session.add(Transaction(
            order_id=order.id,
            user_id=order.user_id,
            amount_cents=amount,
            type="refund",
            method="online",
            status=refund_status,
            reference=refund["id"],
        ))

        if not stock_already_returned:
            return_stock_for_order(order.id)

        db.session.commit()
        return {
            "id": refund["id"],
            "amount": amount,
            "status": refund_status,
            "order_id": order.id,
        }

    result = run_with_retry(_op, attempts=1)
    current_app.logger.info(
        "Refund %s for order %s (%s paise, %s)",
        result["id"], result["order_id"], result["amount"], result["status"],
    )

    notification_service.emit_to_admins(notification_service.ORDER_REFUNDED, {
        "order_id": result["order_id"],
        "refund_id": result["id"],
        "amount": result["amount"],
        "status": result["status"],
    })
    return result


def _refunded_total(order_id: int) -> int:
    total = db.session.query(
        func.coalesce(func.sum(Transaction.amount_cents), 0)
    ).filter(
        Transaction.order_id == order_id,
        Transaction.type == "refund",
        Transaction.status != "failed",
    ).scalar()
    return int(total or 0)


def list_refunds(order_id: int, actor: User) -> list[Transaction]:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    if not actor.is_admin and actor.id != order.user_id:
        raise ForbiddenError("Unauthorized to view refunds for this order")

    return (
        db.session.query(Transaction)
        .filter_by(order_id=order_id, type="refund")
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .all()
    )


# =============================================================================
# WEBHOOKS
# =============================================================================

def handle_webhook(raw_body: bytes, signature: str | None) -> str:
    """
    Process a gateway webhook.

    Returns a short outcome string for logging. Raises WebhookSignatureError
    when the body signature does not verify.
    """
    secret = current_app.config.get("RAZORPAY_WEBHOOK_SECRET")
    if not secret:
        current_app.logger.warning("Razorpay webhook secret not configured")
        return "ignored"

    if not verify_webhook_signature(secret, raw_body, signature):
        raise WebhookSignatureError("Invalid webhook signature")

    try:
        body = json.loads(raw_body or b"{}")
    except ValueError:
        raise ValidationError("Invalid webhook payload")
    if not isinstance(body, dict):
        raise ValidationError("Invalid webhook payload")

    event = body.get("event")
    payload = body.get("payload")
    if not isinstance(payload, dict):
        payload = {}
    current_app.logger.info("Razorpay webhook event: %s", event)

    if event in ("refund.processed", "refund.failed"):
        refund_id = ((payload.get("refund") or {}).get("entity") or {}).get("id")
        new_status = "completed" if event == "refund.processed" else "failed"

        def _op():
            refunds = db.session.query(Transaction).filter_by(reference=refund_id, type="refund").all()
            for txn in refunds:
                txn.status = new_status
            db.session.commit()
            return len(refunds)

        updated = run_with_retry(_op) if refund_id else 0
        if not updated:
            current_app.logger.warning("Webhook %s for unknown refund %s", event, refund_id)
        return event

    if event in ("payment.captured", "payment.failed"):
        payment_id = ((payload.get("payment") or {}).get("entity") or {}).get("id")
        current_app.logger.info("Payment %s: %s", event.split(".", 1)[1], payment_id)
        return event

    current_app.logger.info("Unhandled webhook event: %s", event)
    return "unhandled"
