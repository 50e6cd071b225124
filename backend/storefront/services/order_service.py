# Overview: Order Lifecycle Manager; listings, admin status updates and customer cancellation.

"""
Order lifecycle.

Admin status updates are free-form: any enum value may be set from any
other, no transition graph is enforced.

Customer cancellation is allowed from 'placed' or 'processing'. It returns
stock only where stock was taken (COD orders, or online orders already
paid), and for a paid online order writes a completed refund transaction
without calling the gateway. Money movement at the gateway only happens
through payment_service.refund_order.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..models import Order, OrderItem, Transaction, User, ORDER_STATUSES, PAYMENT_STATUSES
from ..validation import ForbiddenError, NotFoundError, ValidationError, require_choice
from . import notification_service
from .concurrency import lock_for_update, run_with_retry
from .stock_service import return_stock_for_order


CANCELLABLE_STATUSES = ("placed", "processing")

MAX_ADMIN_PAGE_SIZE = 200


@dataclass(frozen=True)
class OrderStatusUpdate:
    """Admin patch; None means leave unchanged."""
    status: str | None = None
    payment_status: str | None = None

    @classmethod
    def from_payload(cls, payload: dict | None) -> "OrderStatusUpdate":
        payload = payload or {}
        return cls(
            status=payload.get("status") or None,
            payment_status=payload.get("payment_status") or None,
        )

    def validate(self) -> None:
        if self.status is None and self.payment_status is None:
            raise ValidationError("Provide status or payment_status")
        if self.status is not None:
            require_choice(self.status, ORDER_STATUSES, "status")
        if self.payment_status is not None:
            require_choice(self.payment_status, PAYMENT_STATUSES, "payment_status")


def _serialize_order(order: Order, *, include_user: bool = False) -> dict:
    data = order.to_dict()
    data["tracking_number"] = order.tracking_number
    data["items"] = [item.to_dict() for item in order.items]
    if include_user:
        user = order.user
        data["user"] = {
            "id": order.user_id,
            "name": user.name if user else None,
            "email": user.email if user else None,
        }
    return data


def list_orders_for_user(user_id: int) -> list[dict]:
    orders = (
        db.session.query(Order)
        .filter_by(user_id=user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    return [_serialize_order(o) for o in orders]


def admin_list_orders(page: int = 1, limit: int = 50) -> dict:
    page = max(1, page)
    limit = max(1, min(limit, MAX_ADMIN_PAGE_SIZE))

    query = db.session.query(Order)
    total = query.count()
    orders = (
        query.order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "orders": [_serialize_order(o, include_user=True) for o in orders],
        "total": total,
        "page": page,
        "limit": limit,
    }


def update_status(order_id: int, update: OrderStatusUpdate) -> Order:
    """
    Admin override of status and/or payment_status.

    Raises:
        ValidationError: nothing to change, or a value outside the enums
        NotFoundError: unknown order
    """
    update.validate()

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError("Order not found")

        if update.status is not None:
            order.status = update.status
        if update.payment_status is not None:
            order.payment_status = update.payment_status

        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info(
        "Order %s updated: status=%s payment_status=%s", order.id, order.status, order.payment_status
    )
    notification_service.emit_to_admins(notification_service.ORDER_UPDATED, {"order": order.to_dict()})
    return order


def cancel_order(order_id: int, user: User) -> Order:
    """
    Customer cancellation of their own order.

    Raises:
        NotFoundError: unknown order
        ForbiddenError: order belongs to someone else
        ValidationError: order is past the cancellable states
    """
    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError("Order not found")
        if order.user_id != user.id:
            raise ForbiddenError("Unauthorized to cancel this order")
        if order.status not in CANCELLABLE_STATUSES:
            raise ValidationError(f"Cannot cancel order with status: {order.status}")

        stock_was_taken = order.payment_method == "cod" or order.payment_status == "paid"
        if stock_was_taken:
            return_stock_for_order(order.id)

        if order.payment_method != "cod" and order.payment_status == "paid":
            db.session.add(Transaction(
                order_id=order.id,
                user_id=order.user_id,
                amount_cents=order.total_cents,
                type="refund",
                method=order.payment_method,
                status="completed",
                reference=f"CANCEL-{order.id}",
            ))
            order.payment_status = "refunded"

        order.status = "cancelled"
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Order %s cancelled by user %s", order.id, user.id)

    notification_service.emit_to_admins(notification_service.ORDER_CANCELLED, {
        "order_id": order.id,
        "user_id": user.id,
        "payment_status": order.payment_status,
    })
    return order


def order_items_total(order_id: int) -> int:
    """Sum of quantity * price over the order's items."""
    items = db.session.query(OrderItem).filter_by(order_id=order_id).all()
    return sum(i.quantity * i.price for i in items)
