# Overview: Checkout Workflow; turns the open cart into an order inside one transaction.

"""
Checkout service

Both payment methods run the same preparation inside one DB transaction:

1. lock the caller's open cart (EmptyCartError if missing or empty)
2. load its lines with current price/stock, product rows locked FOR UPDATE
3. all-or-nothing stock check (InsufficientStockError names the first short product)
4. optional shipping address must belong to the caller (InvalidAddressError)
5. total = sum(quantity * unit price) in paise

Cash on delivery then finalizes immediately: stock is taken, the cart is
closed and a completed payment transaction is written.

Online payment is two-phase: the order and its items are written with
payment_status=pending, a gateway order is created for the total and stored
in tracking_number, and a pending payment transaction references it. Stock
and cart stay untouched until payment_service.verify_payment succeeds. A
gateway failure rolls the whole order back.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..models import Address, Cart, CartItem, Order, OrderItem, Product, Transaction, User
from ..time_utils import epoch_millis
from ..validation import ValidationError
from . import notification_service
from .cart_service import close_cart, find_open_cart
from .concurrency import lock_for_update, run_with_retry
from .gateway_service import get_gateway
from .stock_service import InsufficientStockError, take_stock


class EmptyCartError(ValidationError):
    def __init__(self):
        super().__init__("Cart is empty")


class InvalidAddressError(ValidationError):
    def __init__(self):
        super().__init__("Invalid shipping address")


@dataclass(frozen=True)
class CheckoutLine:
    product_id: int
    quantity: int
    unit_price: int

    @property
    def line_total(self) -> int:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class PreparedCheckout:
    cart: Cart
    lines: list[CheckoutLine]
    shipping_address_id: int | None

    @property
    def total_cents(self) -> int:
        return sum(line.line_total for line in self.lines)


def _prepare_checkout(user_id: int, shipping_address_id: int | None) -> PreparedCheckout:
    cart = find_open_cart(user_id, for_update=True)
    if not cart:
        raise EmptyCartError()

    rows = lock_for_update(
        db.session.query(CartItem, Product)
        .join(Product, Product.id == CartItem.product_id)
        .filter(CartItem.cart_id == cart.id)
        .order_by(Product.id)
    ).all()
    if not rows:
        raise EmptyCartError()

    lines = []
    for item, product in rows:
        if item.quantity > product.stock:
            raise InsufficientStockError(product.id, available=product.stock, requested=item.quantity)
        lines.append(CheckoutLine(product_id=product.id, quantity=item.quantity, unit_price=product.price))

    if shipping_address_id:
        owned = db.session.query(Address.id).filter_by(id=shipping_address_id, user_id=user_id).first()
        if not owned:
            raise InvalidAddressError()

    return PreparedCheckout(cart=cart, lines=lines, shipping_address_id=shipping_address_id or None)


def _insert_order(user_id: int, prepared: PreparedCheckout, payment_method: str) -> Order:
    order = Order(
        user_id=user_id,
        shipping_address_id=prepared.shipping_address_id,
        total_cents=prepared.total_cents,
        payment_method=payment_method,
        payment_status="pending",
        status="placed",
    )
    db.session.add(order)
    db.session.flush()

    for line in prepared.lines:
        db.session.add(OrderItem(
            order_id=order.id,
            product_id=line.product_id,
            quantity=line.quantity,
            price=line.unit_price,
        ))
    db.session.flush()
    return order


def place_cod_order(user: User, shipping_address_id: int | None = None) -> Order:
    """
    Place a cash-on-delivery order from the caller's open cart.

    Raises:
        EmptyCartError, InvalidAddressError: 400
        InsufficientStockError: 409, nothing written
    """
    def _op():
        prepared = _prepare_checkout(user.id, shipping_address_id)
        order = _insert_order(user.id, prepared, "cod")

        for line in prepared.lines:
            take_stock(line.product_id, line.quantity)

        close_cart(prepared.cart)

        db.session.add(Transaction(
            order_id=order.id,
            user_id=user.id,
            amount_cents=order.total_cents,
            type="payment",
            method="cod",
            status="completed",
            reference=f"COD-{order.id}-{epoch_millis()}",
        ))

        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Order %s placed (cod, total=%s)", order.id, order.total_cents)

    notification_service.emit_to_admins(notification_service.ORDER_CREATED, {
        "order": order.to_dict(),
        "user": {"id": user.id, "name": user.name, "email": user.email},
    })
    return order


def create_online_order(user: User, shipping_address_id: int | None = None) -> dict:
    """
    First phase of an online payment: pending order plus gateway order.

    Returns the handle the client needs to open the gateway checkout.

    Raises:
        EmptyCartError, InvalidAddressError: 400
        InsufficientStockError: 409
        GatewayError: gateway refused or unreachable; the order is rolled back
    """
    gateway = get_gateway()
    currency = current_app.config.get("PAYMENT_CURRENCY", "INR")

    def _op():
        prepared = _prepare_checkout(user.id, shipping_address_id)
        order = _insert_order(user.id, prepared, "online")

        gateway_order = gateway.create_order(
            amount=order.total_cents,
            currency=currency,
            receipt=f"order_{order.id}",
            notes={
                "order_id": str(order.id),
                "user_id": str(user.id),
                "user_email": user.email or "",
                "user_name": user.name or "",
            },
        )

        order.tracking_number = gateway_order["id"]
        db.session.add(Transaction(
            order_id=order.id,
            user_id=user.id,
            amount_cents=order.total_cents,
            type="payment",
            method="online",
            status="pending",
            reference=gateway_order["id"],
        ))

        db.session.commit()
        return order, gateway_order

    # Single attempt: a rerun would open a second gateway order for this checkout.
    order, gateway_order = run_with_retry(_op, attempts=1)
    current_app.logger.info("Order %s awaiting payment (gateway order %s)", order.id, gateway_order["id"])

    return {
        "id": order.id,
        "total_cents": order.total_cents,
        "gateway_order_id": gateway_order["id"],
        "gateway_key_id": current_app.config.get("RAZORPAY_KEY_ID"),
        "amount": gateway_order.get("amount", order.total_cents),
        "currency": gateway_order.get("currency", currency),
    }
