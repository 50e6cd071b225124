# Overview: Product stock mutations used by checkout, verification, cancellation and refund.

"""
Stock is a plain counter on products, mutated only inside the transaction
that also writes the order state justifying the change.

Reservation is a conditional decrement:

    UPDATE products SET stock = stock - :qty WHERE id = :id AND stock >= :qty

so two concurrent checkouts cannot both take the last unit; the loser sees
zero affected rows and gets InsufficientStockError.
"""

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.orm.util import identity_key

from ..extensions import db
from ..models import Product, OrderItem
from ..validation import ConflictError


class InsufficientStockError(ConflictError):
    def __init__(self, product_id: int, available: int | None = None, requested: int | None = None):
        super().__init__(
            f"Insufficient stock for product {product_id}",
            details={"product_id": product_id, "available": available, "requested": requested},
        )
        self.product_id = product_id


def take_stock(product_id: int, quantity: int) -> None:
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    _expire_cached(product_id)
    if result.rowcount != 1:
        available = db.session.query(Product.stock).filter(Product.id == product_id).scalar()
        raise InsufficientStockError(product_id, available=available, requested=quantity)


def return_stock(product_id: int, quantity: int) -> None:
    db.session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + quantity)
        .execution_options(synchronize_session=False)
    )
    _expire_cached(product_id)


def take_stock_for_order(order_id: int) -> None:
    for item in _order_items(order_id):
        take_stock(item.product_id, item.quantity)


def return_stock_for_order(order_id: int) -> None:
    for item in _order_items(order_id):
        return_stock(item.product_id, item.quantity)


def _order_items(order_id: int) -> list[OrderItem]:
    return (
        db.session.query(OrderItem)
        .filter_by(order_id=order_id)
        .order_by(OrderItem.id)
        .all()
    )


def _expire_cached(product_id: int) -> None:
    # the UPDATE bypasses the identity map; reload stock on next access
    cached = db.session.identity_map.get(identity_key(Product, product_id))
    if cached is not None:
        db.session.expire(cached, ["stock"])
