from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ORDER_STATUSES = ("placed", "processing", "shipped", "delivered", "cancelled")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
# card/upi are legacy methods kept for historical rows
PAYMENT_METHODS = ("cod", "online", "card", "upi")

TRANSACTION_TYPES = ("payment", "refund")
TRANSACTION_STATUSES = ("pending", "completed", "failed")


class Order(db.Model):
    """
    Customer order.

    total_cents is frozen at placement and always equals the sum of its
    items' quantity * price. For online payments tracking_number carries the
    gateway order id until a shipping tracking number replaces it.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint("total_cents >= 0", name="ck_orders_total_nonneg"),
        db.CheckConstraint(
            "payment_method IN ('cod','online','card','upi')", name="ck_orders_payment_method"
        ),
        db.CheckConstraint(
            "payment_status IN ('pending','paid','failed','refunded')", name="ck_orders_payment_status"
        ),
        db.CheckConstraint(
            "status IN ('placed','processing','shipped','delivered','cancelled')", name="ck_orders_status"
        ),
        db.Index("ix_orders_tracking_number", "tracking_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    shipping_address_id = db.Column(
        db.Integer, db.ForeignKey("addresses.id", ondelete="SET NULL"), nullable=True
    )
    total_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default="pending")
    status = db.Column(db.String(16), nullable=False, default="placed")
    tracking_number = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    items = db.relationship("OrderItem", backref="order", lazy=True, order_by="OrderItem.id")
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "shipping_address_id": self.shipping_address_id,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    """Line snapshot: product, quantity and unit price at order time."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_pos"),
        db.CheckConstraint("price >= 0", name="ck_order_items_price_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        product = self.product
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "price": self.price,
            "name": product.name if product else None,
            "image": product.image_url if product else None,
            "unit": product.unit if product else None,
        }


class Transaction(db.Model):
    """
    Financial ledger entry for an order.

    New payment/refund events insert rows. Gateway callbacks update the
    matching row in place (status, and reference moves from the gateway
    order id to the payment id on capture).
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.CheckConstraint("amount_cents >= 0", name="ck_transactions_amount_nonneg"),
        db.CheckConstraint("type IN ('payment','refund')", name="ck_transactions_type"),
        db.CheckConstraint(
            "method IS NULL OR method IN ('cod','online','card','upi')", name="ck_transactions_method"
        ),
        db.CheckConstraint(
            "status IN ('pending','completed','failed')", name="ck_transactions_status"
        ),
        db.Index("ix_transactions_reference", "reference"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    type = db.Column(db.String(16), nullable=False)
    method = db.Column(db.String(16), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="completed")
    reference = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "amount_cents": self.amount_cents,
            "type": self.type,
            "method": self.method,
            "status": self.status,
            "reference": self.reference,
            "created_at": to_utc_z(self.created_at),
        }
