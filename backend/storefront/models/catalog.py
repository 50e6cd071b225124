from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Catalog entry.

    Prices are integer minor units (paise). Stock is decremented by checkout and
    payment verification and restored by cancellation/refund; the CHECK
    constraint is the storage-level guard against overselling.
    Products are archived (is_active=False) rather than deleted once they
    appear in order history.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("price >= 0", name="ck_products_price_nonneg"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_nonneg"),
        db.CheckConstraint("mrp_cents IS NULL OR mrp_cents >= 0", name="ck_products_mrp_nonneg"),
        db.Index("ix_products_active_category", "is_active", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(120), nullable=False, default="General")

    price = db.Column(db.Integer, nullable=False)
    mrp_cents = db.Column(db.Integer, nullable=True)
    stock = db.Column(db.Integer, nullable=False, default=0)

    image_url = db.Column(db.String(1024), nullable=True)
    unit = db.Column(db.String(64), nullable=True)
    brand = db.Column(db.String(120), nullable=True)
    is_veg = db.Column(db.Boolean, nullable=True)
    origin = db.Column(db.String(120), nullable=True)
    tags = db.Column(db.JSON, nullable=False, default=list)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "price_cents": self.price,
            "mrp_cents": self.mrp_cents,
            "stock": self.stock,
            "image_url": self.image_url,
            "unit": self.unit or "",
            "brand": self.brand or "",
            "is_veg": self.is_veg,
            "origin": self.origin,
            "tags": list(self.tags or []),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
