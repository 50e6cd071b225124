# backend/storefront/services/products_service.py
"""
Products Service

Public reads only see active products. Admin writes take a patch already
validated against PRODUCT_POLICY (see routes/products.py), so this module
only applies it. Products with order history are archived, never deleted.
"""
from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import CartItem, OrderItem, Product
from ..validation import ConflictError, NotFoundError

PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "category", "price", "mrp_cents", "stock",
    "image_url", "unit", "brand", "is_veg", "origin", "tags", "is_active",
}

MAX_PUBLIC_PAGE_SIZE = 100
MAX_ADMIN_PAGE_SIZE = 200


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _paginate(query, page: int, limit: int, max_limit: int) -> dict:
    limit = max(1, min(limit or 20, max_limit))
    page = max(page or 1, 1)
    total = query.count()
    products = query.offset((page - 1) * limit).limit(limit).all()
    return {
        "items": [p.to_dict() for p in products],
        "page": page,
        "limit": limit,
        "total": total,
    }


def list_products(
    page: int = 1,
    limit: int = 20,
    category: str | None = None,
    q: str | None = None,
) -> dict:
    """
    Storefront listing of active products.

    Args:
        page: 1-indexed page number
        limit: items per page (max 100)
        category: exact category filter
        q: case-insensitive match on name, brand or description
    """
    query = db.session.query(Product).filter(Product.is_active.is_(True))
    if category:
        query = query.filter(Product.category == category)
    if q:
        like = f"%{q.strip()}%"
        query = query.filter(or_(
            Product.name.ilike(like),
            Product.brand.ilike(like),
            Product.description.ilike(like),
        ))
    return _paginate(query.order_by(Product.id.asc()), page, limit, MAX_PUBLIC_PAGE_SIZE)


def admin_list_products(page: int = 1, limit: int = 100) -> dict:
    query = db.session.query(Product).order_by(Product.id.asc())
    return _paginate(query, page, limit, MAX_ADMIN_PAGE_SIZE)


def get_product(product_id: int, *, include_inactive: bool = False) -> Product:
    product = db.session.get(Product, product_id)
    if not product or (not product.is_active and not include_inactive):
        raise NotFoundError("Product not found")
    return product


def create_product(*, patch: dict) -> dict:
    p = Product(category="General", tags=[], is_active=True)
    apply_product_patch(p, patch)
    if not p.category:
        p.category = "General"

    db.session.add(p)
    db.session.commit()
    return p.to_dict()


def update_product(product_id: int, *, patch: dict) -> dict:
    p = db.session.get(Product, product_id)
    if not p:
        raise NotFoundError("Product not found")

    apply_product_patch(p, patch)
    db.session.commit()
    return p.to_dict()


def set_product_active(product_id: int, is_active: bool) -> dict:
    """Archive (False) or restore (True). Idempotent."""
    p = db.session.get(Product, product_id)
    if not p:
        raise NotFoundError("Product not found")

    p.is_active = is_active
    db.session.commit()
    return p.to_dict()


def delete_product(product_id: int) -> None:
    """
    Hard delete. Products referenced by orders must be archived instead.

    Raises:
        NotFoundError: unknown product
        ConflictError: product appears in order history
    """
    p = db.session.get(Product, product_id)
    if not p:
        raise NotFoundError("Product not found")

    in_orders = db.session.query(OrderItem.id).filter_by(product_id=product_id).first()
    if in_orders:
        raise ConflictError(
            "Product has order history; archive it instead",
            details={"product_id": product_id},
        )

    db.session.query(CartItem).filter_by(product_id=product_id).delete()
    db.session.delete(p)
    db.session.commit()
