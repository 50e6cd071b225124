# Overview: Cart Manager; the single open cart per user and its line items.

"""
Cart service.

Every operation derives the cart from the authenticated user id, never from
a client-supplied cart id. Stock is not checked here: a cart may hold more
than is available, and the shortfall is reported at checkout.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Cart, CartItem, Product
from ..validation import NotFoundError, ValidationError, coerce_positive_int
from .concurrency import lock_for_update, run_with_retry


def find_open_cart(user_id: int, *, for_update: bool = False) -> Cart | None:
    query = db.session.query(Cart).filter_by(user_id=user_id, status="open")
    if for_update:
        query = lock_for_update(query)
    return query.first()


def get_or_create_cart(user_id: int) -> int:
    """
    Return the user's open cart id, creating the cart on first access.

    Two concurrent first accesses race on uq_carts_user_open; the loser's
    insert is rolled back and it re-reads the winner's cart.
    """
    cart = find_open_cart(user_id)
    if cart:
        return cart.id

    cart = Cart(user_id=user_id, status="open")
    db.session.add(cart)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        cart = find_open_cart(user_id)
        if cart is None:
            raise
    return cart.id


def get_cart_snapshot(user_id: int) -> dict:
    cart_id = get_or_create_cart(user_id)
    rows = (
        db.session.query(CartItem, Product)
        .join(Product, Product.id == CartItem.product_id)
        .filter(CartItem.cart_id == cart_id)
        .order_by(CartItem.id)
        .all()
    )

    items = []
    for item, product in rows:
        items.append({
            "id": item.id,
            "product_id": product.id,
            "name": product.name,
            "image_url": product.image_url,
            "price_cents": product.price,
            "unit": product.unit,
            "category": product.category,
            "is_veg": product.is_veg,
            "quantity": item.quantity,
            "line_total_cents": item.quantity * product.price,
        })

    return {
        "items": items,
        "total_cents": sum(it["line_total_cents"] for it in items),
    }


def add_item(user_id: int, product_id, quantity=1) -> dict:
    """Add quantity of a product; repeated adds accumulate on the same line."""
    if not product_id:
        raise ValidationError("productId and positive quantity required")
    product_id = coerce_positive_int(product_id, "productId")
    qty = coerce_positive_int(quantity if quantity is not None else 1, "quantity")

    cart_id = get_or_create_cart(user_id)

    def _find_line():
        return lock_for_update(
            db.session.query(CartItem).filter_by(cart_id=cart_id, product_id=product_id)
        ).first()

    def _op():
        product = db.session.query(Product).filter_by(id=product_id).first()
        if not product:
            raise NotFoundError("Product not found")

        item = _find_line()
        if item:
            item.quantity = item.quantity + qty
            db.session.commit()
            return

        db.session.add(CartItem(cart_id=cart_id, product_id=product_id, quantity=qty))
        try:
            db.session.commit()
        except IntegrityError:
            # Lost the race on uq_cart_items_cart_product; add onto the winner's line.
            db.session.rollback()
            item = _find_line()
            if item is None:
                raise
            item.quantity = item.quantity + qty
            db.session.commit()

    run_with_retry(_op)
    return get_cart_snapshot(user_id)


def set_item_quantity(user_id: int, item_id: int, quantity) -> dict:
    qty = coerce_positive_int(quantity, "quantity")
    cart_id = get_or_create_cart(user_id)

    def _op():
        item = db.session.query(CartItem).filter_by(id=item_id, cart_id=cart_id).first()
        if not item:
            raise NotFoundError("Cart item not found")
        item.quantity = qty
        db.session.commit()

    run_with_retry(_op)
    return get_cart_snapshot(user_id)


def remove_item(user_id: int, item_id: int) -> dict:
    cart_id = get_or_create_cart(user_id)

    def _op():
        deleted = db.session.query(CartItem).filter_by(id=item_id, cart_id=cart_id).delete()
        if not deleted:
            raise NotFoundError("Cart item not found")
        db.session.commit()

    run_with_retry(_op)
    return get_cart_snapshot(user_id)


def clear(user_id: int) -> dict:
    cart_id = get_or_create_cart(user_id)

    def _op():
        db.session.query(CartItem).filter_by(cart_id=cart_id).delete()
        db.session.commit()

    run_with_retry(_op)
    return get_cart_snapshot(user_id)


def close_cart(cart: Cart) -> None:
    """Delete the cart's items and mark it ordered. Caller commits."""
    db.session.query(CartItem).filter_by(cart_id=cart.id).delete()
    cart.status = "ordered"
