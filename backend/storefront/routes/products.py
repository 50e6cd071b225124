# Overview: Flask API routes for the product catalog; public reads and admin management.

# backend/storefront/routes/products.py
"""
Product catalog routes.

Public:
- GET /api/products          active products, paginated (limit <= 100)
- GET /api/products/<id>     one active product

Admin (role read from the database):
- GET /api/products/admin/all, POST, PUT, archive/restore, DELETE
"""
from flask import Blueprint, request, jsonify, current_app

from ..services import products_service
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_admin

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "category", "price", "mrp_cents", "stock",
        "image_url", "unit", "brand", "is_veg", "origin", "tags", "is_active",
    },
    required_on_create={"name", "price", "stock"},
    aliases={"price_cents": "price"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    Query params:
    - page: int (default 1)
    - limit: int (default 20, max 100)
    - category: exact category
    - q: search on name, brand, description
    """
    try:
        result = products_service.list_products(
            page=request.args.get("page", 1, type=int),
            limit=request.args.get("limit", 20, type=int),
            category=request.args.get("category") or None,
            q=request.args.get("q") or None,
        )
    except Exception:
        current_app.logger.exception("Failed to load products")
        return jsonify({"error": "Failed to load products"}), 500
    return jsonify(result)


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(product.to_dict())


@products_bp.get("/admin/all")
@require_admin
def admin_list_products():
    result = products_service.admin_list_products(
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", 100, type=int),
    )
    return jsonify(result)


@products_bp.post("")
@require_admin
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        created = products_service.create_product(patch=patch)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Failed to create product"}), 500

    return jsonify(created), 201


@products_bp.put("/<int:product_id>")
@require_admin
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    if not patch:
        return jsonify({"error": "No fields to update"}), 400

    try:
        updated = products_service.update_product(product_id, patch=patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(updated)


@products_bp.patch("/<int:product_id>/archive")
@require_admin
def archive_product_route(product_id: int):
    try:
        return jsonify(products_service.set_product_active(product_id, False))
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@products_bp.patch("/<int:product_id>/restore")
@require_admin
def restore_product_route(product_id: int):
    try:
        return jsonify(products_service.set_product_active(product_id, True))
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@products_bp.delete("/<int:product_id>")
@require_admin
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e), "details": e.details}), 409

    return jsonify({"message": "Product deleted successfully", "id": product_id})
