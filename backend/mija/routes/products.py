# backend/mija/routes/products.py
"""
Catalog routes.

- Reads are public; cost_cents is only returned to MANAGE_PRODUCTS holders.
- Writes require MANAGE_PRODUCTS.
"""
from flask import Blueprint, request, jsonify, current_app

from ..models import Product, ProductCategory
from ..services import products_service, inventory_service, session_service, permission_service
from ..services.errors import ShopError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    coerce_choice,
    ValidationError,
)
from ..decorators import require_auth, require_permission, bearer_token

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "category", "price_cents", "cost_cents", "stock",
        "image_url", "description", "estimated_arrival",
    },
    required_on_create={"name", "category", "price_cents", "cost_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _can_see_cost() -> bool:
    token = bearer_token()
    if not token:
        return False
    context = session_service.validate_session(token)
    return bool(context) and permission_service.user_has_permission(context.user, "MANAGE_PRODUCTS")


@products_bp.get("")
def list_products():
    """
    List the catalog, ordered by name.

    Query params:
    - category: pasabuy | onhand | sale (optional)
    """
    try:
        raw = request.args.get("category")
        category = coerce_choice(raw, ProductCategory, "category") if raw else None
        include_cost = _can_see_cost()
        products = products_service.list_products(category)
        return jsonify({"items": [p.to_dict(include_cost=include_cost) for p in products]}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    try:
        product = products_service.get_product(product_id)
        return jsonify(product.to_dict(include_cost=_can_see_cost())), 200
    except ShopError as e:
        return jsonify(e.to_dict()), e.http_status


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product():
    try:
        payload = request.get_json(silent=True)
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        product = products_service.create_product(patch)
        return jsonify(product.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ShopError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product(product_id: int):
    try:
        product = products_service.get_product(product_id)
        payload = request.get_json(silent=True)
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch, category=product.category)
        product = products_service.update_product(product_id, patch)
        return jsonify(product.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ShopError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_product(product_id: int):
    try:
        products_service.delete_product(product_id)
        return jsonify({"deleted": True, "id": product_id}), 200
    except ShopError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>/movements")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def list_product_movements(product_id: int):
    """Stock journal for one product, oldest first."""
    limit = request.args.get("limit", default=200, type=int)
    movements = inventory_service.list_movements(product_id=product_id, limit=min(max(limit, 1), 1000))
    return jsonify({"items": [m.to_dict() for m in movements]}), 200
