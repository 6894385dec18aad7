# backend/mija/routes/cart.py
"""
Cart and checkout routes for the logged-in customer (SHOP permission).
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import cart_service, order_service
from ..services.errors import ShopError
from ..validation import ValidationError, coerce_int
from ..decorators import require_auth, require_permission


cart_bp = Blueprint("cart", __name__, url_prefix="/api")


@cart_bp.get("/cart")
@require_auth
@require_permission("SHOP")
def get_cart_route():
    return jsonify(cart_service.cart_to_dict(g.current_user.id)), 200


@cart_bp.post("/cart")
@require_auth
@require_permission("SHOP")
def add_to_cart_route():
    """
    Add a product to the cart (or increase its quantity).

    Body: {product_id, quantity?=1}
    Returns the cart and the number of distinct items in it.
    """
    try:
        data = request.get_json() or {}
        if data.get("product_id") is None:
            return jsonify({"error": "product_id required"}), 400

        product_id = coerce_int(data.get("product_id"), "product_id")
        quantity = data.get("quantity", 1)

        item_count = cart_service.add_item(g.current_user.id, product_id, quantity)
        cart = cart_service.cart_to_dict(g.current_user.id)
        return jsonify({"cart": cart, "item_count": item_count}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ShopError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to add item to cart")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.put("/cart/<int:product_id>")
@require_auth
@require_permission("SHOP")
def set_quantity_route(product_id: int):
    """Body: {quantity}. Zero or less removes the line."""
    try:
        data = request.get_json() or {}
        if "quantity" not in data:
            return jsonify({"error": "quantity required"}), 400

        quantity = coerce_int(data.get("quantity"), "quantity")
        cart_service.set_quantity(g.current_user.id, product_id, quantity)
        return jsonify({"cart": cart_service.cart_to_dict(g.current_user.id)}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ShopError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update cart quantity")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.delete("/cart/<int:product_id>")
@require_auth
@require_permission("SHOP")
def remove_from_cart_route(product_id: int):
    try:
        cart_service.remove_item(g.current_user.id, product_id)
        return jsonify({"cart": cart_service.cart_to_dict(g.current_user.id)}), 200
    except ShopError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to remove cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.delete("/cart")
@require_auth
@require_permission("SHOP")
def clear_cart_route():
    try:
        cart_service.clear_cart(g.current_user.id)
        return jsonify({"cart": cart_service.cart_to_dict(g.current_user.id)}), 200
    except Exception:
        current_app.logger.exception("Failed to clear cart")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.post("/checkout")
@require_auth
@require_permission("SHOP")
def checkout_route():
    """
    Turn the cart into an order.

    Body: {payment_method, name?, email?, phone?, address?}
    Contact fields default to the customer's profile.
    """
    try:
        data = request.get_json() or {}
        if not data.get("payment_method"):
            return jsonify({"error": "payment_method required"}), 400

        order = order_service.checkout(
            g.current_user.id,
            payment_method=data.get("payment_method"),
            name=data.get("name"),
            email=data.get("email"),
            phone=data.get("phone"),
            address=data.get("address"),
        )
        return jsonify({"order": order.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ShopError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to check out cart")
        return jsonify({"error": "Internal server error"}), 500
