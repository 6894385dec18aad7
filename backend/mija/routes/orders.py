# backend/mija/routes/orders.py
"""
Order routes.

List reads run the deposit-expiry sweep before answering, so an overdue
pasabuy order shows up as cancelled (and its stock is back) on the first
list call after its deadline.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import order_service, permission_service
from ..services.errors import ShopError
from ..services.permission_service import PermissionDeniedError
from ..validation import ValidationError
from ..decorators import require_auth, require_permission, require_any_permission


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _error_response(e: Exception, action: str):
    if isinstance(e, ShopError):
        return jsonify(e.to_dict()), e.http_status
    if isinstance(e, PermissionDeniedError):
        return jsonify({"error": "Permission denied", "message": str(e)}), 403
    if isinstance(e, ValidationError):
        return jsonify({"error": str(e)}), 400
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
@require_auth
@require_any_permission("VIEW_ORDERS", "VIEW_SHIPPING_QUEUE")
def list_orders_route():
    """
    Staff order list, newest first.

    Query params:
    - filter: ready_to_ship (optional). Forced for staff who can only see
      the shipping queue.
    """
    try:
        order_filter = request.args.get("filter") or None
        if not permission_service.user_has_permission(g.current_user, "VIEW_ORDERS"):
            order_filter = order_service.FILTER_READY_TO_SHIP

        orders = order_service.list_orders_for_staff(order_filter)
        return jsonify({"items": [o.to_dict() for o in orders]}), 200
    except Exception as e:
        return _error_response(e, "list orders")


@orders_bp.get("/mine")
@require_auth
@require_permission("SHOP")
def list_my_orders_route():
    try:
        orders = order_service.list_orders_for_customer(g.current_user.id)
        return jsonify({"items": [o.to_dict() for o in orders]}), 200
    except Exception as e:
        return _error_response(e, "list customer orders")


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        order = order_service.get_order_for(g.current_user, order_id)
        return jsonify({"order": order.to_dict()}), 200
    except Exception as e:
        return _error_response(e, "get order")


@orders_bp.put("/<int:order_id>/status")
@require_auth
def update_status_route(order_id: int):
    """
    Staff status change. Who may take which edge is decided per transition.

    Body: {status, shipping_method?, deposit_cents?, expected_status?}
    - shipping_method is required when status is shipped
    - deposit_cents overrides the confirmed deposit when status is deposit_paid
    - expected_status makes the change conditional on the current status
    """
    try:
        data = request.get_json() or {}
        if not data.get("status"):
            return jsonify({"error": "status required"}), 400

        order = order_service.update_status(
            order_id,
            g.current_user,
            data.get("status"),
            shipping_method=data.get("shipping_method"),
            deposit_cents=data.get("deposit_cents"),
            expected_status=data.get("expected_status"),
        )
        return jsonify({"order": order.to_dict()}), 200
    except Exception as e:
        return _error_response(e, "update order status")


@orders_bp.put("/<int:order_id>/deposit")
@require_auth
@require_permission("MANAGE_ORDERS")
def set_deposit_route(order_id: int):
    """Body: {deposit_cents}"""
    try:
        data = request.get_json() or {}
        if data.get("deposit_cents") is None:
            return jsonify({"error": "deposit_cents required"}), 400

        order = order_service.set_deposit_amount(order_id, g.current_user, data.get("deposit_cents"))
        return jsonify({"order": order.to_dict()}), 200
    except Exception as e:
        return _error_response(e, "set deposit amount")


@orders_bp.post("/<int:order_id>/payments")
@require_auth
def record_payment_route(order_id: int):
    """
    Record a deposit or full payment.

    Body: {payment_method, is_full}
    """
    try:
        data = request.get_json() or {}
        if not data.get("payment_method"):
            return jsonify({"error": "payment_method required"}), 400
        is_full = data.get("is_full", False)
        if not isinstance(is_full, bool):
            return jsonify({"error": "is_full must be a boolean"}), 400

        order = order_service.record_payment(
            order_id,
            g.current_user,
            payment_method=data.get("payment_method"),
            is_full=is_full,
        )
        return jsonify({"order": order.to_dict()}), 200
    except Exception as e:
        return _error_response(e, "record payment")
