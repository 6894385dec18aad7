# backend/mija/routes/expenses.py
"""Expense log routes (MANAGE_EXPENSES). Expenses are append-only."""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import expense_service
from ..validation import ValidationError
from ..decorators import require_auth, require_permission


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
@require_permission("MANAGE_EXPENSES")
def list_expenses_route():
    expenses = expense_service.list_expenses()
    return jsonify({"items": [e.to_dict() for e in expenses]}), 200


@expenses_bp.post("")
@require_auth
@require_permission("MANAGE_EXPENSES")
def add_expense_route():
    """Body: {description, amount_cents, category, date?}"""
    try:
        expense = expense_service.add_expense(
            request.get_json(silent=True),
            created_by_user_id=g.current_user.id,
        )
        return jsonify({"expense": expense.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to add expense")
        return jsonify({"error": "Internal server error"}), 500
