# Overview: Append-only expense log used by the stats summary.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Expense
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, enforce_rules_expense, validate_payload
from .concurrency import run_in_transaction


EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"description", "amount_cents", "category", "spent_on"},
    required_on_create={"description", "amount_cents", "category"},
)


def list_expenses() -> list[Expense]:
    return (
        db.session.query(Expense)
        .order_by(Expense.spent_on.desc(), Expense.id.desc())
        .all()
    )


def add_expense(payload: dict, *, created_by_user_id: int | None = None) -> Expense:
    """
    Record an expense. The client-facing field "date" maps to spent_on and
    defaults to today (UTC).
    """
    payload = dict(payload or {})
    if "date" in payload:
        payload["spent_on"] = payload.pop("date")

    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
    enforce_rules_expense(patch)
    if patch.get("spent_on") is None:
        patch["spent_on"] = utcnow().date()

    def _op():
        expense = Expense(created_by_user_id=created_by_user_id, created_at=utcnow(), **patch)
        db.session.add(expense)
        db.session.flush()
        return expense

    expense = run_in_transaction(_op)
    current_app.logger.info(
        "Expense %s recorded: %s cents (%s)", expense.id, expense.amount_cents, expense.category
    )
    return expense
