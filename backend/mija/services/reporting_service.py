# Overview: Stats summary read model over orders, expenses and products.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Expense, Order, OrderStatus, Product


SALES_STATUSES = (OrderStatus.FULLY_PAID, OrderStatus.SHIPPED, OrderStatus.COMPLETED)
PENDING_STATUSES = (OrderStatus.PENDING, OrderStatus.READY_FOR_PAYMENT, OrderStatus.DEPOSIT_PAID)
FULLY_PAID_BUCKET = (OrderStatus.FULLY_PAID, OrderStatus.SHIPPED)


def _count_orders(statuses) -> int:
    return db.session.query(func.count(Order.id)).filter(Order.status.in_(statuses)).scalar() or 0


def stats_summary() -> dict:
    """
    Dashboard totals. Reads current state only; overdue deposits are not
    swept here, so an unswept overdue order still counts as pending.
    """
    total_sales = (
        db.session.query(func.coalesce(func.sum(Order.total_cents), 0))
        .filter(Order.status.in_(SALES_STATUSES))
        .scalar()
    )
    total_expenses = db.session.query(func.coalesce(func.sum(Expense.amount_cents), 0)).scalar()

    return {
        "total_sales_cents": int(total_sales),
        "total_expenses_cents": int(total_expenses),
        "gross_profit_cents": int(total_sales) - int(total_expenses),
        "pending_orders": _count_orders(PENDING_STATUSES),
        "fully_paid_orders": _count_orders(FULLY_PAID_BUCKET),
        "completed_orders": _count_orders((OrderStatus.COMPLETED,)),
        "total_products": db.session.query(func.count(Product.id)).scalar() or 0,
    }
