"""
Stats summary and expense log tests.
"""

from datetime import date, datetime, timedelta

import pytest

from mija.models import ProductCategory
from mija.services import cart_service, expense_service, order_service, reporting_service
from mija.validation import ValidationError


T0 = datetime(2026, 3, 1, 9, 30, 0)


def _checkout(customer, make_product, category, price_cents):
    product = make_product(category=category, price_cents=price_cents, stock=5)
    cart_service.add_item(customer.id, product.id, 1)
    return order_service.checkout(customer.id, payment_method="gcash", now=T0)


class TestExpenses:

    def test_add_and_list(self, master):
        expense_service.add_expense(
            {"description": "Bubble wrap", "amount_cents": 1500, "category": "supplies", "date": "2026-02-10"},
            created_by_user_id=master.id,
        )
        expense_service.add_expense(
            {"description": "Courier", "amount_cents": 9000, "category": "shipping", "date": "2026-02-12"},
        )

        expenses = expense_service.list_expenses()

        assert [e.description for e in expenses] == ["Courier", "Bubble wrap"]
        assert expenses[1].spent_on == date(2026, 2, 10)
        assert expenses[1].created_by_user_id == master.id
        assert expenses[0].to_dict()["date"] == "2026-02-12"

    def test_date_defaults_to_today(self, db_session):
        expense = expense_service.add_expense(
            {"description": "Tape", "amount_cents": 100, "category": "supplies"}
        )
        assert expense.spent_on is not None

    @pytest.mark.parametrize(
        "payload",
        [
            {"description": "Tape", "category": "supplies"},
            {"description": "Tape", "amount_cents": 0, "category": "supplies"},
            {"description": "Tape", "amount_cents": -100, "category": "supplies"},
            {"description": "Tape", "amount_cents": "12.50", "category": "supplies"},
            {"description": "", "amount_cents": 100, "category": "supplies"},
            {"description": "Tape", "amount_cents": 100, "category": "supplies", "date": "yesterday"},
            {"description": "Tape", "amount_cents": 100, "category": "supplies", "id": 5},
        ],
    )
    def test_invalid_payloads(self, db_session, payload):
        with pytest.raises(ValidationError):
            expense_service.add_expense(payload)


class TestStatsSummary:

    def test_empty_shop(self, db_session):
        assert reporting_service.stats_summary() == {
            "total_sales_cents": 0,
            "total_expenses_cents": 0,
            "gross_profit_cents": 0,
            "pending_orders": 0,
            "fully_paid_orders": 0,
            "completed_orders": 0,
            "total_products": 0,
        }

    def test_buckets_and_totals(self, master, customer, make_product):
        pending = _checkout(customer, make_product, ProductCategory.PASABUY, 1000)
        paid = _checkout(customer, make_product, ProductCategory.ONHAND, 500)
        shipped = _checkout(customer, make_product, ProductCategory.ONHAND, 300)
        completed = _checkout(customer, make_product, ProductCategory.SALE, 200)
        cancelled = _checkout(customer, make_product, ProductCategory.ONHAND, 700)

        order_service.update_status(shipped.id, master, "shipped", shipping_method="shopee")
        order_service.update_status(completed.id, master, "shipped", shipping_method="lalamove")
        order_service.update_status(completed.id, master, "completed")
        order_service.update_status(cancelled.id, master, "cancelled")
        expense_service.add_expense({"description": "Ads", "amount_cents": 250, "category": "marketing"})

        stats = reporting_service.stats_summary()

        assert stats["total_sales_cents"] == 500 + 300 + 200
        assert stats["total_expenses_cents"] == 250
        assert stats["gross_profit_cents"] == 750
        assert stats["pending_orders"] == 1
        assert stats["fully_paid_orders"] == 2
        assert stats["completed_orders"] == 1
        assert stats["total_products"] == 5
        assert pending.status.value == "pending"
        assert paid.status.value == "fully_paid"

    def test_stats_do_not_sweep(self, customer, make_product):
        order = _checkout(customer, make_product, ProductCategory.PASABUY, 1000)

        # Long past the deadline; only list reads expire orders
        stats = reporting_service.stats_summary()

        assert stats["pending_orders"] == 1
        assert order_service.get_order(order.id).status.value == "pending"
