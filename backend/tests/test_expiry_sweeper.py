"""
Deposit-expiry sweep tests.

Verifies:
- The pure sweep plan (which orders expire, which releases that implies)
- Expiry is observed on list reads, not at the deadline itself
- Stock comes back exactly once, however often the sweep runs
"""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from mija.extensions import db
from mija.models import Order, OrderStatus, Product, ProductCategory, StockMovement
from mija.services import cart_service, expiry_service, order_service
from mija.services.expiry_service import StockRelease, sweep


T0 = datetime(2026, 3, 1, 9, 30, 0)
DEADLINE = T0 + timedelta(hours=24)


def _order(id, status, deadline=DEADLINE, lines=((1, 2),)):
    return SimpleNamespace(
        id=id,
        status=status,
        deposit_deadline=deadline,
        deposit_paid=status in (
            OrderStatus.DEPOSIT_PAID, OrderStatus.FULLY_PAID,
            OrderStatus.SHIPPED, OrderStatus.COMPLETED,
        ),
        lines=[SimpleNamespace(product_id=p, quantity=q) for p, q in lines],
    )


class TestSweepPlan:

    def test_overdue_pending_order_expires(self):
        order = _order(1, OrderStatus.PENDING, lines=((10, 2), (11, 3)))

        result = sweep([order], DEADLINE + timedelta(seconds=1))

        assert result.expired == [order]
        assert result.releases == [
            StockRelease(order_id=1, product_id=10, quantity=2),
            StockRelease(order_id=1, product_id=11, quantity=3),
        ]

    def test_deadline_itself_is_not_past(self):
        result = sweep([_order(1, OrderStatus.PENDING)], DEADLINE)
        assert result.expired == []
        assert result.releases == []

    def test_ready_for_payment_without_deposit_expires(self):
        result = sweep([_order(1, OrderStatus.READY_FOR_PAYMENT)], DEADLINE + timedelta(hours=1))
        assert [o.id for o in result.expired] == [1]

    @pytest.mark.parametrize(
        "status",
        [OrderStatus.DEPOSIT_PAID, OrderStatus.FULLY_PAID, OrderStatus.SHIPPED, OrderStatus.CANCELLED],
    )
    def test_paid_or_cancelled_orders_never_expire(self, status):
        result = sweep([_order(1, status)], DEADLINE + timedelta(days=30))
        assert result.expired == []

    def test_orders_without_deadline_never_expire(self):
        result = sweep([_order(1, OrderStatus.FULLY_PAID, deadline=None)], DEADLINE + timedelta(days=30))
        assert result.expired == []

    def test_mixed_working_set(self):
        orders = [
            _order(1, OrderStatus.PENDING),
            _order(2, OrderStatus.PENDING, deadline=DEADLINE + timedelta(hours=5)),
            _order(3, OrderStatus.CANCELLED),
            _order(4, OrderStatus.PENDING, lines=((7, 1),)),
        ]

        result = sweep(orders, DEADLINE + timedelta(hours=1))

        assert [o.id for o in result.expired] == [1, 4]
        assert {r.order_id for r in result.releases} == {1, 4}


def _place_pasabuy_order(customer, make_product, price_cents=400, stock=5, quantity=1):
    product = make_product(category=ProductCategory.PASABUY, price_cents=price_cents, stock=stock)
    cart_service.add_item(customer.id, product.id, quantity)
    order = order_service.checkout(customer.id, payment_method="gcash", now=T0)
    return order, product


class TestExpiryOnRead:

    def test_customer_list_cancels_overdue_order_and_releases_stock(self, customer, make_product):
        order, product = _place_pasabuy_order(customer, make_product)
        assert order.status == OrderStatus.PENDING
        assert order.deposit_cents == 120
        assert order.deposit_deadline == DEADLINE
        assert db.session.get(Product, product.id).stock == 4

        orders = order_service.list_orders_for_customer(customer.id, now=T0 + timedelta(hours=25))

        assert [o.id for o in orders] == [order.id]
        assert orders[0].status == OrderStatus.CANCELLED
        assert db.session.get(Product, product.id).stock == 5

    def test_staff_list_also_sweeps(self, customer, make_product):
        order, product = _place_pasabuy_order(customer, make_product, quantity=2)

        order_service.list_orders_for_staff(now=T0 + timedelta(hours=25))

        assert db.session.get(Order, order.id).status == OrderStatus.CANCELLED
        assert db.session.get(Product, product.id).stock == 5

    def test_expiry_is_observed_on_read_not_at_deadline(self, customer, make_product):
        order, product = _place_pasabuy_order(customer, make_product)

        # Deadline has passed, but nobody listed orders yet
        assert db.session.get(Order, order.id).status == OrderStatus.PENDING
        assert order_service.get_order(order.id).status == OrderStatus.PENDING
        assert db.session.get(Product, product.id).stock == 4

    def test_list_before_deadline_leaves_order_alone(self, customer, make_product):
        order, product = _place_pasabuy_order(customer, make_product)

        orders = order_service.list_orders_for_customer(customer.id, now=T0 + timedelta(hours=23))

        assert orders[0].status == OrderStatus.PENDING
        assert db.session.get(Product, product.id).stock == 4

    def test_deposit_paid_order_survives_deadline(self, master, customer, make_product):
        order, product = _place_pasabuy_order(customer, make_product)
        order_service.update_status(order.id, master, "ready_for_payment", now=T0 + timedelta(hours=1))
        order_service.update_status(order.id, master, "deposit_paid", now=T0 + timedelta(hours=2))

        orders = order_service.list_orders_for_customer(customer.id, now=T0 + timedelta(days=3))

        assert orders[0].status == OrderStatus.DEPOSIT_PAID
        assert db.session.get(Product, product.id).stock == 4

    def test_ready_to_ship_filter_applies_after_sweep(self, customer, make_product):
        overdue, _ = _place_pasabuy_order(customer, make_product)
        onhand = make_product(category=ProductCategory.ONHAND, stock=3)
        cart_service.add_item(customer.id, onhand.id, 1)
        paid = order_service.checkout(customer.id, payment_method="gcash", now=T0)

        orders = order_service.list_orders_for_staff(
            order_service.FILTER_READY_TO_SHIP, now=T0 + timedelta(hours=25)
        )

        assert [o.id for o in orders] == [paid.id]
        assert db.session.get(Order, overdue.id).status == OrderStatus.CANCELLED


class TestExpiryIdempotence:

    def test_sweeping_twice_releases_once(self, customer, make_product):
        order, product = _place_pasabuy_order(customer, make_product, quantity=3)
        later = T0 + timedelta(hours=25)

        first = expiry_service.expire_orders([db.session.get(Order, order.id)], later)
        second = expiry_service.expire_orders([db.session.get(Order, order.id)], later)

        assert [o.id for o in first] == [order.id]
        assert second == []
        assert db.session.get(Product, product.id).stock == 5
        releases = (
            db.session.query(StockMovement)
            .filter_by(order_id=order.id, kind=StockMovement.KIND_RELEASE)
            .all()
        )
        assert len(releases) == 1
        assert releases[0].quantity_delta == 3

    def test_repeated_list_reads_do_not_release_again(self, customer, make_product):
        order, product = _place_pasabuy_order(customer, make_product)
        later = T0 + timedelta(hours=25)

        for _ in range(3):
            order_service.list_orders_for_customer(customer.id, now=later)

        assert db.session.get(Product, product.id).stock == 5

    def test_stale_in_memory_copy_does_not_release_again(self, customer, make_product):
        """A caller holding a pre-expiry snapshot still cannot trigger a second release."""
        order, product = _place_pasabuy_order(customer, make_product)
        later = T0 + timedelta(hours=25)
        snapshot = _order(order.id, OrderStatus.PENDING, lines=((product.id, 1),))

        expiry_service.expire_orders([db.session.get(Order, order.id)], later)
        again = expiry_service.expire_orders([snapshot], later)

        assert again == []
        assert db.session.get(Product, product.id).stock == 5


class TestStockConservation:

    def test_final_stock_counts_only_surviving_orders(self, master, customer, other_customer, make_product):
        product = make_product(category=ProductCategory.PASABUY, price_cents=300, stock=20)

        def place(who, qty):
            cart_service.add_item(who.id, product.id, qty)
            return order_service.checkout(who.id, payment_method="gcash", now=T0)

        expired = place(customer, 2)
        cancelled = place(other_customer, 3)
        kept = place(customer, 4)

        order_service.update_status(cancelled.id, master, "cancelled", now=T0 + timedelta(hours=1))
        order_service.update_status(kept.id, master, "ready_for_payment", now=T0 + timedelta(hours=1))
        order_service.update_status(kept.id, master, "deposit_paid", now=T0 + timedelta(hours=2))

        order_service.list_orders_for_staff(now=T0 + timedelta(hours=30))

        assert db.session.get(Order, expired.id).status == OrderStatus.CANCELLED
        assert db.session.get(Product, product.id).stock == 20 - 4
