"""
Inventory ledger tests.

Verifies:
- reserve/release/adjust move Product.stock and journal every change
- reserve never drives stock negative
- release for a deleted product is a logged no-op
"""

import pytest

from mija.extensions import db
from mija.models import Product, StockMovement
from mija.services import inventory_service, products_service
from mija.services.errors import InsufficientStock, NotFound


def _movements(product_id):
    return inventory_service.list_movements(product_id=product_id)


class TestReserveRelease:

    def test_reserve_debits_and_journals(self, make_product):
        product = make_product(stock=5)

        inventory_service.reserve(product.id, 2, order_id=77, note="Order 77")
        db.session.commit()

        assert inventory_service.get_stock(product.id) == 3
        last = _movements(product.id)[-1]
        assert last.kind == StockMovement.KIND_RESERVE
        assert last.quantity_delta == -2
        assert last.stock_after == 3
        assert last.order_id == 77

    def test_reserve_exact_stock(self, make_product):
        product = make_product(stock=2)
        inventory_service.reserve(product.id, 2)
        db.session.commit()
        assert inventory_service.get_stock(product.id) == 0

    def test_reserve_more_than_stock_fails(self, make_product):
        product = make_product(stock=1)

        with pytest.raises(InsufficientStock) as exc:
            inventory_service.reserve(product.id, 2)
        db.session.rollback()

        assert exc.value.details == {"product_id": product.id, "requested_quantity": 2, "available": 1}
        assert inventory_service.get_stock(product.id) == 1

    def test_reserve_unknown_product(self, db_session):
        with pytest.raises(NotFound):
            inventory_service.reserve(123456, 1)

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_quantities_must_be_positive(self, make_product, quantity):
        product = make_product(stock=5)
        with pytest.raises(ValueError):
            inventory_service.reserve(product.id, quantity)
        with pytest.raises(ValueError):
            inventory_service.release(product.id, quantity)

    def test_release_credits_and_journals(self, make_product):
        product = make_product(stock=0)

        inventory_service.release(product.id, 4, order_id=5)
        db.session.commit()

        assert inventory_service.get_stock(product.id) == 4
        last = _movements(product.id)[-1]
        assert last.kind == StockMovement.KIND_RELEASE
        assert last.quantity_delta == 4

    def test_release_for_deleted_product_is_noop(self, make_product):
        product = make_product(stock=1)
        product_id = product.id
        products_service.delete_product(product_id)

        assert inventory_service.release(product_id, 3, order_id=9) is None
        db.session.commit()
        assert db.session.get(Product, product_id) is None


class TestAdjust:

    def test_initial_stock_is_journalled(self, make_product):
        product = make_product(stock=7)

        movements = _movements(product.id)

        assert len(movements) == 1
        assert movements[0].kind == StockMovement.KIND_ADJUST
        assert movements[0].quantity_delta == 7
        assert movements[0].note == "Initial stock"

    def test_zero_initial_stock_has_no_movement(self, make_product):
        product = make_product(stock=0)
        assert _movements(product.id) == []

    def test_staff_correction_is_adjust(self, make_product):
        product = make_product(stock=7)

        products_service.update_product(product.id, {"stock": 4})

        movements = _movements(product.id)
        assert inventory_service.get_stock(product.id) == 4
        assert [m.quantity_delta for m in movements] == [7, -3]
        assert movements[-1].kind == StockMovement.KIND_ADJUST

    def test_unchanged_stock_is_noop(self, make_product):
        product = make_product(stock=3)
        assert inventory_service.adjust(db.session.get(Product, product.id), 3) is None

    def test_negative_stock_rejected(self, make_product):
        product = make_product(stock=3)
        with pytest.raises(ValueError):
            inventory_service.adjust(db.session.get(Product, product.id), -1)

    def test_ledger_replays_to_current_stock(self, make_product):
        product = make_product(stock=10)
        inventory_service.reserve(product.id, 3, order_id=1)
        inventory_service.reserve(product.id, 2, order_id=2)
        inventory_service.release(product.id, 3, order_id=1)
        db.session.commit()
        products_service.update_product(product.id, {"stock": 12})

        total = sum(m.quantity_delta for m in _movements(product.id))

        assert total == inventory_service.get_stock(product.id) == 12
