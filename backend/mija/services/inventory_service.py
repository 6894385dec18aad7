# Overview: Inventory ledger; the only code path that changes Product.stock.

# backend/mija/services/inventory_service.py
"""
Inventory Ledger

Stock semantics (authoritative):
- Product.stock is the available count; it is never negative.
- reserve() debits stock when an order is placed and fails with
  InsufficientStock when stock < quantity.
- release() credits stock when an order is cancelled or expires. It never
  fails; a line whose product was deleted is skipped and logged.
- adjust() is the staff catalog edit path (restock/correction).
- Every call appends a StockMovement row in the caller's transaction.

Exactly-once:
- Callers reserve inside checkout and release inside the single transition
  into CANCELLED. That transition is guarded by the order's status check and
  optimistic version, so each line is reserved once and released at most once.

These functions never commit. The calling service owns the transaction.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Product, StockMovement
from ..time_utils import utcnow
from .concurrency import lock_for_update
from .errors import NotFound, InsufficientStock


def _locked_product(product_id: int) -> Product | None:
    return lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()


def _journal(product: Product, kind: str, delta: int, *, order_id: int | None, note: str | None) -> StockMovement:
    movement = StockMovement(
        product_id=product.id,
        order_id=order_id,
        kind=kind,
        quantity_delta=delta,
        stock_after=product.stock,
        note=note,
        occurred_at=utcnow(),
    )
    db.session.add(movement)
    return movement


def get_stock(product_id: int) -> int:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
    return product.stock


def ensure_available(product: Product, quantity: int) -> None:
    """Raise InsufficientStock if product cannot cover quantity right now."""
    if product.stock < quantity:
        raise InsufficientStock(
            f"Insufficient stock for {product.name}",
            details={
                "product_id": product.id,
                "requested_quantity": quantity,
                "available": product.stock,
            },
        )


def reserve(product_id: int, quantity: int, *, order_id: int | None = None, note: str | None = None) -> Product:
    """Debit stock for an order line."""
    if quantity <= 0:
        raise ValueError("quantity must be positive")

    product = _locked_product(product_id)
    if product is None:
        raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})

    ensure_available(product, quantity)

    product.stock -= quantity
    _journal(product, StockMovement.KIND_RESERVE, -quantity, order_id=order_id, note=note)
    return product


def release(product_id: int, quantity: int, *, order_id: int | None = None, note: str | None = None) -> Product | None:
    """Credit stock back. Returns None when the product no longer exists."""
    if quantity <= 0:
        raise ValueError("quantity must be positive")

    product = _locked_product(product_id)
    if product is None:
        current_app.logger.warning(
            "Skipping stock release for deleted product %s (order %s, qty %s)",
            product_id, order_id, quantity,
        )
        return None

    product.stock += quantity
    _journal(product, StockMovement.KIND_RELEASE, quantity, order_id=order_id, note=note)
    return product


def release_order_lines(order, *, note: str) -> list[tuple[int, int]]:
    """Release every line of order. Returns the (product_id, quantity) pairs released."""
    released = []
    for line in order.lines:
        if release(line.product_id, line.quantity, order_id=order.id, note=note) is not None:
            released.append((line.product_id, line.quantity))
    return released


def adjust(product: Product, new_stock: int, *, note: str | None = None) -> StockMovement | None:
    """Set stock to new_stock as a staff correction. No-op when unchanged."""
    if new_stock < 0:
        raise ValueError("stock cannot be negative")
    delta = new_stock - (product.stock or 0)
    if delta == 0:
        return None
    product.stock = new_stock
    return _journal(product, StockMovement.KIND_ADJUST, delta, order_id=None, note=note)


def list_movements(*, product_id: int | None = None, order_id: int | None = None, limit: int = 200) -> list[StockMovement]:
    q = db.session.query(StockMovement)
    if product_id is not None:
        q = q.filter_by(product_id=product_id)
    if order_id is not None:
        q = q.filter_by(order_id=order_id)
    return q.order_by(StockMovement.id.asc()).limit(limit).all()
