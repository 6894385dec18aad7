# backend/mija/services/products_service.py
"""
Catalog Service

Product CRUD for staff. Stock is written through inventory_service so that
every change, including the initial count, lands in the movement journal.
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Product, ProductCategory
from .concurrency import lock_for_update, run_with_retry
from .errors import NotFound
from . import inventory_service

PRODUCT_MUTABLE_FIELDS = {
    "name", "category", "price_cents", "cost_cents",
    "image_url", "description", "estimated_arrival",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)
    if p.category != ProductCategory.PASABUY:
        p.estimated_arrival = None


def list_products(category: ProductCategory | None = None) -> list[Product]:
    q = db.session.query(Product)
    if category is not None:
        q = q.filter_by(category=category)
    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
    return product


def create_product(patch: dict) -> Product:
    """patch is a validated payload (see validation.validate_payload)."""
    def _op():
        product = Product(stock=0)
        apply_product_patch(product, patch)
        db.session.add(product)
        db.session.flush()

        initial = patch.get("stock") or 0
        inventory_service.adjust(product, initial, note="Initial stock")
        return product

    product = run_with_retry(_op)
    current_app.logger.info("Product %s created (%s, stock %s)", product.id, product.category.value, product.stock)
    return product


def update_product(product_id: int, patch: dict) -> Product:
    """
    Apply a staff edit. A stock value in the patch is a correction and is
    journalled as an ADJUST movement.
    """
    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})

        apply_product_patch(product, patch)
        if "stock" in patch and patch["stock"] is not None:
            inventory_service.adjust(product, patch["stock"], note="Staff stock correction")
        return product

    return run_with_retry(_op)


def delete_product(product_id: int) -> None:
    """
    Remove a product from the catalog.

    Existing orders keep their line snapshots; releasing stock for such lines
    later becomes a logged no-op.
    """
    def _op():
        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
        db.session.delete(product)

    run_with_retry(_op)
    current_app.logger.info("Product %s deleted", product_id)
