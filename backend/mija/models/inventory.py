from __future__ import annotations

import enum

from ..extensions import db
from ..time_utils import to_utc_z


class ProductCategory(str, enum.Enum):
    """Fulfillment category; decides whether checkout opens a deposit phase."""
    PASABUY = "pasabuy"  # pre-order, not yet in physical stock
    ONHAND = "onhand"
    SALE = "sale"


class Product(db.Model):
    """
    Catalog entry and the stock counter the inventory ledger mutates.

    Stock is only moved through inventory_service (reserve/release/adjust);
    every movement is journalled in StockMovement.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_name", "category", "name"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(
        db.Enum(ProductCategory, native_enum=False, length=16,
                values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True,
    )

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False)  # customer-facing
    cost_cents = db.Column(db.Integer, nullable=False)   # internal

    stock = db.Column(db.Integer, nullable=False, default=0)

    image_url = db.Column(db.String(1024), nullable=True)
    description = db.Column(db.Text, nullable=True)
    estimated_arrival = db.Column(db.Date, nullable=True)  # pasabuy only

    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} category={self.category.value} stock={self.stock}>"

    def to_dict(self, include_cost: bool = True) -> dict:
        d = {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "price_cents": self.price_cents,
            "stock": self.stock,
            "image_url": self.image_url,
            "description": self.description,
            "estimated_arrival": self.estimated_arrival.isoformat() if self.estimated_arrival else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_cost:
            d["cost_cents"] = self.cost_cents
        return d


class StockMovement(db.Model):
    """
    Append-only journal of stock counter changes.

    RESERVE rows come from checkout, RELEASE rows from cancellation or deposit
    expiry, ADJUST rows from staff edits of the catalog. product_id is not a
    foreign key so the journal survives product deletion.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_order_kind", "order_id", "kind"),
        {"sqlite_autoincrement": True},
    )

    KIND_RESERVE = "RESERVE"
    KIND_RELEASE = "RELEASE"
    KIND_ADJUST = "ADJUST"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, nullable=False, index=True)
    order_id = db.Column(db.Integer, nullable=True)
    kind = db.Column(db.String(16), nullable=False)
    quantity_delta = db.Column(db.Integer, nullable=False)
    stock_after = db.Column(db.Integer, nullable=False)
    note = db.Column(db.String(255), nullable=True)
    occurred_at = db.Column(db.DateTime, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "order_id": self.order_id,
            "kind": self.kind,
            "quantity_delta": self.quantity_delta,
            "stock_after": self.stock_after,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }
