# backend/mija/models/carts.py
from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Cart(db.Model):
    """
    One working cart per customer, created on first add.

    Carts have no TTL; checkout empties the cart in the same transaction that
    creates the order.
    """
    __tablename__ = "carts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True)

    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    lines = db.relationship(
        "CartLine",
        backref="cart",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="CartLine.id.asc()",
    )

    def total_cents(self) -> int:
        return sum(line.line_total_cents() for line in self.lines)

    def find_line(self, product_id: int) -> "CartLine | None":
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "items": [line.to_dict() for line in self.lines],
            "item_count": len(self.lines),
            "total_cents": self.total_cents(),
            "updated_at": to_utc_z(self.updated_at),
        }


class CartLine(db.Model):
    """Selected product with name/category/price captured when first added."""
    __tablename__ = "cart_lines"
    __table_args__ = (
        db.UniqueConstraint("cart_id", "product_id", name="uq_cart_lines_cart_product"),
        db.CheckConstraint("quantity >= 1", name="ck_cart_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("carts.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=False)

    product_name = db.Column(db.String(255), nullable=False)
    product_category = db.Column(db.String(16), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    image_url = db.Column(db.String(1024), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)

    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_category": self.product_category,
            "unit_price_cents": self.unit_price_cents,
            "image_url": self.image_url,
            "quantity": self.quantity,
            "line_total_cents": self.line_total_cents(),
        }
