from __future__ import annotations

import enum

from ..extensions import db
from ..time_utils import to_utc_z


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    READY_FOR_PAYMENT = "ready_for_payment"
    DEPOSIT_PAID = "deposit_paid"
    FULLY_PAID = "fully_paid"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ShippingMethod(str, enum.Enum):
    LALAMOVE = "lalamove"   # same-day rideshare courier
    SHOPEE = "shopee"       # marketplace checkout/delivery
    STANDARD = "standard"
    EXPRESS = "express"
    PICKUP = "pickup"       # customer collects from the store


# Payment flags are derived from status, never stored.
DEPOSIT_PAID_STATUSES = frozenset({
    OrderStatus.DEPOSIT_PAID,
    OrderStatus.FULLY_PAID,
    OrderStatus.SHIPPED,
    OrderStatus.COMPLETED,
})
FULL_PAID_STATUSES = frozenset({
    OrderStatus.FULLY_PAID,
    OrderStatus.SHIPPED,
    OrderStatus.COMPLETED,
})
TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


def _enum_values(e):
    return [m.value for m in e]


class Order(db.Model):
    """
    Customer order placed at checkout.

    Contact fields and lines are snapshots taken at order time; later profile or
    catalog edits never change them. Orders are never deleted: COMPLETED and
    CANCELLED are terminal states.

    version_id is an optimistic-lock counter. Every status change bumps it, so a
    writer holding a stale copy fails at flush time.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_customer_created", "customer_id", "created_at"),
        db.Index("ix_orders_status_deadline", "status", "deposit_deadline"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Customer snapshot
    customer_name = db.Column(db.String(120), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(50), nullable=True)
    customer_address = db.Column(db.Text, nullable=True)

    # Money snapshot (cents); remaining = total - deposit, persisted for reads
    total_cents = db.Column(db.Integer, nullable=False)
    deposit_cents = db.Column(db.Integer, nullable=False)
    remaining_balance_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(
        db.Enum(OrderStatus, native_enum=False, length=32, values_callable=_enum_values),
        nullable=False,
        index=True,
    )
    deposit_deadline = db.Column(db.DateTime, nullable=True)
    shipping_method = db.Column(
        db.Enum(ShippingMethod, native_enum=False, length=16, values_callable=_enum_values),
        nullable=True,
    )
    payment_method = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False)
    updated_at = db.Column(db.DateTime, nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "OrderLine",
        backref="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderLine.id.asc()",
    )
    customer = db.relationship("User")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def deposit_paid(self) -> bool:
        return self.status in DEPOSIT_PAID_STATUSES

    @property
    def full_paid(self) -> bool:
        return self.status in FULL_PAID_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self) -> str:
        return f"<Order id={self.id} status={self.status.value} total_cents={self.total_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer": {
                "name": self.customer_name,
                "email": self.customer_email,
                "phone": self.customer_phone,
                "address": self.customer_address,
            },
            "lines": [line.to_dict() for line in self.lines],
            "total_cents": self.total_cents,
            "deposit_cents": self.deposit_cents,
            "remaining_balance_cents": self.remaining_balance_cents,
            "status": self.status.value,
            "deposit_paid": self.deposit_paid,
            "full_paid": self.full_paid,
            "deposit_deadline": to_utc_z(self.deposit_deadline),
            "shipping_method": self.shipping_method.value if self.shipping_method else None,
            "payment_method": self.payment_method,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class OrderLine(db.Model):
    """Line snapshot. product_id is kept without a FK so deleted products do not orphan history."""
    __tablename__ = "order_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    product_id = db.Column(db.Integer, nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    product_category = db.Column(db.String(16), nullable=False)

    unit_price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_category": self.product_category,
            "unit_price_cents": self.unit_price_cents,
            "quantity": self.quantity,
            "line_total_cents": self.line_total_cents,
        }
