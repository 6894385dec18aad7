# Overview: Deposit-expiry sweep run inline with every order-listing read.

"""
Reservation / Expiry Sweeper

RULE:
    An order with a deposit_deadline, no deposit paid and a status other than
    cancelled expires once now > deposit_deadline. Expiry releases every line
    back to the inventory ledger and moves the order to cancelled.

WHEN:
    There is no scheduler. order_service runs the sweep over the working set of
    each list read (staff list and customer list). An order past its deadline
    therefore keeps showing its old status until the next list read.

SHAPE:
    sweep(orders, now) is pure: it decides which orders expire and which stock
    releases that implies, without touching the database. expire_orders()
    applies that plan, one transaction per order, re-checking the rule on a
    freshly locked row so a second sweep never releases twice.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from flask import current_app

from ..extensions import db
from ..models import Order, OrderStatus
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from . import inventory_service


@dataclass(frozen=True)
class StockRelease:
    order_id: int
    product_id: int
    quantity: int


@dataclass(frozen=True)
class SweepResult:
    expired: list = field(default_factory=list)
    releases: list[StockRelease] = field(default_factory=list)


def is_expired(order, now: datetime) -> bool:
    return (
        order.deposit_deadline is not None
        and not order.deposit_paid
        and order.status != OrderStatus.CANCELLED
        and now > order.deposit_deadline
    )


def sweep(orders: Iterable, now: datetime) -> SweepResult:
    """Plan the expiry of orders at instant now. Works on any order-shaped objects."""
    expired = []
    releases = []
    for order in orders:
        if not is_expired(order, now):
            continue
        expired.append(order)
        releases.extend(
            StockRelease(order_id=order.id, product_id=line.product_id, quantity=line.quantity)
            for line in order.lines
        )
    return SweepResult(expired=expired, releases=releases)


def _expire_one(order_id: int, now: datetime) -> Order | None:
    def _op():
        order = lock_for_update(
            db.session.query(Order).filter_by(id=order_id)
        ).populate_existing().first()
        if order is None or not is_expired(order, now):
            return None

        inventory_service.release_order_lines(
            order, note=f"Deposit deadline passed for order {order.id}"
        )
        order.status = OrderStatus.CANCELLED
        order.updated_at = now
        return order

    return run_with_retry(_op)


def expire_orders(orders: list, now: datetime | None = None) -> list[Order]:
    """
    Apply the sweep to orders and persist it. Returns the orders cancelled by
    this call; the passed-in list reflects the new statuses afterwards.
    """
    now = now or utcnow()
    plan = sweep(orders, now)

    cancelled = []
    for order in plan.expired:
        # Release-then-cancel is serialized per order; orders are independent.
        expired = _expire_one(order.id, now)
        if expired is not None:
            current_app.logger.info(
                "Order %s expired: deposit deadline %s passed, %s line(s) released",
                expired.id, expired.deposit_deadline, len(expired.lines),
            )
            cancelled.append(expired)
    return cancelled
