# Overview: Order lifecycle: checkout, staff transitions, payments and list reads.

"""
Order Service

================================================================================
CHECKOUT
================================================================================
One transaction: validate the cart, create the order, reserve stock for every
line, empty the cart. Any failure rolls all three back.

    cart has a pasabuy line -> status=pending, deposit = 30% of total (half-up
                               to the cent), deposit_deadline = created_at + 24h
    otherwise               -> status=fully_paid, deposit = total,
                               remaining = 0, no deadline

================================================================================
TRANSITIONS
================================================================================
Every status change goes through _transition(), which:
  1. locks and re-reads the order
  2. rejects with StaleOrderState if the caller's expected_status is outdated
  3. checks legality and role authority (order_state.authorize_transition)
  4. applies the side effects (deposit override, shipping method, stock release)
  5. commits; a concurrent writer that got there first makes the optimistic
     version check fail, which is reported as StaleOrderState (no retry)

Stock is released only inside the transition into cancelled, and that
transition can happen once per order, so each line is released at most once.

================================================================================
LIST READS
================================================================================
Both list reads run the expiry sweep (expiry_service) over their working set
before returning it.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import (
    Order,
    OrderLine,
    OrderStatus,
    ProductCategory,
    Role,
    ShippingMethod,
    User,
)
from ..time_utils import utcnow
from ..validation import ValidationError, coerce_choice, coerce_int
from .cart_service import get_cart
from .concurrency import lock_for_update, run_with_retry
from .errors import EmptyCart, InvalidDepositAmount, InvalidTransition, NotFound, StaleOrderState
from .expiry_service import expire_orders
from .order_state import authorize_transition, payment_target
from .permission_service import PermissionDeniedError, log_denial, require_permission
from . import inventory_service


DEPOSIT_RATE_PERCENT = 30
DEPOSIT_WINDOW = timedelta(hours=24)

PAYMENT_METHODS = ("gcash", "bank", "credit")

FILTER_READY_TO_SHIP = "ready_to_ship"

# Statuses in which the expected deposit may still be edited
DEPOSIT_EDITABLE_STATUSES = frozenset({
    OrderStatus.PENDING,
    OrderStatus.READY_FOR_PAYMENT,
    OrderStatus.DEPOSIT_PAID,
})


def compute_deposit_cents(total_cents: int) -> int:
    """30% of total, rounded half-up to the cent."""
    return (total_cents * DEPOSIT_RATE_PERCENT + 50) // 100


def validate_payment_method(value) -> str:
    method = (value or "").strip().lower() if isinstance(value, str) else value
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    return method


def validate_deposit_amount(order: Order, amount) -> int:
    try:
        cents = coerce_int(amount, "deposit_cents")
    except ValidationError as e:
        raise InvalidDepositAmount(str(e), details={"deposit_cents": amount})
    if cents <= 0 or cents > order.total_cents:
        raise InvalidDepositAmount(
            "Deposit must be greater than zero and no more than the order total",
            details={"deposit_cents": cents, "total_cents": order.total_cents},
        )
    return cents


def _apply_deposit(order: Order, cents: int) -> None:
    order.deposit_cents = cents
    order.remaining_balance_cents = order.total_cents - cents


# =============================================================================
# CHECKOUT
# =============================================================================

def checkout(
    customer_id: int,
    *,
    payment_method: str,
    name: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    address: str | None = None,
    now: datetime | None = None,
) -> Order:
    """
    Convert the customer's cart into an order.

    Contact fields default to the customer's profile and are stored as a
    snapshot on the order.

    Raises:
        EmptyCart: no cart or no lines
        NotFound: a cart line's product no longer exists
        InsufficientStock: a line exceeds the product's current stock
        ValidationError: bad payment method or missing contact name/email
    """
    payment_method = validate_payment_method(payment_method)

    def _op():
        current = now or utcnow()

        customer = db.session.get(User, customer_id)
        if customer is None:
            raise NotFound(f"Customer {customer_id} not found", details={"customer_id": customer_id})

        cart = get_cart(customer_id)
        if cart is None or not cart.lines:
            raise EmptyCart("Cart is empty")

        contact_name = (name or customer.name or "").strip()
        contact_email = (email or customer.email or "").strip()
        if not contact_name or not contact_email:
            raise ValidationError("customer name and email required")

        total = cart.total_cents()
        has_pasabuy = any(
            line.product_category == ProductCategory.PASABUY.value for line in cart.lines
        )

        order = Order(
            customer_id=customer_id,
            customer_name=contact_name,
            customer_email=contact_email,
            customer_phone=phone if phone is not None else customer.phone,
            customer_address=address if address is not None else customer.address,
            total_cents=total,
            payment_method=payment_method,
            created_at=current,
            updated_at=current,
        )
        if has_pasabuy:
            order.status = OrderStatus.PENDING
            _apply_deposit(order, compute_deposit_cents(total))
            order.deposit_deadline = current + DEPOSIT_WINDOW
        else:
            # No pre-order ambiguity: full payment is asserted at checkout
            order.status = OrderStatus.FULLY_PAID
            _apply_deposit(order, total)
            order.deposit_deadline = None

        for line in cart.lines:
            order.lines.append(OrderLine(
                product_id=line.product_id,
                product_name=line.product_name,
                product_category=line.product_category,
                unit_price_cents=line.unit_price_cents,
                quantity=line.quantity,
                line_total_cents=line.line_total_cents(),
            ))

        db.session.add(order)
        db.session.flush()

        for line in order.lines:
            inventory_service.reserve(
                line.product_id,
                line.quantity,
                order_id=order.id,
                note=f"Order {order.id}",
            )

        cart.lines.clear()
        return order

    order = run_with_retry(_op)
    current_app.logger.info(
        "Order %s placed by customer %s: status=%s total_cents=%s deposit_cents=%s",
        order.id, customer_id, order.status.value, order.total_cents, order.deposit_cents,
    )
    return order


# =============================================================================
# READS
# =============================================================================

def _all_orders_query():
    return db.session.query(Order).order_by(Order.created_at.desc(), Order.id.desc())


def list_orders_for_staff(filter: str | None = None, now: datetime | None = None) -> list[Order]:
    """
    Every order, newest first, after the expiry sweep.

    filter="ready_to_ship" restricts the result to fully_paid orders.
    """
    if filter not in (None, "", FILTER_READY_TO_SHIP):
        raise ValidationError(f"Unknown filter: {filter}")

    orders = _all_orders_query().all()
    expire_orders(orders, now)

    if filter == FILTER_READY_TO_SHIP:
        orders = [o for o in orders if o.status == OrderStatus.FULLY_PAID]
    return orders


def list_orders_for_customer(customer_id: int, now: datetime | None = None) -> list[Order]:
    """The customer's own orders, newest first, after the expiry sweep."""
    orders = _all_orders_query().filter(Order.customer_id == customer_id).all()
    expire_orders(orders, now)
    return orders


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFound(f"Order {order_id} not found", details={"order_id": order_id})
    return order


def get_order_for(user: User, order_id: int) -> Order:
    """Staff see every order; customers only their own."""
    order = get_order(order_id)
    if not user.role.is_staff and order.customer_id != user.id:
        log_denial(user, "VIEW_ORDER", "Not the order's customer", f"order:{order_id}")
        raise PermissionDeniedError("Not your order")
    return order


# =============================================================================
# TRANSITIONS
# =============================================================================

def _transition(
    order_id: int,
    actor: User,
    target: OrderStatus,
    *,
    expected_status: OrderStatus | None = None,
    apply=None,
    check_actor=None,
    now: datetime | None = None,
) -> Order:
    from_status_holder = {}

    def _op():
        order = lock_for_update(
            db.session.query(Order).filter_by(id=order_id)
        ).populate_existing().first()
        if order is None:
            raise NotFound(f"Order {order_id} not found", details={"order_id": order_id})

        if check_actor is not None:
            check_actor(order)

        if expected_status is not None and order.status != expected_status:
            raise StaleOrderState(
                "Order status changed since it was read",
                details={
                    "order_id": order_id,
                    "expected_status": expected_status.value,
                    "current_status": order.status.value,
                },
            )

        authorize_transition(actor.role, order.status, target)
        from_status_holder["from"] = order.status

        if apply is not None:
            apply(order)

        if target == OrderStatus.CANCELLED:
            inventory_service.release_order_lines(order, note=f"Order {order.id} cancelled")

        order.status = target
        order.updated_at = now or utcnow()
        return order

    try:
        order = run_with_retry(_op, retry_stale=False)
    except StaleDataError:
        raise StaleOrderState(
            "Order was modified concurrently",
            details={"order_id": order_id, "requested_status": target.value},
        )

    current_app.logger.info(
        "Order %s: %s -> %s by user %s (%s)",
        order.id, from_status_holder["from"].value, target.value, actor.id, actor.role.value,
    )
    return order


def update_status(
    order_id: int,
    actor: User,
    status,
    *,
    shipping_method=None,
    deposit_cents=None,
    expected_status=None,
    now: datetime | None = None,
) -> Order:
    """
    Staff-driven status change.

    - shipped requires shipping_method
    - deposit_paid accepts an optional deposit_cents override; remaining
      balance is recalculated from it
    - cancelled releases every line back to stock
    """
    if not actor.role.is_staff:
        log_denial(actor, "UPDATE_ORDER_STATUS", "Customers cannot change order status", f"order:{order_id}")
        raise PermissionDeniedError("Only staff can change order status")

    target = coerce_choice(status, OrderStatus, "status")
    expected = coerce_choice(expected_status, OrderStatus, "expected_status") if expected_status else None

    method = None
    if target == OrderStatus.SHIPPED:
        require_permission(actor, "SHIP_ORDERS", resource=f"order:{order_id}")
        if not shipping_method:
            raise ValidationError("shipping_method required when shipping an order")
        method = coerce_choice(shipping_method, ShippingMethod, "shipping_method")
    elif shipping_method:
        raise ValidationError("shipping_method only applies when status is shipped")

    if deposit_cents is not None and target != OrderStatus.DEPOSIT_PAID:
        raise ValidationError("deposit_cents only applies when status is deposit_paid")

    def _apply(order: Order) -> None:
        if method is not None:
            order.shipping_method = method
        if deposit_cents is not None:
            _apply_deposit(order, validate_deposit_amount(order, deposit_cents))

    return _transition(order_id, actor, target, expected_status=expected, apply=_apply, now=now)


def record_payment(
    order_id: int,
    actor: User,
    *,
    payment_method: str,
    is_full: bool,
    now: datetime | None = None,
) -> Order:
    """
    Record a deposit (is_full=False) or full payment (is_full=True).

    There is no payment gateway: the call itself is the assertion that money
    arrived. Customers may pay their own orders; master staff may record
    payment on any order.
    """
    payment_method = validate_payment_method(payment_method)
    target = payment_target(bool(is_full))

    def _check_actor(order: Order) -> None:
        if actor.role == Role.CUSTOMER and order.customer_id != actor.id:
            log_denial(actor, "RECORD_PAYMENT", "Not the order's customer", f"order:{order_id}")
            raise PermissionDeniedError("Not your order")

    def _apply(order: Order) -> None:
        order.payment_method = payment_method

    return _transition(
        order_id, actor, target, apply=_apply, check_actor=_check_actor, now=now
    )


def set_deposit_amount(
    order_id: int,
    actor: User,
    deposit_cents,
    *,
    now: datetime | None = None,
) -> Order:
    """Edit the expected deposit before the order is fully paid."""
    require_permission(actor, "MANAGE_ORDERS", resource=f"order:{order_id}")

    def _op():
        order = lock_for_update(
            db.session.query(Order).filter_by(id=order_id)
        ).populate_existing().first()
        if order is None:
            raise NotFound(f"Order {order_id} not found", details={"order_id": order_id})

        if order.status not in DEPOSIT_EDITABLE_STATUSES:
            raise InvalidTransition(
                f"Deposit cannot be edited while order is '{order.status.value}'",
                details={"order_id": order_id, "status": order.status.value},
            )

        _apply_deposit(order, validate_deposit_amount(order, deposit_cents))
        order.updated_at = now or utcnow()
        return order

    try:
        order = run_with_retry(_op, retry_stale=False)
    except StaleDataError:
        raise StaleOrderState("Order was modified concurrently", details={"order_id": order_id})

    current_app.logger.info(
        "Order %s deposit set to %s cents by user %s", order.id, order.deposit_cents, actor.id
    )
    return order
