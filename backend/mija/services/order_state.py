# Overview: Order state machine: legal transitions and who may perform them.

r"""
Order State Machine

================================================================================
STATES
================================================================================

    pending -> ready_for_payment -> deposit_paid -> fully_paid -> shipped -> completed
                                 \______________________/^
    cancelled is reachable from pending, ready_for_payment, deposit_paid and
    fully_paid. completed and cancelled are terminal.

    pending:           pasabuy order placed, stock reserved, deposit clock running
    ready_for_payment: staff confirmed the pre-ordered items arrived
    deposit_paid:      staff (or the paying customer) asserted the deposit
    fully_paid:        whole balance asserted; onhand/sale checkouts start here
    shipped:           shipping method recorded
    completed:         delivery confirmed
    cancelled:         stock released back to the ledger

================================================================================
AUTHORITY
================================================================================

TRANSITION_AUTHORITY maps each legal edge to the roles allowed to drive it.
Customers appear only on payment edges, and only the payment operation
consults them (for their own orders). The deposit-expiry sweep is a system
action and does not go through this table.

This module is pure: no database access, no clock.
"""

from __future__ import annotations

from ..models import OrderStatus, Role
from .errors import InvalidTransition
from .permission_service import PermissionDeniedError


S = OrderStatus

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    S.PENDING: frozenset({S.READY_FOR_PAYMENT, S.CANCELLED}),
    S.READY_FOR_PAYMENT: frozenset({S.DEPOSIT_PAID, S.FULLY_PAID, S.CANCELLED}),
    S.DEPOSIT_PAID: frozenset({S.FULLY_PAID, S.CANCELLED}),
    S.FULLY_PAID: frozenset({S.SHIPPED, S.CANCELLED}),
    S.SHIPPED: frozenset({S.COMPLETED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
}

_MASTER = frozenset({Role.MASTER})
_PAYERS = frozenset({Role.MASTER, Role.CUSTOMER})

TRANSITION_AUTHORITY: dict[tuple[OrderStatus, OrderStatus], frozenset[Role]] = {
    (S.PENDING, S.READY_FOR_PAYMENT): _MASTER,
    (S.PENDING, S.CANCELLED): _MASTER,
    (S.READY_FOR_PAYMENT, S.DEPOSIT_PAID): _PAYERS,
    (S.READY_FOR_PAYMENT, S.FULLY_PAID): _PAYERS,
    (S.READY_FOR_PAYMENT, S.CANCELLED): _MASTER,
    (S.DEPOSIT_PAID, S.FULLY_PAID): _PAYERS,
    (S.DEPOSIT_PAID, S.CANCELLED): _MASTER,
    (S.FULLY_PAID, S.SHIPPED): frozenset({Role.MASTER, Role.SECOND}),
    (S.FULLY_PAID, S.CANCELLED): _MASTER,
    (S.SHIPPED, S.COMPLETED): _MASTER,
}

PAYMENT_TARGETS = frozenset({S.DEPOSIT_PAID, S.FULLY_PAID})


def can_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    """True if to_status is a legal next state. Same-state moves are not transitions."""
    return to_status in TRANSITIONS[from_status]


def check_transition(from_status: OrderStatus, to_status: OrderStatus) -> None:
    if not can_transition(from_status, to_status):
        raise InvalidTransition(
            f"Cannot move order from '{from_status.value}' to '{to_status.value}'",
            details={
                "from_status": from_status.value,
                "to_status": to_status.value,
                "allowed": sorted(s.value for s in TRANSITIONS[from_status]),
            },
        )


def roles_for(from_status: OrderStatus, to_status: OrderStatus) -> frozenset[Role]:
    return TRANSITION_AUTHORITY.get((from_status, to_status), frozenset())


def authorize_transition(role: Role, from_status: OrderStatus, to_status: OrderStatus) -> None:
    """
    Check legality first, then authority, so an illegal edge always reports
    InvalidTransition regardless of who asked.
    """
    check_transition(from_status, to_status)
    if role not in roles_for(from_status, to_status):
        raise PermissionDeniedError(
            f"Role '{role.value}' may not move orders from "
            f"'{from_status.value}' to '{to_status.value}'"
        )


def payment_target(is_full: bool) -> OrderStatus:
    """Status a recorded payment moves the order to."""
    return S.FULLY_PAID if is_full else S.DEPOSIT_PAID
