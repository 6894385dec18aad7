"""
Order state machine tests (pure, no database).

Verifies:
- The transition graph: legal edges pass, everything else is InvalidTransition
- Terminal states have no way out
- Role authority per edge
- Illegality is reported before authority
"""

import warnings

import pytest

from mija.models import OrderStatus as S, Role
from mija.services import order_state
from mija.services.errors import InvalidTransition
from mija.services.order_state import (
    TRANSITIONS,
    authorize_transition,
    can_transition,
    check_transition,
    payment_target,
)
from mija.services.permission_service import PermissionDeniedError


LEGAL_EDGES = [
    (S.PENDING, S.READY_FOR_PAYMENT),
    (S.PENDING, S.CANCELLED),
    (S.READY_FOR_PAYMENT, S.DEPOSIT_PAID),
    (S.READY_FOR_PAYMENT, S.FULLY_PAID),
    (S.READY_FOR_PAYMENT, S.CANCELLED),
    (S.DEPOSIT_PAID, S.FULLY_PAID),
    (S.DEPOSIT_PAID, S.CANCELLED),
    (S.FULLY_PAID, S.SHIPPED),
    (S.FULLY_PAID, S.CANCELLED),
    (S.SHIPPED, S.COMPLETED),
]


class TestTransitionGraph:

    @pytest.mark.parametrize("from_status,to_status", LEGAL_EDGES)
    def test_legal_edges(self, from_status, to_status):
        assert can_transition(from_status, to_status)
        check_transition(from_status, to_status)

    def test_every_other_edge_is_illegal(self):
        legal = set(LEGAL_EDGES)
        for from_status in S:
            for to_status in S:
                if (from_status, to_status) in legal:
                    continue
                assert not can_transition(from_status, to_status), (from_status, to_status)

    def test_shipped_back_to_deposit_paid_rejected(self):
        with pytest.raises(InvalidTransition) as exc:
            check_transition(S.SHIPPED, S.DEPOSIT_PAID)
        assert exc.value.details["from_status"] == "shipped"
        assert exc.value.details["to_status"] == "deposit_paid"
        assert exc.value.details["allowed"] == ["completed"]

    @pytest.mark.parametrize("terminal", [S.COMPLETED, S.CANCELLED])
    def test_terminal_states_have_no_exits(self, terminal):
        assert TRANSITIONS[terminal] == frozenset()

    def test_same_state_is_not_a_transition(self):
        assert not can_transition(S.DEPOSIT_PAID, S.DEPOSIT_PAID)

    def test_payment_target(self):
        assert payment_target(False) == S.DEPOSIT_PAID
        assert payment_target(True) == S.FULLY_PAID


class TestTransitionAuthority:

    @pytest.mark.parametrize("from_status,to_status", LEGAL_EDGES)
    def test_master_may_take_every_edge(self, from_status, to_status):
        authorize_transition(Role.MASTER, from_status, to_status)

    def test_second_may_only_ship(self):
        authorize_transition(Role.SECOND, S.FULLY_PAID, S.SHIPPED)
        for from_status, to_status in LEGAL_EDGES:
            if (from_status, to_status) == (S.FULLY_PAID, S.SHIPPED):
                continue
            with pytest.raises(PermissionDeniedError):
                authorize_transition(Role.SECOND, from_status, to_status)

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (S.READY_FOR_PAYMENT, S.DEPOSIT_PAID),
            (S.READY_FOR_PAYMENT, S.FULLY_PAID),
            (S.DEPOSIT_PAID, S.FULLY_PAID),
        ],
    )
    def test_customer_may_take_payment_edges(self, from_status, to_status):
        authorize_transition(Role.CUSTOMER, from_status, to_status)

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (S.PENDING, S.READY_FOR_PAYMENT),
            (S.PENDING, S.CANCELLED),
            (S.FULLY_PAID, S.SHIPPED),
            (S.SHIPPED, S.COMPLETED),
        ],
    )
    def test_customer_denied_staff_edges(self, from_status, to_status):
        with pytest.raises(PermissionDeniedError):
            authorize_transition(Role.CUSTOMER, from_status, to_status)

    def test_illegal_edge_reported_before_authority(self):
        with pytest.raises(InvalidTransition):
            authorize_transition(Role.CUSTOMER, S.SHIPPED, S.DEPOSIT_PAID)


def test_module_source_compiles_without_warnings():
    with open(order_state.__file__, encoding="utf-8") as f:
        source = f.read()
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        compile(source, order_state.__file__, "exec")
