"""Tests for the order lifecycle table — legal edges, terminal states, event mapping, paths."""

import pytest
from ordering.order.state_machine import (
    TERMINAL_STATUSES,
    TRANSITIONS,
    OrderStatus,
    can_transition,
    event_for,
    is_terminal,
    path_to,
    valid_transitions,
)

S = OrderStatus

LEGAL_EDGES = {
    (S.DRAFT, S.PENDING),
    (S.DRAFT, S.CANCELLED),
    (S.PENDING, S.PAYMENT_PENDING),
    (S.PENDING, S.CANCELLED),
    (S.PAYMENT_PENDING, S.PAID),
    (S.PAYMENT_PENDING, S.FAILED),
    (S.PAYMENT_PENDING, S.CANCELLED),
    (S.PAID, S.CONFIRMED),
    (S.PAID, S.REFUNDED),
    (S.PAID, S.CANCELLED),
    (S.CONFIRMED, S.PROCESSING),
    (S.CONFIRMED, S.REFUNDED),
    (S.CONFIRMED, S.CANCELLED),
    (S.PROCESSING, S.SHIPPED),
    (S.PROCESSING, S.CANCELLED),
    (S.SHIPPED, S.DELIVERED),
    (S.DELIVERED, S.COMPLETED),
    (S.DELIVERED, S.REFUNDED),
}


class TestTransitionTable:
    def test_every_status_has_an_entry(self):
        assert set(TRANSITIONS) == set(OrderStatus)

    def test_legal_edges_match_the_lifecycle(self):
        edges = {(source, target) for source, targets in TRANSITIONS.items() for target in targets}
        assert edges == LEGAL_EDGES

    @pytest.mark.parametrize("source", list(OrderStatus))
    @pytest.mark.parametrize("target", list(OrderStatus))
    def test_can_transition_agrees_with_table(self, source, target):
        assert can_transition(source, target) == ((source, target) in LEGAL_EDGES)

    def test_terminal_statuses(self):
        assert TERMINAL_STATUSES == {S.COMPLETED, S.CANCELLED, S.REFUNDED, S.FAILED}
        assert is_terminal("Cancelled")
        assert not is_terminal("Shipped")

    def test_valid_transitions_accepts_strings(self):
        assert valid_transitions("PaymentPending") == [S.PAID, S.FAILED, S.CANCELLED]

    def test_terminal_statuses_have_no_exits(self):
        for status in TERMINAL_STATUSES:
            assert valid_transitions(status) == []


class TestEventMapping:
    @pytest.mark.parametrize(
        "source, target, expected",
        [
            (S.PAYMENT_PENDING, S.PAID, "order.paid"),
            (S.PAID, S.CONFIRMED, "order.confirmed"),
            (S.CONFIRMED, S.PROCESSING, "order.processing"),
            (S.PROCESSING, S.SHIPPED, "order.shipped"),
            (S.SHIPPED, S.DELIVERED, "order.delivered"),
            (S.DELIVERED, S.REFUNDED, "order.refunded"),
            (S.DRAFT, S.PENDING, None),
            (S.PENDING, S.PAYMENT_PENDING, None),
            (S.PAYMENT_PENDING, S.FAILED, None),
            (S.DELIVERED, S.COMPLETED, None),
        ],
    )
    def test_edge_events(self, source, target, expected):
        assert event_for(source, target) == expected

    @pytest.mark.parametrize("source", [s for s in OrderStatus if can_transition(s, S.CANCELLED)])
    def test_entering_cancelled_always_announces(self, source):
        assert event_for(source, S.CANCELLED) == "order.cancelled"

    def test_illegal_edge_has_no_event(self):
        assert event_for(S.SHIPPED, S.CANCELLED) is None


class TestPathTo:
    def test_same_status_is_empty_path(self):
        assert path_to(S.PAID, S.PAID) == []

    def test_direct_edge(self):
        assert path_to(S.PAID, S.CONFIRMED) == [S.CONFIRMED]

    def test_pending_to_failed_goes_through_payment_pending(self):
        assert path_to(S.PENDING, S.FAILED) == [S.PAYMENT_PENDING, S.FAILED]

    def test_draft_to_paid(self):
        assert path_to(S.DRAFT, S.PAID) == [S.PENDING, S.PAYMENT_PENDING, S.PAID]

    def test_confirmed_to_shipped(self):
        assert path_to(S.CONFIRMED, S.SHIPPED) == [S.PROCESSING, S.SHIPPED]

    def test_unreachable_target(self):
        assert path_to(S.CANCELLED, S.PAID) is None
        assert path_to(S.SHIPPED, S.CANCELLED) is None

    def test_every_path_is_made_of_legal_edges(self):
        for source in OrderStatus:
            for target in OrderStatus:
                path = path_to(source, target)
                if not path:
                    continue
                hops = [source, *path]
                assert all(can_transition(a, b) for a, b in zip(hops, hops[1:], strict=False))
