"""
Unit tests for src/order_resolver.py: identifier -> order -> outcome.

Tests cover:
- Match selection (exact, invoice, prefix, ambiguous, none)
- Classification of every status group
- Auto-completion write and its failure
- Lookup failures turned into outcomes
- Mapping of resolutions to confirmation states
"""

from decimal import Decimal

import pytest

from conftest import FakeOrderApi, make_order
from exceptions import NetworkError, OrderServiceError
from order_resolver import (
    OUTCOME_ALREADY_COMPLETED,
    OUTCOME_COMPLETED,
    OUTCOME_ERROR,
    OUTCOME_NEEDS_CONFIRMATION,
    OUTCOME_NOT_FOUND,
    OrderResolver,
    Resolution,
    pick_match,
)
from transaction_executor import TransactionExecutor


def resolver_for(*orders):
    api = FakeOrderApi(orders)
    return OrderResolver(api, TransactionExecutor(api)), api


# ============================================================================
# Match selection
# ============================================================================

class TestPickMatch:

    def test_exact_match_wins_over_prefix(self):
        a = make_order(order_id=1, order_number="ORD-2025-1")
        b = make_order(order_id=2, order_number="ORD-2025-10")
        assert pick_match("ORD-2025-1", [b, a]) == [a]

    def test_case_insensitive(self):
        a = make_order(order_id=1, order_number="ORD-2025-1")
        assert pick_match("ord-2025-1", [a]) == [a]

    def test_invoice_number_match(self):
        a = make_order(order_id=1, order_number="ORD-2025-1", invoice_number="INV-77")
        assert pick_match("INV-77", [a]) == [a]

    def test_single_prefix_match(self):
        a = make_order(order_id=1, order_number="ORD-2025-042")
        assert pick_match("ORD-2025-04", [a]) == [a]

    def test_ambiguous_prefix(self):
        a = make_order(order_id=1, order_number="ORD-2025-10")
        b = make_order(order_id=2, order_number="ORD-2025-11")
        assert len(pick_match("ORD-2025-1", [a, b])) == 2

    def test_substring_only_is_not_a_match(self):
        a = make_order(order_id=1, order_number="XORD-5")
        assert pick_match("ORD-5", [a]) == []


# ============================================================================
# Classification
# ============================================================================

class TestClassification:

    @pytest.mark.parametrize("status", ["delivered", "completed"])
    def test_finalized_is_already_completed(self, status):
        resolver, api = resolver_for(make_order(status=status))
        resolution = resolver.resolve("ORD-2025-042")
        assert resolution.outcome == OUTCOME_ALREADY_COMPLETED
        assert not resolution.committed
        assert api.updates == []

    def test_store_pickup_pending_needs_confirmation(self):
        resolver, api = resolver_for(make_order(status="pending", shipping_method="store_pickup"))
        resolution = resolver.resolve("ORD-2025-042")
        assert resolution.outcome == OUTCOME_NEEDS_CONFIRMATION
        assert api.updates == []

    @pytest.mark.parametrize("status", ["pending", "processing", "ready", "paid_ready_pickup"])
    def test_confirmation_statuses(self, status):
        resolver, api = resolver_for(make_order(status=status, shipping_method="delivery"))
        assert resolver.resolve("ORD-2025-042").outcome == OUTCOME_NEEDS_CONFIRMATION
        assert api.updates == []

    def test_store_pickup_in_transit_needs_confirmation(self):
        resolver, api = resolver_for(make_order(status="in_transit", shipping_method="store_pickup"))
        assert resolver.resolve("ORD-2025-042").outcome == OUTCOME_NEEDS_CONFIRMATION
        assert api.updates == []

    @pytest.mark.parametrize("status", [
        "cancelled", "returned", "refunded",
        "return_requested", "return_approved", "refund_requested",
        "on_hold", "",
    ])
    def test_closed_after_sales_and_unknown_are_refused(self, status):
        resolver, api = resolver_for(make_order(status=status))
        resolution = resolver.resolve("ORD-2025-042")
        assert resolution.outcome == OUTCOME_ERROR
        assert "cannot be completed" in resolution.message
        assert api.updates == []

    @pytest.mark.parametrize("status", ["in_transit", "shipped", "waiting_client", "confirmed", "ordered"])
    def test_other_statuses_auto_complete(self, status):
        resolver, api = resolver_for(make_order(status=status))
        resolution = resolver.resolve("ORD-2025-042")
        assert resolution.outcome == OUTCOME_COMPLETED
        assert resolution.committed
        assert api.updates == [(42, "completed", "paid")]

    def test_auto_complete_failure(self):
        resolver, api = resolver_for(make_order(status="in_transit"))
        api.update_error = OrderServiceError("Status change not allowed", status_code=400)
        resolution = resolver.resolve("ORD-2025-042")
        assert resolution.outcome == OUTCOME_ERROR
        assert resolution.message == "Status change not allowed"
        assert not resolution.committed

    def test_classifies_refetched_record(self):
        summary = make_order(status="in_transit")
        detail = make_order(status="completed")

        class StaleListApi(FakeOrderApi):
            def search_orders(self, identifier):
                return [summary]

        api = StaleListApi([detail])
        resolution = OrderResolver(api, TransactionExecutor(api)).resolve("ORD-2025-042")
        assert resolution.outcome == OUTCOME_ALREADY_COMPLETED
        assert api.get_calls == [42]
        assert api.updates == []


# ============================================================================
# Lookup failures
# ============================================================================

class TestLookupFailures:

    def test_not_found(self):
        resolver, api = resolver_for()
        resolution = resolver.resolve("ORD-404")
        assert resolution.outcome == OUTCOME_NOT_FOUND
        assert resolution.message == "Order ORD-404 not found"
        assert api.get_calls == []

    def test_ambiguous_identifier(self):
        resolver, api = resolver_for(
            make_order(order_id=1, order_number="ORD-2025-10"),
            make_order(order_id=2, order_number="ORD-2025-11"),
        )
        resolution = resolver.resolve("ORD-2025-1")
        assert resolution.outcome == OUTCOME_ERROR
        assert "matches 2 orders" in resolution.message
        assert api.updates == []

    def test_network_error(self):
        resolver, api = resolver_for(make_order())
        api.search_error = NetworkError("down")
        resolution = resolver.resolve("ORD-2025-042")
        assert resolution.outcome == OUTCOME_ERROR
        assert resolution.message == "Failed to process order. Please try again."

    def test_detail_vanished(self):
        class VanishingApi(FakeOrderApi):
            def search_orders(self, identifier):
                return [make_order()]

        api = VanishingApi()
        resolution = OrderResolver(api, TransactionExecutor(api)).resolve("ORD-2025-042")
        assert resolution.outcome == OUTCOME_NOT_FOUND


# ============================================================================
# Confirmation state mapping
# ============================================================================

class TestToConfirmationState:

    def test_needs_confirmation_maps_to_pending(self):
        order = make_order()
        state = Resolution(OUTCOME_NEEDS_CONFIRMATION, "ORD-2025-042", order).to_confirmation_state()
        assert state.phase == "pending"
        assert state.order_id == 42
        assert state.customer_name == "Juan Dela Cruz"
        assert state.total == Decimal("1500.00")

    def test_not_found_maps_to_error_with_identifier(self):
        state = Resolution(OUTCOME_NOT_FOUND, "ORD-404", message="Order ORD-404 not found").to_confirmation_state()
        assert state.phase == "error"
        assert state.order_number == "ORD-404"
        assert state.customer_name == ""
        assert state.total == Decimal("0")
        assert state.order_id is None

    @pytest.mark.parametrize("outcome,phase", [
        (OUTCOME_ALREADY_COMPLETED, "already_completed"),
        (OUTCOME_COMPLETED, "success"),
        (OUTCOME_ERROR, "error"),
    ])
    def test_phase_mapping(self, outcome, phase):
        assert Resolution(outcome, "ORD-1", make_order()).to_confirmation_state().phase == phase
