"""
Tests for src/orders_widget.py: the order screen.

Requires: pytest-qt.

Tests cover:
- Search field as the manual scan channel (Enter, '|' debounce)
- Order list, stats and text filter
- Detail panel, status action buttons, Complete Transaction visibility
- Camera preview panel
"""

import numpy as np
import pytest
from PySide6.QtCore import Qt

from conftest import make_order
from order_api import OrderStats
from orders_widget import OrdersWidget
from scan_events import ScanSource


@pytest.fixture
def widget(qtbot):
    widget = OrdersWidget(pipe_debounce_ms=20)
    qtbot.addWidget(widget)
    widget.scans = []
    widget.scan_submitted.connect(widget.scans.append)
    return widget


@pytest.fixture
def orders():
    return [
        make_order(order_id=1, order_number="ORD-2025-001", status="processing"),
        make_order(order_id=2, order_number="ORD-2025-002", status="completed",
                   first_name="Maria", last_name="Santos"),
        make_order(order_id=3, order_number="ORD-2025-003", status="cancelled"),
    ]


# ============================================================================
# Manual scan channel
# ============================================================================

class TestSearchField:

    def test_enter_submits_manual_scan(self, qtbot, widget):
        qtbot.keyClicks(widget.search_input, "  ORD-2025-001 ")
        qtbot.keyClick(widget.search_input, Qt.Key_Return)

        assert len(widget.scans) == 1
        assert widget.scans[0].raw_text == "ORD-2025-001"
        assert widget.scans[0].source == ScanSource.MANUAL

    def test_enter_on_empty_clears_filter(self, qtbot, widget, orders):
        widget.set_orders(orders)
        widget.proxy_model.setFilterFixedString("santos")
        qtbot.keyClick(widget.search_input, Qt.Key_Return)

        assert widget.scans == []
        assert widget.proxy_model.rowCount() == 3

    def test_piped_text_submitted_after_pause(self, qtbot, widget):
        widget.search_input.setText("FRAGRANZA|ORD-2025-042|INV-042")

        qtbot.waitUntil(lambda: len(widget.scans) == 1, timeout=2000)
        assert widget.scans[0].raw_text == "FRAGRANZA|ORD-2025-042|INV-042"

    def test_piped_text_debounced_while_typing(self, qtbot, widget):
        widget.search_input.setText("FRAGRANZA|ORD")
        widget.search_input.setText("FRAGRANZA|ORD-2025-042")

        qtbot.waitUntil(lambda: len(widget.scans) == 1, timeout=2000)
        qtbot.wait(60)
        assert [e.raw_text for e in widget.scans] == ["FRAGRANZA|ORD-2025-042"]

    def test_cancel_pipe_debounce(self, qtbot, widget):
        widget.search_input.setText("FRAGRANZA|ORD-2025-042")
        widget.cancel_pipe_debounce()
        qtbot.wait(60)
        assert widget.scans == []

    def test_plain_typing_never_submits(self, qtbot, widget):
        widget.search_input.setText("ORD-2025-042")
        qtbot.wait(60)
        assert widget.scans == []

    def test_apply_search_does_not_resubmit(self, qtbot, widget, orders):
        widget.set_orders(orders)
        widget.apply_search("FRAGRANZA|ORD-2025-002")
        qtbot.wait(60)

        assert widget.scans == []
        assert widget.search_input.text() == "FRAGRANZA|ORD-2025-002"

    def test_apply_search_filters(self, qtbot, widget, orders):
        widget.set_orders(orders)
        widget.apply_search("ORD-2025-002")
        assert widget.proxy_model.rowCount() == 1

    def test_clearing_text_clears_filter(self, qtbot, widget, orders):
        widget.set_orders(orders)
        widget.apply_search("ORD-2025-002")
        widget.search_input.clear()
        assert widget.proxy_model.rowCount() == 3


# ============================================================================
# List and detail
# ============================================================================

class TestOrderList:

    def test_set_orders_and_stats(self, qtbot, widget, orders):
        widget.set_orders(orders, OrderStats(total=3, processing=1, delivered=0, cancelled=1))

        assert widget.table_model.rowCount() == 3
        assert widget.stat_labels['total'].text() == "Total: 3"
        assert widget.stat_labels['cancelled'].text() == "Cancelled: 1"

    def test_selecting_row_shows_detail(self, qtbot, widget, orders):
        widget.set_orders(orders)
        assert widget.select_order(2)

        assert widget.selected_order.id == 2
        assert widget.detail_order_label.text() == "ORD-2025-002"
        assert widget.detail_status_label.text() == "Completed"

    def test_select_unknown_order(self, qtbot, widget, orders):
        widget.set_orders(orders)
        assert not widget.select_order(99)

    def test_selection_kept_across_refresh(self, qtbot, widget, orders):
        widget.set_orders(orders)
        widget.select_order(1)

        updated = [make_order(order_id=1, order_number="ORD-2025-001", status="in_transit")] + orders[1:]
        widget.set_orders(updated)

        assert widget.selected_order.status == "in_transit"
        assert widget.detail_status_label.text() == "In Transit"

    def test_status_filter_signal(self, qtbot, widget):
        with qtbot.waitSignal(widget.status_filter_changed, timeout=1000) as blocker:
            widget.status_filter.setCurrentIndex(widget.status_filter.findData("cancelled"))
        assert blocker.args == ["cancelled"]

    def test_refresh_button(self, qtbot, widget):
        with qtbot.waitSignal(widget.refresh_requested, timeout=1000):
            widget.refresh_button.click()


class TestOrderDetail:

    def test_action_buttons_follow_status_table(self, qtbot, widget):
        widget.show_order_detail(make_order(status="processing"))
        assert [b.text() for b in widget.action_buttons] == ["Ship", "Ready Pickup"]

    def test_action_button_emits_target(self, qtbot, widget):
        order = make_order(status="in_transit")
        widget.show_order_detail(order)

        with qtbot.waitSignal(widget.action_requested, timeout=1000) as blocker:
            widget.action_buttons[0].click()

        assert blocker.args == [order, "delivered"]

    def test_terminal_order_has_no_actions(self, qtbot, widget):
        widget.show_order_detail(make_order(status="completed"))

        assert widget.action_buttons == []
        assert widget.final_status_label.text() == "Order Completed"
        assert not widget.final_status_label.isHidden()
        assert widget.complete_transaction_button.isHidden()

    @pytest.mark.parametrize("status,completable", [
        ("pending", True),
        ("processing", True),
        ("in_transit", True),
        ("paid_ready_pickup", True),
        ("delivered", False),
        ("completed", False),
        ("cancelled", False),
        ("refund_requested", False),
    ])
    def test_complete_transaction_visibility(self, qtbot, widget, status, completable):
        widget.show_order_detail(make_order(status=status))
        assert widget.complete_transaction_button.isHidden() is not completable

    def test_complete_transaction_emits_selected(self, qtbot, widget):
        order = make_order(status="processing")
        widget.show_order_detail(order)

        with qtbot.waitSignal(widget.complete_transaction_requested, timeout=1000) as blocker:
            widget.complete_transaction_button.click()
        assert blocker.args == [order]

    def test_items_listed(self, qtbot, widget):
        order = make_order(items=[
            {"product_name": "Oud Noir 50ml", "quantity": 2, "unit_price": "750", "total_price": "1500"},
        ])
        widget.show_order_detail(order)

        assert widget.items_table.rowCount() == 1
        assert widget.items_table.item(0, 0).text() == "Oud Noir 50ml"
        assert widget.items_table.item(0, 3).text() == "1,500.00"

    def test_clearing_detail(self, qtbot, widget):
        widget.show_order_detail(make_order())
        widget.show_order_detail(None)

        assert widget.detail_order_label.text() == "-"
        assert widget.action_buttons == []
        assert widget.complete_transaction_button.isHidden()


# ============================================================================
# Camera view and feedback
# ============================================================================

class TestCameraView:

    def test_toggle_opens_panel(self, qtbot, widget):
        with qtbot.waitSignal(widget.scan_qr_toggled, timeout=1000) as blocker:
            widget.scan_qr_button.click()
        assert blocker.args == [True]
        assert not widget.camera_panel.isHidden()

    def test_close_camera_view_is_silent(self, qtbot, widget):
        widget.scan_qr_button.click()
        toggles = []
        widget.scan_qr_toggled.connect(toggles.append)

        widget.close_camera_view()

        assert toggles == []
        assert not widget.scan_qr_button.isChecked()
        assert widget.camera_panel.isHidden()

    def test_frame_shown(self, qtbot, widget):
        frame = np.zeros((48, 64, 3), dtype=np.uint8)
        widget.show_camera_frame(frame)
        assert not widget.camera_preview.pixmap().isNull()

    def test_camera_error(self, qtbot, widget):
        widget.scan_qr_button.click()
        widget.show_camera_error("Failed to start camera.")
        assert widget.camera_error_label.text() == "Failed to start camera."
        assert not widget.camera_error_label.isHidden()


class TestFeedback:

    def test_busy_indicator(self, qtbot, widget):
        widget.set_busy(True)
        assert widget.notification_label.text() == "Processing..."
        widget.set_busy(False)
        assert widget.notification_label.text() == ""

    def test_busy_off_keeps_other_notifications(self, qtbot, widget):
        widget.set_busy(True)
        widget.show_notification("Order ORD-1 not found", is_error=True)
        widget.set_busy(False)
        assert widget.notification_label.text() == "Order ORD-1 not found"
