from functools import partial
from typing import List, Optional

from PySide6.QtWidgets import (
    QWidget, QHBoxLayout, QVBoxLayout, QTableView, QTableWidget, QTableWidgetItem,
    QLabel, QLineEdit, QHeaderView, QPushButton, QAbstractItemView, QComboBox,
    QFrame, QGroupBox, QFormLayout
)
from PySide6.QtGui import QFont, QImage, QPixmap
from PySide6.QtCore import Qt, Signal, QTimer

from order_api import Order, OrderStats
from order_filter_proxy_model import OrderFilterProxyModel
from order_status import (
    ALL_STATUSES,
    AFTER_SALES_STATUSES,
    CLOSED_STATUSES,
    FINALIZED_STATUSES,
    TONE_DANGER,
    TONE_NEUTRAL,
    format_status,
    get_final_status_message,
    get_status_actions,
    get_status_color,
)
from order_table_model import OrderTableModel
from scan_events import ScanEvent, ScanSource

TONE_STYLES = {
    TONE_DANGER: "background-color: #ef4444; color: white;",
    TONE_NEUTRAL: "background-color: #6b7280; color: white;",
}
DEFAULT_TONE_STYLE = "background-color: #2563eb; color: white;"

STAT_FIELDS = ('total', 'pending', 'processing', 'shipped', 'delivered', 'cancelled')


class OrdersWidget(QWidget):
    """
    The sales desk's order screen.

    Shows the order list with its counters, the detail of the selected
    order with its status actions, and the camera scanner preview. The
    search field doubles as the manual scan channel: submitting it, or
    pausing after typing a '|' payload, emits a manual ScanEvent.

    The widget only displays and emits; all order logic lives in the
    dispatcher, controller and executor it is wired to.

    Attributes:
        scan_submitted (Signal): ScanEvent from the search field.
        refresh_requested (Signal): Operator asked to re-fetch the list.
        status_filter_changed (Signal): New status filter key ('all' for none).
        action_requested (Signal): (Order, target_status) from an action button.
        complete_transaction_requested (Signal): Order to confirm-complete.
        scan_qr_toggled (Signal): Camera scanner view opened/closed.
        search_input (QLineEdit): Search field, exempt from the scanner filter.
        table_model (OrderTableModel): Source model of the order list.
        proxy_model (OrderFilterProxyModel): Text filter over the list.
    """
    scan_submitted = Signal(object)
    refresh_requested = Signal()
    status_filter_changed = Signal(str)
    action_requested = Signal(object, str)
    complete_transaction_requested = Signal(object)
    scan_qr_toggled = Signal(bool)

    def __init__(self, pipe_debounce_ms: int = 150, parent: QWidget = None):
        super().__init__(parent)
        self.selected_order: Optional[Order] = None

        self.pipe_timer = QTimer(self)
        self.pipe_timer.setSingleShot(True)
        self.pipe_timer.setInterval(pipe_debounce_ms)
        self.pipe_timer.timeout.connect(self._on_pipe_debounce)

        main_layout = QVBoxLayout(self)
        main_layout.addLayout(self._build_stats_bar())
        main_layout.addLayout(self._build_toolbar())
        main_layout.addWidget(self._build_camera_panel())

        content_layout = QHBoxLayout()
        content_layout.addWidget(self._build_order_table(), 3)
        content_layout.addWidget(self._build_detail_panel(), 2)
        main_layout.addLayout(content_layout)

        self.notification_label = QLabel("")
        self.notification_label.setObjectName("NotificationLabel")
        self.notification_label.setWordWrap(True)
        main_layout.addWidget(self.notification_label)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def _build_stats_bar(self):
        layout = QHBoxLayout()
        self.stat_labels = {}
        for name in STAT_FIELDS:
            label = QLabel(f"{format_status(name)}: 0")
            label.setObjectName(f"Stat_{name}")
            layout.addWidget(label)
            self.stat_labels[name] = label
        layout.addStretch()
        return layout

    def _build_toolbar(self):
        layout = QHBoxLayout()

        self.search_input = QLineEdit()
        self.search_input.setPlaceholderText("Search orders or scan a code...")
        self.search_input.returnPressed.connect(self._on_search_submitted)
        self.search_input.textChanged.connect(self._on_search_text_changed)
        layout.addWidget(self.search_input, 1)

        self.status_filter = QComboBox()
        self.status_filter.addItem("All Statuses", "all")
        for status in ALL_STATUSES:
            self.status_filter.addItem(format_status(status), status)
        self.status_filter.currentIndexChanged.connect(
            lambda _index: self.status_filter_changed.emit(self.status_filter.currentData())
        )
        layout.addWidget(self.status_filter)

        self.refresh_button = QPushButton("Refresh")
        self.refresh_button.clicked.connect(lambda: self.refresh_requested.emit())
        layout.addWidget(self.refresh_button)

        self.scan_qr_button = QPushButton("Scan QR")
        self.scan_qr_button.setCheckable(True)
        self.scan_qr_button.toggled.connect(self._on_scan_qr_toggled)
        layout.addWidget(self.scan_qr_button)
        return layout

    def _build_camera_panel(self):
        self.camera_panel = QFrame()
        self.camera_panel.setObjectName("CameraPanel")
        layout = QVBoxLayout(self.camera_panel)

        self.camera_preview = QLabel("Starting camera...")
        self.camera_preview.setAlignment(Qt.AlignCenter)
        self.camera_preview.setMinimumSize(320, 240)
        layout.addWidget(self.camera_preview)

        self.camera_error_label = QLabel("")
        self.camera_error_label.setStyleSheet("color: #ef4444;")
        self.camera_error_label.setWordWrap(True)
        self.camera_error_label.hide()
        layout.addWidget(self.camera_error_label)

        self.camera_panel.hide()
        return self.camera_panel

    def _build_order_table(self):
        self.table_model = OrderTableModel(parent=self)
        self.proxy_model = OrderFilterProxyModel(self)
        self.proxy_model.setSourceModel(self.table_model)

        self.table = QTableView()
        self.table.setModel(self.proxy_model)
        self.table.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.table.setSelectionMode(QAbstractItemView.SingleSelection)
        self.table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeToContents)
        self.table.horizontalHeader().setStretchLastSection(True)
        self.table.selectionModel().selectionChanged.connect(self._on_selection_changed)
        return self.table

    def _build_detail_panel(self):
        self.detail_panel = QGroupBox("Order Details")
        layout = QVBoxLayout(self.detail_panel)

        form = QFormLayout()
        self.detail_order_label = QLabel("-")
        detail_font = QFont(); detail_font.setPointSize(14); detail_font.setBold(True)
        self.detail_order_label.setFont(detail_font)
        self.detail_status_label = QLabel("-")
        self.detail_customer_label = QLabel("-")
        self.detail_shipping_label = QLabel("-")
        self.detail_payment_label = QLabel("-")
        self.detail_total_label = QLabel("-")
        form.addRow("Order:", self.detail_order_label)
        form.addRow("Status:", self.detail_status_label)
        form.addRow("Customer:", self.detail_customer_label)
        form.addRow("Shipping:", self.detail_shipping_label)
        form.addRow("Payment:", self.detail_payment_label)
        form.addRow("Total:", self.detail_total_label)
        layout.addLayout(form)

        self.items_table = QTableWidget()
        self.items_table.setColumnCount(4)
        self.items_table.setHorizontalHeaderLabels(["Product", "Qty", "Price", "Total"])
        self.items_table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeToContents)
        self.items_table.horizontalHeader().setStretchLastSection(True)
        self.items_table.setEditTriggers(QTableWidget.NoEditTriggers)
        self.items_table.setSelectionMode(QAbstractItemView.NoSelection)
        self.items_table.setFocusPolicy(Qt.NoFocus)
        layout.addWidget(self.items_table)

        self.final_status_label = QLabel("")
        final_font = QFont(); final_font.setPointSize(16); final_font.setBold(True)
        self.final_status_label.setFont(final_font)
        self.final_status_label.setAlignment(Qt.AlignCenter)
        self.final_status_label.hide()
        layout.addWidget(self.final_status_label)

        self.actions_layout = QHBoxLayout()
        layout.addLayout(self.actions_layout)
        self.action_buttons: List[QPushButton] = []

        self.complete_transaction_button = QPushButton("Complete Transaction")
        self.complete_transaction_button.setStyleSheet("background-color: #22c55e; color: white;")
        self.complete_transaction_button.clicked.connect(self._on_complete_transaction_clicked)
        self.complete_transaction_button.hide()
        layout.addWidget(self.complete_transaction_button)

        layout.addStretch()
        return self.detail_panel

    # ------------------------------------------------------------------
    # Manual scan channel
    # ------------------------------------------------------------------

    def _on_search_submitted(self):
        self.pipe_timer.stop()
        text = self.search_input.text().strip()
        if not text:
            self.apply_search("")
            return
        self.scan_submitted.emit(ScanEvent(text, ScanSource.MANUAL))

    def _on_search_text_changed(self, text: str):
        if '|' in text:
            self.pipe_timer.start()
        else:
            self.pipe_timer.stop()
            if not text:
                self.proxy_model.setFilterFixedString("")

    def _on_pipe_debounce(self):
        text = self.search_input.text().strip()
        if text:
            self.scan_submitted.emit(ScanEvent(text, ScanSource.MANUAL))

    def cancel_pipe_debounce(self):
        """Drop a pending piped-text scan, e.g. when a scanner already delivered it."""
        self.pipe_timer.stop()

    def apply_search(self, text: str):
        """Show text in the search field and filter the list with it."""
        self.pipe_timer.stop()
        self.search_input.blockSignals(True)
        self.search_input.setText(text)
        self.search_input.blockSignals(False)
        self.proxy_model.setFilterFixedString(text)

    # ------------------------------------------------------------------
    # Order list and detail
    # ------------------------------------------------------------------

    def set_orders(self, orders: List[Order], stats: Optional[OrderStats] = None):
        selected_id = self.selected_order.id if self.selected_order else None
        self.table_model.set_orders(orders)
        if stats is not None:
            for name, label in self.stat_labels.items():
                label.setText(f"{format_status(name)}: {getattr(stats, name)}")
        if selected_id is not None:
            self.select_order(selected_id)

    def select_order(self, order_id: int) -> bool:
        source_row = self.table_model.row_of(order_id)
        if source_row == -1:
            return False
        proxy_index = self.proxy_model.mapFromSource(self.table_model.index(source_row, 0))
        if proxy_index.isValid():
            self.table.selectRow(proxy_index.row())
        return True

    def _on_selection_changed(self, *_args):
        rows = self.table.selectionModel().selectedRows()
        if not rows:
            return
        source_index = self.proxy_model.mapToSource(rows[0])
        order = self.table_model.order_at(source_index.row())
        if order is not None and (self.selected_order is None or self.selected_order.id != order.id
                                  or self.selected_order.status != order.status):
            self.show_order_detail(order)

    def show_order_detail(self, order: Optional[Order]):
        """Fill the detail panel and rebuild the status action buttons."""
        self.selected_order = order

        for button in self.action_buttons:
            self.actions_layout.removeWidget(button)
            button.deleteLater()
        self.action_buttons = []
        self.items_table.setRowCount(0)

        if order is None:
            for label in (self.detail_order_label, self.detail_status_label, self.detail_customer_label,
                          self.detail_shipping_label, self.detail_payment_label, self.detail_total_label):
                label.setText("-")
            self.final_status_label.hide()
            self.complete_transaction_button.hide()
            return

        self.detail_order_label.setText(order.order_number)
        self.detail_status_label.setText(format_status(order.status))
        self.detail_status_label.setStyleSheet(f"color: {get_status_color(order.status)}; font-weight: bold;")
        customer = order.customer_name
        if order.customer_email and order.customer_email != customer:
            customer = f"{customer} <{order.customer_email}>"
        self.detail_customer_label.setText(customer)
        self.detail_shipping_label.setText(format_status(order.shipping_method) if order.shipping_method else "-")
        payment = format_status(order.payment_status) if order.payment_status else "-"
        if order.payment_method:
            payment = f"{payment} ({format_status(order.payment_method)})"
        self.detail_payment_label.setText(payment)
        self.detail_total_label.setText(f"{order.total_amount:,.2f}")

        self.items_table.setRowCount(len(order.items))
        for row, item in enumerate(order.items):
            self.items_table.setItem(row, 0, QTableWidgetItem(item.product_name))
            self.items_table.setItem(row, 1, QTableWidgetItem(str(item.quantity)))
            self.items_table.setItem(row, 2, QTableWidgetItem(f"{item.unit_price:,.2f}"))
            self.items_table.setItem(row, 3, QTableWidgetItem(f"{item.total:,.2f}"))

        for action in get_status_actions(order.status):
            button = QPushButton(action.label)
            button.setStyleSheet(TONE_STYLES.get(action.tone, DEFAULT_TONE_STYLE))
            button.clicked.connect(partial(self._on_action_clicked, order, action.target_status))
            self.actions_layout.addWidget(button)
            self.action_buttons.append(button)

        final_message = get_final_status_message(order.status)
        self.final_status_label.setText(final_message or "")
        self.final_status_label.setStyleSheet(f"color: {get_status_color(order.status)};")
        self.final_status_label.setVisible(final_message is not None)

        completable = not (order.status in FINALIZED_STATUSES or order.status in CLOSED_STATUSES
                           or order.status in AFTER_SALES_STATUSES)
        self.complete_transaction_button.setVisible(completable)

    def _on_action_clicked(self, order: Order, target_status: str):
        self.action_requested.emit(order, target_status)

    def _on_complete_transaction_clicked(self):
        if self.selected_order is not None:
            self.complete_transaction_requested.emit(self.selected_order)

    # ------------------------------------------------------------------
    # Camera view
    # ------------------------------------------------------------------

    def _on_scan_qr_toggled(self, checked: bool):
        self.camera_error_label.hide()
        self.camera_preview.setText("Starting camera..." if checked else "")
        self.camera_panel.setVisible(checked)
        self.scan_qr_toggled.emit(checked)

    def close_camera_view(self):
        """Uncheck Scan QR without re-emitting, after the camera delivered a code."""
        self.scan_qr_button.blockSignals(True)
        self.scan_qr_button.setChecked(False)
        self.scan_qr_button.blockSignals(False)
        self.camera_panel.hide()

    def show_camera_frame(self, frame):
        """Show a BGR camera frame in the preview."""
        rgb = frame[:, :, ::-1].copy()
        height, width = rgb.shape[:2]
        image = QImage(rgb.data, width, height, 3 * width, QImage.Format_RGB888).copy()
        pixmap = QPixmap.fromImage(image).scaled(
            self.camera_preview.size(), Qt.KeepAspectRatio, Qt.SmoothTransformation
        )
        self.camera_preview.setPixmap(pixmap)

    def show_camera_error(self, message: str):
        self.camera_preview.setText("Camera unavailable")
        self.camera_error_label.setText(message)
        self.camera_error_label.show()

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def show_notification(self, text: str, is_error: bool = False):
        color = "#ef4444" if is_error else "#e5e7eb"
        self.notification_label.setStyleSheet(f"color: {color};")
        self.notification_label.setText(text)

    def set_busy(self, busy: bool):
        if busy:
            self.show_notification("Processing...")
        elif self.notification_label.text() == "Processing...":
            self.show_notification("")
