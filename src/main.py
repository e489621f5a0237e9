import sys
import platform
from PySide6.QtWidgets import QApplication, QMainWindow, QMessageBox
from PySide6.QtCore import QTimer

from logger import get_logger, set_station_context
from console_config import ConsoleConfig
from exceptions import ConfirmationBusyError, InvalidTransitionError, ValidationError
from order_api import OrderApiClient
from transaction_executor import TransactionExecutor
from order_resolver import OrderResolver
from background_tasks import BackgroundTaskRunner
from confirmation_controller import ConfirmationController
from confirmation_dialog import ConfirmationDialog
from scan_dispatcher import ScanDispatcher
from keyboard_scanner import KeyboardScannerListener
from camera_scanner import CameraScanner
from orders_widget import OrdersWidget
from order_status import format_status

logger = get_logger(__name__)


class MainWindow(QMainWindow):
    """
    The main application window, acting as the central orchestrator.

    Builds the order service client and the scan pipeline from the
    configuration and connects them to the orders screen:

        keyboard scanner ─┐
        camera scanner ───┼─> ScanDispatcher ─> OrderResolver ─> ConfirmationController
        search field ─────┘                                          │
                                                     ConfirmationDialog <┘

    Every successful write is followed by a re-fetch of the order list and
    of the order's detail.

    Attributes:
        config (ConsoleConfig): Loaded settings.
        api (OrderApiClient): Order service client.
        runner (BackgroundTaskRunner): Runs HTTP calls off the UI thread.
        controller (ConfirmationController): Current confirmation.
        dispatcher (ScanDispatcher): Consumer of all scan channels.
        keyboard_listener (KeyboardScannerListener): Hardware scanner channel,
            installed while the window is shown.
        camera_scanner (CameraScanner): Camera channel, running while the
            Scan QR view is open.
        orders_widget (OrdersWidget): Central order screen.
    """
    def __init__(self, config: ConsoleConfig = None, api=None, runner=None, camera_scanner=None):
        super().__init__()
        self.setWindowTitle("Sales Console - Orders")
        self.resize(1280, 800)

        logger.info("Initializing MainWindow")

        self.config = config or ConsoleConfig()
        self.api = api or OrderApiClient(
            self.config.api_base_url,
            token=self.config.api_token,
            timeout=self.config.connection_timeout,
        )
        self.runner = runner or BackgroundTaskRunner(self)

        self.executor = TransactionExecutor(self.api)
        self.resolver = OrderResolver(self.api, self.executor)
        self.controller = ConfirmationController(self.executor, self.runner, self)
        self.dispatcher = ScanDispatcher(self.resolver, self.controller, self.runner, self.config.sentinel, self)

        self.orders_widget = OrdersWidget(pipe_debounce_ms=self.config.pipe_debounce_ms, parent=self)
        self.setCentralWidget(self.orders_widget)
        self.confirmation_dialog = ConfirmationDialog(self.controller, self)

        self.keyboard_listener = KeyboardScannerListener(
            search_field=self.orders_widget.search_input,
            idle_timeout=self.config.idle_timeout,
            min_length=self.config.min_length,
            parent=self,
        )
        self.camera_scanner = camera_scanner or CameraScanner(
            device_id=self.config.camera_device,
            frame_interval_ms=self.config.frame_interval_ms,
            width=self.config.frame_width,
            height=self.config.frame_height,
            parent=self,
        )

        self.status_filter = "all"
        # Only the newest refresh of each kind may update the screen
        self._refresh_generation = 0
        self._detail_generation = 0
        self._connect_signals()

        logger.info("MainWindow initialized successfully")

    def _connect_signals(self):
        widget = self.orders_widget

        # Scan channels
        widget.scan_submitted.connect(self.dispatcher.submit)
        self.keyboard_listener.scan_detected.connect(self._on_hardware_scan)
        self.camera_scanner.code_scanned.connect(self._on_camera_scan)
        self.camera_scanner.frame_captured.connect(widget.show_camera_frame)
        self.camera_scanner.camera_error.connect(widget.show_camera_error)
        widget.scan_qr_toggled.connect(self._on_scan_qr_toggled)

        # Dispatcher results
        self.dispatcher.search_requested.connect(self._on_search_requested)
        self.dispatcher.identifier_scanned.connect(self._on_identifier_scanned)
        self.dispatcher.scan_rejected.connect(self._on_scan_rejected)
        self.dispatcher.order_resolved.connect(widget.show_order_detail)
        self.dispatcher.busy_changed.connect(widget.set_busy)
        self.dispatcher.committed.connect(self._on_order_committed)
        self.controller.committed.connect(self._on_order_committed)

        # Operator actions
        widget.refresh_requested.connect(self.refresh_orders)
        widget.status_filter_changed.connect(self._on_status_filter_changed)
        widget.action_requested.connect(self._on_action_requested)
        widget.complete_transaction_requested.connect(self._on_complete_transaction_requested)

    # ------------------------------------------------------------------
    # Window lifecycle
    # ------------------------------------------------------------------

    def showEvent(self, event):
        super().showEvent(event)
        if not self.keyboard_listener.installed:
            self.keyboard_listener.install()
            self.refresh_orders()

    def closeEvent(self, event):
        logger.info("Closing MainWindow")
        self.keyboard_listener.remove()
        self.camera_scanner.stop()
        self.runner.shutdown()
        super().closeEvent(event)

    def flash_border(self, color: str, duration_ms: int = 500):
        """
        Flashes the border of the order table as scan feedback.

        Args:
            color (str): The color of the border (e.g., "green", "red").
            duration_ms (int): The duration of the flash in milliseconds.
        """
        table = self.orders_widget.table
        table.setStyleSheet(f"QTableView {{ border: 2px solid {color}; }}")
        QTimer.singleShot(duration_ms, table, lambda: table.setStyleSheet(""))

    # ------------------------------------------------------------------
    # Scan handling
    # ------------------------------------------------------------------

    def _on_hardware_scan(self, event):
        # A scanner wedged into the search field already typed the same text there
        self.orders_widget.cancel_pipe_debounce()
        self.dispatcher.submit(event)

    def _on_camera_scan(self, event):
        self.orders_widget.close_camera_view()
        self.dispatcher.submit(event)

    def _on_scan_qr_toggled(self, checked: bool):
        if checked:
            self.camera_scanner.start()
        else:
            self.camera_scanner.stop()

    def _on_search_requested(self, text: str):
        self.orders_widget.apply_search(text)
        self.refresh_orders()

    def _on_identifier_scanned(self, identifier: str):
        self.orders_widget.apply_search(identifier)
        self.orders_widget.show_notification(f"Looking up {identifier}...")

    def _on_scan_rejected(self, message: str):
        self.orders_widget.show_notification(message, is_error=True)
        self.flash_border("red")

    def _on_order_committed(self, order_id: int):
        self.flash_border("green")
        self.refresh_orders()
        self.refresh_order_detail(order_id)

    # ------------------------------------------------------------------
    # Order list
    # ------------------------------------------------------------------

    def refresh_orders(self):
        """Re-fetch the order list for the current search text and status filter."""
        search = self.orders_widget.search_input.text().strip() or None
        status = self.status_filter
        self._refresh_generation += 1
        generation = self._refresh_generation
        self.runner.run(
            lambda: self.api.list_orders(search=search, status=status),
            lambda result: self._on_orders_loaded(generation, result),
            lambda error: self._on_refresh_failed(generation, error),
            name='refresh-orders',
        )

    def _on_orders_loaded(self, generation: int, result):
        if generation != self._refresh_generation:
            logger.debug(f"Dropped stale order list (refresh {generation}, latest {self._refresh_generation})")
            return
        orders, stats = result
        self.orders_widget.set_orders(orders, stats)

    def _on_refresh_failed(self, generation: int, error: Exception):
        if generation != self._refresh_generation:
            return
        self.orders_widget.show_notification(f"Failed to load orders: {error}", is_error=True)

    def refresh_order_detail(self, order_id: int):
        selected = self.orders_widget.selected_order
        if selected is None or selected.id != order_id:
            return
        self._detail_generation += 1
        generation = self._detail_generation
        self.runner.run(
            lambda: self.api.get_order(order_id),
            lambda order: self._on_order_detail_loaded(generation, order),
            lambda error: logger.warning(f"Could not reload order {order_id}: {error}"),
            name=f'order-detail-{order_id}',
        )

    def _on_order_detail_loaded(self, generation: int, order):
        if generation != self._detail_generation:
            logger.debug(f"Dropped stale detail for {order.order_number}")
            return
        selected = self.orders_widget.selected_order
        if selected is not None and selected.id == order.id:
            self.orders_widget.show_order_detail(order)

    def _on_status_filter_changed(self, status: str):
        self.status_filter = status or "all"
        self.refresh_orders()

    # ------------------------------------------------------------------
    # Status actions
    # ------------------------------------------------------------------

    def _on_action_requested(self, order, target_status: str):
        self.orders_widget.show_notification(f"Updating {order.order_number}...")
        self.runner.run(
            lambda: self.executor.apply_action(order, target_status),
            lambda result: self._on_action_finished(order, result),
            self._on_action_failed,
            name=f'action-{order.order_number}',
        )

    def _on_action_finished(self, order, result):
        if result.success:
            self.orders_widget.show_notification(
                f"{order.order_number} is now {format_status(result.status)}"
            )
            self._on_order_committed(result.order_id)
        else:
            self.orders_widget.show_notification(result.message, is_error=True)
            QMessageBox.warning(self, "Update Failed", f"Could not update {order.order_number}:\n\n{result.message}")

    def _on_action_failed(self, error: Exception):
        if isinstance(error, InvalidTransitionError):
            message = error.get_display_message()
        else:
            message = f"Unexpected error: {error}"
        self.orders_widget.show_notification(message, is_error=True)

    def _on_complete_transaction_requested(self, order):
        try:
            self.controller.prompt_complete_transaction(order)
        except ConfirmationBusyError as e:
            self.orders_widget.show_notification(str(e), is_error=True)


def main() -> int:
    app = QApplication(sys.argv)

    try:
        config = ConsoleConfig.load()
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        QMessageBox.critical(None, "Configuration Error", f"config.ini is invalid:\n\n{e}")
        return 1

    set_station_context(platform.node())

    window = MainWindow(config)
    window.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
