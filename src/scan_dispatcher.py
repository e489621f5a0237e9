"""
Single consumer of scan events from every channel.

Events are queued and handled one at a time: a second scan that arrives
while the first is still being resolved waits its turn, then sees the
state the first one left behind (e.g. a pending confirmation).
"""

from collections import deque
from decimal import Decimal

from PySide6.QtCore import QObject, Signal

from confirmation_controller import ConfirmationState, PHASE_ERROR
from console_config import DEFAULT_SENTINEL
from exceptions import ConfirmationBusyError
from logger import get_logger, set_scan_context
from scan_events import ScanEvent
from scan_parser import parse_scan

logger = get_logger(__name__)


class ScanDispatcher(QObject):
    """
    Parses scans and routes them to list filtering or order resolution.

    Signals:
        search_requested(str): Unrecognized text, filter the order list with it
        identifier_scanned(str): Recognized identifier, resolution starting
        scan_rejected(str): Scan refused, or its result not shown, because a
            confirmation is pending
        order_resolved(object): Order found for a scan, for the detail panel
        busy_changed(bool): True while a resolution is in flight
        committed(int): Order id written by a scan auto-completion
    """

    search_requested = Signal(str)
    identifier_scanned = Signal(str)
    scan_rejected = Signal(str)
    order_resolved = Signal(object)
    busy_changed = Signal(bool)
    committed = Signal(int)

    def __init__(self, resolver, controller, runner, sentinel: str = DEFAULT_SENTINEL, parent=None):
        super().__init__(parent)
        self.resolver = resolver
        self.controller = controller
        self.runner = runner
        self.sentinel = sentinel
        self._queue = deque()
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def queued_count(self) -> int:
        return len(self._queue)

    def _set_busy(self, busy: bool):
        if self._busy != busy:
            self._busy = busy
            self.busy_changed.emit(busy)

    def submit(self, event: ScanEvent):
        """Queue a scan event from any channel."""
        self._queue.append(event)
        self._drain()

    def _drain(self):
        while not self._busy and self._queue:
            self._process(self._queue.popleft())

    def _process(self, event: ScanEvent):
        set_scan_context(event.source.value)
        result = parse_scan(event.raw_text, self.sentinel)

        if not result.is_recognized:
            logger.info(f"Unrecognized {event.source.value} input used as search: {result.search_text!r}")
            self.search_requested.emit(result.search_text)
            set_scan_context(None)
            return

        identifier = result.order_identifier
        if self.controller.is_pending():
            pending = self.controller.active.order_number
            logger.warning(f"Scan of {identifier} rejected, confirmation for {pending} still pending")
            self.scan_rejected.emit(f"Finish or cancel the confirmation for {pending} before scanning another order.")
            set_scan_context(None)
            return

        logger.info(f"Scanned {identifier} ({result.kind}, {event.source.value})")
        self.identifier_scanned.emit(identifier)

        self._set_busy(True)
        self.controller.begin_scan(identifier)
        self.runner.run(
            lambda: self.resolver.resolve(identifier),
            self._on_resolved,
            lambda error: self._on_resolve_failed(identifier, error),
            name=f'resolve-{identifier}',
        )

    def _show(self, state: ConfirmationState, committed: bool = False):
        try:
            self.controller.open(state)
        except ConfirmationBusyError as e:
            if committed:
                # already written to the backend
                self.scan_rejected.emit(
                    f"{state.order_number} completed. Finish or cancel the confirmation "
                    f"for {e.pending_order_number} to continue."
                )
            else:
                self.scan_rejected.emit(str(e))

    def _on_resolved(self, resolution):
        logger.info(f"Resolution for {resolution.identifier}: {resolution.outcome}")
        self.controller.end_scan()
        self._show(resolution.to_confirmation_state(), committed=resolution.committed)

        if resolution.order is not None:
            self.order_resolved.emit(resolution.order)
        if resolution.committed:
            self.committed.emit(resolution.order.id)

        self._finish()

    def _on_resolve_failed(self, identifier: str, error: Exception):
        self.controller.end_scan()
        self._show(ConfirmationState(
            order_number=identifier,
            customer_name='',
            total=Decimal('0'),
            phase=PHASE_ERROR,
            message="Failed to process order. Please try again.",
        ))
        self._finish()

    def _finish(self):
        set_scan_context(None)
        self._set_busy(False)
        self._drain()
