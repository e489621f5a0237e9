"""
Hardware barcode scanner channel.

Keyboard-wedge scanners type the code plus Enter into whatever has focus.
KeyboardScannerListener watches key presses application-wide through a Qt
event filter and feeds them to a ScanBuffer; a completed burst becomes a
ScanEvent on the scan_detected signal.

The filter is only installed while the orders screen is active:

    with KeyboardScannerListener(search_field=widget.search_input) as listener:
        listener.scan_detected.connect(dispatcher.submit)
        ...
"""

import time
from typing import Optional

from PySide6.QtCore import QEvent, QObject, Qt, Signal
from PySide6.QtWidgets import (
    QAbstractSpinBox,
    QApplication,
    QLineEdit,
    QPlainTextEdit,
    QTextEdit,
    QWidget,
)

from logger import get_logger
from scan_events import DEFAULT_IDLE_TIMEOUT, DEFAULT_MIN_LENGTH, ScanBuffer, ScanEvent
from scan_parser import looks_like_scan_code

logger = get_logger(__name__)

_TEXT_INPUT_TYPES = (QLineEdit, QTextEdit, QPlainTextEdit, QAbstractSpinBox)
_ENTER_KEYS = (Qt.Key_Return, Qt.Key_Enter)


class KeyboardScannerListener(QObject):
    """
    Application-wide key listener for keyboard-emulating scanners.

    Signals:
        scan_detected(object): ScanEvent from the hardware scanner

    Attributes:
        buffer (ScanBuffer): Debounce state
        search_field (QWidget | None): Text input the listener still reads
            from; other text inputs are left alone
        installed (bool): Whether the event filter is active
    """

    scan_detected = Signal(object)

    def __init__(
        self,
        search_field=None,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
        min_length: int = DEFAULT_MIN_LENGTH,
        parent=None,
    ):
        super().__init__(parent)
        self.search_field = search_field
        self.buffer = ScanBuffer(idle_timeout, min_length, accept=looks_like_scan_code)
        self._app = None

    @property
    def installed(self) -> bool:
        return self._app is not None

    def install(self):
        app = QApplication.instance()
        if app is None:
            raise RuntimeError("KeyboardScannerListener needs a running QApplication")
        if self._app is None:
            app.installEventFilter(self)
            self._app = app
            self.buffer.reset()
            logger.info("Hardware scanner listener installed")

    def remove(self):
        if self._app is not None:
            self._app.removeEventFilter(self)
            self._app = None
            self.buffer.reset()
            logger.info("Hardware scanner listener removed")

    def __enter__(self):
        self.install()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.remove()
        return False

    def _is_foreign_text_input(self, widget) -> bool:
        if widget is None or widget is self.search_field:
            return False
        return isinstance(widget, _TEXT_INPUT_TYPES)

    def handle_key_press(self, key, text: str, target=None, timestamp: Optional[float] = None) -> bool:
        """
        Process one key press.

        Args:
            key: Qt key code
            text: Text the key produces
            target: Widget the key goes to (the focus widget)
            timestamp: Seconds, monotonic; defaults to now

        Returns:
            True if the key completed a scan and should be consumed
        """
        if self._is_foreign_text_input(target):
            return False

        now = time.monotonic() if timestamp is None else timestamp

        if key in _ENTER_KEYS:
            event = self.buffer.feed_enter(now)
            if event is None:
                return False
            logger.info(f"Hardware scanner read {event.raw_text!r}")
            self.scan_detected.emit(event)
            return True

        if text and len(text) == 1 and text.isprintable():
            self.buffer.feed_char(text, now)
        return False

    def eventFilter(self, obj, event):
        if event.type() != QEvent.KeyPress:
            return False

        # Key presses also reach the QWindow and propagate to parents; handle
        # each keystroke once, at the widget it was delivered to.
        focus = QApplication.focusWidget()
        if focus is not None:
            if obj is not focus:
                return False
        elif not isinstance(obj, QWidget):
            return False

        return self.handle_key_press(event.key(), event.text(), focus or obj)
