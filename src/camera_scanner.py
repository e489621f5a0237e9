"""
Camera QR scanner channel.

While the scanner view is open a QTimer grabs a frame every
frame_interval_ms, shows it as a preview and tries to decode it. The first
decoded code becomes a ScanEvent and stops the loop; reopening the view
starts a fresh loop.

OpenCV and pyzbar are heavy and optional for desks that only use a
hardware scanner, so they are imported the first time the camera opens.
"""

from typing import Callable, List, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from exceptions import CameraUnavailableError
from logger import get_logger
from scan_events import ScanEvent, ScanSource

logger = get_logger(__name__)

# Loaded by _camera_deps_required()
cv2 = None
pyzbar = None
CAMERA_DEPS_AVAILABLE = False

CAMERA_OPEN_FAILED = "Failed to start camera. Please ensure a camera is connected and not in use."


def _camera_deps_required():
    global cv2, pyzbar, CAMERA_DEPS_AVAILABLE
    if not CAMERA_DEPS_AVAILABLE:
        try:
            import cv2 as _cv2
            from pyzbar import pyzbar as _pyzbar
        except ImportError as e:
            raise CameraUnavailableError(
                "Camera scanning requires OpenCV (opencv-python) and pyzbar. "
                f"Use the hardware scanner or install them. (import error: {e})"
            )
        cv2 = _cv2
        pyzbar = _pyzbar
        CAMERA_DEPS_AVAILABLE = True


def open_capture(device_id: int, width: int, height: int):
    """Open an OpenCV capture device at the requested resolution."""
    _camera_deps_required()
    capture = cv2.VideoCapture(device_id)
    if capture.isOpened():
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        logger.info(f"Camera {device_id} opened at {width}x{height}")
    return capture


def decode_frame(frame) -> List[str]:
    """Decode every QR/barcode in a BGR frame."""
    _camera_deps_required()
    gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    return [symbol.data.decode('utf-8', errors='replace') for symbol in pyzbar.decode(gray)]


class CameraScanner(QObject):
    """
    Timer-driven camera decode loop.

    Signals:
        code_scanned(object): ScanEvent from the camera, at most one per start()
        frame_captured(object): Raw BGR frame for the preview
        camera_error(str): Operator-facing reason the camera could not start
    """

    code_scanned = Signal(object)
    frame_captured = Signal(object)
    camera_error = Signal(str)

    def __init__(
        self,
        device_id: int = 0,
        frame_interval_ms: int = 100,
        width: int = 640,
        height: int = 480,
        capture_factory: Optional[Callable] = None,
        decoder: Optional[Callable] = None,
        parent=None,
    ):
        super().__init__(parent)
        self.device_id = device_id
        self.width = width
        self.height = height
        self.capture_factory = capture_factory or open_capture
        self.decoder = decoder or decode_frame
        self._capture = None

        self._timer = QTimer(self)
        self._timer.setInterval(frame_interval_ms)
        self._timer.timeout.connect(self._poll)

    @property
    def is_running(self) -> bool:
        return self._capture is not None

    def start(self) -> bool:
        """
        Open the camera and start decoding.

        Returns:
            True if the loop is running; on failure camera_error is emitted
        """
        if self.is_running:
            return True

        try:
            capture = self.capture_factory(self.device_id, self.width, self.height)
        except CameraUnavailableError as e:
            logger.error(f"Camera unavailable: {e}")
            self.camera_error.emit(str(e))
            return False

        if capture is None or not capture.isOpened():
            logger.error(f"Cannot open camera device {self.device_id}")
            if capture is not None:
                capture.release()
            self.camera_error.emit(CAMERA_OPEN_FAILED)
            return False

        self._capture = capture
        self._timer.start()
        logger.info("Camera scanner started")
        return True

    def stop(self):
        self._timer.stop()
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info("Camera scanner stopped")

    def _poll(self):
        if self._capture is None:
            return

        ok, frame = self._capture.read()
        if not ok or frame is None:
            logger.debug("Camera frame read failed, skipping")
            return

        self.frame_captured.emit(frame)

        try:
            codes = self.decoder(frame)
        except Exception as e:
            logger.debug(f"Frame decode failed, skipping: {e}")
            return

        for text in codes:
            if text and text.strip():
                self.stop()
                logger.info(f"Camera read {text!r}")
                self.code_scanned.emit(ScanEvent(text, ScanSource.CAMERA))
                return
