"""
Scan events and the hardware scanner debounce buffer.

USB barcode scanners act as keyboards: they "type" the code followed by
Enter, far faster than a person does. ScanBuffer keeps the characters of
one burst and throws them away once the keyboard has been idle for longer
than the idle timeout, so ordinary typing never turns into a scan.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from logger import get_logger

logger = get_logger(__name__)

DEFAULT_IDLE_TIMEOUT = 0.1  # seconds
DEFAULT_MIN_LENGTH = 3


class ScanSource(str, Enum):
    HARDWARE_SCANNER = 'hardware_scanner'
    CAMERA = 'camera'
    MANUAL = 'manual'


@dataclass(frozen=True)
class ScanEvent:
    """
    One completed input from any scan channel.

    Attributes:
        raw_text: Text exactly as the channel produced it
        source: Channel the text came from
    """
    raw_text: str
    source: ScanSource


class ScanBuffer:
    """
    Rolling key buffer for keyboard-emulating scanners.

    State is just the buffered text and the time of the last key; both are
    checked and reset on every key, no timers involved.

    Attributes:
        buffer (str): Characters of the current burst
        last_key_time (float | None): Timestamp of the previous key, seconds
        idle_timeout (float): Gap after which the buffer is discarded
        min_length (int): A burst must be longer than this to be emitted
        accept (callable | None): Extra filter on the trimmed payload
    """

    def __init__(
        self,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
        min_length: int = DEFAULT_MIN_LENGTH,
        accept: Optional[Callable[[str], bool]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.idle_timeout = idle_timeout
        self.min_length = min_length
        self.accept = accept
        self._clock = clock
        self.buffer = ''
        self.last_key_time: Optional[float] = None

    def _expire(self, now: float):
        if self.last_key_time is not None and now - self.last_key_time > self.idle_timeout:
            if self.buffer:
                logger.debug(f"Scanner buffer expired after idle gap ({len(self.buffer)} chars discarded)")
            self.buffer = ''

    def feed_char(self, char: str, timestamp: Optional[float] = None):
        """Append one printable character, discarding a stale burst first."""
        now = self._clock() if timestamp is None else timestamp
        self._expire(now)
        self.buffer += char
        self.last_key_time = now

    def feed_enter(self, timestamp: Optional[float] = None) -> Optional[ScanEvent]:
        """
        Handle Enter: emit the burst if it is long enough, then clear.

        Returns:
            ScanEvent from the hardware scanner, or None
        """
        now = self._clock() if timestamp is None else timestamp
        self._expire(now)

        event = None
        if len(self.buffer) > self.min_length:
            payload = self.buffer.strip()
            if self.accept is None or self.accept(payload):
                event = ScanEvent(payload, ScanSource.HARDWARE_SCANNER)
            else:
                logger.debug(f"Scanner burst ignored, not an order code: {payload!r}")

        self.reset()
        return event

    def reset(self):
        self.buffer = ''
        self.last_key_time = None
