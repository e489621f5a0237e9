"""
Unit tests for src/scan_events.py: ScanBuffer debounce.

Timestamps are passed explicitly so the tests never sleep.

Tests cover:
- Fast burst + Enter emits one hardware event
- Idle gap discards the stale part of the buffer
- Minimum length
- accept() filter
- Buffer cleared after every Enter
"""

from scan_events import ScanBuffer, ScanEvent, ScanSource
from scan_parser import looks_like_scan_code


def type_burst(buffer, text, start=0.0, gap=0.02):
    t = start
    for ch in text:
        buffer.feed_char(ch, t)
        t += gap
    return t


class TestScanBuffer:

    def test_fast_burst_emits_one_event(self):
        buffer = ScanBuffer()
        t = type_burst(buffer, "ORD-2025-001")
        event = buffer.feed_enter(t)
        assert event == ScanEvent("ORD-2025-001", ScanSource.HARDWARE_SCANNER)

    def test_buffer_cleared_after_enter(self):
        buffer = ScanBuffer()
        t = type_burst(buffer, "ORD-2025-001")
        buffer.feed_enter(t)
        assert buffer.buffer == ''
        assert buffer.last_key_time is None
        assert buffer.feed_enter(t + 0.01) is None

    def test_idle_gap_discards_buffer(self):
        buffer = ScanBuffer()
        t = type_burst(buffer, "ORD-")
        t = type_burst(buffer, "2025-001", start=t + 0.2)
        assert buffer.buffer == "2025-001"

    def test_idle_gap_after_fourth_char_gives_no_event(self):
        buffer = ScanBuffer(accept=looks_like_scan_code)
        t = type_burst(buffer, "ORD-")
        t = type_burst(buffer, "2025-001", start=t + 0.2)
        assert buffer.feed_enter(t) is None
        assert buffer.buffer == ''

    def test_enter_after_idle_gap_gives_no_event(self):
        buffer = ScanBuffer()
        t = type_burst(buffer, "ORD-2025-001")
        assert buffer.feed_enter(t + 0.5) is None

    def test_too_short_is_ignored(self):
        buffer = ScanBuffer(min_length=3)
        t = type_burst(buffer, "ORD")
        assert buffer.feed_enter(t) is None

    def test_just_over_min_length_emits(self):
        buffer = ScanBuffer(min_length=3)
        t = type_burst(buffer, "FO-1")
        assert buffer.feed_enter(t).raw_text == "FO-1"

    def test_payload_is_trimmed(self):
        buffer = ScanBuffer()
        t = type_burst(buffer, " ORD-1 ")
        assert buffer.feed_enter(t).raw_text == "ORD-1"

    def test_accept_filter_drops_payload(self):
        buffer = ScanBuffer(accept=looks_like_scan_code)
        t = type_burst(buffer, "hello world")
        assert buffer.feed_enter(t) is None
        assert buffer.buffer == ''

    def test_double_scan_within_window_collapses(self):
        buffer = ScanBuffer()
        t = type_burst(buffer, "ORD-1")
        t = type_burst(buffer, "ORD-1", start=t)
        assert buffer.feed_enter(t).raw_text == "ORD-1ORD-1"

    def test_uses_clock_when_no_timestamp(self):
        now = [100.0]
        buffer = ScanBuffer(clock=lambda: now[0])
        for ch in "INV-42":
            buffer.feed_char(ch)
            now[0] += 0.01
        assert buffer.feed_enter().raw_text == "INV-42"

    def test_reset(self):
        buffer = ScanBuffer()
        type_burst(buffer, "ORD-1")
        buffer.reset()
        assert buffer.buffer == ''
        assert buffer.last_key_time is None
