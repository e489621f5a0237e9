"""
Scan code parser.

Turns the raw text of a scan into a ScanResult. Formats, checked in order:

1. Structured QR payload printed on invoices:
       FRAGRANZA|ORD-2025-042|INV-042|1500|Juan Dela Cruz
   sentinel | order number | invoice number | total | customer name.
   Only the order number is required; trailing fields may be missing.
2. Bare order/invoice code from a 1D barcode: ORD-2025-042, INV-042, FO-118.
3. Anything else is not a scan; it is used as a free-text search.

parse_scan() is pure and never raises.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from console_config import DEFAULT_SENTINEL

KIND_STRUCTURED = 'structured'
KIND_BARE_CODE = 'bare_code'
KIND_UNRECOGNIZED = 'unrecognized'

FIELD_SEPARATOR = '|'
KNOWN_PREFIXES = ('ORD-', 'INV-', 'FO-')
BARE_CODE_PATTERN = re.compile(r'^[A-Z]{2,4}-\d')


@dataclass(frozen=True)
class ScanResult:
    """
    Parsed scan.

    Attributes:
        kind: structured / bare_code / unrecognized
        raw_text: Text as received (untrimmed)
        order_identifier: Order or invoice number to look up; None if unrecognized
        invoice_number: From a structured payload, informational
        total_amount: From a structured payload, informational
        customer_name: From a structured payload, informational
    """
    kind: str
    raw_text: str
    order_identifier: Optional[str] = None
    invoice_number: Optional[str] = None
    total_amount: Optional[Decimal] = None
    customer_name: Optional[str] = None

    @property
    def is_recognized(self) -> bool:
        return self.kind != KIND_UNRECOGNIZED

    @property
    def search_text(self) -> str:
        """Text to put in the search box for this scan."""
        return self.order_identifier or self.raw_text.strip()


def _field(parts, index: int) -> Optional[str]:
    if len(parts) > index:
        value = parts[index].strip()
        return value or None
    return None


def _parse_amount(value: Optional[str]) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        amount = Decimal(value.replace(',', ''))
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def is_bare_code(text: str) -> bool:
    if not text or any(ch.isspace() for ch in text):
        return False
    return text.startswith(KNOWN_PREFIXES) or bool(BARE_CODE_PATTERN.match(text))


def looks_like_scan_code(text: str) -> bool:
    """
    Cheap check used by the hardware scanner channel.

    Keyboard bursts that are not order codes (e.g. a product EAN scanned
    at the wrong screen) are dropped before they reach the dispatcher.
    """
    if not isinstance(text, str):
        return False
    text = text.strip()
    return FIELD_SEPARATOR in text or is_bare_code(text)


def parse_scan(raw_text, sentinel: str = DEFAULT_SENTINEL) -> ScanResult:
    """
    Classify scan text.

    Args:
        raw_text: Text from a scanner, the camera or the search box
        sentinel: First field of structured payloads for this deployment

    Returns:
        ScanResult; unrecognized input yields kind='unrecognized'
    """
    if not isinstance(raw_text, str):
        return ScanResult(KIND_UNRECOGNIZED, '' if raw_text is None else str(raw_text))

    text = raw_text.strip()

    if text.startswith(sentinel + FIELD_SEPARATOR):
        parts = text.split(FIELD_SEPARATOR)
        order_identifier = _field(parts, 1)
        if order_identifier is None:
            return ScanResult(KIND_UNRECOGNIZED, raw_text)
        return ScanResult(
            KIND_STRUCTURED,
            raw_text,
            order_identifier=order_identifier,
            invoice_number=_field(parts, 2),
            total_amount=_parse_amount(_field(parts, 3)),
            customer_name=_field(parts, 4),
        )

    if is_bare_code(text):
        return ScanResult(KIND_BARE_CODE, raw_text, order_identifier=text)

    return ScanResult(KIND_UNRECOGNIZED, raw_text)
