"""
Resolves a scanned order/invoice identifier to an order and decides what
the scan does with it.

    search ─> pick unique match ─> re-fetch detail ─> classify
                                                     ├─ delivered/completed  -> already_completed
                                                     ├─ pickup / pending ... -> needs_confirmation
                                                     ├─ closed / after-sales -> error (no write)
                                                     └─ anything else        -> auto-complete write

The resolver blocks on HTTP and is run on a worker thread.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from confirmation_controller import (
    ConfirmationState,
    PHASE_ALREADY_COMPLETED,
    PHASE_ERROR,
    PHASE_PENDING,
    PHASE_SUCCESS,
)
from exceptions import OrderNotFoundError, OrderServiceError
from logger import get_logger
from order_api import Order
from order_status import (
    AFTER_SALES_STATUSES,
    CLOSED_STATUSES,
    CONFIRMATION_STATUSES,
    FINALIZED_STATUSES,
    SCAN_AUTO_COMPLETE,
    STORE_PICKUP,
    format_status,
    is_known_status,
)

logger = get_logger(__name__)

OUTCOME_NOT_FOUND = 'not_found'
OUTCOME_ALREADY_COMPLETED = 'already_completed'
OUTCOME_NEEDS_CONFIRMATION = 'needs_confirmation'
OUTCOME_COMPLETED = 'completed'
OUTCOME_ERROR = 'error'

_OUTCOME_PHASES = {
    OUTCOME_NOT_FOUND: PHASE_ERROR,
    OUTCOME_ALREADY_COMPLETED: PHASE_ALREADY_COMPLETED,
    OUTCOME_NEEDS_CONFIRMATION: PHASE_PENDING,
    OUTCOME_COMPLETED: PHASE_SUCCESS,
    OUTCOME_ERROR: PHASE_ERROR,
}


@dataclass(frozen=True)
class Resolution:
    """
    Result of resolving one scan.

    Attributes:
        outcome: not_found / already_completed / needs_confirmation / completed / error
        identifier: Identifier as scanned
        order: Authoritative order record, when one was found
        message: Operator-facing explanation for errors
        committed: True only if this resolution wrote a status change
    """
    outcome: str
    identifier: str
    order: Optional[Order] = None
    message: Optional[str] = None
    committed: bool = False

    def to_confirmation_state(self) -> ConfirmationState:
        order = self.order
        return ConfirmationState(
            order_number=order.order_number if order else self.identifier,
            customer_name=order.customer_name if order else '',
            total=order.total_amount if order else Decimal('0'),
            phase=_OUTCOME_PHASES[self.outcome],
            message=self.message,
            order_id=order.id if order else None,
        )


def pick_match(identifier: str, candidates: List[Order]) -> List[Order]:
    """
    Narrow search results to the order(s) the identifier refers to.

    An exact order/invoice number match (case-insensitive) wins; otherwise
    orders whose order or invoice number starts with the identifier.

    Returns:
        Zero, one or several orders
    """
    key = identifier.strip().upper()

    def numbers(order: Order):
        return [n.upper() for n in (order.order_number, order.invoice_number) if n]

    exact = [o for o in candidates if key in numbers(o)]
    if exact:
        return exact[:1]
    return [o for o in candidates if any(n.startswith(key) for n in numbers(o))]


class OrderResolver:
    """
    Turns an identifier into a Resolution.

    Expected failures (not found, service down) become outcomes; nothing
    here raises for them.
    """

    def __init__(self, api, executor):
        self.api = api
        self.executor = executor

    def resolve(self, identifier: str) -> Resolution:
        logger.info(f"Resolving scanned identifier {identifier}")
        try:
            matches = pick_match(identifier, self.api.search_orders(identifier))
            if not matches:
                logger.info(f"No order matches {identifier}")
                return Resolution(OUTCOME_NOT_FOUND, identifier, message=f"Order {identifier} not found")
            if len(matches) > 1:
                logger.warning(f"{identifier} is ambiguous ({len(matches)} matches)")
                return Resolution(
                    OUTCOME_ERROR, identifier,
                    message=f"{identifier} matches {len(matches)} orders. Scan the full order number.",
                )
            order = self.api.get_order(matches[0].id)
        except OrderNotFoundError:
            return Resolution(OUTCOME_NOT_FOUND, identifier, message=f"Order {identifier} not found")
        except OrderServiceError as e:
            logger.error(f"Lookup of {identifier} failed: {e}")
            return Resolution(OUTCOME_ERROR, identifier, message="Failed to process order. Please try again.")

        return self.classify(identifier, order)

    def classify(self, identifier: str, order: Order) -> Resolution:
        status = order.status

        if status in FINALIZED_STATUSES:
            logger.info(f"{order.order_number} already {status}, nothing to do")
            return Resolution(OUTCOME_ALREADY_COMPLETED, identifier, order)

        if order.shipping_method == STORE_PICKUP or status in CONFIRMATION_STATUSES:
            logger.info(f"{order.order_number} ({status}, {order.shipping_method or 'n/a'}) needs confirmation")
            return Resolution(OUTCOME_NEEDS_CONFIRMATION, identifier, order)

        if status in CLOSED_STATUSES or status in AFTER_SALES_STATUSES or not is_known_status(status):
            logger.warning(f"{order.order_number} is {status!r}, scan completion refused")
            return Resolution(
                OUTCOME_ERROR, identifier, order,
                message=f"Order {order.order_number} is {format_status(status)} and cannot be completed.",
            )

        result = self.executor.execute(order.id, *SCAN_AUTO_COMPLETE)
        if result.success:
            logger.info(f"{order.order_number} auto-completed from scan")
            return Resolution(OUTCOME_COMPLETED, identifier, order, message=result.message, committed=True)
        return Resolution(
            OUTCOME_ERROR, identifier, order,
            message=result.message or "Failed to complete transaction",
        )
