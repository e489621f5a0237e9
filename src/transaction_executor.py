"""
Status writes against the order service.

Every status change the console makes goes through TransactionExecutor:
scan auto-completion, a confirmed pickup/cash transaction, and the
operator's quick actions in the order list. Expected failures come back
as a failed TransactionResult carrying the server's message; success is
never assumed without the server saying so.
"""

from dataclasses import dataclass
from typing import Optional

from exceptions import InvalidTransitionError, OrderServiceError
from logger import get_logger
from order_status import find_action, format_status

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransactionResult:
    success: bool
    order_id: int
    status: str
    payment_status: Optional[str] = None
    message: str = ''


class TransactionExecutor:
    """
    Sends one status update per call and reports the outcome.

    The update is idempotent on the server side (setting the same status
    twice is harmless), so a failed call is simply reported, never retried.
    """

    def __init__(self, api):
        self.api = api

    def execute(self, order_id: int, status: str, payment_status: Optional[str] = None) -> TransactionResult:
        """
        Move an order to a status, optionally updating its payment status.

        Args:
            order_id: Backend id of the order
            status: Target order status
            payment_status: Payment status to set along with it

        Returns:
            TransactionResult; success only when the service confirmed the write
        """
        logger.info(f"Updating order {order_id} -> {status} (payment: {payment_status or 'unchanged'})")
        try:
            message = self.api.update_order_status(order_id, status, payment_status)
        except OrderServiceError as e:
            logger.error(f"Status update failed for order {order_id}: {e}")
            return TransactionResult(
                success=False,
                order_id=order_id,
                status=status,
                payment_status=payment_status,
                message=str(e) or "Failed to complete transaction",
            )

        return TransactionResult(
            success=True,
            order_id=order_id,
            status=status,
            payment_status=payment_status,
            message=message or f"Order marked as {format_status(status)}",
        )

    def apply_action(self, order, target_status: str) -> TransactionResult:
        """
        Run an operator action from the status table.

        Raises:
            InvalidTransitionError: If the order's status has no action
                leading to target_status. No request is sent in that case.
        """
        action = find_action(order.status, target_status)
        if action is None:
            logger.warning(f"Refused {order.order_number}: {order.status} -> {target_status} not in status table")
            raise InvalidTransitionError(order.status, target_status)

        logger.info(f"Operator action '{action.label}' on {order.order_number}")
        return self.execute(order.id, action.target_status, action.payment_status)
