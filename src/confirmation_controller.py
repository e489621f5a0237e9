"""
Confirmation controller for scanned and clicked "complete transaction" flows.

Holds the single ConfirmationState the console shows at any time:

    pending ──confirm──> success
       │        └──────> error
       └──dismiss──> (none)

already_completed, success and error are display-only; the only way out of
them is dismiss() or a new scan replacing them. A pending confirmation is
never replaced: opening another one raises ConfirmationBusyError. While a
scan is being resolved, operator prompts are refused the same way so the
scan can show its own outcome.
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional

from PySide6.QtCore import QObject, Signal

from exceptions import ConfirmationBusyError, ConfirmationStateError
from logger import get_logger
from order_status import SCAN_CONFIRM_COMPLETE

logger = get_logger(__name__)

PHASE_PENDING = 'pending'
PHASE_SUCCESS = 'success'
PHASE_ERROR = 'error'
PHASE_ALREADY_COMPLETED = 'already_completed'

PHASES = (PHASE_PENDING, PHASE_SUCCESS, PHASE_ERROR, PHASE_ALREADY_COMPLETED)


@dataclass(frozen=True)
class ConfirmationState:
    """
    What the confirmation dialog shows.

    Attributes:
        order_number: Order (or scanned identifier when no order was found)
        customer_name: Display name, empty when unknown
        total: Order total
        phase: pending / success / error / already_completed
        message: Error or server message
        order_id: Backend id; required for a pending confirmation
    """
    order_number: str
    customer_name: str
    total: Decimal
    phase: str
    message: Optional[str] = None
    order_id: Optional[int] = None

    def __post_init__(self):
        if self.phase not in PHASES:
            raise ValueError(f"Unknown confirmation phase: {self.phase!r}")


class ConfirmationController(QObject):
    """
    Owns the confirmation state and runs the confirm write.

    Signals:
        state_changed(object): New ConfirmationState, or None when dismissed
        busy_changed(bool): True while the confirm write is in flight
        committed(int): Order id whose status was written successfully
    """

    state_changed = Signal(object)
    busy_changed = Signal(bool)
    committed = Signal(int)

    def __init__(self, executor, runner, parent=None):
        super().__init__(parent)
        self.executor = executor
        self.runner = runner
        self._state: Optional[ConfirmationState] = None
        self._busy = False
        self._scanning: Optional[str] = None

    @property
    def active(self) -> Optional[ConfirmationState]:
        return self._state

    @property
    def busy(self) -> bool:
        return self._busy

    def is_pending(self) -> bool:
        return self._state is not None and self._state.phase == PHASE_PENDING

    @property
    def scan_in_progress(self) -> Optional[str]:
        """Identifier of the scan being resolved, if any."""
        return self._scanning

    def begin_scan(self, identifier: str):
        self._scanning = identifier

    def end_scan(self):
        self._scanning = None

    def _set_state(self, state: Optional[ConfirmationState]):
        self._state = state
        self.state_changed.emit(state)

    def _set_busy(self, busy: bool):
        if self._busy != busy:
            self._busy = busy
            self.busy_changed.emit(busy)

    def open(self, state: ConfirmationState):
        """
        Show a new confirmation.

        Raises:
            ConfirmationBusyError: If a pending confirmation is open
            ConfirmationStateError: If a pending state has no order id
        """
        if self.is_pending():
            pending = self._state.order_number
            logger.warning(f"Refused confirmation for {state.order_number}: {pending} is still pending")
            raise ConfirmationBusyError(
                f"Finish or cancel the confirmation for {pending} first.",
                pending_order_number=pending,
            )
        if state.phase == PHASE_PENDING and state.order_id is None:
            raise ConfirmationStateError("A pending confirmation needs an order id")

        logger.info(f"Confirmation {state.phase} for {state.order_number}")
        self._set_state(state)

    def prompt_complete_transaction(self, order):
        """
        Ask the operator to confirm completing an order picked from the list.

        Raises:
            ConfirmationBusyError: If a confirmation is pending or a scan is
                still being resolved
        """
        if self._scanning is not None:
            logger.warning(f"Refused confirmation for {order.order_number}: scan of {self._scanning} in progress")
            raise ConfirmationBusyError(
                f"Wait for the scan of {self._scanning} to finish first.",
                pending_order_number=self._scanning,
            )
        self.open(ConfirmationState(
            order_number=order.order_number,
            customer_name=order.customer_name,
            total=order.total_amount,
            phase=PHASE_PENDING,
            order_id=order.id,
        ))

    def confirm(self):
        """
        Commit the pending transaction (delivered + paid).

        Raises:
            ConfirmationStateError: If nothing is pending or the write is running
        """
        if not self.is_pending():
            raise ConfirmationStateError("There is no pending confirmation to confirm")
        if self._busy:
            raise ConfirmationStateError("The transaction is already being processed")

        state = self._state
        status, payment_status = SCAN_CONFIRM_COMPLETE
        logger.info(f"Operator confirmed transaction for {state.order_number}")

        self._set_busy(True)
        self.runner.run(
            lambda: self.executor.execute(state.order_id, status, payment_status),
            self._on_confirm_finished,
            self._on_confirm_failed,
            name=f'confirm-{state.order_number}',
        )

    def _on_confirm_finished(self, result):
        state = self._state
        if result.success:
            self._set_state(replace(state, phase=PHASE_SUCCESS, message=result.message))
        else:
            self._set_state(replace(
                state, phase=PHASE_ERROR, message=result.message or "Failed to complete transaction",
            ))
        self._set_busy(False)

        if result.success:
            self.committed.emit(result.order_id)

    def _on_confirm_failed(self, error: Exception):
        self._set_state(replace(
            self._state, phase=PHASE_ERROR, message="Failed to complete transaction. Please try again.",
        ))
        self._set_busy(False)

    def dismiss(self):
        """
        Close the confirmation in any phase.

        Raises:
            ConfirmationStateError: While the confirm write is in flight
        """
        if self._busy:
            raise ConfirmationStateError("Cannot close the confirmation while it is being processed")
        if self._state is None:
            return
        logger.info(f"Confirmation for {self._state.order_number} dismissed ({self._state.phase})")
        self._set_state(None)
