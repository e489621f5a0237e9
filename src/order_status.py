"""
Order status table.

The set of order states, the operator actions allowed from each state, and
the status groups the scan flow classifies orders by. Everything here is
plain data plus lookups; nothing talks to the order service.

The first action listed for a state is its quick action, the one-click
"next step" shown in the order list.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

# Intake
PENDING = 'pending'
ORDERED = 'ordered'
CONFIRMED = 'confirmed'
# Approval-gated payment
PAID_WAITING_APPROVAL = 'paid_waiting_approval'
COD_WAITING_APPROVAL = 'cod_waiting_approval'
# Fulfillment
PROCESSING = 'processing'
PAID_READY_PICKUP = 'paid_ready_pickup'
IN_TRANSIT = 'in_transit'
SHIPPED = 'shipped'  # legacy alias of in_transit
WAITING_CLIENT = 'waiting_client'
# Terminal-success
DELIVERED = 'delivered'
PICKED_UP = 'picked_up'
COMPLETED = 'completed'
# Terminal-alternate
CANCELLED = 'cancelled'
RETURN_REQUESTED = 'return_requested'
RETURN_APPROVED = 'return_approved'
RETURNED = 'returned'
REFUND_REQUESTED = 'refund_requested'
REFUNDED = 'refunded'

# Legacy ready-for-pickup status the backend still accepts
READY = 'ready'

ALL_STATUSES = (
    PENDING, ORDERED, CONFIRMED,
    PAID_WAITING_APPROVAL, COD_WAITING_APPROVAL,
    PROCESSING, PAID_READY_PICKUP, IN_TRANSIT, SHIPPED, WAITING_CLIENT,
    DELIVERED, PICKED_UP, COMPLETED,
    CANCELLED, RETURN_REQUESTED, RETURN_APPROVED, RETURNED, REFUND_REQUESTED, REFUNDED,
)

# Payment statuses
UNPAID = 'unpaid'
PAYMENT_PENDING = 'pending'
PAID = 'paid'
PAYMENT_REFUNDED = 'refunded'

STORE_PICKUP = 'store_pickup'

TONE_PRIMARY = 'primary'
TONE_DANGER = 'danger'
TONE_NEUTRAL = 'neutral'


@dataclass(frozen=True)
class StatusAction:
    """
    One operator-triggered transition.

    Attributes:
        label: Button text
        target_status: Status the order moves to
        payment_status: Payment status sent along with the change, if any
        tone: Presentation hint (primary / danger / neutral)
    """
    label: str
    target_status: str
    payment_status: Optional[str] = None
    tone: str = TONE_PRIMARY


_INTAKE_ACTIONS = (
    StatusAction('Process', PROCESSING),
    StatusAction('Cancel', CANCELLED, tone=TONE_DANGER),
)
_APPROVAL_ACTIONS = (
    StatusAction('Approve', PROCESSING),
    StatusAction('Reject', CANCELLED, tone=TONE_DANGER),
)
_TRANSIT_ACTIONS = (
    StatusAction('Delivered', DELIVERED, payment_status=PAID),
    StatusAction('Waiting', WAITING_CLIENT, tone=TONE_NEUTRAL),
)
_COMPLETE_ACTIONS = (
    StatusAction('Complete', COMPLETED),
)

STATUS_ACTIONS: Dict[str, Tuple[StatusAction, ...]] = {
    PENDING: (
        StatusAction('Confirm', CONFIRMED),
        StatusAction('Cancel', CANCELLED, tone=TONE_DANGER),
    ),
    ORDERED: _INTAKE_ACTIONS,
    CONFIRMED: _INTAKE_ACTIONS,
    PAID_WAITING_APPROVAL: _APPROVAL_ACTIONS,
    COD_WAITING_APPROVAL: _APPROVAL_ACTIONS,
    PAID_READY_PICKUP: (
        StatusAction('Picked Up', PICKED_UP, payment_status=PAID),
    ),
    PROCESSING: (
        StatusAction('Ship', IN_TRANSIT),
        StatusAction('Ready Pickup', PAID_READY_PICKUP),
    ),
    IN_TRANSIT: _TRANSIT_ACTIONS,
    SHIPPED: _TRANSIT_ACTIONS,
    WAITING_CLIENT: (
        StatusAction('Delivered', DELIVERED, payment_status=PAID),
        StatusAction('Failed', CANCELLED, tone=TONE_DANGER),
    ),
    DELIVERED: _COMPLETE_ACTIONS,
    PICKED_UP: _COMPLETE_ACTIONS,
    RETURN_REQUESTED: (
        StatusAction('Approve', RETURN_APPROVED),
        StatusAction('Reject', COMPLETED, tone=TONE_NEUTRAL),
    ),
    RETURN_APPROVED: (
        StatusAction('Returned', RETURNED),
    ),
    REFUND_REQUESTED: (
        StatusAction('Refund', REFUNDED, payment_status=PAYMENT_REFUNDED),
        StatusAction('Reject', COMPLETED, tone=TONE_NEUTRAL),
    ),
    COMPLETED: (),
    CANCELLED: (),
    RETURNED: (),
    REFUNDED: (),
}

TERMINAL_STATUSES = frozenset(s for s, actions in STATUS_ACTIONS.items() if not actions)

# Scan classification groups
FINALIZED_STATUSES = frozenset({DELIVERED, COMPLETED})
CONFIRMATION_STATUSES = frozenset({PENDING, PROCESSING, READY, PAID_READY_PICKUP})
CLOSED_STATUSES = frozenset({CANCELLED, RETURNED, REFUNDED})
AFTER_SALES_STATUSES = frozenset({RETURN_REQUESTED, RETURN_APPROVED, REFUND_REQUESTED})

# (status, payment_status) commands issued by the scan flow. They finish a
# sale in one step and are not operator actions, so they bypass STATUS_ACTIONS.
SCAN_AUTO_COMPLETE = (COMPLETED, PAID)
SCAN_CONFIRM_COMPLETE = (DELIVERED, PAID)

STATUS_COLORS: Dict[str, str] = {
    ORDERED: '#3b82f6',
    PAID_WAITING_APPROVAL: '#eab308',
    COD_WAITING_APPROVAL: '#eab308',
    PAID_READY_PICKUP: '#06b6d4',
    PROCESSING: '#a855f7',
    IN_TRANSIT: '#6366f1',
    WAITING_CLIENT: '#f97316',
    DELIVERED: '#22c55e',
    PICKED_UP: '#22c55e',
    COMPLETED: '#10b981',
    CANCELLED: '#ef4444',
    RETURN_REQUESTED: '#f97316',
    RETURN_APPROVED: '#eab308',
    RETURNED: '#9ca3af',
    REFUND_REQUESTED: '#f97316',
    REFUNDED: '#9ca3af',
    PENDING: '#eab308',
    CONFIRMED: '#06b6d4',
    SHIPPED: '#a855f7',
}
DEFAULT_STATUS_COLOR = '#9ca3af'

_FINAL_STATUS_MESSAGES = {
    COMPLETED: 'Order Completed',
    CANCELLED: 'Order Cancelled',
    RETURNED: 'Item Returned',
    REFUNDED: 'Refund Completed',
}


def is_known_status(status: Optional[str]) -> bool:
    return status in STATUS_ACTIONS


def is_terminal(status: Optional[str]) -> bool:
    return status in TERMINAL_STATUSES


def get_status_actions(status: Optional[str]) -> List[StatusAction]:
    """
    Return the operator actions available from a status.

    Unknown or empty statuses return an empty list, so nothing can be
    triggered on an order the console does not understand.

    Args:
        status: Current order status

    Returns:
        Actions in display order (quick action first)
    """
    return list(STATUS_ACTIONS.get(status, ()))


def get_quick_action(status: Optional[str]) -> Optional[StatusAction]:
    """Return the first listed action for a status, or None for terminal/unknown ones."""
    actions = STATUS_ACTIONS.get(status, ())
    return actions[0] if actions else None


def find_action(current_status: Optional[str], target_status: str) -> Optional[StatusAction]:
    for action in STATUS_ACTIONS.get(current_status, ()):
        if action.target_status == target_status:
            return action
    return None


def is_transition_allowed(current_status: Optional[str], target_status: str) -> bool:
    return find_action(current_status, target_status) is not None


def format_status(status: Optional[str]) -> str:
    """Turn a status key into display text: 'paid_ready_pickup' -> 'Paid Ready Pickup'."""
    if not status:
        return 'Unknown'
    return ' '.join(word.capitalize() for word in status.split('_'))


def get_final_status_message(status: Optional[str]) -> Optional[str]:
    return _FINAL_STATUS_MESSAGES.get(status)


def get_status_color(status: Optional[str]) -> str:
    return STATUS_COLORS.get(status, DEFAULT_STATUS_COLOR)
