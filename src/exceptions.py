"""
Custom exceptions for the Sales Console.

Exception hierarchy:
    SalesConsoleError (base)
    ├── OrderServiceError (order service rejected or failed a request)
    │   ├── NetworkError (service unreachable, timeout)
    │   └── OrderNotFoundError (no order for an id or identifier)
    ├── InvalidTransitionError (status change outside the status table)
    ├── ConfirmationError (confirmation dialog misuse)
    │   ├── ConfirmationBusyError (another confirmation is still pending)
    │   └── ConfirmationStateError (action not valid in the current phase)
    ├── CameraUnavailableError (camera or decoding libraries missing)
    └── ValidationError (bad configuration or input values)

Expected failures of the scan flow (order not found, service errors) are
turned into outcomes by the resolver and executor and shown in the
confirmation dialog. The exceptions below are what the lower layers raise
to get there, plus the programming errors the controller refuses.
"""

from typing import Optional


class SalesConsoleError(Exception):
    """
    Base exception for all Sales Console errors.

    Catch this to handle any application error in one place:
        try:
            ...
        except SalesConsoleError as e:
            logger.error(f"Application error: {e}")
    """
    pass


class OrderServiceError(SalesConsoleError):
    """
    Raised when the remote order service rejects or fails a request.

    The message is the server-provided one whenever the response carried
    one, so it can be shown to the operator unchanged.

    Attributes:
        status_code (int | None): HTTP status code, None for transport errors
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NetworkError(OrderServiceError):
    """
    Raised when the order service cannot be reached.

    Common causes at a sales desk: Wi-Fi dropped, backend restarting,
    wrong ApiBaseUrl in config.ini, request timeout.
    """
    pass


class OrderNotFoundError(OrderServiceError):
    """Raised when no order matches the requested id or scanned identifier."""
    pass


class InvalidTransitionError(SalesConsoleError):
    """
    Raised when a status change is not listed in the order status table.

    No request is sent for such a change; the backend would reject it as
    well, but the console refuses it first.

    Attributes:
        current_status (str): Status the order is in
        target_status (str): Status that was requested
    """

    def __init__(self, current_status: str, target_status: str):
        super().__init__(f"Transition {current_status!r} -> {target_status!r} is not allowed")
        self.current_status = current_status
        self.target_status = target_status

    def get_display_message(self) -> str:
        """
        Operator-facing text for a refused status change.

        Example output:
            "An order that is Cancelled cannot be changed to Processing."
        """
        from order_status import format_status

        return (
            f"An order that is {format_status(self.current_status)} "
            f"cannot be changed to {format_status(self.target_status)}."
        )


class ConfirmationError(SalesConsoleError):
    """Base class for confirmation controller misuse."""
    pass


class ConfirmationBusyError(ConfirmationError):
    """
    Raised when a new confirmation is opened while another one is pending.

    The operator acts on physical goods one order at a time, so a pending
    confirmation is never replaced by a second order.

    Attributes:
        pending_order_number (str): Order the open confirmation belongs to
    """

    def __init__(self, message: str, pending_order_number: Optional[str] = None):
        super().__init__(message)
        self.pending_order_number = pending_order_number


class ConfirmationStateError(ConfirmationError):
    """Raised when confirm/dismiss is requested in a phase that does not accept it."""
    pass


class CameraUnavailableError(SalesConsoleError):
    """Raised when the camera cannot be opened or OpenCV/pyzbar are not installed."""
    pass


class ValidationError(SalesConsoleError):
    """
    Raised when configuration or input validation fails.

    Example usage:
        if timeout <= 0:
            raise ValidationError("[Network] ConnectionTimeout must be positive")
    """
    pass
