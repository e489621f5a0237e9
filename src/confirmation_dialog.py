"""
Confirmation Dialog - non-modal overlay showing the current scan/transaction confirmation.
"""

from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QFrame
)
from PySide6.QtGui import QFont
from PySide6.QtCore import Qt

from confirmation_controller import (
    PHASE_ALREADY_COMPLETED,
    PHASE_ERROR,
    PHASE_PENDING,
    PHASE_SUCCESS,
)
from logger import get_logger

logger = get_logger(__name__)

# phase -> (title, accent colour)
PHASE_DISPLAY = {
    PHASE_PENDING: ("Complete Transaction?", "#eab308"),
    PHASE_SUCCESS: ("Complete!", "#22c55e"),
    PHASE_ERROR: ("Error", "#ef4444"),
    PHASE_ALREADY_COMPLETED: ("Already Completed", "#3b82f6"),
}


class ConfirmationDialog(QDialog):
    """
    Renders the ConfirmationController's state.

    The dialog holds no state of its own: it redraws from the controller's
    active state and busy flag whenever either changes. Cancel and the
    window close button dismiss the confirmation; Confirm commits it.
    """

    def __init__(self, controller, parent=None):
        super().__init__(parent)
        self.controller = controller

        self.setWindowTitle("Order Confirmation")
        self.setModal(False)
        self.setMinimumWidth(380)

        self._init_ui()

        controller.state_changed.connect(self.show_state)
        controller.busy_changed.connect(lambda _busy: self._render())

    def _init_ui(self):
        layout = QVBoxLayout(self)

        self.accent_frame = QFrame()
        self.accent_frame.setObjectName("ConfirmationAccent")
        self.accent_frame.setFixedHeight(6)
        layout.addWidget(self.accent_frame)

        self.title_label = QLabel("")
        title_font = QFont(); title_font.setPointSize(18); title_font.setBold(True)
        self.title_label.setFont(title_font)
        self.title_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.title_label)

        self.order_label = QLabel("")
        self.order_label.setAlignment(Qt.AlignCenter)
        self.customer_label = QLabel("")
        self.customer_label.setAlignment(Qt.AlignCenter)
        self.total_label = QLabel("")
        total_font = QFont(); total_font.setPointSize(16); total_font.setBold(True)
        self.total_label.setFont(total_font)
        self.total_label.setAlignment(Qt.AlignCenter)
        self.message_label = QLabel("")
        self.message_label.setAlignment(Qt.AlignCenter)
        self.message_label.setWordWrap(True)

        for label in (self.order_label, self.customer_label, self.total_label, self.message_label):
            layout.addWidget(label)

        button_layout = QHBoxLayout()
        self.cancel_button = QPushButton("Cancel")
        self.cancel_button.clicked.connect(self.reject)
        self.confirm_button = QPushButton("Confirm")
        self.confirm_button.setDefault(True)
        self.confirm_button.clicked.connect(self._on_confirm)
        self.close_button = QPushButton("Close")
        self.close_button.clicked.connect(self.reject)

        button_layout.addWidget(self.cancel_button)
        button_layout.addStretch()
        button_layout.addWidget(self.confirm_button)
        button_layout.addWidget(self.close_button)
        layout.addLayout(button_layout)

    def show_state(self, state):
        if state is None:
            self.hide()
            return
        self._render()
        self.show()
        self.raise_()

    def _render(self):
        state = self.controller.active
        if state is None:
            return

        busy = self.controller.busy
        title, color = PHASE_DISPLAY[state.phase]

        self.accent_frame.setStyleSheet(f"background-color: {color}; border-radius: 3px;")
        self.title_label.setText(title)
        self.title_label.setStyleSheet(f"color: {color};")
        self.order_label.setText(f"Order: {state.order_number}")
        self.customer_label.setText(state.customer_name)
        self.customer_label.setVisible(bool(state.customer_name))
        self.total_label.setText(f"Total: {state.total:,.2f}")
        self.total_label.setVisible(state.phase != PHASE_ERROR or bool(state.customer_name))

        if state.phase == PHASE_ERROR:
            self.message_label.setText(state.message or "Failed to complete transaction")
        elif state.phase == PHASE_ALREADY_COMPLETED:
            self.message_label.setText("This order has already been completed.")
        elif state.phase == PHASE_SUCCESS:
            self.message_label.setText("Transaction completed successfully.")
        else:
            self.message_label.setText("Confirm that payment was received and the items were handed over.")

        pending = state.phase == PHASE_PENDING
        self.cancel_button.setVisible(pending)
        self.cancel_button.setEnabled(not busy)
        self.confirm_button.setVisible(pending)
        self.confirm_button.setEnabled(not busy)
        self.confirm_button.setText("Processing..." if busy else "Confirm")
        self.close_button.setVisible(not pending)

    def _on_confirm(self):
        if self.controller.is_pending() and not self.controller.busy:
            self.controller.confirm()

    def reject(self):
        """Dismiss the confirmation; ignored while the transaction is being processed."""
        if self.controller.busy:
            logger.debug("Close ignored, transaction in progress")
            return
        if self.controller.active is not None:
            self.controller.dismiss()
        else:
            super().reject()
