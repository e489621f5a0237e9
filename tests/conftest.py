"""
Pytest configuration file for Sales Console tests.

This file sets up the Python path so tests can import the flat modules in
'src', and provides sample order records plus an in-memory stand-in for
the order service.
"""

import os
import sys
from dataclasses import replace
from pathlib import Path

import pytest

# Run Qt headless unless a platform is chosen explicitly
os.environ.setdefault('QT_QPA_PLATFORM', 'offscreen')

# Get the repository root directory (parent of tests directory)
repo_root = Path(__file__).parent.parent

# Add src directory to sys.path (for src modules)
src_dir = repo_root / 'src'
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from exceptions import OrderNotFoundError  # noqa: E402
from order_api import Order, OrderStats  # noqa: E402


def make_order_record(
    order_id: int = 42,
    order_number: str = "ORD-2025-042",
    status: str = "processing",
    shipping_method: str = "delivery",
    payment_status: str = "pending",
    total_amount="1500.00",
    first_name: str = "Juan",
    last_name: str = "Dela Cruz",
    invoice_number: str = None,
    items: list = None,
):
    """
    Helper function to create an order record as the order service returns it.

    Returns:
        dict: snake_case order record
    """
    return {
        "id": order_id,
        "order_number": order_number,
        "invoice_number": invoice_number,
        "status": status,
        "payment_status": payment_status,
        "payment_method": "cod",
        "shipping_method": shipping_method,
        "total_amount": total_amount,
        "customer_first_name": first_name,
        "customer_last_name": last_name,
        "customer_email": "juan@example.com",
        "item_count": len(items) if items else 1,
        "created_at": "2025-01-15 10:30:00",
        "updated_at": "2025-01-15 10:30:00",
        "items": items or [],
    }


def make_order(**kwargs) -> Order:
    return Order.from_api(make_order_record(**kwargs))


class FakeOrderApi:
    """
    In-memory order service with the OrderApiClient interface.

    Records every call so tests can assert on what was (not) sent.
    """

    def __init__(self, orders=()):
        self.orders = {order.id: order for order in orders}
        self.search_calls = []
        self.get_calls = []
        self.list_calls = []
        self.updates = []
        self.search_error = None
        self.update_error = None

    def search_orders(self, identifier):
        self.search_calls.append(identifier)
        if self.search_error is not None:
            raise self.search_error
        key = identifier.upper()
        return [
            order for order in self.orders.values()
            if key in order.order_number.upper() or key in (order.invoice_number or '').upper()
        ]

    def list_orders(self, search=None, status=None, limit=50, offset=0):
        self.list_calls.append((search, status))
        orders = self.search_orders(search) if search else list(self.orders.values())
        if status and status != 'all':
            orders = [o for o in orders if o.status == status]
        return orders, OrderStats(total=len(orders))

    def get_order(self, order_id):
        self.get_calls.append(order_id)
        if order_id not in self.orders:
            raise OrderNotFoundError(f"Order {order_id} not found", status_code=404)
        return self.orders[order_id]

    def update_order_status(self, order_id, status, payment_status=None):
        self.updates.append((order_id, status, payment_status))
        if self.update_error is not None:
            raise self.update_error
        order = self.orders[order_id]
        self.orders[order_id] = replace(order, status=status, payment_status=payment_status or order.payment_status)
        return "Order status updated successfully"


@pytest.fixture
def fake_api():
    return FakeOrderApi()
