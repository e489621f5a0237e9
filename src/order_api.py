"""
Client for the remote order service.

The console never stores orders itself. It reads them from, and sends
status changes to, the shop backend over HTTP+JSON:

    GET  /orders?search=<identifier>   list of matching order summaries
    GET  /orders/<id>                  full order detail
    PUT  /orders/<id>/status           {"status": ..., "paymentStatus": ...}

Responses use the backend's envelope {"success": bool, "data": ...,
"message": str, "stats": {...}}.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

import requests

from exceptions import NetworkError, OrderNotFoundError, OrderServiceError
from logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_PAGE_SIZE = 50


def _to_decimal(value) -> Decimal:
    if value is None or value == '':
        return Decimal('0')
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal('0')


def _to_int(value, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class OrderItem:
    product_name: str
    quantity: int
    unit_price: Decimal
    total: Decimal

    @classmethod
    def from_api(cls, record: Dict[str, Any]) -> "OrderItem":
        return cls(
            product_name=record.get('product_name') or record.get('name') or '',
            quantity=_to_int(record.get('quantity'), 1),
            unit_price=_to_decimal(record.get('unit_price', record.get('price'))),
            total=_to_decimal(record.get('total_price', record.get('total'))),
        )


@dataclass(frozen=True)
class Order:
    """
    Snapshot of an order as the service returned it.

    Attributes:
        id: Backend primary key
        order_number: Human-scannable identifier (ORD-2025-042)
        invoice_number: Invoice identifier, if an invoice exists
        status: Order status key (see order_status)
        payment_status: unpaid / pending / paid / refunded
        total_amount: Order total
        customer_name: Display name for the confirmation dialog
        shipping_method: e.g. 'store_pickup', 'delivery'
        items: Line items (detail records only)
    """
    id: int
    order_number: str
    status: str
    payment_status: str = ''
    total_amount: Decimal = Decimal('0')
    customer_name: str = 'Customer'
    customer_email: str = ''
    invoice_number: Optional[str] = None
    shipping_method: str = ''
    payment_method: str = ''
    item_count: int = 0
    created_at: str = ''
    updated_at: str = ''
    items: Tuple[OrderItem, ...] = field(default_factory=tuple)

    @property
    def is_store_pickup(self) -> bool:
        return self.shipping_method == 'store_pickup'

    @staticmethod
    def _customer_name(record: Dict[str, Any]) -> str:
        name = f"{record.get('customer_first_name') or ''} {record.get('customer_last_name') or ''}".strip()
        if not name:
            name = (record.get('customer_name') or '').strip()
        if not name:
            name = (record.get('customer_email') or '').strip()
        return name or 'Customer'

    @classmethod
    def from_api(cls, record: Dict[str, Any]) -> "Order":
        """
        Build an Order from a service record.

        Raises:
            OrderServiceError: If the record lacks an id or order number
        """
        if not isinstance(record, dict) or record.get('id') is None or not record.get('order_number'):
            raise OrderServiceError(f"Malformed order record from service: {record!r}")

        items = tuple(OrderItem.from_api(item) for item in record.get('items') or ())
        return cls(
            id=_to_int(record['id']),
            order_number=str(record['order_number']),
            status=(record.get('status') or '').strip(),
            payment_status=(record.get('payment_status') or '').strip(),
            total_amount=_to_decimal(record.get('total_amount')),
            customer_name=cls._customer_name(record),
            customer_email=record.get('customer_email') or '',
            invoice_number=record.get('invoice_number') or None,
            shipping_method=record.get('shipping_method') or '',
            payment_method=record.get('payment_method') or '',
            item_count=_to_int(record.get('item_count'), len(items)),
            created_at=record.get('created_at') or '',
            updated_at=record.get('updated_at') or '',
            items=items,
        )


@dataclass(frozen=True)
class OrderStats:
    total: int = 0
    pending: int = 0
    processing: int = 0
    shipped: int = 0
    delivered: int = 0
    cancelled: int = 0

    @classmethod
    def from_api(cls, record: Optional[Dict[str, Any]]) -> "OrderStats":
        record = record or {}
        return cls(**{name: _to_int(record.get(name)) for name in cls.__dataclass_fields__})


class OrderApiClient:
    """
    Thin HTTP client over a requests.Session.

    All methods block; the UI runs them on worker threads.

    Attributes:
        base_url (str): Service root, e.g. https://shop.example.com/api
        timeout (float): Per-request timeout in seconds
        session (requests.Session): Shared connection pool
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'Accept': 'application/json'})
        if token:
            self.session.headers.update({'Authorization': f'Bearer {token}'})

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout:
            logger.error(f"{method} {url} timed out after {self.timeout}s")
            raise NetworkError("The order service did not respond in time. Please try again.")
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise NetworkError("Failed to connect to the order service. Please check the connection.")

        try:
            payload = response.json()
        except ValueError:
            payload = None

        message = payload.get('message') if isinstance(payload, dict) else None

        if response.status_code == 404:
            raise OrderNotFoundError(message or "Order not found", status_code=404)
        if not response.ok:
            logger.warning(f"{method} {url} -> HTTP {response.status_code}: {message}")
            raise OrderServiceError(
                message or f"Order service error (HTTP {response.status_code})",
                status_code=response.status_code,
            )
        if isinstance(payload, list):
            return {'success': True, 'data': payload}
        if not isinstance(payload, dict):
            raise OrderServiceError("Order service returned an invalid response", status_code=response.status_code)
        if payload.get('success') is False:
            raise OrderServiceError(message or "Order service rejected the request", status_code=response.status_code)
        return payload

    def list_orders(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> Tuple[List[Order], OrderStats]:
        """
        Fetch one page of order summaries plus the dashboard counters.

        Args:
            search: Prefix/substring of order number, customer name or e-mail
            status: Status filter; None or 'all' for every status

        Returns:
            (orders, stats)
        """
        params: Dict[str, Any] = {'limit': limit, 'offset': offset}
        if search:
            params['search'] = search
        if status and status != 'all':
            params['status'] = status

        payload = self._request('GET', '/orders', params=params)
        orders = [Order.from_api(record) for record in payload.get('data') or []]
        logger.debug(f"Fetched {len(orders)} orders (search={search!r}, status={status!r})")
        return orders, OrderStats.from_api(payload.get('stats'))

    def search_orders(self, identifier: str) -> List[Order]:
        orders, _ = self.list_orders(search=identifier)
        return orders

    def get_order(self, order_id: int) -> Order:
        """
        Fetch the full detail record of one order.

        Raises:
            OrderNotFoundError: If the service has no such order
        """
        payload = self._request('GET', f'/orders/{order_id}')
        data = payload.get('data')
        if not data:
            raise OrderNotFoundError(f"Order {order_id} not found", status_code=404)
        return Order.from_api(data)

    def update_order_status(self, order_id: int, status: str, payment_status: Optional[str] = None) -> str:
        """
        Ask the service to move an order to a new status.

        The service validates the transition itself and rejects anything it
        does not allow; the rejection surfaces as OrderServiceError.

        Returns:
            The server's confirmation message
        """
        body: Dict[str, Any] = {'status': status}
        if payment_status:
            body['paymentStatus'] = payment_status

        payload = self._request('PUT', f'/orders/{order_id}/status', json=body)
        message = payload.get('message') or f"Order status updated to {status}"
        logger.info(f"Order {order_id} -> {status} (payment: {payment_status or 'unchanged'}): {message}")
        return message
