from PySide6.QtCore import QAbstractTableModel, Qt, QModelIndex
from PySide6.QtGui import QColor
from PySide6.QtWidgets import QWidget
import pandas as pd
from typing import Any, List, Optional

from order_api import Order
from order_status import format_status, get_status_color

COLUMNS = ['Order_Number', 'Customer', 'Items', 'Total', 'Status', 'Payment', 'Created']


class OrderTableModel(QAbstractTableModel):
    """
    A Qt Table Model to display the order list from a pandas DataFrame.

    The DataFrame holds the display text of each column; the Order objects
    the rows were built from are kept alongside it, so the view can hand the
    selected order to the detail panel and the status actions.

    Attributes:
        _data (pd.DataFrame): Display values, one row per order.
        _orders (list[Order]): Orders in the same row order as _data.
    """
    def __init__(self, data: Optional[pd.DataFrame] = None, orders: Optional[List[Order]] = None,
                 parent: QWidget = None):
        """
        Initializes the OrderTableModel.

        Args:
            data (pd.DataFrame, optional): Display DataFrame with COLUMNS.
            orders (list[Order], optional): Orders matching the DataFrame rows.
            parent (QWidget, optional): The parent widget. Defaults to None.
        """
        super().__init__(parent)
        self._data = data if data is not None else pd.DataFrame(columns=COLUMNS)
        self._orders = list(orders or [])

    @staticmethod
    def build_frame(orders: List[Order]) -> pd.DataFrame:
        rows = [
            {
                'Order_Number': order.order_number,
                'Customer': order.customer_name,
                'Items': order.item_count,
                'Total': f"{order.total_amount:,.2f}",
                'Status': format_status(order.status),
                'Payment': format_status(order.payment_status) if order.payment_status else '',
                'Created': order.created_at[:16].replace('T', ' '),
            }
            for order in orders
        ]
        return pd.DataFrame(rows, columns=COLUMNS)

    @classmethod
    def from_orders(cls, orders: List[Order], parent: QWidget = None) -> "OrderTableModel":
        return cls(cls.build_frame(orders), orders, parent)

    def set_orders(self, orders: List[Order]):
        """Replace the whole list, e.g. after a re-fetch from the service."""
        self.beginResetModel()
        self._orders = list(orders)
        self._data = self.build_frame(self._orders)
        self.endResetModel()

    def order_at(self, row: int) -> Optional[Order]:
        if 0 <= row < len(self._orders):
            return self._orders[row]
        return None

    def row_of(self, order_id: int) -> int:
        for row, order in enumerate(self._orders):
            if order.id == order_id:
                return row
        return -1

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return self._data.shape[0]

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return self._data.shape[1]

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole) -> Any:
        """
        Returns the data for a given index and role.

        Text comes from the DataFrame; the row background is the status
        colour of the order, lightened so the text stays readable.
        """
        if not index.isValid():
            return None

        row = index.row()
        col = index.column()

        if role == Qt.DisplayRole:
            return str(self._data.iloc[row, col])

        if role == Qt.BackgroundRole:
            order = self.order_at(row)
            if order is not None:
                color = QColor(get_status_color(order.status))
                color.setAlpha(60)
                return color

        if role == Qt.TextAlignmentRole and self._data.columns[col] in ('Items', 'Total'):
            return int(Qt.AlignRight | Qt.AlignVCenter)

        return None

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.DisplayRole) -> str | None:
        if role == Qt.DisplayRole and orientation == Qt.Horizontal:
            return str(self._data.columns[section]).replace('_', ' ')
        return None

    def get_column_index(self, column_name: str) -> int:
        """
        Retrieves the numerical index for a given column name.

        Returns:
            int: The index of the column, or -1 if not found.
        """
        try:
            return self._data.columns.get_loc(column_name)
        except KeyError:
            return -1
