from PySide6.QtCore import QSortFilterProxyModel, Qt, QModelIndex
from PySide6.QtWidgets import QWidget


class OrderFilterProxyModel(QSortFilterProxyModel):
    """
    Filter proxy for the order list.

    A single search term is matched, case-insensitively, against the order
    number, the customer name and the customer e-mail of each row. This is
    where unrecognized scans end up: they filter the list instead of
    resolving an order.

    Attributes:
        search_term (str): Current lower-cased search term.
    """
    def __init__(self, parent: QWidget = None):
        super().__init__(parent)
        self.search_term = ""

    def setFilterFixedString(self, text: str):
        """
        Sets the search term and triggers a filter invalidation.

        Args:
            text (str): The search string entered or scanned.
        """
        self.search_term = text.strip().lower()
        self.invalidateFilter()

    def filterAcceptsRow(self, source_row: int, source_parent: QModelIndex) -> bool:
        if not self.search_term:
            return True

        source_model = self.sourceModel()
        if source_model is None:
            return True

        order_col = source_model.get_column_index('Order_Number')
        customer_col = source_model.get_column_index('Customer')
        if order_col == -1 or customer_col == -1:
            return True

        values = [
            source_model.data(source_model.index(source_row, order_col, source_parent), Qt.DisplayRole),
            source_model.data(source_model.index(source_row, customer_col, source_parent), Qt.DisplayRole),
        ]

        order = source_model.order_at(source_row)
        if order is not None:
            values.extend([order.customer_email, order.invoice_number])

        return any(self.search_term in value.lower() for value in values if value)
