"""Models package - exports all SQLAlchemy models."""
from erpcompras.models.supplier import Supplier, SupplierStatus
from erpcompras.models.purchase_order import (
    PurchaseOrder, OrderStatus, ORDER_STATUS_TABLE, STATUS_BY_CODE, CODE_BY_STATUS,
    TERMINAL_STATUSES, CURRENCIES
)
from erpcompras.models.purchase_order_line import PurchaseOrderLine

__all__ = [
    'Supplier', 'SupplierStatus',
    'PurchaseOrder', 'OrderStatus', 'ORDER_STATUS_TABLE', 'STATUS_BY_CODE', 'CODE_BY_STATUS',
    'TERMINAL_STATUSES', 'CURRENCIES',
    'PurchaseOrderLine',
]
