from .inventory import InventoryItem, PurchaseOrder, PurchaseOrderLine
from .history import InventoryRecord, InventoryRecordLine
from .cash import CashSession, Employee, IncomeSource

__all__ = [
    'InventoryItem', 'PurchaseOrder', 'PurchaseOrderLine',
    'InventoryRecord', 'InventoryRecordLine',
    'CashSession', 'Employee', 'IncomeSource',
]
