from .tenancy import Restaurant
from .customers import Customer
from .sales import Sale
from .bank import BankTransaction
from .debts import Debt, DebtPayment
from .expenses import Expense, ExpensePayment
from .inventory import InventoryItem, StockMovement, ProductionLog
from .documents import StockReconciliation, ReconciliationItem, InventoryTransfer

__all__ = [
    'Restaurant', 'Customer', 'Sale',
    'BankTransaction',
    'Debt', 'DebtPayment',
    'Expense', 'ExpensePayment',
    'InventoryItem', 'StockMovement', 'ProductionLog',
    'StockReconciliation', 'ReconciliationItem', 'InventoryTransfer',
]
