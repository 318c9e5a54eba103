from .enums import (
    TableState, PaymentMethod, PurchasePaymentMethod, Shift,
    MovementKind, ReservationStatus, DiscountKind, UserRole,
)
from .inventory import Product, StockMovement
from .tables import DiningTable, OrderLine
from .registers import CashRegister, RegisterClosure
from .sales import Sale
from .expenses import Expense
from .purchases import Supplier, Purchase, PurchaseLine
from .reservations import Reservation
from .discounts import Discount
from .auth import User

__all__ = [
    'TableState', 'PaymentMethod', 'PurchasePaymentMethod', 'Shift',
    'MovementKind', 'ReservationStatus', 'DiscountKind', 'UserRole',
    'Product', 'StockMovement',
    'DiningTable', 'OrderLine',
    'CashRegister', 'RegisterClosure',
    'Sale',
    'Expense',
    'Supplier', 'Purchase', 'PurchaseLine',
    'Reservation',
    'Discount',
    'User',
]
