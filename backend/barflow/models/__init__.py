from .auth import User, SessionToken
from .catalog import Product
from .shifts import ShiftSession
from .credit import CreditCustomer, CreditTransaction
from .accounting import FixedExpense, WorkShift, Purchase
from .pos import PosSale, PosSaleItem, PosPayment
from .drawer import DrawerLog, DrawerAlert
from .settings import AppConfig

__all__ = [
    'User', 'SessionToken',
    'Product',
    'ShiftSession',
    'CreditCustomer', 'CreditTransaction',
    'FixedExpense', 'WorkShift', 'Purchase',
    'PosSale', 'PosSaleItem', 'PosPayment',
    'DrawerLog', 'DrawerAlert',
    'AppConfig',
]
