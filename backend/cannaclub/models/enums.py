"""Closed value sets stored as plain strings."""
from enum import Enum


class MemberStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


class PaymentMethod(str, Enum):
    CASH = "cash"
    BIZUM = "bizum"
    WALLET = "wallet"


# Rails that move money through the till
TILL_METHODS = (PaymentMethod.CASH, PaymentMethod.BIZUM)


class RegisterStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class CashTransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class MemberTransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
