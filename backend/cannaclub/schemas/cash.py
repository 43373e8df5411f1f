from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from decimal import Decimal


class RegisterOpen(BaseModel):
    opening_amount: Decimal
    notes: Optional[str] = None


class RegisterClose(BaseModel):
    closing_amount: Decimal
    notes: Optional[str] = None


class CashTransactionCreate(BaseModel):
    type: str  # income | expense
    amount: Decimal
    concept: str
    payment_method: str = "cash"
    notes: Optional[str] = None


class CashTransactionResponse(BaseModel):
    id: int
    cash_register_id: int
    type: str
    amount: Decimal
    payment_method: str
    concept: str
    notes: Optional[str] = None
    user_id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RegisterResponse(BaseModel):
    id: int
    status: str
    opening_amount: Decimal
    closing_amount: Optional[Decimal] = None
    user_id: int
    notes: Optional[str] = None
    opened_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    # Recomputed from the transactions, never stored
    balance: Optional[Decimal] = None

    class Config:
        from_attributes = True


class RegisterCloseResponse(BaseModel):
    register: RegisterResponse
    expected_balance: Decimal
    discrepancy: Decimal
    warning: Optional[str] = None


class RegisterDetail(BaseModel):
    register: RegisterResponse
    income: Decimal
    expense: Decimal
    transactions: List[CashTransactionResponse]
