from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from decimal import Decimal


class WalletDeposit(BaseModel):
    amount: Decimal
    payment_method: str = "cash"
    notes: Optional[str] = None


class WalletWithdraw(BaseModel):
    amount: Decimal
    notes: Optional[str] = None


class MemberTransactionResponse(BaseModel):
    id: int
    member_id: int
    amount: Decimal
    type: str
    notes: Optional[str] = None
    user_id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WalletMovementResponse(BaseModel):
    member_id: int
    balance: Decimal
    entry: MemberTransactionResponse
    cash_transaction_id: Optional[int] = None


class WalletSummary(BaseModel):
    member_id: int
    balance: Decimal
    ledger_balance: Decimal
    drift: Decimal  # stored balance minus ledger total, expected 0
    entries: List[MemberTransactionResponse]
