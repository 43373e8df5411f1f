from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from cannaclub.schemas.member import MemberBrief
from cannaclub.schemas.product import ProductBrief


class QuoteRequest(BaseModel):
    product_id: int
    desired_price: Decimal


class QuoteResponse(BaseModel):
    product_id: int
    desired_price: Decimal
    price_per_gram: Decimal
    suggested_grams: Decimal
    stock_grams: Decimal
    in_stock: bool

    class Config:
        from_attributes = True


class DispensaryCreate(BaseModel):
    member_id: int
    product_id: int
    desired_price: Decimal  # € the member agreed to pay
    actual_grams: Decimal  # grams read off the scale
    payment_method: str = "cash"
    notes: Optional[str] = None


class DispensaryResponse(BaseModel):
    id: int
    member_id: int
    product_id: int
    cash_register_id: Optional[int] = None
    quantity: Decimal
    price: Decimal
    payment_method: str
    notes: Optional[str] = None
    user_id: int
    created_at: Optional[datetime] = None
    member: Optional[MemberBrief] = None
    product: Optional[ProductBrief] = None

    class Config:
        from_attributes = True


class ReversalResponse(BaseModel):
    dispensation_id: int
    product_id: int
    restored_grams: Decimal
    payment_method: str
    compensating_transaction_id: Optional[int] = None
    wallet_refunded: bool = False
    register_mismatch: bool = False
    warnings: List[str] = []

    class Config:
        from_attributes = True


class MemberHistoryResponse(BaseModel):
    records: List[DispensaryResponse]
    total_grams: Decimal
    total_spent: Decimal

    class Config:
        from_attributes = True
