from pydantic import BaseModel
from typing import List, Optional
from decimal import Decimal

from cannaclub.schemas.dispensary import DispensaryResponse


class OpenRegisterCard(BaseModel):
    id: int
    balance: Decimal


class DashboardSummary(BaseModel):
    active_members: int
    sales_today: int
    revenue_today: Decimal
    grams_today: Decimal
    open_register: Optional[OpenRegisterCard] = None
    low_stock_count: int
    recent_dispensations: List[DispensaryResponse]


class CashFlowDay(BaseModel):
    date: str
    income: Decimal
    expense: Decimal
    balance: Decimal


class CashFlowReport(BaseModel):
    days: List[CashFlowDay]
    total_income: Decimal
    total_expense: Decimal
    net: Decimal


class ProductSalesRow(BaseModel):
    product_id: int
    name: str
    sales: int
    quantity: Decimal
    revenue: Decimal


class ProductSalesReport(BaseModel):
    rows: List[ProductSalesRow]
    total_revenue: Decimal
