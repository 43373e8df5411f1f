from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from decimal import Decimal


class ProductCreate(BaseModel):
    name: str
    category: str
    type: str
    price: Decimal
    cost_price: Optional[Decimal] = None
    stock_grams: Decimal = Decimal("0")
    is_visible: bool = True
    description: Optional[str] = None
    notes: Optional[str] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    type: Optional[str] = None
    price: Optional[Decimal] = None
    cost_price: Optional[Decimal] = None
    stock_grams: Optional[Decimal] = None
    is_visible: Optional[bool] = None
    description: Optional[str] = None
    notes: Optional[str] = None


class ProductBrief(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class ProductResponse(BaseModel):
    """Catalog entry as staff see it. No cost price."""
    id: int
    name: str
    description: Optional[str] = None
    category: str
    type: str
    price: Decimal
    stock_grams: Decimal
    is_visible: bool
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductAdminResponse(ProductResponse):
    cost_price: Optional[Decimal] = None
