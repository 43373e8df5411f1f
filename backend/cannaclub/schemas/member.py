from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import date, datetime
from decimal import Decimal


class MemberCreate(BaseModel):
    first_name: str
    last_name: str
    dni: str
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    dob: Optional[date] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    join_date: Optional[date] = None
    consumption_grams: Decimal = Decimal("0")
    notes: Optional[str] = None
    status: str = "active"
    sponsor_id: Optional[int] = None
    rfid_code: Optional[str] = None


class MemberUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    dni: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    dob: Optional[date] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    join_date: Optional[date] = None
    consumption_grams: Optional[Decimal] = None
    notes: Optional[str] = None
    status: Optional[str] = None
    sponsor_id: Optional[int] = None
    rfid_code: Optional[str] = None


class MemberBrief(BaseModel):
    id: int
    member_code: str
    full_name: str

    class Config:
        from_attributes = True


class MemberResponse(BaseModel):
    id: int
    member_code: str
    first_name: str
    last_name: str
    full_name: str
    dni: str
    email: Optional[str] = None
    phone: Optional[str] = None
    dob: Optional[date] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    join_date: date
    consumption_grams: Decimal
    notes: Optional[str] = None
    status: str
    balance: Decimal
    sponsor_id: Optional[int] = None
    rfid_code: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
