from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from cannaclub.db.base import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(64), nullable=False)
    type = Column(String(64), nullable=False)  # sativa, indica, hibrido, ...
    price = Column(Numeric(12, 2), nullable=False)  # € per gram
    cost_price = Column(Numeric(12, 2), nullable=True)  # admin-only
    stock_grams = Column(Numeric(12, 2), nullable=False, default=0)
    is_visible = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
