from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from cannaclub.db.base import Base


class Dispensary(Base):
    """
    One sale at the counter.

    price is what the member agreed to pay; quantity is what was weighed.
    They are not tied to each other after the initial suggestion.
    """
    __tablename__ = "dispensary"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    cash_register_id = Column(Integer, ForeignKey("cash_registers.id"), nullable=True)
    quantity = Column(Numeric(12, 2), nullable=False)  # grams dispensed
    price = Column(Numeric(12, 2), nullable=False)  # € charged
    payment_method = Column(String(16), nullable=False)  # cash | bizum | wallet
    notes = Column(Text, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    member = relationship("Member")
    product = relationship("Product")
