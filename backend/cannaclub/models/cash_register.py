from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from cannaclub.db.base import Base


class CashRegister(Base):
    """Till session. At most one row may be open at a time."""
    __tablename__ = "cash_registers"
    __table_args__ = (
        Index(
            "uq_cash_registers_single_open",
            "status",
            unique=True,
            sqlite_where=text("status = 'open'"),
            postgresql_where=text("status = 'open'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    status = Column(String(16), nullable=False, default="open")  # open | closed
    opening_amount = Column(Numeric(12, 2), nullable=False)
    closing_amount = Column(Numeric(12, 2), nullable=True)  # counted by the operator at close
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    notes = Column(Text, nullable=True)
    opened_at = Column(DateTime(timezone=True), server_default=func.now())
    closed_at = Column(DateTime(timezone=True), nullable=True)

    transactions = relationship(
        "CashTransaction",
        back_populates="cash_register",
        order_by="CashTransaction.id",
    )


class CashTransaction(Base):
    """Append-only till movement. Reversals are new expense rows."""
    __tablename__ = "cash_transactions"

    id = Column(Integer, primary_key=True, index=True)
    cash_register_id = Column(Integer, ForeignKey("cash_registers.id"), nullable=False, index=True)
    type = Column(String(16), nullable=False)  # income | expense
    amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(16), nullable=False)  # cash | bizum
    concept = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    cash_register = relationship("CashRegister", back_populates="transactions")
