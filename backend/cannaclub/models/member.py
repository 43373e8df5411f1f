from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from cannaclub.db.base import Base


class Member(Base):
    """
    Association member.

    balance is a cached running total of member_transactions.amount. It is
    only written by the wallet service, in the same unit of work as the
    ledger row that explains it. It may be negative (members can run a tab).
    """
    __tablename__ = "members"

    id = Column(Integer, primary_key=True, index=True)
    member_code = Column(String(32), unique=True, nullable=False, index=True)
    first_name = Column(String(128), nullable=False)
    last_name = Column(String(128), nullable=False)
    dni = Column(String(32), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    dob = Column(Date, nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(128), nullable=True)
    postal_code = Column(String(16), nullable=True)
    join_date = Column(Date, nullable=False)
    consumption_grams = Column(Numeric(12, 2), nullable=False, default=0)  # declared monthly forecast
    notes = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default="active")  # active | inactive | pending
    balance = Column(Numeric(12, 2), nullable=False, default=0)
    sponsor_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True)
    rfid_code = Column(String(64), unique=True, nullable=True)  # NULLs never collide
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    documents = relationship("Document", back_populates="member", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
