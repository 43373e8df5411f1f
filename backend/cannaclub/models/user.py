from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from cannaclub.db.base import Base


class User(Base):
    """Staff account. Admins manage users and see product cost prices."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(64), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_login = Column(DateTime(timezone=True), nullable=True)
