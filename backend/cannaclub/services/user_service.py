"""Staff accounts and credential checks."""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from cannaclub.core.exceptions import NotFoundError, PreconditionError, ValidationError
from cannaclub.core.security import get_password_hash, verify_password
from cannaclub.models.cash_register import CashRegister, CashTransaction
from cannaclub.models.dispensary import Dispensary
from cannaclub.models.member_transaction import MemberTransaction
from cannaclub.models.user import User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 4
# bcrypt only reads the first 72 bytes
MAX_PASSWORD_BYTES = 72


def authenticate(db: Session, username: str, password: str) -> Optional[User]:
    """Return the user when the credentials match, else None. Updates last_login."""
    user = db.query(User).filter(User.username == (username or "").strip()).first()
    if user is None or not verify_password(password, user.hashed_password):
        return None
    user.last_login = datetime.now(timezone.utc)
    db.flush()
    return user


def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.username).all()


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def _check_password(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


def create_user(db: Session, username: str, password: str, full_name: str, is_admin: bool = False) -> User:
    username = (username or "").strip()
    full_name = (full_name or "").strip()
    if not username or not full_name:
        raise ValidationError("Username and full name are required")
    _check_password(password)
    if db.query(User.id).filter(User.username == username).first() is not None:
        raise PreconditionError(f"Username '{username}' is already taken")

    user = User(
        username=username,
        hashed_password=get_password_hash(password),
        full_name=full_name,
        is_admin=is_admin,
    )
    db.add(user)
    db.flush()
    logger.info(f"Created user {user.id} ({username}, admin={is_admin})")
    return user


def update_user(
    db: Session,
    user_id: int,
    full_name: Optional[str] = None,
    password: Optional[str] = None,
    is_admin: Optional[bool] = None,
) -> User:
    user = get_user(db, user_id)
    if full_name is not None:
        if not full_name.strip():
            raise ValidationError("Full name cannot be empty")
        user.full_name = full_name.strip()
    if password:
        _check_password(password)
        user.hashed_password = get_password_hash(password)
    if is_admin is not None:
        user.is_admin = is_admin
    db.flush()
    return user


def delete_user(db: Session, user_id: int, acting_user: User) -> None:
    if user_id == acting_user.id:
        raise PreconditionError("You cannot delete your own account")
    user = get_user(db, user_id)
    if _has_activity(db, user_id):
        raise PreconditionError("User has recorded till or dispensary activity and cannot be deleted")
    db.delete(user)
    db.flush()
    logger.info(f"Deleted user {user_id} ({user.username})")


def _has_activity(db: Session, user_id: int) -> bool:
    for model in (CashRegister, CashTransaction, Dispensary, MemberTransaction):
        if db.query(model.id).filter(model.user_id == user_id).first() is not None:
            return True
    return False
