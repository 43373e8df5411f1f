"""Staff accounts. Administrators only."""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cannaclub.api.deps import get_db, require_admin
from cannaclub.core.audit import AuditLog
from cannaclub.db.session import atomic
from cannaclub.models.user import User
from cannaclub.schemas.user import UserCreate, UserUpdate, UserResponse
from cannaclub.services import user_service

router = APIRouter()


@router.get("", response_model=List[UserResponse])
def list_users(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return user_service.list_users(db)


@router.post("", response_model=UserResponse, status_code=201)
def create_user(data: UserCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    with atomic(db):
        user = user_service.create_user(db, data.username, data.password, data.full_name, is_admin=data.is_admin)
    AuditLog.log_action("create", "user", user.id, admin, changes={"username": user.username, "is_admin": user.is_admin})
    return user


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    data: UserUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    with atomic(db):
        user = user_service.update_user(
            db, user_id, full_name=data.full_name, password=data.password, is_admin=data.is_admin
        )
    changed = data.model_dump(exclude_unset=True, exclude={"password"})
    if data.password:
        changed["password"] = "changed"
    AuditLog.log_action("update", "user", user.id, admin, changes=changed)
    return user


@router.delete("/{user_id}", status_code=204)
def delete_user(user_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    with atomic(db):
        user_service.delete_user(db, user_id, admin)
    AuditLog.log_action("delete", "user", user_id, admin)
