"""Members: registry, RFID lookup, sales history and wallet."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cannaclub.api.deps import get_db, get_current_user
from cannaclub.core.audit import AuditLog
from cannaclub.db.session import atomic
from cannaclub.models.user import User
from cannaclub.schemas.dispensary import MemberHistoryResponse
from cannaclub.schemas.member import MemberCreate, MemberUpdate, MemberResponse
from cannaclub.schemas.wallet import (
    MemberTransactionResponse,
    WalletDeposit,
    WalletMovementResponse,
    WalletSummary,
    WalletWithdraw,
)
from cannaclub.services import cash_register_service, dispensary_service, member_service, wallet_service

router = APIRouter()


@router.get("", response_model=List[MemberResponse])
def list_members(
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Search by name, member code or DNI."""
    return member_service.list_members(db, search=search, status=status)


@router.post("", response_model=MemberResponse, status_code=201)
def create_member(data: MemberCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    with atomic(db):
        member = member_service.create_member(db, **data.model_dump(exclude_unset=True))
    AuditLog.log_action("create", "member", member.id, current_user, changes={"member_code": member.member_code})
    return member


@router.get("/rfid/{code}", response_model=MemberResponse)
def get_member_by_rfid(code: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Card reader lookup at the counter."""
    return member_service.get_by_rfid(db, code)


@router.get("/{member_id}", response_model=MemberResponse)
def get_member(member_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return member_service.get_member(db, member_id)


@router.patch("/{member_id}", response_model=MemberResponse)
def update_member(
    member_id: int,
    data: MemberUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    changes = data.model_dump(exclude_unset=True)
    with atomic(db):
        member = member_service.update_member(db, member_id, **changes)
    AuditLog.log_action("update", "member", member.id, current_user, changes=changes)
    return member


@router.delete("/{member_id}", status_code=204)
def delete_member(member_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    with atomic(db):
        member_service.delete_member(db, member_id)
    AuditLog.log_action("delete", "member", member_id, current_user)


@router.get("/{member_id}/dispensary", response_model=MemberHistoryResponse)
def member_dispensary(member_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Every sale to this member with grams and money totals."""
    return MemberHistoryResponse.model_validate(dispensary_service.member_history(db, member_id))


@router.get("/{member_id}/transactions", response_model=List[MemberTransactionResponse])
def member_transactions(member_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    member_service.get_member(db, member_id)
    return wallet_service.list_entries(db, member_id)


@router.get("/{member_id}/wallet", response_model=WalletSummary)
def member_wallet(member_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    member = member_service.get_member(db, member_id)
    return WalletSummary(
        member_id=member.id,
        balance=member.balance,
        ledger_balance=wallet_service.ledger_balance(db, member.id),
        drift=wallet_service.balance_drift(db, member),
        entries=wallet_service.list_entries(db, member.id),
    )


@router.post("/{member_id}/wallet/deposit", response_model=WalletMovementResponse)
def wallet_deposit(
    member_id: int,
    data: WalletDeposit,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Top up the wallet. The money enters the open till."""
    with atomic(db):
        register = cash_register_service.require_open_register(db)
        movement = wallet_service.deposit(
            db,
            register,
            member_id,
            data.amount,
            current_user.id,
            notes=data.notes,
            payment_method=data.payment_method,
        )
    AuditLog.log_action(
        "deposit", "wallet", member_id, current_user,
        changes={"amount": data.amount, "payment_method": data.payment_method, "balance": movement.member.balance},
    )
    return WalletMovementResponse(
        member_id=movement.member.id,
        balance=movement.member.balance,
        entry=movement.entry,
        cash_transaction_id=movement.cash_transaction_id,
    )


@router.post("/{member_id}/wallet/withdraw", response_model=WalletMovementResponse)
def wallet_withdraw(
    member_id: int,
    data: WalletWithdraw,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Pay wallet money back in cash from the open till."""
    with atomic(db):
        register = cash_register_service.require_open_register(db)
        movement = wallet_service.withdraw(db, register, member_id, data.amount, current_user.id, notes=data.notes)
    AuditLog.log_action(
        "withdraw", "wallet", member_id, current_user,
        changes={"amount": data.amount, "balance": movement.member.balance},
    )
    return WalletMovementResponse(
        member_id=movement.member.id,
        balance=movement.member.balance,
        entry=movement.entry,
        cash_transaction_id=movement.cash_transaction_id,
    )
