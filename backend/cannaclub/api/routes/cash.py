"""Cash registers: open, move money, close, closing report."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from cannaclub.api.deps import get_db, get_current_user
from cannaclub.core.audit import AuditLog
from cannaclub.db.session import atomic
from cannaclub.models.cash_register import CashRegister
from cannaclub.models.user import User
from cannaclub.schemas.cash import (
    CashTransactionCreate,
    CashTransactionResponse,
    RegisterClose,
    RegisterCloseResponse,
    RegisterDetail,
    RegisterOpen,
    RegisterResponse,
)
from cannaclub.services import cash_register_service, pdf_service

router = APIRouter()


def _with_balance(db: Session, register: CashRegister) -> RegisterResponse:
    out = RegisterResponse.model_validate(register)
    out.balance = cash_register_service.register_totals(db, register).balance
    return out


@router.get("", response_model=List[RegisterResponse])
def list_registers(
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return [_with_balance(db, r) for r in cash_register_service.list_registers(db, limit=limit)]


@router.get("/current", response_model=Optional[RegisterResponse])
def current_register(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """The open register with its live balance, or null when the till is closed."""
    register = cash_register_service.find_open_register(db)
    if register is None:
        return None
    return _with_balance(db, register)


@router.post("/open", response_model=RegisterResponse, status_code=201)
def open_register(data: RegisterOpen, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    with atomic(db):
        register = cash_register_service.open_register(db, data.opening_amount, current_user.id, notes=data.notes)
    AuditLog.log_action("open", "register", register.id, current_user, changes={"opening_amount": register.opening_amount})
    return _with_balance(db, register)


@router.post("/{register_id}/close", response_model=RegisterCloseResponse)
def close_register(
    register_id: int,
    data: RegisterClose,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Close with the counted cash. A mismatch with the computed balance is
    reported, never rejected.
    """
    with atomic(db):
        result = cash_register_service.close_register(db, register_id, data.closing_amount, notes=data.notes)
    warning = None
    if result.has_discrepancy:
        warning = (
            f"Counted {result.register.closing_amount} but expected {result.expected_balance} "
            f"(difference {result.discrepancy})"
        )
    AuditLog.log_action(
        "close", "register", register_id, current_user,
        changes={
            "closing_amount": result.register.closing_amount,
            "expected_balance": result.expected_balance,
            "discrepancy": result.discrepancy,
        },
    )
    return RegisterCloseResponse(
        register=_with_balance(db, result.register),
        expected_balance=result.expected_balance,
        discrepancy=result.discrepancy,
        warning=warning,
    )


@router.get("/{register_id}", response_model=RegisterDetail)
def get_register(register_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    register = cash_register_service.get_register(db, register_id)
    totals = cash_register_service.register_totals(db, register)
    out = RegisterResponse.model_validate(register)
    out.balance = totals.balance
    return RegisterDetail(
        register=out,
        income=totals.income,
        expense=totals.expense,
        transactions=cash_register_service.list_transactions(db, register.id),
    )


@router.get("/{register_id}/transactions", response_model=List[CashTransactionResponse])
def list_transactions(register_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    cash_register_service.get_register(db, register_id)
    return cash_register_service.list_transactions(db, register_id)


@router.post("/{register_id}/transactions", response_model=CashTransactionResponse, status_code=201)
def add_transaction(
    register_id: int,
    data: CashTransactionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Manual till movement (supplier payment, change float top-up, ...)."""
    with atomic(db):
        register = cash_register_service.get_register(db, register_id)
        tx = cash_register_service.add_transaction(
            db,
            register,
            data.type,
            data.amount,
            data.concept,
            payment_method=data.payment_method,
            user_id=current_user.id,
            notes=data.notes,
        )
    AuditLog.log_action(
        "create", "cash_transaction", tx.id, current_user,
        changes={"register_id": register_id, "type": tx.type, "amount": tx.amount, "concept": tx.concept},
    )
    return tx


@router.get("/{register_id}/report.pdf")
def register_report(register_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Closing report (arqueo) as a downloadable PDF."""
    pdf = pdf_service.generate_register_report_pdf(db, register_id)
    return StreamingResponse(
        pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=arqueo_caja_{register_id}.pdf"},
    )
