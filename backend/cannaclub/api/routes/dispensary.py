"""Dispensary: quote, record and reverse sales at the counter."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cannaclub.api.deps import get_db, get_current_user
from cannaclub.core.audit import AuditLog
from cannaclub.core.config import settings
from cannaclub.db.session import atomic
from cannaclub.models.user import User
from cannaclub.schemas.dispensary import (
    DispensaryCreate,
    DispensaryResponse,
    QuoteRequest,
    QuoteResponse,
    ReversalResponse,
)
from cannaclub.services import cash_register_service, dispensary_service
from cannaclub.services.dispensary_service import ReversalPolicy

router = APIRouter()


@router.get("", response_model=List[DispensaryResponse])
def list_dispensations(
    search: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Newest first. Search matches member name, member code or product name."""
    return dispensary_service.list_dispensations(db, search=search, limit=limit)


@router.post("/quote", response_model=QuoteResponse)
def quote(data: QuoteRequest, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Suggested grams for the money the member wants to spend. Nothing is recorded."""
    return QuoteResponse.model_validate(dispensary_service.quote(db, data.product_id, data.desired_price))


@router.post("", response_model=DispensaryResponse, status_code=201)
def create_dispensation(
    data: DispensaryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Record a sale.

    Charge, sale row and stock decrement commit together or not at all.
    Cash and bizum go to the open till; wallet debits the member.
    """
    with atomic(db):
        register = cash_register_service.find_open_register(db, for_update=True)
        record = dispensary_service.dispense(
            db,
            register,
            member_id=data.member_id,
            product_id=data.product_id,
            desired_price=data.desired_price,
            actual_grams=data.actual_grams,
            payment_method=data.payment_method,
            user_id=current_user.id,
            notes=data.notes,
        )
    AuditLog.log_action(
        "create", "dispensary", record.id, current_user,
        changes={
            "member_id": record.member_id,
            "product_id": record.product_id,
            "quantity": record.quantity,
            "price": record.price,
            "payment_method": record.payment_method,
        },
    )
    return record


@router.get("/{dispensation_id}", response_model=DispensaryResponse)
def get_dispensation(dispensation_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return dispensary_service.get_dispensation(db, dispensation_id)


@router.delete("/{dispensation_id}", response_model=ReversalResponse)
def delete_dispensation(
    dispensation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Reverse a sale: stock back, compensating till expense, record removed.

    Whether wallet sales are refunded follows WALLET_REVERSAL_POLICY.
    Warnings in the response are informational; the reversal went through.
    """
    policy = ReversalPolicy(settings.WALLET_REVERSAL_POLICY)
    with atomic(db):
        register = cash_register_service.find_open_register(db, for_update=True)
        result = dispensary_service.delete_dispensation(
            db, dispensation_id, register, current_user.id, policy=policy
        )
    AuditLog.log_action(
        "delete", "dispensary", dispensation_id, current_user,
        changes={
            "restored_grams": result.restored_grams,
            "payment_method": result.payment_method,
            "compensating_transaction_id": result.compensating_transaction_id,
            "wallet_refunded": result.wallet_refunded,
            "register_mismatch": result.register_mismatch,
        },
    )
    return ReversalResponse.model_validate(result)
