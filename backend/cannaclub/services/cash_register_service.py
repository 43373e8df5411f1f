"""
Cash register (till session) lifecycle and ledger.

State machine: no open register -> open -> closed -> (new register) open -> ...
At most one register is open at any time. The balance is never stored; it is
recomputed from the opening float and the register's transactions.

Functions here only stage changes on the session. Callers wrap them in
db.session.atomic() so a workflow commits or rolls back as a whole.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from cannaclub.core.exceptions import NotFoundError, PreconditionError, ValidationError
from cannaclub.core.money import ZERO, non_negative, positive, quantize
from cannaclub.models.cash_register import CashRegister, CashTransaction
from cannaclub.models.enums import CashTransactionType, PaymentMethod, RegisterStatus, TILL_METHODS

logger = logging.getLogger(__name__)

NO_OPEN_REGISTER = "No open cash register. Open the till before recording money movements."


@dataclass
class RegisterTotals:
    opening_amount: Decimal
    income: Decimal
    expense: Decimal
    transaction_count: int

    @property
    def balance(self) -> Decimal:
        return quantize(self.opening_amount + self.income - self.expense)


@dataclass
class CloseResult:
    register: CashRegister
    expected_balance: Decimal
    discrepancy: Decimal  # counted minus expected; informational only

    @property
    def has_discrepancy(self) -> bool:
        return self.discrepancy != 0


def find_open_register(db: Session, for_update: bool = False) -> Optional[CashRegister]:
    q = db.query(CashRegister).filter(CashRegister.status == RegisterStatus.OPEN.value)
    if for_update:
        q = q.with_for_update()
    return q.order_by(CashRegister.id.desc()).first()


def require_open_register(db: Session) -> CashRegister:
    register = find_open_register(db, for_update=True)
    if register is None:
        raise PreconditionError(NO_OPEN_REGISTER)
    return register


def get_register(db: Session, register_id: int) -> CashRegister:
    register = db.query(CashRegister).filter(CashRegister.id == register_id).first()
    if register is None:
        raise NotFoundError("Cash register", register_id)
    return register


def list_registers(db: Session, limit: int = 50) -> List[CashRegister]:
    return (
        db.query(CashRegister)
        .order_by(CashRegister.opened_at.desc(), CashRegister.id.desc())
        .limit(limit)
        .all()
    )


def list_transactions(db: Session, register_id: int) -> List[CashTransaction]:
    return (
        db.query(CashTransaction)
        .filter(CashTransaction.cash_register_id == register_id)
        .order_by(CashTransaction.id)
        .all()
    )


def open_register(db: Session, opening_amount, user_id: int, notes: Optional[str] = None) -> CashRegister:
    """Start a till session with the counted opening float."""
    amount = positive(opening_amount, "Opening amount")

    current = find_open_register(db, for_update=True)
    if current is not None:
        raise PreconditionError(f"Cash register {current.id} is already open. Close it first.")

    register = CashRegister(
        status=RegisterStatus.OPEN.value,
        opening_amount=amount,
        user_id=user_id,
        notes=(notes or "").strip() or None,
        opened_at=datetime.now(timezone.utc),
    )
    db.add(register)
    db.flush()
    logger.info(f"Opened cash register {register.id} with float {amount}")
    return register


def register_totals(db: Session, register: CashRegister) -> RegisterTotals:
    rows = (
        db.query(
            CashTransaction.type,
            func.coalesce(func.sum(CashTransaction.amount), 0),
            func.count(CashTransaction.id),
        )
        .filter(CashTransaction.cash_register_id == register.id)
        .group_by(CashTransaction.type)
        .all()
    )
    income = expense = ZERO
    count = 0
    for tx_type, total, n in rows:
        count += n
        if tx_type == CashTransactionType.INCOME.value:
            income = quantize(total)
        else:
            expense = quantize(total)
    return RegisterTotals(
        opening_amount=quantize(register.opening_amount),
        income=income,
        expense=expense,
        transaction_count=count,
    )


def current_balance(db: Session, register_id: int) -> Decimal:
    """opening_amount + sum(income) - sum(expense), recomputed on every call."""
    register = get_register(db, register_id)
    return register_totals(db, register).balance


def close_register(db: Session, register_id: int, closing_amount, notes: Optional[str] = None) -> CloseResult:
    """
    Close the till with the amount the operator counted.

    A counted amount that differs from the computed balance is reported back
    as a discrepancy and logged, never rejected.
    """
    counted = non_negative(closing_amount, "Closing amount")
    register = get_register(db, register_id)
    if register.status != RegisterStatus.OPEN.value:
        raise PreconditionError(f"Cash register {register.id} is already closed")

    expected = register_totals(db, register).balance
    discrepancy = quantize(counted - expected)

    register.status = RegisterStatus.CLOSED.value
    register.closing_amount = counted
    register.closed_at = datetime.now(timezone.utc)
    closing_notes = (notes or "").strip()
    if closing_notes:
        register.notes = f"{register.notes or ''}\n\nCIERRE: {closing_notes}".lstrip()
    db.flush()

    if discrepancy:
        logger.warning(
            f"Cash register {register.id} closed with discrepancy {discrepancy} "
            f"(counted {counted}, expected {expected})"
        )
    else:
        logger.info(f"Cash register {register.id} closed, balance {expected}")
    return CloseResult(register=register, expected_balance=expected, discrepancy=discrepancy)


def add_transaction(
    db: Session,
    register: CashRegister,
    type: CashTransactionType,
    amount,
    concept: str,
    payment_method: PaymentMethod = PaymentMethod.CASH,
    *,
    user_id: int,
    notes: Optional[str] = None,
) -> CashTransaction:
    """Append a till movement to an open register."""
    value = positive(amount, "Amount")
    try:
        tx_type = CashTransactionType(type)
        method = PaymentMethod(payment_method)
    except ValueError as e:
        raise ValidationError(str(e))
    if method not in TILL_METHODS:
        raise ValidationError("Till movements must be paid by cash or bizum")
    if not concept or not concept.strip():
        raise ValidationError("Concept is required")
    if register is None or register.status != RegisterStatus.OPEN.value:
        raise PreconditionError(NO_OPEN_REGISTER)

    tx = CashTransaction(
        cash_register_id=register.id,
        type=tx_type.value,
        amount=value,
        payment_method=method.value,
        concept=concept.strip(),
        notes=notes,
        user_id=user_id,
    )
    db.add(tx)
    db.flush()
    logger.debug(f"Register {register.id}: {tx_type.value} {value} ({method.value}) - {tx.concept}")
    return tx
