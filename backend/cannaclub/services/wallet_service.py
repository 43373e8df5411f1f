"""
Member wallet: stored balance plus append-only ledger.

Every balance change goes through _post(), which appends the ledger row and
refreshes Member.balance in the same unit of work, so the cached balance
always equals the sum of the member's ledger.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from cannaclub.core.exceptions import NotFoundError, PreconditionError, ValidationError
from cannaclub.core.money import positive, quantize
from cannaclub.models.cash_register import CashRegister
from cannaclub.models.enums import CashTransactionType, MemberTransactionType, PaymentMethod, TILL_METHODS
from cannaclub.models.member import Member
from cannaclub.models.member_transaction import MemberTransaction
from cannaclub.services import cash_register_service

logger = logging.getLogger(__name__)


@dataclass
class WalletMovement:
    member: Member
    entry: MemberTransaction
    cash_transaction_id: Optional[int] = None


def get_member(db: Session, member_id: int, for_update: bool = False) -> Member:
    q = db.query(Member).filter(Member.id == member_id)
    if for_update:
        q = q.with_for_update()
    member = q.first()
    if member is None:
        raise NotFoundError("Member", member_id)
    return member


def _post(
    db: Session,
    member: Member,
    amount: Decimal,
    entry_type: MemberTransactionType,
    user_id: int,
    notes: Optional[str] = None,
) -> MemberTransaction:
    entry = MemberTransaction(
        member_id=member.id,
        amount=amount,
        type=entry_type.value,
        notes=notes,
        user_id=user_id,
    )
    db.add(entry)
    member.balance = quantize((member.balance or 0) + amount)
    db.flush()
    return entry


def deposit(
    db: Session,
    register: CashRegister,
    member_id: int,
    amount,
    user_id: int,
    notes: Optional[str] = None,
    payment_method: PaymentMethod = PaymentMethod.CASH,
) -> WalletMovement:
    """
    Top up a member's wallet with money that physically enters the till.

    Appends a deposit to the ledger and an income row to the open register.
    """
    value = positive(amount, "Amount")
    try:
        method = PaymentMethod(payment_method)
    except ValueError as e:
        raise ValidationError(str(e))
    if method not in TILL_METHODS:
        raise ValidationError("Wallet top-ups must be paid by cash or bizum")
    if register is None:
        raise PreconditionError(cash_register_service.NO_OPEN_REGISTER)

    member = get_member(db, member_id, for_update=True)
    entry = _post(db, member, value, MemberTransactionType.DEPOSIT, user_id, notes)
    cash_tx = cash_register_service.add_transaction(
        db,
        register,
        CashTransactionType.INCOME,
        value,
        concept="Depósito de saldo",
        payment_method=method,
        user_id=user_id,
        notes=_member_note(member, notes),
    )
    logger.info(f"Wallet deposit {value} for member {member.id}, balance now {member.balance}")
    return WalletMovement(member=member, entry=entry, cash_transaction_id=cash_tx.id)


def withdraw(
    db: Session,
    register: CashRegister,
    member_id: int,
    amount,
    user_id: int,
    notes: Optional[str] = None,
) -> WalletMovement:
    """Pay wallet money back out of the till. Cannot take the balance below zero."""
    value = positive(amount, "Amount")
    if register is None:
        raise PreconditionError(cash_register_service.NO_OPEN_REGISTER)

    member = get_member(db, member_id, for_update=True)
    if quantize(member.balance or 0) - value < 0:
        raise PreconditionError(f"Insufficient balance: member has {quantize(member.balance or 0)}")

    entry = _post(db, member, -value, MemberTransactionType.WITHDRAWAL, user_id, notes)
    cash_tx = cash_register_service.add_transaction(
        db,
        register,
        CashTransactionType.EXPENSE,
        value,
        concept="Retirada de saldo",
        payment_method=PaymentMethod.CASH,
        user_id=user_id,
        notes=_member_note(member, notes),
    )
    logger.info(f"Wallet withdrawal {value} for member {member.id}, balance now {member.balance}")
    return WalletMovement(member=member, entry=entry, cash_transaction_id=cash_tx.id)


def debit(db: Session, member: Member, amount, user_id: int, notes: Optional[str] = None) -> MemberTransaction:
    """
    Charge a sale to the wallet.

    No overdraft check: members may run a tab. The till is not touched.
    """
    value = positive(amount, "Amount")
    entry = _post(db, member, -value, MemberTransactionType.WITHDRAWAL, user_id, notes)
    if member.balance < 0:
        logger.info(f"Member {member.id} wallet is negative after debit: {member.balance}")
    return entry


def credit(db: Session, member: Member, amount, user_id: int, notes: Optional[str] = None) -> MemberTransaction:
    """Give money back to the wallet without touching the till."""
    value = positive(amount, "Amount")
    return _post(db, member, value, MemberTransactionType.DEPOSIT, user_id, notes)


def ledger_balance(db: Session, member_id: int) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(MemberTransaction.amount), 0))
        .filter(MemberTransaction.member_id == member_id)
        .scalar()
    )
    return quantize(total)


def balance_drift(db: Session, member: Member) -> Decimal:
    """Cached balance minus ledger total. Zero unless something wrote around _post()."""
    return quantize(quantize(member.balance or 0) - ledger_balance(db, member.id))


def list_entries(db: Session, member_id: int) -> List[MemberTransaction]:
    return (
        db.query(MemberTransaction)
        .filter(MemberTransaction.member_id == member_id)
        .order_by(MemberTransaction.created_at.desc(), MemberTransaction.id.desc())
        .all()
    )


def _member_note(member: Member, notes: Optional[str]) -> str:
    base = f"Socio: {member.full_name} ({member.member_code})"
    return f"{base} - {notes}" if notes else base
