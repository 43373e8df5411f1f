"""
Dispensary: the point-of-sale workflow.

Price and weight are agreed separately. The operator starts from the amount
the member wants to spend, gets a suggested weight (desired_price / price per
gram), then records what the scale actually shows. The member pays the agreed
price whatever the final weight; small weighing differences are absorbed.

Payment rails:
- cash / bizum: income row on the open register
- wallet: debit on the member's wallet (may go negative), till untouched

A sale and its reversal are each a single unit of work: callers run them
inside db.session.atomic(), so a failure at any step leaves no partial state.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from cannaclub.core.exceptions import NotFoundError, PreconditionError, ValidationError
from cannaclub.core.money import ZERO, positive, quantize
from cannaclub.models.cash_register import CashRegister
from cannaclub.models.dispensary import Dispensary
from cannaclub.models.enums import CashTransactionType, PaymentMethod, RegisterStatus, TILL_METHODS
from cannaclub.models.member import Member
from cannaclub.models.product import Product
from cannaclub.services import cash_register_service, inventory_service, wallet_service

logger = logging.getLogger(__name__)


class ReversalPolicy(str, Enum):
    """What deleting a wallet-paid sale does to the member's wallet."""
    CASH_ONLY = "cash_only"  # till rails are reversed, wallet sales are not refunded
    REFUND_WALLET = "refund_wallet"


@dataclass
class Quote:
    product_id: int
    desired_price: Decimal
    price_per_gram: Decimal
    suggested_grams: Decimal
    stock_grams: Decimal

    @property
    def in_stock(self) -> bool:
        return self.suggested_grams <= self.stock_grams


@dataclass
class ReversalResult:
    dispensation_id: int
    product_id: int
    restored_grams: Decimal
    payment_method: str
    compensating_transaction_id: Optional[int] = None
    wallet_refunded: bool = False
    register_mismatch: bool = False
    warnings: List[str] = field(default_factory=list)


@dataclass
class MemberHistory:
    records: List[Dispensary]
    total_grams: Decimal
    total_spent: Decimal


def suggest_grams(desired_price, price_per_gram) -> Decimal:
    """Weight the member's money buys at the product's price, rounded to 0.01 g."""
    price = positive(desired_price, "Desired price")
    per_gram = positive(price_per_gram, "Price per gram")
    return quantize(price / per_gram)


def quote(db: Session, product_id: int, desired_price) -> Quote:
    product = inventory_service.get_product(db, product_id)
    return Quote(
        product_id=product.id,
        desired_price=positive(desired_price, "Desired price"),
        price_per_gram=quantize(product.price),
        suggested_grams=suggest_grams(desired_price, product.price),
        stock_grams=quantize(product.stock_grams),
    )


def _audit_notes(desired: Decimal, calculated: Decimal, actual: Decimal, notes: Optional[str]) -> str:
    line = f"Cantidad deseada: {desired}€ | Calculada: {calculated}g | Dispensada: {actual}g"
    extra = (notes or "").strip()
    return f"{line}\n{extra}" if extra else line


def dispense(
    db: Session,
    register: CashRegister,
    member_id: int,
    product_id: int,
    desired_price,
    actual_grams,
    payment_method: PaymentMethod,
    user_id: int,
    notes: Optional[str] = None,
) -> Dispensary:
    """
    Record a sale.

    Order of checks: input validation, open register, member and product
    exist, enough stock. Only then are the charge, the sale row and the stock
    decrement staged.
    """
    price = positive(desired_price, "Desired price")
    grams = positive(actual_grams, "Dispensed grams")
    try:
        method = PaymentMethod(payment_method)
    except ValueError:
        raise ValidationError(f"Unknown payment method: {payment_method}")

    if register is None or register.status != RegisterStatus.OPEN.value:
        raise PreconditionError(cash_register_service.NO_OPEN_REGISTER)

    member = wallet_service.get_member(db, member_id, for_update=True)
    product = inventory_service.get_product(db, product_id, for_update=True)
    stock = quantize(product.stock_grams)
    if stock < grams:
        raise PreconditionError(f"Insufficient stock for {product.name}: {stock}g available, {grams}g requested")

    calculated = suggest_grams(price, product.price)

    if method in TILL_METHODS:
        cash_register_service.add_transaction(
            db,
            register,
            CashTransactionType.INCOME,
            price,
            concept=f"Dispensación {product.name}",
            payment_method=method,
            user_id=user_id,
            notes=f"Socio: {member.full_name} ({member.member_code})",
        )
    else:
        wallet_service.debit(db, member, price, user_id, notes=f"Dispensación {product.name} {grams}g")

    record = Dispensary(
        member_id=member.id,
        product_id=product.id,
        cash_register_id=register.id,
        quantity=grams,
        price=price,
        payment_method=method.value,
        notes=_audit_notes(price, calculated, grams, notes),
        user_id=user_id,
    )
    db.add(record)
    inventory_service.adjust_stock(db, product, -grams)
    db.flush()

    if grams != calculated:
        logger.info(f"Dispensation {record.id}: weighed {grams}g against suggested {calculated}g, price kept at {price}")
    logger.info(
        f"Dispensation {record.id}: member={member.id} product={product.id} "
        f"{grams}g for {price} via {method.value}"
    )
    return record


def get_dispensation(db: Session, dispensation_id: int) -> Dispensary:
    record = db.query(Dispensary).filter(Dispensary.id == dispensation_id).first()
    if record is None:
        raise NotFoundError("Dispensation", dispensation_id)
    return record


def delete_dispensation(
    db: Session,
    dispensation_id: int,
    register: Optional[CashRegister],
    user_id: int,
    policy: ReversalPolicy = ReversalPolicy.CASH_ONLY,
) -> ReversalResult:
    """
    Undo a sale: restore stock, compensate the money, delete the record.

    Cash and bizum sales get a compensating expense on the register that is
    open now, which can be a later session than the one that took the money.
    Wallet sales are refunded only under ReversalPolicy.REFUND_WALLET.
    """
    policy = ReversalPolicy(policy)
    record = get_dispensation(db, dispensation_id)
    method = PaymentMethod(record.payment_method)

    if method in TILL_METHODS and (register is None or register.status != RegisterStatus.OPEN.value):
        raise PreconditionError(cash_register_service.NO_OPEN_REGISTER)

    product = db.query(Product).filter(Product.id == record.product_id).with_for_update().first()
    if product is None:
        raise PreconditionError(f"Product {record.product_id} of dispensation {record.id} no longer exists")

    result = ReversalResult(
        dispensation_id=record.id,
        product_id=product.id,
        restored_grams=quantize(record.quantity),
        payment_method=method.value,
    )
    inventory_service.adjust_stock(db, product, record.quantity)

    if method in TILL_METHODS:
        tx = cash_register_service.add_transaction(
            db,
            register,
            CashTransactionType.EXPENSE,
            record.price,
            concept="reversal",
            payment_method=method,
            user_id=user_id,
            notes=f"Anulación dispensación #{record.id} ({product.name})",
        )
        result.compensating_transaction_id = tx.id
        if record.cash_register_id is not None and record.cash_register_id != register.id:
            result.register_mismatch = True
            result.warnings.append(
                f"Sale was taken on register {record.cash_register_id}; "
                f"the reversal was booked on register {register.id}"
            )
    elif policy is ReversalPolicy.REFUND_WALLET:
        member = wallet_service.get_member(db, record.member_id, for_update=True)
        wallet_service.credit(db, member, record.price, user_id, notes=f"Anulación dispensación #{record.id}")
        result.wallet_refunded = True
    else:
        result.warnings.append(
            f"Wallet sale deleted without refunding {quantize(record.price)} to member {record.member_id}"
        )

    db.delete(record)
    db.flush()

    for warning in result.warnings:
        logger.warning(f"Dispensation {dispensation_id} reversal: {warning}")
    logger.info(f"Dispensation {dispensation_id} reversed, {result.restored_grams}g back to product {product.id}")
    return result


def list_dispensations(db: Session, search: Optional[str] = None, limit: int = 100) -> List[Dispensary]:
    q = (
        db.query(Dispensary)
        .join(Member, Dispensary.member_id == Member.id)
        .join(Product, Dispensary.product_id == Product.id)
        .options(joinedload(Dispensary.member), joinedload(Dispensary.product))
    )
    if search:
        pattern = f"%{search}%"
        q = q.filter(
            or_(
                Member.first_name.ilike(pattern),
                Member.last_name.ilike(pattern),
                Member.member_code.ilike(pattern),
                Product.name.ilike(pattern),
            )
        )
    return q.order_by(Dispensary.created_at.desc(), Dispensary.id.desc()).limit(limit).all()


def member_history(db: Session, member_id: int) -> MemberHistory:
    wallet_service.get_member(db, member_id)
    records = (
        db.query(Dispensary)
        .options(joinedload(Dispensary.product))
        .filter(Dispensary.member_id == member_id)
        .order_by(Dispensary.created_at.desc(), Dispensary.id.desc())
        .all()
    )
    total_grams = sum((quantize(r.quantity) for r in records), ZERO)
    total_spent = sum((quantize(r.price) for r in records), ZERO)
    return MemberHistory(records=records, total_grams=total_grams, total_spent=total_spent)
