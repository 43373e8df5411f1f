"""
Aggregates for the dashboard and the reports page.

- dashboard_summary: headline cards
- cash_flow: income/expense per day for registers opened in a date range
- product_sales: grams and revenue per product in a date range
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from cannaclub.core.exceptions import ValidationError
from cannaclub.core.money import ZERO, quantize
from cannaclub.models.cash_register import CashRegister, CashTransaction
from cannaclub.models.dispensary import Dispensary
from cannaclub.models.enums import CashTransactionType, MemberStatus
from cannaclub.models.member import Member
from cannaclub.models.product import Product
from cannaclub.services import cash_register_service, inventory_service


def _check_range(date_from: date, date_to: date) -> None:
    if date_from > date_to:
        raise ValidationError("date_from must not be after date_to")


def _day(value) -> str:
    # SQLite returns text from date(), PostgreSQL returns a date
    return value if isinstance(value, str) else value.isoformat()


def utc_today() -> date:
    # Timestamps are stored in UTC, so day filters compare against the UTC date
    return datetime.now(timezone.utc).date()


def dashboard_summary(db: Session, today: Optional[date] = None) -> dict:
    today = today or utc_today()

    active_members = db.query(func.count(Member.id)).filter(
        Member.status == MemberStatus.ACTIVE.value
    ).scalar() or 0

    sales_today = db.query(
        func.count(Dispensary.id),
        func.coalesce(func.sum(Dispensary.price), 0),
        func.coalesce(func.sum(Dispensary.quantity), 0),
    ).filter(func.date(Dispensary.created_at) == today).one()

    register = cash_register_service.find_open_register(db)
    open_register = None
    if register is not None:
        open_register = {
            "id": register.id,
            "balance": cash_register_service.register_totals(db, register).balance,
        }

    recent = (
        db.query(Dispensary)
        .options(joinedload(Dispensary.member), joinedload(Dispensary.product))
        .order_by(Dispensary.created_at.desc(), Dispensary.id.desc())
        .limit(5)
        .all()
    )

    return {
        "active_members": active_members,
        "sales_today": sales_today[0] or 0,
        "revenue_today": quantize(sales_today[1]),
        "grams_today": quantize(sales_today[2]),
        "open_register": open_register,
        "low_stock_count": len(inventory_service.low_stock(db)),
        "recent_dispensations": recent,
    }


def cash_flow(db: Session, date_from: date, date_to: date) -> List[Dict]:
    """Per-day totals over transactions of registers opened within [date_from, date_to]."""
    _check_range(date_from, date_to)
    day = func.date(CashTransaction.created_at)
    rows = (
        db.query(day, CashTransaction.type, func.sum(CashTransaction.amount))
        .join(CashRegister, CashTransaction.cash_register_id == CashRegister.id)
        .filter(func.date(CashRegister.opened_at) >= date_from)
        .filter(func.date(CashRegister.opened_at) <= date_to)
        .group_by(day, CashTransaction.type)
        .all()
    )

    by_day: Dict[str, Dict] = {}
    for raw_day, tx_type, total in rows:
        key = _day(raw_day)
        entry = by_day.setdefault(key, {"date": key, "income": ZERO, "expense": ZERO})
        if tx_type == CashTransactionType.INCOME.value:
            entry["income"] += quantize(total)
        else:
            entry["expense"] += quantize(total)

    result = []
    for key in sorted(by_day):
        entry = by_day[key]
        entry["balance"] = quantize(entry["income"] - entry["expense"])
        result.append(entry)
    return result


def product_sales(db: Session, date_from: date, date_to: date) -> List[Dict]:
    """Best sellers first, by revenue."""
    _check_range(date_from, date_to)
    day = func.date(Dispensary.created_at)
    rows = (
        db.query(
            Product.id,
            Product.name,
            func.count(Dispensary.id),
            func.sum(Dispensary.quantity),
            func.sum(Dispensary.price),
        )
        .select_from(Dispensary)
        .join(Product, Dispensary.product_id == Product.id)
        .filter(day >= date_from, day <= date_to)
        .group_by(Product.id, Product.name)
        .all()
    )
    result = [
        {
            "product_id": product_id,
            "name": name,
            "sales": count,
            "quantity": quantize(grams or 0),
            "revenue": quantize(revenue or 0),
        }
        for product_id, name, count, grams, revenue in rows
    ]
    result.sort(key=lambda r: (-r["revenue"], r["name"]))
    return result


def total_revenue(rows: List[Dict]) -> Decimal:
    return sum((r["revenue"] for r in rows), ZERO)
