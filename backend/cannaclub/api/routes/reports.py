"""Reports: dashboard cards, cash flow and product sales."""
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cannaclub.api.deps import get_db, get_current_user
from cannaclub.core.money import ZERO, quantize
from cannaclub.models.user import User
from cannaclub.schemas.report import CashFlowReport, DashboardSummary, ProductSalesReport
from cannaclub.services import report_service

router = APIRouter()


def _range(date_from: Optional[date], date_to: Optional[date]):
    # Defaults to the last 30 days
    date_to = date_to or report_service.utc_today()
    date_from = date_from or (date_to - timedelta(days=30))
    return date_from, date_to


@router.get("/summary", response_model=DashboardSummary)
def summary(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return report_service.dashboard_summary(db)


@router.get("/cash-flow", response_model=CashFlowReport)
def cash_flow(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    date_from, date_to = _range(date_from, date_to)
    days = report_service.cash_flow(db, date_from, date_to)
    income = sum((d["income"] for d in days), ZERO)
    expense = sum((d["expense"] for d in days), ZERO)
    return {
        "days": days,
        "total_income": income,
        "total_expense": expense,
        "net": quantize(income - expense),
    }


@router.get("/product-sales", response_model=ProductSalesReport)
def product_sales(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    date_from, date_to = _range(date_from, date_to)
    rows = report_service.product_sales(db, date_from, date_to)
    return {"rows": rows, "total_revenue": report_service.total_revenue(rows)}
