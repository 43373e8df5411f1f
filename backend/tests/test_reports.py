"""Dashboard aggregates, cash flow, product sales and the closing PDF."""
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from cannaclub.core.exceptions import ValidationError
from cannaclub.db.session import atomic
from cannaclub.models.dispensary import Dispensary
from cannaclub.services import cash_register_service, dispensary_service, pdf_service, report_service


@pytest.fixture
def two_sales(db, admin, member, product, open_register):
    with atomic(db):
        first = dispensary_service.dispense(db, open_register, member.id, product.id, "17", "2", "cash", admin.id)
        dispensary_service.dispense(db, open_register, member.id, product.id, "8.50", "1", "wallet", admin.id)
    return first


def test_dashboard_summary(db, two_sales, open_register):
    today = two_sales.created_at.date()
    summary = report_service.dashboard_summary(db, today=today)

    assert summary["active_members"] == 1
    assert summary["sales_today"] == 2
    assert summary["revenue_today"] == Decimal("25.50")
    assert summary["grams_today"] == Decimal("3.00")
    assert summary["open_register"] == {"id": open_register.id, "balance": Decimal("117.00")}
    assert summary["low_stock_count"] == 0
    assert len(summary["recent_dispensations"]) == 2


def test_dashboard_day_is_the_utc_day(db, two_sales, monkeypatch):
    # 23:30 UTC on 1 March is already 2 March in Madrid
    for record in db.query(Dispensary):
        record.created_at = datetime(2026, 3, 1, 23, 30)
    db.commit()
    monkeypatch.setattr(report_service, "utc_today", lambda: date(2026, 3, 1))

    assert report_service.dashboard_summary(db)["sales_today"] == 2
    assert report_service.dashboard_summary(db, today=date(2026, 3, 2))["sales_today"] == 0


def test_utc_today_uses_the_utc_clock():
    before = datetime.now(timezone.utc).date()
    today = report_service.utc_today()
    after = datetime.now(timezone.utc).date()
    assert today in (before, after)


def test_dashboard_without_open_register(db):
    summary = report_service.dashboard_summary(db)
    assert summary["open_register"] is None
    assert summary["sales_today"] == 0
    assert summary["recent_dispensations"] == []


def test_cash_flow_per_day(db, admin, two_sales, open_register):
    with atomic(db):
        cash_register_service.add_transaction(db, open_register, "expense", "4.00", "Bolsas", user_id=admin.id)

    day = open_register.opened_at.date()
    rows = report_service.cash_flow(db, day - timedelta(days=1), day + timedelta(days=1))
    assert len(rows) == 1
    assert rows[0]["income"] == Decimal("17.00")
    assert rows[0]["expense"] == Decimal("4.00")
    assert rows[0]["balance"] == Decimal("13.00")


def test_product_sales(db, two_sales):
    day = two_sales.created_at.date()
    rows = report_service.product_sales(db, day, day)
    assert len(rows) == 1
    assert rows[0]["name"] == "Amnesia Haze"
    assert rows[0]["sales"] == 2
    assert rows[0]["quantity"] == Decimal("3.00")
    assert report_service.total_revenue(rows) == Decimal("25.50")


def test_report_range_validation(db):
    with pytest.raises(ValidationError):
        report_service.cash_flow(db, date(2024, 2, 1), date(2024, 1, 1))


def test_register_report_pdf(db, admin, two_sales, open_register):
    with atomic(db):
        cash_register_service.close_register(db, open_register.id, "115.00", notes="Arqueo")
    pdf = pdf_service.generate_register_report_pdf(db, open_register.id)
    assert pdf.getvalue().startswith(b"%PDF")
