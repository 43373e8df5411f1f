"""Point-of-sale workflow: charge, stock, record, and reversal."""
from decimal import Decimal

import pytest

from cannaclub.core.exceptions import NotFoundError, PreconditionError, ValidationError
from cannaclub.db.session import atomic
from cannaclub.models.cash_register import CashTransaction
from cannaclub.models.dispensary import Dispensary
from cannaclub.models.member import Member
from cannaclub.models.member_transaction import MemberTransaction
from cannaclub.models.product import Product
from cannaclub.services import cash_register_service, dispensary_service, inventory_service, wallet_service
from cannaclub.services.dispensary_service import ReversalPolicy


def _sell(db, register, member, product, user, price="17.00", grams="2.00", method="cash", notes=None):
    with atomic(db):
        return dispensary_service.dispense(
            db, register, member.id, product.id, price, grams, method, user.id, notes=notes
        )


def _stock(db, product_id):
    db.expire_all()
    return db.query(Product).filter(Product.id == product_id).one().stock_grams


def test_suggest_grams_rounds_half_up():
    assert dispensary_service.suggest_grams("17.00", "8.50") == Decimal("2.00")
    assert dispensary_service.suggest_grams("10", "9") == Decimal("1.11")
    assert dispensary_service.suggest_grams("10", "8") == Decimal("1.25")
    assert dispensary_service.suggest_grams("1", "0.08") == Decimal("12.50")


@pytest.mark.parametrize("price,per_gram", [("0", "8.5"), ("-1", "8.5"), ("10", "0")])
def test_suggest_grams_rejects_non_positive(price, per_gram):
    with pytest.raises(ValidationError):
        dispensary_service.suggest_grams(price, per_gram)


def test_quote_reports_stock(db, product):
    q = dispensary_service.quote(db, product.id, "17.00")
    assert q.suggested_grams == Decimal("2.00")
    assert q.price_per_gram == Decimal("8.50")
    assert q.in_stock
    assert not dispensary_service.quote(db, product.id, "500").in_stock


def test_cash_sale_scenario(db, admin, member, product, open_register):
    record = _sell(db, open_register, member, product, admin)

    assert cash_register_service.current_balance(db, open_register.id) == Decimal("117.00")
    assert _stock(db, product.id) == Decimal("48.00")
    rows = db.query(Dispensary).all()
    assert len(rows) == 1
    assert rows[0].price == Decimal("17.00")
    assert rows[0].quantity == Decimal("2.00")
    assert rows[0].cash_register_id == open_register.id
    assert record.notes.startswith("Cantidad deseada: 17.00€ | Calculada: 2.00g | Dispensada: 2.00g")


def test_price_is_kept_when_weighed_amount_differs(db, admin, member, product, open_register):
    record = _sell(db, open_register, member, product, admin, price="17.00", grams="2.10", method="bizum")

    assert record.price == Decimal("17.00")
    assert record.quantity == Decimal("2.10")
    assert "Calculada: 2.00g | Dispensada: 2.10g" in record.notes
    tx = db.query(CashTransaction).one()
    assert tx.amount == Decimal("17.00")
    assert tx.payment_method == "bizum"
    assert _stock(db, product.id) == Decimal("47.90")


def test_wallet_sale_scenario(db, admin, member, product, open_register):
    with atomic(db):
        wallet_service.credit(db, member, "5.00", admin.id, notes="Saldo inicial")

    _sell(db, open_register, member, product, admin, method="wallet")

    db.expire_all()
    assert db.get(Member, member.id).balance == Decimal("-12.00")
    assert cash_register_service.current_balance(db, open_register.id) == Decimal("100.00")
    assert db.query(CashTransaction).count() == 0
    assert wallet_service.balance_drift(db, db.get(Member, member.id)) == Decimal("0.00")


def test_delete_cash_sale_scenario(db, admin, member, product, open_register):
    record = _sell(db, open_register, member, product, admin)

    with atomic(db):
        result = dispensary_service.delete_dispensation(db, record.id, open_register, admin.id)

    assert cash_register_service.current_balance(db, open_register.id) == Decimal("100.00")
    assert _stock(db, product.id) == Decimal("50.00")
    expenses = db.query(CashTransaction).filter(CashTransaction.type == "expense").all()
    assert len(expenses) == 1
    assert expenses[0].amount == Decimal("17.00")
    assert expenses[0].concept == "reversal"
    assert result.compensating_transaction_id == expenses[0].id
    assert not result.register_mismatch
    assert db.query(Dispensary).count() == 0


def test_insufficient_stock_changes_nothing(db, admin, member, product, open_register):
    with pytest.raises(PreconditionError, match="Insufficient stock"):
        _sell(db, open_register, member, product, admin, price="500", grams="50.01")

    assert _stock(db, product.id) == Decimal("50.00")
    assert db.query(Dispensary).count() == 0
    assert db.query(CashTransaction).count() == 0


def test_sale_requires_open_register(db, admin, member, product):
    with pytest.raises(PreconditionError, match="No open cash register"):
        _sell(db, None, member, product, admin)
    assert _stock(db, product.id) == Decimal("50.00")


def test_sale_validation(db, admin, member, product, open_register):
    with pytest.raises(ValidationError):
        _sell(db, open_register, member, product, admin, price="0")
    with pytest.raises(ValidationError):
        _sell(db, open_register, member, product, admin, grams="-2")
    with pytest.raises(ValidationError):
        _sell(db, open_register, member, product, admin, method="card")
    with pytest.raises(NotFoundError):
        with atomic(db):
            dispensary_service.dispense(db, open_register, 999, product.id, "10", "1", "cash", admin.id)


def test_failure_after_charge_rolls_back_everything(db, admin, member, product, open_register, monkeypatch):
    def broken_adjust(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(inventory_service, "adjust_stock", broken_adjust)

    with pytest.raises(RuntimeError):
        _sell(db, open_register, member, product, admin)

    assert db.query(CashTransaction).count() == 0
    assert db.query(Dispensary).count() == 0
    assert _stock(db, product.id) == Decimal("50.00")
    assert cash_register_service.current_balance(db, open_register.id) == Decimal("100.00")


def test_failed_wallet_sale_leaves_balance_and_ledger(db, admin, member, product, open_register, monkeypatch):
    def broken_adjust(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(inventory_service, "adjust_stock", broken_adjust)

    with pytest.raises(RuntimeError):
        _sell(db, open_register, member, product, admin, method="wallet")

    db.expire_all()
    assert db.get(Member, member.id).balance == Decimal("0.00")
    assert db.query(MemberTransaction).count() == 0


def test_wallet_reversal_cash_only_policy_keeps_balance(db, admin, member, product, open_register):
    record = _sell(db, open_register, member, product, admin, method="wallet")

    with atomic(db):
        result = dispensary_service.delete_dispensation(
            db, record.id, open_register, admin.id, policy=ReversalPolicy.CASH_ONLY
        )

    db.expire_all()
    assert not result.wallet_refunded
    assert result.warnings
    assert db.get(Member, member.id).balance == Decimal("-17.00")
    assert db.query(CashTransaction).count() == 0
    assert _stock(db, product.id) == Decimal("50.00")


def test_wallet_reversal_refund_policy_credits_member(db, admin, member, product, open_register):
    record = _sell(db, open_register, member, product, admin, method="wallet")

    with atomic(db):
        result = dispensary_service.delete_dispensation(
            db, record.id, open_register, admin.id, policy=ReversalPolicy.REFUND_WALLET
        )

    db.expire_all()
    refreshed = db.get(Member, member.id)
    assert result.wallet_refunded
    assert refreshed.balance == Decimal("0.00")
    assert wallet_service.balance_drift(db, refreshed) == Decimal("0.00")
    assert db.query(CashTransaction).count() == 0


def test_wallet_reversal_needs_no_open_register(db, admin, member, product, open_register):
    record = _sell(db, open_register, member, product, admin, method="wallet")
    with atomic(db):
        cash_register_service.close_register(db, open_register.id, "100")

    with atomic(db):
        dispensary_service.delete_dispensation(db, record.id, None, admin.id)
    assert db.query(Dispensary).count() == 0


def test_cash_reversal_needs_open_register(db, admin, member, product, open_register):
    record = _sell(db, open_register, member, product, admin)
    with atomic(db):
        cash_register_service.close_register(db, open_register.id, "117")

    with pytest.raises(PreconditionError):
        with atomic(db):
            dispensary_service.delete_dispensation(db, record.id, None, admin.id)
    assert db.query(Dispensary).count() == 1
    assert _stock(db, product.id) == Decimal("48.00")


def test_cash_reversal_on_later_register_is_flagged(db, admin, member, product, open_register):
    record = _sell(db, open_register, member, product, admin)
    with atomic(db):
        cash_register_service.close_register(db, open_register.id, "117")
    with atomic(db):
        later = cash_register_service.open_register(db, "50", admin.id)

    with atomic(db):
        result = dispensary_service.delete_dispensation(db, record.id, later, admin.id)

    assert result.register_mismatch
    assert result.warnings
    assert cash_register_service.current_balance(db, later.id) == Decimal("33.00")
    assert cash_register_service.current_balance(db, open_register.id) == Decimal("117.00")


def test_delete_unknown_dispensation(db, admin, open_register):
    with pytest.raises(NotFoundError):
        dispensary_service.delete_dispensation(db, 12345, open_register, admin.id)


def test_member_history_and_search(db, admin, member, product, open_register):
    _sell(db, open_register, member, product, admin, price="17.00", grams="2.00")
    _sell(db, open_register, member, product, admin, price="8.50", grams="1.05", method="bizum")

    history = dispensary_service.member_history(db, member.id)
    assert len(history.records) == 2
    assert history.total_grams == Decimal("3.05")
    assert history.total_spent == Decimal("25.50")

    assert len(dispensary_service.list_dispensations(db, search="Amnesia")) == 2
    assert len(dispensary_service.list_dispensations(db, search="Martín")) == 2
    assert dispensary_service.list_dispensations(db, search="nobody") == []
