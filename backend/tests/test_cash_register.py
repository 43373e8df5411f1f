"""Till lifecycle: open, move money, close, recomputed balance."""
from decimal import Decimal

import pytest

from cannaclub.core import money
from cannaclub.core.exceptions import NotFoundError, PreconditionError, ValidationError
from cannaclub.db.session import atomic
from cannaclub.models.cash_register import CashRegister, CashTransaction
from cannaclub.models.enums import CashTransactionType, PaymentMethod
from cannaclub.services import cash_register_service


@pytest.mark.parametrize("amount", ["0", "-5", "0.00"])
def test_open_rejects_non_positive_float_and_creates_nothing(db, admin, amount):
    with pytest.raises(ValidationError):
        with atomic(db):
            cash_register_service.open_register(db, amount, admin.id)
    assert db.query(CashRegister).count() == 0


@pytest.mark.parametrize("amount", ["1e30", "10000000000", "-1e30"])
def test_open_rejects_amounts_beyond_column_range(db, admin, amount):
    with pytest.raises(ValidationError):
        with atomic(db):
            cash_register_service.open_register(db, amount, admin.id)
    assert db.query(CashRegister).count() == 0


def test_quantize_keeps_largest_storable_amount():
    assert money.quantize("9999999999.99") == money.MAX_AMOUNT
    with pytest.raises(ValidationError):
        money.quantize("9999999999.995")


def test_only_one_register_can_be_open(db, admin, open_register):
    with pytest.raises(PreconditionError):
        with atomic(db):
            cash_register_service.open_register(db, Decimal("50"), admin.id)
    assert db.query(CashRegister).count() == 1


def test_balance_is_opening_plus_income_minus_expense(db, admin, open_register):
    with atomic(db):
        cash_register_service.add_transaction(db, open_register, "income", "20.50", "Venta", user_id=admin.id)
        cash_register_service.add_transaction(
            db, open_register, CashTransactionType.INCOME, "9.50", "Venta", PaymentMethod.BIZUM, user_id=admin.id
        )
        cash_register_service.add_transaction(db, open_register, "expense", "15.00", "Proveedor", user_id=admin.id)

    assert cash_register_service.current_balance(db, open_register.id) == Decimal("115.00")
    totals = cash_register_service.register_totals(db, open_register)
    assert totals.income == Decimal("30.00")
    assert totals.expense == Decimal("15.00")
    assert totals.transaction_count == 3


def test_add_transaction_validation(db, admin, open_register):
    with pytest.raises(ValidationError):
        cash_register_service.add_transaction(db, open_register, "income", "0", "Nada", user_id=admin.id)
    with pytest.raises(ValidationError):
        cash_register_service.add_transaction(db, open_register, "income", "5", "   ", user_id=admin.id)
    with pytest.raises(ValidationError):
        cash_register_service.add_transaction(db, open_register, "refund", "5", "Tipo raro", user_id=admin.id)
    with pytest.raises(ValidationError):
        cash_register_service.add_transaction(
            db, open_register, "income", "5", "Saldo", PaymentMethod.WALLET, user_id=admin.id
        )
    db.rollback()
    assert db.query(CashTransaction).count() == 0


def test_add_transaction_requires_open_register(db, admin, open_register):
    with atomic(db):
        cash_register_service.close_register(db, open_register.id, "100.00")
    with pytest.raises(PreconditionError, match="No open cash register"):
        cash_register_service.add_transaction(db, open_register, "income", "5", "Venta", user_id=admin.id)
    with pytest.raises(PreconditionError):
        cash_register_service.require_open_register(db)


def test_close_reports_discrepancy_without_rejecting(db, admin, open_register):
    with atomic(db):
        cash_register_service.add_transaction(db, open_register, "income", "17.00", "Venta", user_id=admin.id)
    with atomic(db):
        result = cash_register_service.close_register(db, open_register.id, "110.00", notes="Faltan 7")

    assert result.expected_balance == Decimal("117.00")
    assert result.discrepancy == Decimal("-7.00")
    assert result.has_discrepancy
    register = cash_register_service.get_register(db, open_register.id)
    assert register.status == "closed"
    assert register.closing_amount == Decimal("110.00")
    assert register.closed_at is not None
    assert register.notes.endswith("CIERRE: Faltan 7")


def test_close_twice_and_negative_count(db, admin, open_register):
    with pytest.raises(ValidationError):
        cash_register_service.close_register(db, open_register.id, "-1")
    with atomic(db):
        cash_register_service.close_register(db, open_register.id, "100")
    with pytest.raises(PreconditionError, match="already closed"):
        cash_register_service.close_register(db, open_register.id, "100")


def test_new_register_can_open_after_close(db, admin, open_register):
    with atomic(db):
        cash_register_service.close_register(db, open_register.id, "100")
    with atomic(db):
        second = cash_register_service.open_register(db, "80", admin.id)
    assert cash_register_service.find_open_register(db).id == second.id
    assert [r.id for r in cash_register_service.list_registers(db)][0] == second.id


def test_unknown_register(db):
    with pytest.raises(NotFoundError):
        cash_register_service.get_register(db, 999)


def test_add_transaction_requires_user(db, open_register):
    with pytest.raises(TypeError):
        cash_register_service.add_transaction(db, open_register, "income", "5", "Venta")
