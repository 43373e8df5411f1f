"""Member registry and product catalog rules."""
from datetime import date
from decimal import Decimal

import pytest

from cannaclub.core.exceptions import NotFoundError, PreconditionError, ValidationError
from cannaclub.db.session import atomic
from cannaclub.models.document import Document
from cannaclub.models.member import Member
from cannaclub.services import dispensary_service, inventory_service, member_service, wallet_service


def test_member_code_format_and_sequence(db):
    code = member_service.generate_member_code(db, "laura", "martín", today=date(2024, 3, 9))
    assert code == "2403-LM001"

    with atomic(db):
        member_service.create_member(db, first_name="Ana", last_name="Ruiz", dni="1")
    assert member_service.generate_member_code(db, "Bea", "Sanz", today=date(2024, 3, 9)) == "2403-BS002"


def test_member_code_skips_used_numbers(db):
    with atomic(db):
        first = member_service.create_member(db, first_name="Ana", last_name="Ruiz", dni="1")
        member_service.create_member(db, first_name="Ana", last_name="Ruiz", dni="2")
    with atomic(db):
        member_service.delete_member(db, first.id)

    codes = {m.member_code for m in member_service.list_members(db)}
    new_code = member_service.generate_member_code(db, "Ana", "Ruiz")
    assert new_code not in codes


def test_create_member_defaults(db, member):
    assert member.status == "active"
    assert member.balance == Decimal("0.00")
    assert member.join_date == date.today()
    assert member.full_name == "Laura Martín"


def test_create_member_requires_names_and_dni(db):
    with pytest.raises(ValidationError):
        member_service.create_member(db, first_name="Ana", last_name=" ", dni="1")
    with pytest.raises(ValidationError):
        member_service.create_member(db, first_name="Ana", last_name="Ruiz")


def test_rfid_is_unique_and_searchable(db, member):
    with atomic(db):
        member_service.update_member(db, member.id, rfid_code=" 04A1B2 ")
    assert member_service.get_by_rfid(db, "04A1B2").id == member.id

    with pytest.raises(PreconditionError):
        member_service.create_member(db, first_name="Ana", last_name="Ruiz", dni="1", rfid_code="04A1B2")
    with pytest.raises(NotFoundError):
        member_service.get_by_rfid(db, "FFFF")


def test_member_search_and_status_filter(db, member):
    with atomic(db):
        other = member_service.create_member(db, first_name="Pablo", last_name="Gil", dni="X999", status="pending")

    assert [m.id for m in member_service.list_members(db, search="X999")] == [other.id]
    assert [m.id for m in member_service.list_members(db, status="pending")] == [other.id]
    with pytest.raises(ValidationError):
        member_service.list_members(db, status="banned")


def test_member_cannot_sponsor_themselves(db, member):
    with pytest.raises(ValidationError):
        member_service.update_member(db, member.id, sponsor_id=member.id)
    with pytest.raises(NotFoundError):
        member_service.update_member(db, member.id, sponsor_id=999)


def test_delete_member_cascades_documents(db, member):
    db.add(Document(
        member_id=member.id, type="dni", name="DNI", file_name="dni.pdf",
        content_type="application/pdf", size=3, data=b"pdf",
    ))
    db.commit()

    with atomic(db):
        member_service.delete_member(db, member.id)
    assert db.query(Member).count() == 0
    assert db.query(Document).count() == 0


def test_deleting_sponsor_clears_sponsor_link(db, member):
    with atomic(db):
        sponsored = member_service.create_member(
            db, first_name="Pablo", last_name="Ruiz", dni="87654321X", sponsor_id=member.id
        )
    sponsor_id = member.id

    with atomic(db):
        member_service.delete_member(db, sponsor_id)

    assert db.get(Member, sponsor_id) is None
    db.refresh(sponsored)
    assert sponsored.sponsor_id is None


def test_delete_member_with_history_is_blocked(db, admin, member):
    with atomic(db):
        wallet_service.credit(db, member, "5", admin.id)
    with pytest.raises(PreconditionError):
        member_service.delete_member(db, member.id)


def test_product_create_validation(db):
    with pytest.raises(ValidationError):
        inventory_service.create_product(db, name="X", category="Flor", type="indica", price="0")
    with pytest.raises(ValidationError):
        inventory_service.create_product(db, name="X", category="Flor", type="indica", price="9", stock_grams="-1")
    with pytest.raises(ValidationError):
        inventory_service.create_product(db, category="Flor", type="indica", price="9")


def test_update_product_and_visibility(db, product):
    with atomic(db):
        inventory_service.update_product(db, product.id, price="9.25", is_visible=False)
    assert inventory_service.get_product(db, product.id).price == Decimal("9.25")
    assert inventory_service.list_products(db, visible_only=True) == []
    assert len(inventory_service.list_products(db, search="amnesia")) == 1


def test_low_stock(db, product):
    with atomic(db):
        inventory_service.create_product(db, name="Gorilla Glue", category="Flor", type="hibrido", price="9.5", stock_grams="5")
    assert [p.name for p in inventory_service.low_stock(db)] == ["Gorilla Glue"]
    assert len(inventory_service.low_stock(db, threshold=100)) == 2


def test_adjust_stock_never_goes_negative(db, product):
    with pytest.raises(PreconditionError):
        inventory_service.adjust_stock(db, product, "-50.01")
    inventory_service.adjust_stock(db, product, "-50")
    assert product.stock_grams == Decimal("0.00")
    db.rollback()


def test_product_with_sales_cannot_be_deleted(db, admin, member, product, open_register):
    with atomic(db):
        dispensary_service.dispense(db, open_register, member.id, product.id, "8.5", "1", "cash", admin.id)
    with pytest.raises(PreconditionError):
        inventory_service.delete_product(db, product.id)
