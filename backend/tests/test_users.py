"""Staff accounts, password hashing and tokens."""
import pytest

from cannaclub.core.exceptions import PreconditionError, ValidationError
from cannaclub.core.security import create_access_token, decode_access_token, get_password_hash, verify_password
from cannaclub.db.session import atomic
from cannaclub.services import cash_register_service, user_service

from conftest import ADMIN_PASSWORD


def test_password_hash_roundtrip():
    hashed = get_password_hash("s3cret")
    assert hashed != "s3cret"
    assert verify_password("s3cret", hashed)
    assert not verify_password("wrong", hashed)


def test_token_subject():
    assert decode_access_token(create_access_token("42")) == "42"
    assert decode_access_token("not-a-token") is None


def test_authenticate_sets_last_login(db, admin):
    assert admin.last_login is None
    with atomic(db):
        user = user_service.authenticate(db, "admin", ADMIN_PASSWORD)
    assert user.id == admin.id
    assert user.last_login is not None
    assert user_service.authenticate(db, "admin", "nope") is None
    assert user_service.authenticate(db, "ghost", ADMIN_PASSWORD) is None


def test_create_user_rules(db, admin):
    with pytest.raises(ValidationError):
        user_service.create_user(db, "ana", "123", "Ana")
    with pytest.raises(PreconditionError):
        user_service.create_user(db, "admin", "1234", "Otro")
    with atomic(db):
        user = user_service.create_user(db, "ana", "1234", "Ana Ruiz")
    assert not user.is_admin


def test_delete_user_rules(db, admin, staff, open_register):
    with pytest.raises(PreconditionError):
        user_service.delete_user(db, admin.id, admin)
    # admin opened the register
    with pytest.raises(PreconditionError):
        user_service.delete_user(db, admin.id, staff)
    with atomic(db):
        user_service.delete_user(db, staff.id, admin)
    assert [u.username for u in user_service.list_users(db)] == ["admin"]
    assert cash_register_service.find_open_register(db) is not None
