"""Member registry. Balance is not editable here; see wallet_service."""
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from cannaclub.core.exceptions import NotFoundError, PreconditionError, ValidationError
from cannaclub.core.money import non_negative
from cannaclub.models.dispensary import Dispensary
from cannaclub.models.enums import MemberStatus
from cannaclub.models.member import Member
from cannaclub.models.member_transaction import MemberTransaction

logger = logging.getLogger(__name__)

_EDITABLE = (
    "first_name", "last_name", "dni", "email", "phone", "dob", "address", "city",
    "postal_code", "join_date", "consumption_grams", "notes", "status", "sponsor_id", "rfid_code",
)


def generate_member_code(db: Session, first_name: str, last_name: str, today: Optional[date] = None) -> str:
    """
    YYMM-FL### : year, month, initials and a running number.

    The number starts at member count + 1 and is bumped until unused, since
    deleted members leave gaps in the count.
    """
    today = today or date.today()
    prefix = f"{today:%y%m}-{first_name[:1].upper()}{last_name[:1].upper()}"
    sequence = (db.query(func.count(Member.id)).scalar() or 0) + 1
    while True:
        code = f"{prefix}{sequence:03d}"
        if db.query(Member.id).filter(Member.member_code == code).first() is None:
            return code
        sequence += 1


def get_member(db: Session, member_id: int) -> Member:
    member = db.query(Member).filter(Member.id == member_id).first()
    if member is None:
        raise NotFoundError("Member", member_id)
    return member


def get_by_rfid(db: Session, rfid_code: str) -> Member:
    member = db.query(Member).filter(Member.rfid_code == rfid_code.strip()).first()
    if member is None:
        raise NotFoundError("Member")
    return member


def list_members(db: Session, search: Optional[str] = None, status: Optional[str] = None) -> List[Member]:
    q = db.query(Member)
    if status:
        try:
            q = q.filter(Member.status == MemberStatus(status).value)
        except ValueError:
            raise ValidationError(f"Unknown member status: {status}")
    if search:
        pattern = f"%{search}%"
        q = q.filter(
            or_(
                Member.first_name.ilike(pattern),
                Member.last_name.ilike(pattern),
                Member.member_code.ilike(pattern),
                Member.dni.ilike(pattern),
            )
        )
    return q.order_by(Member.last_name, Member.first_name).all()


def _clean(db: Session, fields: dict, member_id: Optional[int] = None) -> dict:
    clean = {k: v for k, v in fields.items() if k in _EDITABLE}
    for key in ("first_name", "last_name", "dni"):
        if key in clean:
            value = (clean[key] or "").strip()
            if not value:
                raise ValidationError(f"{key.replace('_', ' ').capitalize()} is required")
            clean[key] = value
    if "status" in clean:
        try:
            clean["status"] = MemberStatus(clean["status"]).value
        except ValueError:
            raise ValidationError(f"Unknown member status: {clean['status']}")
    if "consumption_grams" in clean:
        clean["consumption_grams"] = non_negative(clean["consumption_grams"] or 0, "Consumption forecast")
    if "rfid_code" in clean:
        rfid = (clean["rfid_code"] or "").strip() or None
        if rfid:
            taken = db.query(Member.id).filter(Member.rfid_code == rfid, Member.id != member_id).first()
            if taken is not None:
                raise PreconditionError("RFID tag is already assigned to another member")
        clean["rfid_code"] = rfid
    if clean.get("sponsor_id") is not None:
        if clean["sponsor_id"] == member_id:
            raise ValidationError("A member cannot sponsor themselves")
        get_member(db, clean["sponsor_id"])
    return clean


def create_member(db: Session, **fields) -> Member:
    clean = _clean(db, fields)
    for required in ("first_name", "last_name", "dni"):
        if required not in clean:
            raise ValidationError(f"{required.replace('_', ' ').capitalize()} is required")
    clean.setdefault("join_date", date.today())
    clean.setdefault("status", MemberStatus.ACTIVE.value)
    member = Member(
        member_code=generate_member_code(db, clean["first_name"], clean["last_name"]),
        balance=0,
        **clean,
    )
    db.add(member)
    db.flush()
    logger.info(f"Registered member {member.id} as {member.member_code}")
    return member


def update_member(db: Session, member_id: int, **fields) -> Member:
    member = get_member(db, member_id)
    for key, value in _clean(db, fields, member_id=member_id).items():
        setattr(member, key, value)
    db.flush()
    return member


def delete_member(db: Session, member_id: int) -> None:
    """Remove a member and their documents. Members with sales or wallet history are kept."""
    member = get_member(db, member_id)
    has_sales = db.query(Dispensary.id).filter(Dispensary.member_id == member_id).first() is not None
    has_ledger = db.query(MemberTransaction.id).filter(MemberTransaction.member_id == member_id).first() is not None
    if has_sales or has_ledger:
        raise PreconditionError("Member has dispensary or wallet history; set status to inactive instead")
    db.delete(member)
    db.flush()
    logger.info(f"Deleted member {member_id}")
