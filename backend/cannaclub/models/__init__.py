from cannaclub.models.user import User
from cannaclub.models.member import Member
from cannaclub.models.product import Product
from cannaclub.models.cash_register import CashRegister, CashTransaction
from cannaclub.models.dispensary import Dispensary
from cannaclub.models.member_transaction import MemberTransaction
from cannaclub.models.document import Document

__all__ = [
    "User",
    "Member",
    "Product",
    "CashRegister",
    "CashTransaction",
    "Dispensary",
    "MemberTransaction",
    "Document",
]
