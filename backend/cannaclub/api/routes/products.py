"""Products: catalog and stock. Cost prices are shown to administrators only."""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cannaclub.api.deps import get_db, get_current_user
from cannaclub.core.audit import AuditLog
from cannaclub.db.session import atomic
from cannaclub.models.product import Product
from cannaclub.models.user import User
from cannaclub.schemas.product import ProductAdminResponse, ProductCreate, ProductResponse, ProductUpdate
from cannaclub.services import inventory_service

router = APIRouter()


def _out(product: Product, user: User):
    # No response_model on these routes, or cost_price would be filtered out for admins too
    schema = ProductAdminResponse if user.is_admin else ProductResponse
    return schema.model_validate(product)


def _fields(data, user: User, **dump_args) -> dict:
    fields = data.model_dump(**dump_args)
    if not user.is_admin:
        fields.pop("cost_price", None)
    return fields


@router.get("", response_model=None)
def list_products(
    search: Optional[str] = Query(None),
    visible_only: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    products = inventory_service.list_products(db, search=search, visible_only=visible_only)
    return [_out(p, current_user) for p in products]


@router.get("/low-stock", response_model=None)
def low_stock_products(
    threshold: Optional[float] = Query(None, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Products under LOW_STOCK_THRESHOLD_GRAMS (or the given threshold), emptiest first."""
    return [_out(p, current_user) for p in inventory_service.low_stock(db, threshold)]


@router.post("", status_code=201, response_model=None)
def create_product(
    data: ProductCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with atomic(db):
        product = inventory_service.create_product(db, **_fields(data, current_user))
    AuditLog.log_action(
        "create", "product", product.id, current_user,
        changes={"name": product.name, "price": product.price, "stock_grams": product.stock_grams},
    )
    return _out(product, current_user)


@router.get("/{product_id}", response_model=None)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _out(inventory_service.get_product(db, product_id), current_user)


@router.patch("/{product_id}", response_model=None)
def update_product(
    product_id: int,
    data: ProductUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    changes = _fields(data, current_user, exclude_unset=True)
    with atomic(db):
        product = inventory_service.update_product(db, product_id, **changes)
    AuditLog.log_action("update", "product", product.id, current_user, changes=changes)
    return _out(product, current_user)


@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    with atomic(db):
        inventory_service.delete_product(db, product_id)
    AuditLog.log_action("delete", "product", product_id, current_user)
