"""Product catalog and stock. Sales change stock only through adjust_stock()."""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from cannaclub.core.config import settings
from cannaclub.core.exceptions import NotFoundError, PreconditionError, ValidationError
from cannaclub.core.money import non_negative, positive, quantize
from cannaclub.models.dispensary import Dispensary
from cannaclub.models.product import Product

logger = logging.getLogger(__name__)

_EDITABLE = ("name", "description", "category", "type", "price", "cost_price", "stock_grams", "is_visible", "notes")


def get_product(db: Session, product_id: int, for_update: bool = False) -> Product:
    q = db.query(Product).filter(Product.id == product_id)
    if for_update:
        q = q.with_for_update()
    product = q.first()
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


def list_products(db: Session, search: Optional[str] = None, visible_only: bool = False) -> List[Product]:
    q = db.query(Product)
    if visible_only:
        q = q.filter(Product.is_visible.is_(True))
    if search:
        pattern = f"%{search}%"
        q = q.filter(or_(Product.name.ilike(pattern), Product.category.ilike(pattern)))
    return q.order_by(Product.name).all()


def low_stock(db: Session, threshold=None) -> List[Product]:
    limit = quantize(threshold if threshold is not None else settings.LOW_STOCK_THRESHOLD_GRAMS)
    return (
        db.query(Product)
        .filter(Product.stock_grams < limit)
        .order_by(Product.stock_grams.asc())
        .all()
    )


def _clean(fields: dict) -> dict:
    clean = {k: v for k, v in fields.items() if k in _EDITABLE}
    for key in ("name", "category", "type"):
        if key in clean:
            value = (clean[key] or "").strip()
            if not value:
                raise ValidationError(f"Product {key} cannot be empty")
            clean[key] = value
    if "price" in clean:
        clean["price"] = positive(clean["price"], "Price per gram")
    if clean.get("cost_price") is not None:
        clean["cost_price"] = non_negative(clean["cost_price"], "Cost price")
    if "stock_grams" in clean:
        clean["stock_grams"] = non_negative(clean["stock_grams"], "Stock")
    return clean


def create_product(db: Session, **fields) -> Product:
    clean = _clean(fields)
    for required in ("name", "category", "type", "price"):
        if required not in clean:
            raise ValidationError(f"Product {required} is required")
    clean.setdefault("stock_grams", Decimal("0.00"))
    product = Product(**clean)
    db.add(product)
    db.flush()
    logger.info(f"Created product {product.id} '{product.name}' with {product.stock_grams}g")
    return product


def update_product(db: Session, product_id: int, **fields) -> Product:
    product = get_product(db, product_id, for_update=True)
    for key, value in _clean(fields).items():
        setattr(product, key, value)
    db.flush()
    return product


def delete_product(db: Session, product_id: int) -> None:
    product = get_product(db, product_id)
    sales = db.query(Dispensary.id).filter(Dispensary.product_id == product_id).first()
    if sales is not None:
        raise PreconditionError("Product has dispensary history and cannot be deleted; hide it instead")
    db.delete(product)
    db.flush()


def adjust_stock(db: Session, product: Product, delta) -> Product:
    """Add (restock, reversal) or remove (sale) grams. Stock never goes below zero."""
    change = quantize(delta, "Stock change")
    new_stock = quantize(product.stock_grams) + change
    if new_stock < 0:
        raise PreconditionError(
            f"Insufficient stock for {product.name}: {quantize(product.stock_grams)}g available"
        )
    product.stock_grams = new_stock
    db.flush()
    return product
