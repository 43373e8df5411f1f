"""Create all tables. Run on app startup.

SECURITY: Without DEFAULT_ADMIN_PASSWORD a random admin password is
generated (not hardcoded) and logged once. Change it after first login.
"""
import logging
import secrets
from decimal import Decimal
from pathlib import Path

from sqlalchemy.engine import Engine

from cannaclub.core.config import settings
from cannaclub.db.base import Base
from cannaclub.db.session import engine as default_engine, SessionLocal
from cannaclub import models  # noqa: F401 - register models
from cannaclub.models.product import Product
from cannaclub.models.user import User
from cannaclub.core.security import get_password_hash

logger = logging.getLogger(__name__)

DEMO_PRODUCTS = [
    ("Amnesia Haze", "Flor", "sativa", "8.50", "6.00", "50"),
    ("Critical Kush", "Flor", "indica", "9.00", "6.50", "30"),
    ("White Widow", "Flor", "hibrido", "8.00", "5.50", "40"),
    ("Gorilla Glue", "Flor", "hibrido", "9.50", "7.00", "25"),
    ("Northern Lights", "Flor", "indica", "8.75", "6.25", "35"),
]


def _ensure_sqlite_dir(url: str) -> None:
    if not url.startswith("sqlite:///"):
        return
    path = url[len("sqlite:///"):]
    if path and path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)


def init_db(engine: Engine = None, session_factory=SessionLocal):
    engine = engine or default_engine
    _ensure_sqlite_dir(str(engine.url))
    Base.metadata.create_all(bind=engine)

    db = session_factory()
    try:
        if db.query(User).count() == 0:
            password = settings.DEFAULT_ADMIN_PASSWORD or secrets.token_urlsafe(12)
            db.add(User(
                username=settings.DEFAULT_ADMIN_USERNAME,
                hashed_password=get_password_hash(password),
                full_name="Administrator",
                is_admin=True,
            ))
            db.commit()
            if settings.DEFAULT_ADMIN_PASSWORD:
                logger.warning(f"Default admin '{settings.DEFAULT_ADMIN_USERNAME}' created from configuration")
            else:
                logger.warning(
                    f"Default admin created. Username: {settings.DEFAULT_ADMIN_USERNAME} "
                    f"Password: {password} (change it after first login)"
                )

        if settings.SEED_DEMO_PRODUCTS and db.query(Product).count() == 0:
            for name, category, kind, price, cost, stock in DEMO_PRODUCTS:
                db.add(Product(
                    name=name,
                    category=category,
                    type=kind,
                    price=Decimal(price),
                    cost_price=Decimal(cost),
                    stock_grams=Decimal(stock),
                    is_visible=True,
                ))
            db.commit()
            logger.info(f"Seeded {len(DEMO_PRODUCTS)} demo products")
    finally:
        db.close()
