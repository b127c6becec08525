import importlib
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from storefront.config import settings

log = logging.getLogger(__name__)

DATABASE_URL = settings.DATABASE_URL
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, future=True, echo=False, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# every model module must be imported before create_all so metadata is populated
MODEL_MODULES = [
    "storefront.models.user",
    "storefront.models.address",
    "storefront.models.product",
    "storefront.models.cart",
    "storefront.models.cart_item",
    "storefront.models.coupon",
    "storefront.models.checkout_session",
    "storefront.models.order",
    "storefront.models.wishlist",
]


def import_models():
    for mod in MODEL_MODULES:
        importlib.import_module(mod)


def init_db(reset: bool = False):
    """
    Initialize DB schema.

    Behavior:
      - If reset (or RESET_DB) is set, drop & recreate tables.
      - Otherwise leave existing tables in place and create missing ones.
      - Seed the demo coupons if they are missing.
    """
    import_models()

    if reset or settings.RESET_DB:
        log.info("Resetting database")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)
    log.info("Database tables ready: %s", sorted(Base.metadata.tables))

    from storefront.models.coupon import seed_coupons

    s = SessionLocal()
    try:
        created = seed_coupons(s)
        if created:
            s.commit()
            log.info("Seeded %d missing coupons", created)
    finally:
        s.close()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
