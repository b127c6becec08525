from datetime import datetime
from decimal import Decimal

from sqlalchemy import Column, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import Session

from storefront.db import Base

KIND_PERCENTAGE = "percentage"
KIND_FIXED = "fixed"


class Coupon(Base):
    __tablename__ = "coupons"
    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(64), unique=True, index=True, nullable=False)  # stored upper-case
    description = Column(String(255), nullable=True)
    kind = Column(String(16), nullable=False)  # percentage, fixed
    value = Column(Numeric(12, 2), nullable=False)  # percent for percentage, amount for fixed
    min_purchase = Column(Numeric(12, 2), nullable=False, default=0)
    max_discount = Column(Numeric(12, 2), nullable=True)  # cap, percentage coupons
    valid_from = Column(DateTime, nullable=True)
    valid_until = Column(DateTime, nullable=True)
    usage_limit = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Coupon code={self.code} kind={self.kind} value={self.value}>"


DEMO_COUPONS = [
    {
        "code": "WELCOME10",
        "description": "10% off your first order",
        "kind": KIND_PERCENTAGE,
        "value": Decimal("10"),
        "min_purchase": Decimal("0"),
    },
    {
        "code": "SAVE20",
        "description": "20% off orders over $100",
        "kind": KIND_PERCENTAGE,
        "value": Decimal("20"),
        "min_purchase": Decimal("100"),
        "max_discount": Decimal("50"),
    },
    {
        "code": "SHIP5",
        "description": "$5 off",
        "kind": KIND_FIXED,
        "value": Decimal("5"),
        "min_purchase": Decimal("25"),
    },
]


def find_coupon(db: Session, code: str):
    return db.query(Coupon).filter(func.upper(Coupon.code) == code.strip().upper()).first()


def seed_coupons(db: Session, entries=None) -> int:
    """Insert any missing coupons; returns how many were added."""
    created = 0
    for ent in entries or DEMO_COUPONS:
        if find_coupon(db, ent["code"]):
            continue
        data = dict(ent)
        data["code"] = data["code"].upper()
        for key in ("value", "min_purchase", "max_discount"):
            if data.get(key) is not None:
                data[key] = Decimal(str(data[key]))
        for key in ("valid_from", "valid_until"):
            if isinstance(data.get(key), str):
                data[key] = datetime.fromisoformat(data[key])
        db.add(Coupon(**data))
        created += 1
    db.flush()
    return created
