from typing import List, Optional, Tuple

from sqlalchemy import String, cast, func, or_
from sqlalchemy.orm import Session

from storefront.models.order import Order, OrderStatus
from storefront.models.user import User

ADMIN_SORTS = {
    "newest": Order.created_at.desc(),
    "oldest": Order.created_at.asc(),
    "highest": Order.total_price.desc(),
    "lowest": Order.total_price.asc(),
}


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class OrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, order_id: int) -> Optional[Order]:
        return self.db.get(Order, order_id)

    def get_for_user(self, order_id: int, user_id: int) -> Optional[Order]:
        return (
            self.db.query(Order)
            .filter(Order.id == order_id, Order.user_id == user_id)
            .first()
        )

    def list_for_user(self, user_id: int, page: int, size: int) -> Tuple[List[Order], int]:
        query = self.db.query(Order).filter(Order.user_id == user_id)
        total = query.with_entities(func.count(Order.id)).scalar() or 0
        orders = (
            query.order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * size)
            .limit(size)
            .all()
        )
        return orders, total

    def search(
        self,
        search: str = "",
        status: Optional[OrderStatus] = None,
        is_paid: Optional[bool] = None,
        sort: str = "newest",
        page: int = 1,
        size: int = 10,
    ) -> Tuple[List[Order], int]:
        query = self.db.query(Order).outerjoin(User, Order.user_id == User.id)
        if search:
            like = f"%{escape_like(search)}%"
            query = query.filter(
                or_(
                    cast(Order.id, String).like(like, escape="\\"),
                    User.email.ilike(like, escape="\\"),
                    User.name.ilike(like, escape="\\"),
                )
            )
        if status is not None:
            query = query.filter(Order.status == status)
        if is_paid is not None:
            query = query.filter(Order.is_paid == is_paid)
        total = query.with_entities(func.count(Order.id)).scalar() or 0
        order_by = ADMIN_SORTS.get(sort, ADMIN_SORTS["newest"])
        orders = query.order_by(order_by, Order.id.desc()).offset((page - 1) * size).limit(size).all()
        return orders, total

    def delete(self, order: Order):
        self.db.delete(order)
        self.db.flush()
