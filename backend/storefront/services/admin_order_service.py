import logging

from sqlalchemy.orm import Session

from storefront.context import RequestContext
from storefront.errors import NotFound, ValidationFailed
from storefront.repositories.order_repo import OrderRepository
from storefront.services.order_service import order_to_dict, paginate
from storefront.services.order_status import apply_status, parse_status
from storefront.utils.transactions import atomic

log = logging.getLogger(__name__)

ADMIN_PAGE_SIZE = 10
MAX_SEARCH_LENGTH = 64
PAYMENT_FILTERS = {"all": None, "paid": True, "unpaid": False}


class AdminOrderService:
    def __init__(self, db: Session):
        self.db = db
        self.order_repo = OrderRepository(db)

    def list_orders(
        self,
        ctx: RequestContext,
        page: int = 1,
        search: str = "",
        status: str = "all",
        payment: str = "all",
        sort: str = "newest",
    ) -> dict:
        ctx.require_admin()
        search = (search or "").strip()
        if len(search) > MAX_SEARCH_LENGTH:
            raise ValidationFailed("Search term too long")
        if payment not in PAYMENT_FILTERS:
            raise ValidationFailed(f"Unknown payment filter: {payment}")
        status_filter = None if status in (None, "", "all") else parse_status(status)
        page = max(1, page)

        orders, total = self.order_repo.search(
            search=search,
            status=status_filter,
            is_paid=PAYMENT_FILTERS[payment],
            sort=sort,
            page=page,
            size=ADMIN_PAGE_SIZE,
        )
        rows = [order_to_dict(o, with_user=True) for o in orders]
        return paginate(rows, total, page, ADMIN_PAGE_SIZE, "orders")

    def _require_order(self, order_id: int):
        order = self.order_repo.get(order_id)
        if not order:
            raise NotFound("Order not found")
        return order

    def get_order(self, ctx: RequestContext, order_id: int) -> dict:
        ctx.require_admin()
        return order_to_dict(self._require_order(order_id), with_user=True)

    def update_status(self, ctx: RequestContext, order_id: int, status) -> dict:
        admin = ctx.require_admin()
        target = parse_status(status)
        with atomic(self.db):
            order = self._require_order(order_id)
            previous = order.status
            apply_status(order, target)
        log.info("admin %s moved order %s from %s to %s", admin.id, order_id, previous.value, target.value)
        return order_to_dict(order, with_user=True)

    def delete_order(self, ctx: RequestContext, order_id: int) -> None:
        admin = ctx.require_admin()
        with atomic(self.db):
            self.order_repo.delete(self._require_order(order_id))
        log.info("admin %s deleted order %s", admin.id, order_id)
