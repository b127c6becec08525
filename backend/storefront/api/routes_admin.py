from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storefront.api.deps import get_context
from storefront.context import RequestContext
from storefront.db import get_db
from storefront.models.order import OrderStatus
from storefront.repositories.product_repo import ADMIN_SORTS
from storefront.schemas.product_schema import ProductIn, ProductOut, ProductUpdate
from storefront.services.admin_order_service import AdminOrderService
from storefront.services.catalogue_service import CatalogueService

router = APIRouter(prefix="/api/admin", tags=["admin"])


class StatusIn(BaseModel):
    status: OrderStatus


@router.get("/orders", summary="Search orders")
def list_orders(
    page: int = Query(1, ge=1),
    search: str = Query("", max_length=64),
    status: str = Query("all"),
    payment: str = Query("all", pattern="^(all|paid|unpaid)$"),
    sort: str = Query("newest", pattern="^(newest|oldest|highest|lowest)$"),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    return AdminOrderService(db).list_orders(
        ctx, page=page, search=search, status=status, payment=payment, sort=sort
    )


@router.get("/orders/{order_id}")
def get_order(order_id: int, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    return AdminOrderService(db).get_order(ctx, order_id)


@router.patch("/orders/{order_id}/status", summary="Move an order to another status")
def update_order_status(
    order_id: int,
    payload: StatusIn,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    order = AdminOrderService(db).update_status(ctx, order_id, payload.status)
    return {"success": True, "data": order}


@router.delete("/orders/{order_id}")
def delete_order(order_id: int, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    AdminOrderService(db).delete_order(ctx, order_id)
    return {"success": True}


@router.get("/products", summary="Search products")
def list_products(
    page: int = Query(1, ge=1),
    search: str = Query("", max_length=64),
    category: str = Query("all"),
    stock: str = Query("all", pattern="^(all|in_stock|low_stock|out_of_stock)$"),
    featured: str = Query("all", pattern="^(all|featured|not_featured)$"),
    sort: str = Query("newest", pattern="^(" + "|".join(ADMIN_SORTS) + ")$"),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    return CatalogueService(db).list_products_for_admin(
        ctx, page=page, search=search, category=category, stock=stock, featured=featured, sort=sort
    )


@router.post("/products", summary="Create product")
def create_product(payload: ProductIn, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    p = CatalogueService(db).create_product(ctx, payload)
    return {"success": True, "product": ProductOut.model_validate(p).model_dump(mode="json")}


@router.patch("/products/{product_id}", summary="Update product")
def update_product(
    product_id: int,
    payload: ProductUpdate,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    p = CatalogueService(db).update_product(ctx, product_id, payload)
    return {"success": True, "product": ProductOut.model_validate(p).model_dump(mode="json")}
