from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.db import get_db
from storefront.repositories.product_repo import SORTS, ProductRepository
from storefront.services.catalogue_service import CatalogueService, product_out

router = APIRouter(tags=["catalogue"])
categories_router = APIRouter(tags=["catalogue"])


@router.get("", summary="List products")
def list_products(
    q: Optional[str] = Query(None, description="search term"),
    category: Optional[str] = Query(None),
    sort: str = Query("newest", pattern="^(" + "|".join(SORTS) + ")$"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    repo = ProductRepository(db)
    items, total = repo.list(q=q, category=category, sort=sort, page=page, size=size)
    return {
        "items": [product_out(p) for p in items],
        "total": total,
        "page": page,
    }


@router.get("/featured", summary="Featured products")
def featured_products(db: Session = Depends(get_db)):
    return CatalogueService(db).featured_products()


@router.get("/new-arrivals", summary="Newest products")
def new_arrivals(db: Session = Depends(get_db)):
    return CatalogueService(db).new_arrivals()


@router.get("/{slug}", summary="Get product by slug")
def get_product(slug: str, db: Session = Depends(get_db)):
    return product_out(CatalogueService(db).get_by_slug(slug))


@categories_router.get("", summary="Categories with product counts")
def list_categories(db: Session = Depends(get_db)):
    return CatalogueService(db).list_categories()


@categories_router.get("/{slug}")
def category_details(slug: str, db: Session = Depends(get_db)):
    return CatalogueService(db).category_details(slug)


@categories_router.get("/{slug}/products")
def products_by_category(slug: str, page: int = Query(1, ge=1), db: Session = Depends(get_db)):
    return CatalogueService(db).products_by_category(slug, page=page)
