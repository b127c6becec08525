import logging
import math
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.context import RequestContext
from storefront.errors import Conflict, NotFound
from storefront.models.product import Product
from storefront.repositories.product_repo import ProductRepository, category_slug
from storefront.schemas.product_schema import ProductIn, ProductOut, ProductUpdate

log = logging.getLogger(__name__)

HOME_SECTION_SIZE = 4
CATEGORY_PAGE_SIZE = 12
ADMIN_PAGE_SIZE = 10


def product_out(p: Product) -> dict:
    return ProductOut.model_validate(p).model_dump(mode="json")


class CatalogueService:
    def __init__(self, db: Session):
        self.db = db
        self.product_repo = ProductRepository(db)

    def get_by_slug(self, slug: str) -> Product:
        p = self.product_repo.get_by_slug(slug)
        if not p:
            raise NotFound("Product not found")
        return p

    def create_product(self, ctx: RequestContext, payload: ProductIn) -> Product:
        ctx.require_admin()
        try:
            p = self.product_repo.create(**payload.model_dump())
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict("Slug already exists")
        log.info("created product %s (%s)", p.id, p.slug)
        return p

    def update_product(self, ctx: RequestContext, product_id: int, payload: ProductUpdate) -> Product:
        ctx.require_admin()
        p = self.product_repo.get(product_id)
        if not p:
            raise NotFound("Product not found")
        try:
            self.product_repo.update(p, **payload.model_dump(exclude_unset=True, exclude_none=True))
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict("Slug already exists")
        return p

    def featured_products(self, limit: int = HOME_SECTION_SIZE) -> List[dict]:
        return [product_out(p) for p in self.product_repo.featured(limit)]

    def new_arrivals(self, limit: int = HOME_SECTION_SIZE) -> List[dict]:
        return [product_out(p) for p in self.product_repo.newest(limit)]

    def list_categories(self) -> List[dict]:
        return [
            {"name": name, "slug": category_slug(name), "productCount": count, "image": image}
            for name, count, image in self.product_repo.category_counts()
        ]

    def category_details(self, slug: str) -> dict:
        name = slug.replace("-", " ")
        query = self.product_repo.in_category(name)
        count = query.count()
        if not count:
            raise NotFound("Category not found")
        top = query.order_by(Product.created_at.desc(), Product.id.desc()).limit(HOME_SECTION_SIZE).all()
        return {
            "name": top[0].category,
            "slug": slug,
            "productCount": count,
            "topProducts": [product_out(p) for p in top],
        }

    def products_by_category(self, slug: str, page: int = 1) -> dict:
        page = max(1, page)
        items, total = self.product_repo.list_in_category(
            slug.replace("-", " "), page=page, size=CATEGORY_PAGE_SIZE
        )
        return {
            "products": [product_out(p) for p in items],
            "total": total,
            "totalPages": math.ceil(total / CATEGORY_PAGE_SIZE),
            "currentPage": page,
        }

    def list_products_for_admin(
        self,
        ctx: RequestContext,
        page: int = 1,
        search: str = "",
        category: str = "all",
        stock: str = "all",
        featured: str = "all",
        sort: str = "newest",
    ) -> dict:
        ctx.require_admin()
        page = max(1, page)
        items, total = self.product_repo.search_admin(
            search=(search or "").strip(),
            category=category,
            stock=stock,
            featured=featured,
            sort=sort,
            page=page,
            size=ADMIN_PAGE_SIZE,
        )
        total_pages = math.ceil(total / ADMIN_PAGE_SIZE)
        return {
            "products": [product_out(p) for p in items],
            "currentPage": page,
            "totalPages": total_pages,
            "totalProducts": total,
            "hasMore": page < total_pages,
        }
