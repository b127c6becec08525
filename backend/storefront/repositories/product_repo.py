import re
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from storefront.models.product import Product
from storefront.repositories.order_repo import escape_like

SORTS = {
    "newest": Product.created_at.desc(),
    "price_asc": Product.price.asc(),
    "price_desc": Product.price.desc(),
    "name_asc": Product.name.asc(),
}

ADMIN_SORTS = {
    **SORTS,
    "oldest": Product.created_at.asc(),
    "name_desc": Product.name.desc(),
    "stock_asc": Product.stock.asc(),
    "stock_desc": Product.stock.desc(),
}

LOW_STOCK_LIMIT = 10
STOCK_FILTERS = {
    "in_stock": Product.stock > LOW_STOCK_LIMIT,
    "low_stock": (Product.stock > 0) & (Product.stock <= LOW_STOCK_LIMIT),
    "out_of_stock": Product.stock == 0,
}
FEATURED_FILTERS = {"featured": True, "not_featured": False}


def category_slug(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower())


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: int) -> Optional[Product]:
        return self.db.get(Product, product_id)

    def get_by_slug(self, slug: str) -> Optional[Product]:
        return self.db.query(Product).filter(Product.slug == slug).first()

    def get_for_update(self, product_id: int) -> Optional[Product]:
        # FOR UPDATE is dropped by dialects without row locks (SQLite)
        return (
            self.db.query(Product)
            .filter(Product.id == product_id)
            .with_for_update()
            .first()
        )

    def _page(self, query, order, page: int, size: int) -> Tuple[List[Product], int]:
        total = query.with_entities(func.count(Product.id)).scalar() or 0
        items = query.order_by(order, Product.id).offset((page - 1) * size).limit(size).all()
        return items, total

    def list(
        self,
        q: Optional[str] = None,
        category: Optional[str] = None,
        sort: str = "newest",
        page: int = 1,
        size: int = 20,
    ) -> Tuple[List[Product], int]:
        query = self.db.query(Product)
        if q and q != "all":
            query = query.filter(Product.name.ilike(f"%{escape_like(q)}%", escape="\\"))
        if category and category != "all":
            query = query.filter(Product.category == category)
        return self._page(query, SORTS.get(sort, SORTS["newest"]), page, size)

    def search_admin(
        self,
        search: str = "",
        category: str = "all",
        stock: str = "all",
        featured: str = "all",
        sort: str = "newest",
        page: int = 1,
        size: int = 10,
    ) -> Tuple[List[Product], int]:
        query = self.db.query(Product)
        if search:
            like = f"%{escape_like(search)}%"
            query = query.filter(
                or_(
                    Product.name.ilike(like, escape="\\"),
                    Product.slug.ilike(like, escape="\\"),
                    Product.brand.ilike(like, escape="\\"),
                )
            )
        if category and category != "all":
            query = query.filter(Product.category == category)
        if stock in STOCK_FILTERS:
            query = query.filter(STOCK_FILTERS[stock])
        if featured in FEATURED_FILTERS:
            query = query.filter(Product.is_featured.is_(FEATURED_FILTERS[featured]))
        return self._page(query, ADMIN_SORTS.get(sort, ADMIN_SORTS["newest"]), page, size)

    def featured(self, limit: int = 4) -> List[Product]:
        return (
            self.db.query(Product)
            .filter(Product.is_featured.is_(True))
            .order_by(Product.created_at.desc(), Product.id.desc())
            .limit(limit)
            .all()
        )

    def newest(self, limit: int = 4) -> List[Product]:
        return (
            self.db.query(Product)
            .order_by(Product.created_at.desc(), Product.id.desc())
            .limit(limit)
            .all()
        )

    def category_counts(self) -> List[Tuple[str, int, Optional[str]]]:
        """(category, product count, an image from the category) ordered by count."""
        count = func.count(Product.id)
        return (
            self.db.query(Product.category, count, func.max(Product.image))
            .group_by(Product.category)
            .order_by(count.desc(), Product.category)
            .all()
        )

    def in_category(self, name: str):
        return self.db.query(Product).filter(func.lower(Product.category) == name.lower())

    def list_in_category(self, name: str, page: int = 1, size: int = 12) -> Tuple[List[Product], int]:
        return self._page(self.in_category(name), Product.created_at.desc(), page, size)

    def create(self, **fields) -> Product:
        p = Product(**fields)
        self.db.add(p)
        self.db.flush()
        return p

    def update(self, product: Product, **fields) -> Product:
        for key, value in fields.items():
            setattr(product, key, value)
        self.db.flush()
        return product

    def create_or_update(
        self,
        slug: str,
        name: str,
        price: Decimal,
        category: str,
        stock: int = 0,
        **extra,
    ) -> Product:
        p = self.get_by_slug(slug)
        fields = dict(name=name, price=price, category=category, stock=stock, **extra)
        if p:
            return self.update(p, **fields)
        return self.create(slug=slug, **fields)
