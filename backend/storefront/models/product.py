from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, Text

from storefront.db import Base
from storefront.utils.clock import utcnow


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    category = Column(String(255), nullable=False, index=True)
    brand = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    stock = Column(Integer, default=0, nullable=False)
    image = Column(String(512), nullable=True)
    is_featured = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Product slug={self.slug} name={self.name}>"
