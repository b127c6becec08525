from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from storefront.db import Base
from storefront.utils.clock import utcnow

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False, default="NO_NAME")
    role = Column(String(16), nullable=False, default=ROLE_USER)  # user, admin
    phone = Column(String(32), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    addresses = relationship(
        "Address",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Address.id",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __repr__(self):
        return f"<User id={self.id} email={self.email}>"
