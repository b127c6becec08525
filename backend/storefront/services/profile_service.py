from typing import List, Optional

from sqlalchemy.orm import Session

from storefront.context import RequestContext
from storefront.errors import NotFound, ValidationFailed
from storefront.models.address import Address
from storefront.schemas.address_schema import AddressIn, parse_model
from storefront.utils.transactions import atomic


class ProfileService:
    """Profile fields and the saved address book of the signed-in user."""

    def __init__(self, db: Session):
        self.db = db

    def get_profile(self, ctx: RequestContext) -> dict:
        user = ctx.require_user()
        return {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "role": user.role,
            "phone": user.phone,
        }

    def update_profile(
        self, ctx: RequestContext, name: Optional[str] = None, phone: Optional[str] = None
    ) -> dict:
        user = ctx.require_user()
        if name is not None and len(name.strip()) < 2:
            raise ValidationFailed("Name must be at least 2 characters")
        if phone is not None and len(phone.strip()) < 6:
            raise ValidationFailed("Phone number must be at least 6 characters")
        with atomic(self.db):
            if name is not None:
                user.name = name.strip()
            if phone is not None:
                user.phone = phone.strip()
        return self.get_profile(ctx)

    def list_addresses(self, ctx: RequestContext) -> List[Address]:
        return list(ctx.require_user().addresses)

    def _owned(self, ctx: RequestContext, address_id: int) -> Address:
        user = ctx.require_user()
        addr = next((a for a in user.addresses if a.id == address_id), None)
        if addr is None:
            raise NotFound("Address not found")
        return addr

    def add_address(self, ctx: RequestContext, data) -> Address:
        user = ctx.require_user()
        payload = parse_model(AddressIn, data)
        with atomic(self.db):
            addr = Address(is_default=not user.addresses, **payload.model_dump())
            user.addresses.append(addr)
            self.db.flush()
        return addr

    def update_address(self, ctx: RequestContext, address_id: int, data) -> Address:
        addr = self._owned(ctx, address_id)
        payload = parse_model(AddressIn, data)
        with atomic(self.db):
            for key, value in payload.model_dump().items():
                setattr(addr, key, value)
        return addr

    def delete_address(self, ctx: RequestContext, address_id: int) -> None:
        user = ctx.require_user()
        addr = self._owned(ctx, address_id)
        with atomic(self.db):
            was_default = addr.is_default
            user.addresses.remove(addr)
            self.db.flush()
            if was_default and user.addresses:
                newest = max(user.addresses, key=lambda a: (a.created_at, a.id))
                newest.is_default = True

    def set_default(self, ctx: RequestContext, address_id: int) -> Address:
        user = ctx.require_user()
        addr = self._owned(ctx, address_id)
        with atomic(self.db):
            for a in user.addresses:
                a.is_default = a.id == addr.id
        return addr
