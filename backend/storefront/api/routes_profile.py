from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storefront.api.deps import get_context
from storefront.context import RequestContext
from storefront.db import get_db
from storefront.schemas.address_schema import AddressIn, AddressOut
from storefront.services.profile_service import ProfileService

router = APIRouter(prefix="/api/profile", tags=["profile"])


class ProfileIn(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None


def _address(a) -> dict:
    return AddressOut.model_validate(a).model_dump()


@router.get("")
def get_profile(ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    return ProfileService(db).get_profile(ctx)


@router.patch("")
def update_profile(payload: ProfileIn, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    user = ProfileService(db).update_profile(ctx, name=payload.name, phone=payload.phone)
    return {"success": True, "message": "Profile updated successfully", "user": user}


@router.get("/addresses")
def list_addresses(ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    return [_address(a) for a in ProfileService(db).list_addresses(ctx)]


@router.post("/addresses")
def add_address(payload: AddressIn, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    addr = ProfileService(db).add_address(ctx, payload)
    return {"success": True, "address": _address(addr)}


@router.put("/addresses/{address_id}")
def update_address(
    address_id: int,
    payload: AddressIn,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    addr = ProfileService(db).update_address(ctx, address_id, payload)
    return {"success": True, "address": _address(addr)}


@router.delete("/addresses/{address_id}")
def delete_address(address_id: int, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    ProfileService(db).delete_address(ctx, address_id)
    return {"success": True}


@router.post("/addresses/{address_id}/default")
def set_default_address(address_id: int, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    addr = ProfileService(db).set_default(ctx, address_id)
    return {"success": True, "address": _address(addr)}
