from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from storefront.errors import ValidationFailed


class ShippingAddress(BaseModel):
    full_name: Optional[str] = Field(None, max_length=255)
    street: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=128)
    state: str = Field(..., min_length=1, max_length=128)
    zip_code: str = Field(..., min_length=1, max_length=32)
    country: str = Field(..., min_length=1, max_length=128)
    phone: Optional[str] = Field(None, max_length=32)


class AddressIn(ShippingAddress):
    full_name: str = Field(..., min_length=2, max_length=255)
    street: str = Field(..., min_length=3, max_length=255)
    city: str = Field(..., min_length=2, max_length=128)
    state: str = Field(..., min_length=2, max_length=128)
    zip_code: str = Field(..., min_length=3, max_length=32)
    country: str = Field(..., min_length=2, max_length=128)
    phone: str = Field(..., min_length=6, max_length=32)
    label: Optional[str] = Field(None, max_length=32)


class AddressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    full_name: Optional[str] = None
    street: str
    city: str
    state: str
    zip_code: str
    country: str
    phone: Optional[str] = None
    label: Optional[str] = None
    is_default: bool


def parse_model(model, data):
    """Validate ``data`` into ``model``, reporting the first problem as ValidationFailed."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ()))
        raise ValidationFailed(f"{field}: {first['msg']}" if field else first["msg"])
