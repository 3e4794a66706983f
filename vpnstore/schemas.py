"""
Request payload schemas for the JSON API.

Nested bodies (orders, payments, deliveries, products, settings, user edits) are
validated here before they reach the services. Field names arrive camelCased
from the browser and are exposed as snake_case attributes.
"""
from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from vpnstore.errors import ValidationError

OrderStatus = Literal["pending_payment", "payment_submitted", "verified", "completed", "cancelled"]
Category = Literal["Premium", "Standard"]


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid",
                              str_strip_whitespace=True)


class LineItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore",
                              str_strip_whitespace=True)

    id: Union[int, str]
    name: Optional[str] = None
    price: float = Field(..., ge=0)
    duration: Optional[str] = None
    quantity: int = Field(1, ge=1)

    @field_validator("id")
    @classmethod
    def _id_as_text(cls, v):
        v = str(v).strip()
        if not v:
            raise ValueError("item id is required")
        return v


class OrderCreate(_Payload):
    user_id: Optional[Union[int, str]] = None
    items: List[LineItem] = Field(..., min_length=1)
    total: Optional[float] = Field(None, ge=0)


class PaymentSubmit(_Payload):
    order_id: int
    payment_method: str = Field(..., min_length=1, max_length=60)
    transaction_id: str = Field(..., min_length=1, max_length=120)
    sender_name: str = Field(..., min_length=1, max_length=120)
    sender_phone: str = Field(..., min_length=1, max_length=40)
    amount: Optional[float] = Field(None, ge=0)
    payment_screenshot: Optional[str] = Field(None, max_length=500)


class VpnCredentials(_Payload):
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=255)
    server_info: Optional[str] = None
    expiry_date: Optional[datetime] = None


class Delivery(_Payload):
    vpn_credentials: VpnCredentials


class StatusOverride(_Payload):
    status: OrderStatus


class RejectPayment(_Payload):
    reason: Optional[str] = Field(None, max_length=2000)


class AcceptPayment(_Payload):
    notes: Optional[str] = Field(None, max_length=2000)


class VerifyPayment(_Payload):
    payment_id: int
    status: Literal["verified", "approved", "rejected"]
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("status")
    @classmethod
    def _canonical(cls, v):
        # "approved" is an older spelling of the same decision
        return "verified" if v == "approved" else v


class ProductIn(_Payload):
    name: str = Field(..., min_length=1, max_length=200)
    provider: str = Field(..., min_length=1, max_length=120)
    duration: str = Field(..., min_length=1, max_length=60)
    price: float = Field(..., ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    features: List[str] = Field(default_factory=list)
    category: Category = "Standard"
    is_active: bool = True
    stock: int = Field(0, ge=0)
    logo: str = Field("", max_length=500)
    rating: float = Field(5, ge=1, le=5)


class ProductPatch(_Payload):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    provider: Optional[str] = Field(None, min_length=1, max_length=120)
    duration: Optional[str] = Field(None, min_length=1, max_length=60)
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    features: Optional[List[str]] = None
    category: Optional[Category] = None
    is_active: Optional[bool] = None
    stock: Optional[int] = Field(None, ge=0)
    logo: Optional[str] = Field(None, max_length=500)
    rating: Optional[float] = Field(None, ge=1, le=5)


class PaymentMethodEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    logo: str = ""
    number: str = ""
    accountName: str = ""
    phoneNumber: str = ""
    isActive: bool = True


class SettingsPatch(_Payload):
    payment_methods: Optional[List[PaymentMethodEntry]] = None
    site_name: Optional[str] = None
    site_description: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    promo_banner_text: Optional[str] = None
    promo_banner_enabled: Optional[bool] = None
    maintenance_mode: Optional[bool] = None
    hero_title: Optional[str] = None
    hero_subtitle: Optional[str] = None
    features_title: Optional[str] = None
    features_subtitle: Optional[str] = None
    products_title: Optional[str] = None
    products_subtitle: Optional[str] = None
    testimonials_title: Optional[str] = None
    testimonials_subtitle: Optional[str] = None
    about_us_text: Optional[str] = None
    terms_of_service_text: Optional[str] = None
    privacy_policy_text: Optional[str] = None
    refund_policy_text: Optional[str] = None
    faq_content: Optional[str] = None
    footer_text: Optional[str] = None
    social_links: Optional[dict[str, str]] = None


class UserPatch(_Payload):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    email: Optional[str] = Field(None, min_length=3, max_length=320)
    role: Optional[Literal["user", "admin"]] = None
    is_active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        if v is None:
            return v
        v = v.lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("invalid email address")
        return v


class PasswordReset(_Payload):
    new_password: str = Field(..., min_length=6, max_length=200)


class ClearDatabase(_Payload):
    confirmation: str


def _describe(err: PydanticValidationError) -> str:
    parts = []
    for e in err.errors():
        loc = ".".join(str(p) for p in e.get("loc", ()) if p != "__root__")
        parts.append(f"{loc}: {e.get('msg')}" if loc else e.get("msg", "invalid"))
    return "; ".join(parts) or "Invalid request body"


def parse(model, data):
    """Validate ``data`` against ``model`` or raise the API's ValidationError."""
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(_describe(e)) from e


def changed_fields(payload: BaseModel) -> dict:
    """Only the fields the client actually sent, by attribute name."""
    return payload.model_dump(exclude_unset=True)


__all__ = [
    "LineItem", "OrderCreate", "PaymentSubmit", "VpnCredentials", "Delivery", "StatusOverride",
    "RejectPayment", "AcceptPayment", "VerifyPayment", "ProductIn", "ProductPatch",
    "PaymentMethodEntry", "SettingsPatch", "UserPatch", "PasswordReset", "ClearDatabase",
    "parse", "changed_fields",
]
