"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer): separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CartEntrySchema(BaseModel):
    kind: str = Field(pattern="^(product|bundle)$")
    reference_id: str
    quantity: int = Field(ge=1, le=10_000)
    variant_selections: dict[str, str] = Field(default_factory=dict)


class PriceBreakdownSchema(BaseModel):
    subtotal: float
    discount_amount: float
    shipping_cost: float
    total: float


class AddressSchema(BaseModel):
    street: str
    city: str
    region_code: str
    country: str


class OrderItemSchema(BaseModel):
    kind: str
    reference_id: str
    name: str
    unit_price: float
    quantity: int
    variant_selections: dict = Field(default_factory=dict)


class DeliverySchema(BaseModel):
    carrier_id: str | None = None
    carrier_name: str | None = None
    method: str | None = None
    contact_name: str | None = None
    phone: str | None = None
    shipping_cost: float = 0.0


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class CreateCartRequest(BaseModel):
    customer_id: str

    model_config = {"json_schema_extra": {"examples": [{"customer_id": "cust-001"}]}}


class AddToCartRequest(BaseModel):
    kind: str = Field(pattern="^(product|bundle)$", default="product")
    reference_id: str
    quantity: int = Field(ge=1, default=1)
    variant_selections: dict[str, str] = Field(default_factory=dict)


class UpdateCartQuantityRequest(BaseModel):
    new_quantity: int


# ---------------------------------------------------------------------------
# Checkout Request Schemas
# ---------------------------------------------------------------------------
class ValidateCouponRequest(BaseModel):
    code: str
    cart_total: float = Field(ge=0)


class QuoteRequest(BaseModel):
    cart_id: str | None = None
    items: list[CartEntrySchema] = Field(default_factory=list)
    region_code: str
    carrier_id: str
    delivery_method: str = Field(pattern="^(desk|home)$")
    coupon_code: str | None = None


class SubmitOrderRequest(BaseModel):
    order_id: str | None = None
    user_id: str | None = None
    cart_id: str | None = None
    items: list[CartEntrySchema] = Field(default_factory=list)
    full_name: str
    phone: str
    region_code: str
    street: str | None = None
    carrier_id: str | None = None
    delivery_method: str | None = None
    coupon_code: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"kind": "product", "reference_id": "prod-001", "quantity": 2}],
                    "full_name": "Amina Benali",
                    "phone": "0555123456",
                    "region_code": "16",
                    "street": "12 Rue Didouche Mourad",
                    "carrier_id": "carrier-001",
                    "delivery_method": "home",
                    "coupon_code": "LAUNCH",
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class ChangeStatusRequest(BaseModel):
    status: str


class BulkStatusRequest(BaseModel):
    order_ids: list[str] = Field(min_length=1)
    status: str


class CorrectAddressRequest(BaseModel):
    street: str | None = None
    city: str | None = None
    region_code: str | None = None
    country: str | None = None


class TrackOrderRequest(BaseModel):
    order_id: str
    phone: str


# ---------------------------------------------------------------------------
# Shipping / Coupon admin Request Schemas
# ---------------------------------------------------------------------------
class CarrierRequest(BaseModel):
    name: str
    logo_url: str | None = None
    is_active: bool = True


class UpdateCarrierRequest(BaseModel):
    name: str | None = None
    logo_url: str | None = None
    is_active: bool | None = None


class RateRowSchema(BaseModel):
    region_code: str
    desk_price: int = Field(ge=0, default=0)
    home_price: int = Field(ge=0, default=0)


class UpsertRatesRequest(BaseModel):
    rates: list[RateRowSchema]


class CouponRequest(BaseModel):
    code: str
    discount_type: str = Field(pattern="^(fixed|percentage)$")
    discount_value: float = Field(ge=0)
    min_spend: float = Field(ge=0, default=0.0)
    usage_limit: int | None = Field(ge=0, default=None)
    expires_at: datetime | None = None
    is_active: bool = True


class UpdateCouponRequest(BaseModel):
    code: str | None = None
    discount_type: str | None = Field(pattern="^(fixed|percentage)$", default=None)
    discount_value: float | None = Field(ge=0, default=None)
    min_spend: float | None = Field(ge=0, default=None)
    usage_limit: int | None = Field(ge=0, default=None)
    expires_at: datetime | None = None
    is_active: bool | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartIdResponse(BaseModel):
    cart_id: str


class OrderIdResponse(BaseModel):
    order_id: str


class IdResponse(BaseModel):
    id: str


class StatusResponse(BaseModel):
    status: str = "ok"


class CarrierResponse(BaseModel):
    id: str
    name: str
    logo_url: str | None = None
    is_active: bool


class CarrierOptionResponse(CarrierResponse):
    desk_price: int
    home_price: int


class QuoteResponse(PriceBreakdownSchema):
    coupon: dict | None = None


class OrderResponse(BaseModel):
    id: str
    user_id: str | None = None
    status: str
    total_amount: float
    pricing: PriceBreakdownSchema | None = None
    shipping_address: AddressSchema | None = None
    delivery: DeliverySchema | None = None
    notes: str | None = None
    coupon_code: str | None = None
    items: list[OrderItemSchema]
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BulkStatusResponse(BaseModel):
    succeeded: list[str]
    failed: dict[str, str]
    succeeded_count: int
    failed_count: int


class CouponResponse(BaseModel):
    id: str
    code: str
    discount_type: str
    discount_value: float
    min_spend: float
    usage_limit: int | None = None
    used_count: int
    expires_at: datetime | None = None
    is_active: bool


class ActivityEntryResponse(BaseModel):
    id: str
    actor_user_id: str | None = None
    action: str
    target_type: str
    target_id: str | None = None
    details: dict
    created_at: datetime | None = None
