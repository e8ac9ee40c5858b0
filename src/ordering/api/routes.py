"""FastAPI routes for the Ordering domain: carts, checkout, orders and back office."""

import json

from fastapi import APIRouter, FastAPI, Header, Request
from fastapi.responses import JSONResponse, Response
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    ActivityEntryResponse,
    AddToCartRequest,
    BulkStatusRequest,
    BulkStatusResponse,
    CarrierOptionResponse,
    CarrierRequest,
    CarrierResponse,
    CartIdResponse,
    ChangeStatusRequest,
    CorrectAddressRequest,
    CouponRequest,
    CouponResponse,
    CreateCartRequest,
    IdResponse,
    OrderIdResponse,
    OrderResponse,
    QuoteRequest,
    QuoteResponse,
    StatusResponse,
    SubmitOrderRequest,
    TrackOrderRequest,
    UpdateCarrierRequest,
    UpdateCartQuantityRequest,
    UpdateCouponRequest,
    UpsertRatesRequest,
    ValidateCouponRequest,
)
from ordering.audit.activity import ActivityLogEntry
from ordering.cart.cart import ShoppingCart
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from ordering.cart.management import ClearCart, CreateCart
from ordering.cart.normalizer import CartEntry
from ordering.cart.source import cart_source_for
from ordering.coupon.coupon import CLEARABLE_FIELDS, Coupon, validate_coupon
from ordering.coupon.management import CreateCoupon, DeleteCoupon, UpdateCoupon
from ordering.errors import CheckoutRejected
from ordering.order.export import export_orders_csv
from ordering.order.lifecycle import (
    ChangeOrderStatus,
    CorrectShippingAddress,
    DeleteOrder,
    bulk_change_status,
)
from ordering.order.order import Order
from ordering.order.submission import place_order
from ordering.order.tracking import track_order
from ordering.pricing.quote import quote_checkout
from ordering.shipping.carrier import Carrier, ShippingRate
from ordering.shipping.management import CreateCarrier, DeleteCarrier, UpdateCarrier, UpsertShippingRates
from ordering.shipping.regions import is_known_region
from ordering.shipping.resolver import load_rate_table


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------
async def _checkout_rejected_handler(request: Request, exc: CheckoutRejected) -> JSONResponse:
    return JSONResponse(status_code=409, content=exc.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    """Map stale-checkout rejections to 409. Protean's own handlers cover 400/404."""
    app.add_exception_handler(CheckoutRejected, _checkout_rejected_handler)


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------
def _order_response(order) -> OrderResponse:
    pricing = None
    if order.pricing:
        pricing = {
            "subtotal": order.pricing.subtotal,
            "discount_amount": order.pricing.discount_total,
            "shipping_cost": order.pricing.shipping_cost,
            "total": order.pricing.grand_total,
        }
    delivery = None
    if order.delivery:
        delivery = {
            "carrier_id": order.delivery.carrier_id,
            "carrier_name": order.delivery.carrier_name,
            "method": order.delivery.method,
            "contact_name": order.delivery.contact_name,
            "phone": order.delivery.phone,
            "shipping_cost": order.delivery.shipping_cost or 0.0,
        }
    return OrderResponse(
        id=str(order.id),
        user_id=str(order.user_id) if order.user_id else None,
        status=order.status,
        total_amount=order.total_amount,
        pricing=pricing,
        shipping_address=order.shipping_address.to_dict() if order.shipping_address else None,
        delivery=delivery,
        notes=order.notes,
        coupon_code=order.coupon_code,
        items=[
            {
                "kind": item.kind,
                "reference_id": str(item.reference_id),
                "name": item.name,
                "unit_price": item.unit_price,
                "quantity": item.quantity,
                "variant_selections": item.selections,
            }
            for item in order.items
        ],
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _carrier_response(carrier) -> CarrierResponse:
    return CarrierResponse(
        id=str(carrier.id),
        name=carrier.name,
        logo_url=carrier.logo_url,
        is_active=carrier.is_active,
    )


def _coupon_response(coupon) -> CouponResponse:
    return CouponResponse(
        id=str(coupon.id),
        code=coupon.code,
        discount_type=coupon.discount_type,
        discount_value=coupon.discount_value,
        min_spend=coupon.min_spend or 0.0,
        usage_limit=coupon.usage_limit,
        used_count=coupon.used_count,
        expires_at=coupon.expires_at,
        is_active=coupon.is_active,
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.post("", status_code=201, response_model=CartIdResponse)
async def create_cart(body: CreateCartRequest) -> CartIdResponse:
    result = current_domain.process(CreateCart(customer_id=body.customer_id), asynchronous=False)
    return CartIdResponse(cart_id=result)


@cart_router.get("/{cart_id}")
async def get_cart(cart_id: str) -> dict:
    cart = current_domain.repository_for(ShoppingCart).get(cart_id)
    return {
        "cart_id": str(cart.id),
        "customer_id": str(cart.customer_id),
        "items": [{"id": str(item.id), **item.to_entry().to_dict()} for item in cart.items],
    }


@cart_router.post("/{cart_id}/items", response_model=StatusResponse)
async def add_cart_item(cart_id: str, body: AddToCartRequest) -> StatusResponse:
    command = AddToCart(
        cart_id=cart_id,
        kind=body.kind,
        reference_id=body.reference_id,
        quantity=body.quantity,
        variant_selections=json.dumps(body.variant_selections) if body.variant_selections else None,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.put("/{cart_id}/items/{item_id}", response_model=StatusResponse)
async def update_cart_item(cart_id: str, item_id: str, body: UpdateCartQuantityRequest) -> StatusResponse:
    command = UpdateCartQuantity(cart_id=cart_id, item_id=item_id, new_quantity=body.new_quantity)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{cart_id}/items/{item_id}", response_model=StatusResponse)
async def remove_cart_item(cart_id: str, item_id: str) -> StatusResponse:
    current_domain.process(RemoveFromCart(cart_id=cart_id, item_id=item_id), asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{cart_id}/items", response_model=StatusResponse)
async def clear_cart(cart_id: str) -> StatusResponse:
    current_domain.process(ClearCart(cart_id=cart_id), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.get("/carriers", response_model=list[CarrierOptionResponse])
async def carriers_for_region(region_code: str) -> list[CarrierOptionResponse]:
    if not is_known_region(region_code):
        raise ValidationError({"region_code": [f"Unknown region: {region_code}"]})

    table = load_rate_table(region_code)
    carriers = table.carriers_for(region_code, current_domain.repository_for(Carrier).active())
    options = []
    for carrier in carriers:
        quote = table.rate_for(carrier.id, region_code)
        options.append(
            CarrierOptionResponse(
                **_carrier_response(carrier).model_dump(),
                desk_price=quote.desk_price,
                home_price=quote.home_price,
            )
        )
    return options


@checkout_router.post("/coupons/validate")
async def validate_coupon_code(body: ValidateCouponRequest) -> dict:
    return validate_coupon(body.code, body.cart_total).to_dict()


@checkout_router.post("/quote", response_model=QuoteResponse)
async def quote(body: QuoteRequest) -> QuoteResponse:
    source = cart_source_for(
        cart_id=body.cart_id,
        entries=[CartEntry.from_dict(e.model_dump()) for e in body.items],
    )
    result = quote_checkout(
        entries=source.entries(),
        region_code=body.region_code,
        carrier_id=body.carrier_id,
        delivery_method=body.delivery_method,
        coupon_code=body.coupon_code,
    )
    return QuoteResponse(**result.to_dict())


@checkout_router.post("/orders", status_code=201, response_model=OrderIdResponse)
async def submit_order(body: SubmitOrderRequest) -> OrderIdResponse:
    order_id = place_order(
        order_id=body.order_id,
        user_id=body.user_id,
        cart_id=body.cart_id,
        items=[e.model_dump() for e in body.items] if not body.cart_id else None,
        full_name=body.full_name,
        phone=body.phone,
        region_code=body.region_code,
        street=body.street,
        carrier_id=body.carrier_id,
        delivery_method=body.delivery_method,
        coupon_code=body.coupon_code,
    )
    return OrderIdResponse(order_id=order_id)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("", response_model=list[OrderResponse])
async def list_orders(status: str | None = None, limit: int = 100) -> list[OrderResponse]:
    orders = current_domain.repository_for(Order).listing(status=status, limit=limit)
    return [_order_response(order) for order in orders]


@order_router.get("/export.csv")
async def export_orders(status: str | None = None, limit: int = 1000) -> Response:
    orders = current_domain.repository_for(Order).listing(status=status, limit=limit)
    return Response(
        content=export_orders_csv(orders),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="orders.csv"'},
    )


@order_router.post("/track")
async def track(body: TrackOrderRequest) -> dict:
    return track_order(body.order_id, body.phone)


@order_router.post("/bulk/status", response_model=BulkStatusResponse)
async def bulk_status(body: BulkStatusRequest, x_actor_id: str | None = Header(default=None)) -> BulkStatusResponse:
    result = bulk_change_status(body.order_ids, body.status, actor_id=x_actor_id)
    return BulkStatusResponse(**result.to_dict())


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return _order_response(current_domain.repository_for(Order).get(order_id))


@order_router.put("/{order_id}/status", response_model=StatusResponse)
async def change_status(
    order_id: str,
    body: ChangeStatusRequest,
    x_actor_id: str | None = Header(default=None),
) -> StatusResponse:
    command = ChangeOrderStatus(order_id=order_id, status=body.status, actor_id=x_actor_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/address", response_model=StatusResponse)
async def correct_address(
    order_id: str,
    body: CorrectAddressRequest,
    x_actor_id: str | None = Header(default=None),
) -> StatusResponse:
    command = CorrectShippingAddress(
        order_id=order_id,
        street=body.street,
        city=body.city,
        region_code=body.region_code,
        country=body.country,
        actor_id=x_actor_id,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.delete("/{order_id}", response_model=StatusResponse)
async def delete_order(order_id: str, x_actor_id: str | None = Header(default=None)) -> StatusResponse:
    current_domain.process(DeleteOrder(order_id=order_id, actor_id=x_actor_id), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Shipping Admin Router
# ---------------------------------------------------------------------------
shipping_router = APIRouter(prefix="/shipping", tags=["shipping"])


@shipping_router.get("/carriers", response_model=list[CarrierResponse])
async def list_carriers() -> list[CarrierResponse]:
    return [_carrier_response(c) for c in current_domain.repository_for(Carrier).listing()]


@shipping_router.post("/carriers", status_code=201, response_model=IdResponse)
async def create_carrier(body: CarrierRequest, x_actor_id: str | None = Header(default=None)) -> IdResponse:
    command = CreateCarrier(
        name=body.name,
        logo_url=body.logo_url,
        is_active=body.is_active,
        actor_id=x_actor_id,
    )
    return IdResponse(id=current_domain.process(command, asynchronous=False))


@shipping_router.patch("/carriers/{carrier_id}", response_model=StatusResponse)
async def update_carrier(
    carrier_id: str,
    body: UpdateCarrierRequest,
    x_actor_id: str | None = Header(default=None),
) -> StatusResponse:
    command = UpdateCarrier(
        carrier_id=carrier_id,
        name=body.name,
        logo_url=body.logo_url,
        is_active=body.is_active,
        actor_id=x_actor_id,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@shipping_router.delete("/carriers/{carrier_id}", response_model=StatusResponse)
async def delete_carrier(carrier_id: str, x_actor_id: str | None = Header(default=None)) -> StatusResponse:
    current_domain.process(DeleteCarrier(carrier_id=carrier_id, actor_id=x_actor_id), asynchronous=False)
    return StatusResponse()


@shipping_router.get("/carriers/{carrier_id}/rates")
async def carrier_rates(carrier_id: str) -> list[dict]:
    rates = current_domain.repository_for(ShippingRate).for_carrier(carrier_id)
    return [
        {"region_code": r.region_code, "desk_price": r.desk_price, "home_price": r.home_price} for r in rates
    ]


@shipping_router.put("/carriers/{carrier_id}/rates")
async def upsert_rates(
    carrier_id: str,
    body: UpsertRatesRequest,
    x_actor_id: str | None = Header(default=None),
) -> dict:
    command = UpsertShippingRates(
        carrier_id=carrier_id,
        rates=json.dumps([row.model_dump() for row in body.rates]),
        actor_id=x_actor_id,
    )
    return current_domain.process(command, asynchronous=False)


# ---------------------------------------------------------------------------
# Coupon Admin Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.get("", response_model=list[CouponResponse])
async def list_coupons() -> list[CouponResponse]:
    return [_coupon_response(c) for c in current_domain.repository_for(Coupon).listing()]


@coupon_router.post("", status_code=201, response_model=IdResponse)
async def create_coupon(body: CouponRequest, x_actor_id: str | None = Header(default=None)) -> IdResponse:
    command = CreateCoupon(**body.model_dump(exclude_none=True), actor_id=x_actor_id)
    return IdResponse(id=current_domain.process(command, asynchronous=False))


@coupon_router.patch("/{coupon_id}", response_model=StatusResponse)
async def update_coupon(
    coupon_id: str,
    body: UpdateCouponRequest,
    x_actor_id: str | None = Header(default=None),
) -> StatusResponse:
    # An explicit null clears a nullable field; an omitted one is left alone
    sent = body.model_dump(exclude_unset=True)
    command = UpdateCoupon(
        coupon_id=coupon_id,
        **{k: v for k, v in sent.items() if v is not None},
        clear_fields=[k for k in CLEARABLE_FIELDS if k in sent and sent[k] is None],
        actor_id=x_actor_id,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@coupon_router.delete("/{coupon_id}", response_model=StatusResponse)
async def delete_coupon(coupon_id: str, x_actor_id: str | None = Header(default=None)) -> StatusResponse:
    current_domain.process(DeleteCoupon(coupon_id=coupon_id, actor_id=x_actor_id), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Activity Log Router
# ---------------------------------------------------------------------------
activity_router = APIRouter(prefix="/activity", tags=["activity"])


@activity_router.get("", response_model=list[ActivityEntryResponse])
async def list_activity(
    action: str | None = None,
    target_type: str | None = None,
    target_id: str | None = None,
) -> list[ActivityEntryResponse]:
    repo = current_domain.repository_for(ActivityLogEntry)
    if target_type and target_id:
        entries = repo.for_target(target_type, target_id)
    else:
        entries = repo.recent(action=action)
    return [
        ActivityEntryResponse(
            id=str(entry.id),
            actor_user_id=str(entry.actor_user_id) if entry.actor_user_id else None,
            action=entry.action,
            target_type=entry.target_type,
            target_id=str(entry.target_id) if entry.target_id else None,
            details=entry.payload,
            created_at=entry.created_at,
        )
        for entry in entries
    ]
