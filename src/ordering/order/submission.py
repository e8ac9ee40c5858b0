"""Order submission: turning a checkout into a pending order.

Everything the shopper saw on the checkout page is re-checked against the
current state: catalogue prices and availability, stock, the shipping rate
and the coupon. The order, its item snapshots, the coupon redemption, the
stock decrement and clearing the server-held cart all happen in the one unit
of work wrapping the handler; any failure leaves none of them behind.
"""

import json
import threading

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.cart.normalizer import CartEntry, LineKind, normalize
from ordering.cart.source import RemoteCart, cart_source_for
from ordering.catalogue.catalogue import Product, load_catalogue
from ordering.coupon.coupon import Coupon, CouponRejection, normalize_code
from ordering.domain import ordering
from ordering.errors import CheckoutRejected, RejectionKind
from ordering.order.order import Order
from ordering.pricing.engine import Discount, compute_total, stock_shortfalls
from ordering.shipping.regions import COUNTRY, is_known_region, region_name
from ordering.shipping.resolver import DeliveryMethod, available_carrier, load_rate_table

logger = structlog.get_logger(__name__)

# Submissions in this process run one at a time, so the coupon
# check-and-redeem below is never interleaved.
_submission_lock = threading.Lock()


@ordering.command(part_of="Order")
class SubmitOrder:
    order_id = Identifier()  # client-chosen; resubmitting the same id is a no-op
    user_id = Identifier()
    cart_id = Identifier()
    items = Text(sanitize=False)  # JSON: list of cart entries, used when there is no cart_id
    full_name = String(max_length=255, sanitize=False)
    phone = String(max_length=50, sanitize=False)
    region_code = String(max_length=2)
    street = String(max_length=255, sanitize=False)
    carrier_id = Identifier()
    delivery_method = String(max_length=10)
    coupon_code = String(max_length=50)


def _validate_fields(command) -> dict:
    errors = {}
    full_name = (command.full_name or "").strip()
    phone = (command.phone or "").strip()
    street = (command.street or "").strip()

    if not 3 <= len(full_name) <= 100:
        errors["full_name"] = ["Full name must be between 3 and 100 characters"]
    if len(phone) < 9:
        errors["phone"] = ["Phone number must be at least 9 characters"]
    if not command.region_code or not is_known_region(command.region_code):
        errors["region_code"] = ["Please select a valid region"]
    if not command.carrier_id:
        errors["carrier_id"] = ["Please select a shipping company"]
    if command.delivery_method not in (DeliveryMethod.DESK.value, DeliveryMethod.HOME.value):
        errors["delivery_method"] = ["Please select a delivery method"]
    elif command.delivery_method == DeliveryMethod.HOME.value and len(street) < 5:
        errors["street"] = ["Address must be at least 5 characters for home delivery"]
    if not command.cart_id and not command.items:
        errors["items"] = ["Cart is empty"]

    if errors:
        raise ValidationError(errors)

    if command.delivery_method == DeliveryMethod.DESK.value:
        street = f"Desk - {region_name(command.region_code)}"
    return {"full_name": full_name, "phone": phone, "street": street}


def _entries_from(raw) -> list[CartEntry]:
    try:
        rows = json.loads(raw) if isinstance(raw, str) else raw
        return [CartEntry.from_dict(row) for row in rows]
    except (TypeError, KeyError, ValueError):
        raise ValidationError({"items": ["Malformed cart entries"]}) from None


@ordering.command_handler(part_of=Order)
class SubmitOrderHandler:
    @handle(SubmitOrder)
    def submit_order(self, command):
        order_repo = current_domain.repository_for(Order)

        if command.order_id:
            existing = order_repo._dao.query.filter(id=str(command.order_id)).first
            if existing is not None:
                logger.info("order_resubmitted", order_id=str(existing.id))
                return str(existing.id)

        contact = _validate_fields(command)

        cart = cart_source_for(
            cart_id=command.cart_id,
            entries=_entries_from(command.items) if not command.cart_id else None,
        )
        entries = cart.entries()
        if not entries:
            raise ValidationError({"items": ["Cart is empty"]})

        # 1. Lines against the current catalogue, then stock
        products, packs = load_catalogue(
            {e.reference_id for e in entries if e.kind == LineKind.PRODUCT.value},
            {e.reference_id for e in entries if e.kind == LineKind.BUNDLE.value},
        )
        line_items = normalize(entries, products, packs)

        shortfalls = stock_shortfalls(line_items, {pid: p.stock_quantity for pid, p in products.items()})
        if shortfalls:
            raise CheckoutRejected(RejectionKind.STOCK_CONFLICT, f"Insufficient stock for {shortfalls[0].name}")

        # 2. Shipping from the current rate table
        carrier = available_carrier(command.carrier_id)

        table = load_rate_table(command.region_code)
        if not table.services(carrier.id, command.region_code):
            raise CheckoutRejected(
                RejectionKind.RATE_UNAVAILABLE,
                f"{carrier.name} does not deliver to {region_name(command.region_code)}",
            )
        shipping_cost = table.cost_for(carrier.id, command.region_code, command.delivery_method)

        # 3. Coupon against the current subtotal
        subtotal = compute_total(line_items).subtotal
        coupon = None
        discount = None
        if command.coupon_code:
            coupon = current_domain.repository_for(Coupon).find_by_code(command.coupon_code)
            if coupon is None:
                raise CheckoutRejected(RejectionKind.COUPON_REJECTED, CouponRejection.NOT_FOUND.value)
            verdict = coupon.verdict_for(subtotal)
            if not verdict.valid:
                raise CheckoutRejected(RejectionKind.COUPON_REJECTED, verdict.reason)
            discount = Discount.from_verdict(verdict)

        # 4. Total
        breakdown = compute_total(line_items, discount, shipping_cost)

        # 5. Order with its snapshots
        user_id = command.user_id
        if isinstance(cart, RemoteCart):
            user_id = user_id or cart.customer_id

        order = Order.place(
            line_items=line_items,
            breakdown=breakdown,
            shipping_address={
                "street": contact["street"],
                "city": region_name(command.region_code),
                "region_code": command.region_code,
                "country": COUNTRY,
            },
            delivery={
                "carrier_id": str(carrier.id),
                "carrier_name": carrier.name,
                "method": command.delivery_method,
                "contact_name": contact["full_name"],
                "phone": contact["phone"],
                "shipping_cost": shipping_cost,
            },
            user_id=user_id,
            coupon_code=coupon.code if coupon else None,
            order_id=command.order_id,
        )
        order_repo.add(order)

        # 6. Coupon redemption, stock and cart
        if coupon is not None:
            coupon.redeem()
            current_domain.repository_for(Coupon).add(coupon)

        product_repo = current_domain.repository_for(Product)
        committed = {}
        for line in line_items:
            if line.is_product:
                committed[line.reference_id] = committed.get(line.reference_id, 0) + line.quantity
        for product_id, quantity in committed.items():
            product = products[product_id]
            product.commit_stock(quantity)
            product_repo.add(product)

        cart.clear()

        logger.info(
            "order_placed",
            order_id=str(order.id),
            total=breakdown.total,
            items=len(line_items),
            coupon=order.coupon_code,
        )
        return str(order.id)


def place_order(**fields) -> str:
    """Submit a checkout and return the order id.

    Raises:
        ValidationError: A field is missing or malformed.
        CheckoutRejected: Stock, rate or coupon no longer allow the order.
    """
    if fields.get("items") is not None and not isinstance(fields["items"], str):
        fields["items"] = json.dumps(
            [e.to_dict() if isinstance(e, CartEntry) else e for e in fields["items"]]
        )
    if fields.get("coupon_code"):
        fields["coupon_code"] = normalize_code(fields["coupon_code"])

    with _submission_lock:
        try:
            return current_domain.process(SubmitOrder(**fields), asynchronous=False)
        except CheckoutRejected as exc:
            logger.warning("checkout_rejected", kind=exc.kind.value, reason=exc.reason)
            raise
