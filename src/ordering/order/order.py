"""Order aggregate: a placed checkout and its back-office lifecycle.

Item snapshots and the total are facts captured at placement. Nothing after
that recomputes them from the catalogue; later price or name edits never
reach an existing order.

Status flow:
    pending → confirmed → processing → shipped → delivered
    any non-terminal status → cancelled

By default back-office operators may move an order to any status (manual
correction is part of the job). Strict mode only allows forward moves and
freezes terminal orders.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.domain import ordering
from ordering.order.events import OrderAddressCorrected, OrderPlaced, OrderStatusChanged
from ordering.order.notes import parse_delivery_note, render_delivery_note


class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

_FORWARD_TRANSITIONS = {
    OrderStatus.PENDING: {
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.CONFIRMED: {
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class ShippingAddress:
    street = String(required=True, max_length=255, sanitize=False)
    city = String(required=True, max_length=100, sanitize=False)
    region_code = String(required=True, max_length=2)
    country = String(required=True, max_length=100, sanitize=False)

    def to_dict(self) -> dict:
        return {
            "street": self.street,
            "city": self.city,
            "region_code": self.region_code,
            "country": self.country,
        }


@ordering.value_object(part_of="Order")
class OrderPricing:
    """The breakdown shown to the shopper when the order was placed."""

    subtotal = Float(default=0.0)
    discount_total = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    grand_total = Float(default=0.0)


@ordering.value_object(part_of="Order")
class DeliveryDetails:
    carrier_id = Identifier()
    carrier_name = String(max_length=100, sanitize=False)
    method = String(max_length=10)  # desk | home
    contact_name = String(max_length=100, sanitize=False)
    phone = String(max_length=30, sanitize=False)
    shipping_cost = Float(default=0.0)

    def to_note(self) -> str:
        return render_delivery_note(
            delivery_method=self.method,
            carrier_name=self.carrier_name,
            contact_name=self.contact_name,
            phone=self.phone,
            shipping_cost=self.shipping_cost or 0,
        )


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """Snapshot of a purchased line: what it was called and cost at the time."""

    kind = String(required=True, max_length=10)
    reference_id = Identifier(required=True)
    name = String(required=True, max_length=255, sanitize=False)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    variant_selections = Text(sanitize=False)  # JSON: {option name: chosen value}

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity

    @property
    def selections(self) -> dict:
        return json.loads(self.variant_selections) if self.variant_selections else {}


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    user_id = Identifier()  # None for guest checkouts
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    total_amount = Float(required=True, min_value=0.0)
    pricing = ValueObject(OrderPricing)
    shipping_address = ValueObject(ShippingAddress)
    delivery = ValueObject(DeliveryDetails)
    notes = Text(sanitize=False)
    coupon_code = String(max_length=50)
    items = HasMany(OrderItem)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def place(
        cls,
        line_items,
        breakdown,
        shipping_address: dict,
        delivery: dict,
        user_id=None,
        coupon_code=None,
        order_id=None,
    ):
        """Build a pending order from priced lines and the computed breakdown.

        Args:
            line_items: Normalized `LineItem`s; each becomes an `OrderItem` snapshot.
            breakdown: The `PriceBreakdown` from the pricing engine.
            shipping_address: Dict with street, city, region_code, country.
            delivery: Dict with carrier_id, carrier_name, method, contact_name,
                phone, shipping_cost.
            order_id: Client-chosen identity, if any.
        """
        now = datetime.now(UTC)
        details = DeliveryDetails(**delivery)
        attributes = dict(
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            total_amount=breakdown.total,
            pricing=OrderPricing(
                subtotal=breakdown.subtotal,
                discount_total=breakdown.discount_amount,
                shipping_cost=breakdown.shipping_cost,
                grand_total=breakdown.total,
            ),
            shipping_address=ShippingAddress(**shipping_address),
            delivery=details,
            notes=details.to_note(),
            coupon_code=coupon_code,
            created_at=now,
            updated_at=now,
        )
        if order_id:
            attributes["id"] = order_id
        order = cls(**attributes)

        for line in line_items:
            order.add_items(
                OrderItem(
                    kind=line.kind,
                    reference_id=line.reference_id,
                    name=line.name,
                    unit_price=line.unit_price,
                    quantity=line.quantity,
                    variant_selections=json.dumps(line.variant_selections) if line.variant_selections else None,
                )
            )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                user_id=str(user_id) if user_id else None,
                item_count=len(line_items),
                total_amount=order.total_amount,
                shipping_cost=breakdown.shipping_cost,
                coupon_code=coupon_code,
                carrier_id=details.carrier_id,
                region_code=shipping_address.get("region_code"),
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def change_status(self, new_status, strict=False):
        """Move to `new_status` and return the status the order had before.

        Re-applying the current status is accepted in both modes.
        """
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown status: {new_status}"]}) from None

        current = OrderStatus(self.status)
        if strict and target != current and target not in _FORWARD_TRANSITIONS[current]:
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target.value}"]})

        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                old_status=current.value,
                new_status=target.value,
                changed_at=now,
            )
        )
        return current.value

    def correct_address(self, street=None, city=None, region_code=None, country=None):
        """Replace the given address parts. Returns (previous, new) as dicts."""
        previous = self.shipping_address.to_dict() if self.shipping_address else {}
        updated = {
            "street": street if street is not None else previous.get("street"),
            "city": city if city is not None else previous.get("city"),
            "region_code": region_code if region_code is not None else previous.get("region_code"),
            "country": country if country is not None else previous.get("country"),
        }
        self.shipping_address = ShippingAddress(**updated)
        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            OrderAddressCorrected(
                order_id=str(self.id),
                previous_address=json.dumps(previous),
                new_address=json.dumps(updated),
                corrected_at=now,
            )
        )
        return previous, updated

    # -------------------------------------------------------------------
    # Contact details
    # -------------------------------------------------------------------
    def contact(self) -> tuple[str | None, str | None]:
        """(name, phone) from the delivery details, falling back to the legacy note."""
        if self.delivery and (self.delivery.contact_name or self.delivery.phone):
            return self.delivery.contact_name, self.delivery.phone
        parsed = parse_delivery_note(self.notes)
        if parsed is None:
            return None, None
        return parsed.contact_name, parsed.phone


@ordering.repository(part_of=Order)
class OrderRepository:
    def listing(self, status=None, limit=100):
        query = self._dao.query
        if status:
            query = query.filter(status=status)
        return query.order_by("-created_at").limit(limit).all().items
