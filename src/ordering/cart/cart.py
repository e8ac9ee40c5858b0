"""Shopping Cart aggregate: the server-held cart of an authenticated shopper.

Guests keep their cart client-side and hand the entries over at checkout;
see `ordering.cart.source` for the two variants behind one interface.
"""

import json
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text

from ordering.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartQuantityUpdated
from ordering.cart.normalizer import MAX_LINE_QUANTITY, CartEntry, LineKind
from ordering.domain import ordering


def _selections_key(selections) -> str:
    return json.dumps(selections or {}, sort_keys=True)


@ordering.entity(part_of="ShoppingCart")
class CartItem:
    kind = String(required=True, choices=LineKind)
    reference_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    variant_selections = Text(sanitize=False)  # JSON: {option name: chosen value}
    added_at = DateTime()

    @property
    def selections(self) -> dict:
        return json.loads(self.variant_selections) if self.variant_selections else {}

    def to_entry(self) -> CartEntry:
        return CartEntry(
            kind=self.kind,
            reference_id=str(self.reference_id),
            quantity=self.quantity,
            variant_selections=self.selections,
        )


@ordering.aggregate
class ShoppingCart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, created_at=now, updated_at=now)

    def find_item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})
        return item

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, kind, reference_id, quantity, variant_selections=None, max_quantity=None):
        """Add a line, merging with an identical one (same reference and selections).

        `max_quantity` is the current stock ceiling for products; the resulting
        line quantity is clamped to it. Packs pass `None` and are unbounded.
        """
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if max_quantity is not None and max_quantity < 1:
            raise ValidationError({"quantity": ["Out of stock"]})

        key = _selections_key(variant_selections)
        existing = next(
            (
                i
                for i in self.items
                if i.kind == kind
                and str(i.reference_id) == str(reference_id)
                and _selections_key(i.selections) == key
            ),
            None,
        )

        ceiling = MAX_LINE_QUANTITY if max_quantity is None else min(max_quantity, MAX_LINE_QUANTITY)
        now = datetime.now(UTC)

        if existing:
            previous = existing.quantity
            existing.quantity = min(previous + quantity, ceiling)
            added = existing.quantity - previous
            item_id = str(existing.id)
        else:
            item = CartItem(
                kind=kind,
                reference_id=reference_id,
                quantity=min(quantity, ceiling),
                variant_selections=key if variant_selections else None,
                added_at=now,
            )
            self.add_items(item)
            added = item.quantity
            item_id = str(item.id)

        self.updated_at = now

        if added:
            self.raise_(
                CartItemAdded(
                    cart_id=str(self.id),
                    item_id=item_id,
                    kind=kind,
                    reference_id=str(reference_id),
                    quantity=added,
                )
            )

    def update_item_quantity(self, item_id, new_quantity, max_quantity=None):
        """Set a line's quantity. Zero or less removes the line.

        Increases are clamped to `max_quantity`; decreases never are.
        """
        item = self.find_item(item_id)
        if new_quantity <= 0:
            self.remove_item(item_id)
            return

        previous_quantity = item.quantity
        if new_quantity > previous_quantity and max_quantity is not None:
            new_quantity = max(min(new_quantity, max_quantity), previous_quantity)
        item.quantity = min(new_quantity, MAX_LINE_QUANTITY)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item_id),
                previous_quantity=previous_quantity,
                new_quantity=item.quantity,
            )
        )

    def remove_item(self, item_id):
        item = self.find_item(item_id)
        self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartItemRemoved(cart_id=str(self.id), item_id=str(item_id)))

    def clear(self):
        """Remove every line."""
        removed = list(self.items)
        for item in removed:
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartCleared(cart_id=str(self.id), items_removed_count=len(removed)))

    def entries(self) -> list[CartEntry]:
        return [item.to_entry() for item in self.items]
