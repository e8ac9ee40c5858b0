"""Cart normalizer: turns mixed cart entries into priced line items.

Entries reference either a product or a bundle (pack). Normalization looks
up the referenced catalogue entity and captures its current name and price;
that captured pair is what ends up on the order as the item snapshot.

Normalization is pure: catalogue data is fetched by the caller and passed
in. Stored quantities are not re-clamped here; stock re-validation happens
at submission time (see `ordering.pricing.engine.stock_shortfalls`).
"""

from dataclasses import dataclass, field
from enum import Enum

from protean.exceptions import ValidationError

from ordering.errors import CheckoutRejected, RejectionKind

MAX_LINE_QUANTITY = 10_000


class LineKind(Enum):
    PRODUCT = "product"
    BUNDLE = "bundle"


@dataclass(frozen=True)
class CartEntry:
    """An unpriced cart line: what the shopper picked and how many."""

    kind: str
    reference_id: str
    quantity: int
    variant_selections: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "CartEntry":
        return cls(
            kind=data["kind"],
            reference_id=str(data["reference_id"]),
            quantity=data["quantity"],
            variant_selections=dict(data.get("variant_selections") or {}),
        )

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "reference_id": self.reference_id,
            "quantity": self.quantity,
            "variant_selections": dict(self.variant_selections),
        }


@dataclass(frozen=True)
class LineItem:
    """A priced line. For bundles, `quantity` counts whole bundles."""

    kind: str
    reference_id: str
    quantity: int
    unit_price: float
    name: str
    variant_selections: dict = field(default_factory=dict)

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity

    @property
    def is_product(self) -> bool:
        return self.kind == LineKind.PRODUCT.value

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "reference_id": self.reference_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "name": self.name,
            "variant_selections": dict(self.variant_selections),
        }


def _check_entry(entry: CartEntry) -> None:
    if entry.kind not in (LineKind.PRODUCT.value, LineKind.BUNDLE.value):
        raise ValidationError({"kind": [f"Unknown line kind: {entry.kind}"]})
    if not isinstance(entry.quantity, int) or not 1 <= entry.quantity <= MAX_LINE_QUANTITY:
        raise ValidationError({"quantity": ["Invalid quantity"]})


def normalize(entries, products: dict, packs: dict) -> list[LineItem]:
    """Resolve each entry against the fetched catalogue.

    Args:
        entries: Iterable of `CartEntry`.
        products: Products keyed by id.
        packs: Packs keyed by id.

    Raises:
        ValidationError: An entry has an unknown kind or an out-of-range quantity.
        CheckoutRejected: A referenced product or pack is missing or inactive.
    """
    line_items = []
    for entry in entries:
        _check_entry(entry)

        if entry.kind == LineKind.PRODUCT.value:
            source = products.get(entry.reference_id)
            label = "Product"
        else:
            source = packs.get(entry.reference_id)
            label = "Pack"

        if source is None or not source.is_active:
            raise CheckoutRejected(
                RejectionKind.UNAVAILABLE,
                f"{label} unavailable: {entry.reference_id}",
            )

        line_items.append(
            LineItem(
                kind=entry.kind,
                reference_id=entry.reference_id,
                quantity=entry.quantity,
                unit_price=float(source.price),
                name=source.name,
                variant_selections=dict(entry.variant_selections),
            )
        )
    return line_items
