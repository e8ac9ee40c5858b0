"""Tests for the cart normalizer: entries to priced line items."""

import pytest
from ordering.cart.normalizer import CartEntry, LineItem, normalize
from ordering.catalogue.catalogue import Pack, Product
from ordering.errors import CheckoutRejected, RejectionKind
from protean.exceptions import ValidationError


@pytest.fixture
def mug():
    return Product(name="Engraved Mug", price=1500.0, stock_quantity=3)


@pytest.fixture
def gift_box():
    return Pack(name="Gift Box", price=4000.0)


def _catalogue(*items):
    products = {str(i.id): i for i in items if isinstance(i, Product)}
    packs = {str(i.id): i for i in items if isinstance(i, Pack)}
    return products, packs


class TestNormalize:
    def test_product_entry_captures_name_and_price(self, mug):
        entries = [CartEntry(kind="product", reference_id=str(mug.id), quantity=2)]
        line_items = normalize(entries, *_catalogue(mug))

        assert line_items == [
            LineItem(
                kind="product",
                reference_id=str(mug.id),
                quantity=2,
                unit_price=1500.0,
                name="Engraved Mug",
            )
        ]
        assert line_items[0].line_total == 3000.0

    def test_bundle_entry_uses_pack_price(self, gift_box):
        entries = [CartEntry(kind="bundle", reference_id=str(gift_box.id), quantity=3)]
        line_items = normalize(entries, *_catalogue(gift_box))

        assert line_items[0].unit_price == 4000.0
        assert line_items[0].quantity == 3
        assert not line_items[0].is_product

    def test_mixed_entries_keep_their_order(self, mug, gift_box):
        entries = [
            CartEntry(kind="bundle", reference_id=str(gift_box.id), quantity=1),
            CartEntry(kind="product", reference_id=str(mug.id), quantity=1, variant_selections={"Color": "Red"}),
        ]
        line_items = normalize(entries, *_catalogue(mug, gift_box))

        assert [li.name for li in line_items] == ["Gift Box", "Engraved Mug"]
        assert line_items[1].variant_selections == {"Color": "Red"}

    def test_quantity_is_not_clamped_to_stock(self, mug):
        entries = [CartEntry(kind="product", reference_id=str(mug.id), quantity=50)]
        line_items = normalize(entries, *_catalogue(mug))
        assert line_items[0].quantity == 50

    def test_missing_product_is_rejected(self):
        entries = [CartEntry(kind="product", reference_id="gone", quantity=1)]
        with pytest.raises(CheckoutRejected) as exc:
            normalize(entries, {}, {})
        assert exc.value.kind == RejectionKind.UNAVAILABLE
        assert exc.value.reason == "Product unavailable: gone"

    def test_inactive_pack_is_rejected(self):
        pack = Pack(name="Retired Box", price=100.0, is_active=False)
        entries = [CartEntry(kind="bundle", reference_id=str(pack.id), quantity=1)]
        with pytest.raises(CheckoutRejected) as exc:
            normalize(entries, *_catalogue(pack))
        assert exc.value.reason.startswith("Pack unavailable")

    @pytest.mark.parametrize("quantity", [0, -1, 10_001])
    def test_out_of_range_quantity_is_invalid(self, mug, quantity):
        entries = [CartEntry(kind="product", reference_id=str(mug.id), quantity=quantity)]
        with pytest.raises(ValidationError):
            normalize(entries, *_catalogue(mug))

    def test_unknown_kind_is_invalid(self, mug):
        entries = [CartEntry(kind="voucher", reference_id=str(mug.id), quantity=1)]
        with pytest.raises(ValidationError):
            normalize(entries, *_catalogue(mug))


class TestCartEntry:
    def test_from_dict_defaults_selections(self):
        entry = CartEntry.from_dict({"kind": "product", "reference_id": 42, "quantity": 1})
        assert entry.reference_id == "42"
        assert entry.variant_selections == {}
