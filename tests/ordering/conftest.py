"""Shared fixtures for the Ordering tests: catalogue, carriers and coupons."""

import pytest
from ordering.catalogue.catalogue import Pack, Product
from ordering.coupon.coupon import Coupon
from ordering.shipping.carrier import Carrier, ShippingRate
from protean import current_domain


@pytest.fixture
def make_product():
    def _make(name="Engraved Mug", price=1500.0, stock_quantity=10, is_active=True):
        product = Product(name=name, price=price, stock_quantity=stock_quantity, is_active=is_active)
        current_domain.repository_for(Product).add(product)
        return product

    return _make


@pytest.fixture
def make_pack():
    def _make(name="Gift Box", price=4000.0, is_active=True):
        pack = Pack(name=name, price=price, is_active=is_active)
        current_domain.repository_for(Pack).add(pack)
        return pack

    return _make


@pytest.fixture
def make_carrier():
    """Create a carrier and its rate rows: rates={region_code: (desk_price, home_price)}."""

    def _make(name="FastShip", rates=None, is_active=True):
        carrier = Carrier.register(name=name, is_active=is_active)
        current_domain.repository_for(Carrier).add(carrier)
        rate_repo = current_domain.repository_for(ShippingRate)
        for region_code, (desk_price, home_price) in (rates or {}).items():
            rate_repo.add(ShippingRate.for_region(carrier.id, region_code, desk_price, home_price))
        return carrier

    return _make


@pytest.fixture
def make_coupon():
    def _make(code="SAVE10", discount_type="percentage", discount_value=10.0, **kwargs):
        coupon = Coupon.issue(code=code, discount_type=discount_type, discount_value=discount_value, **kwargs)
        current_domain.repository_for(Coupon).add(coupon)
        return coupon

    return _make


@pytest.fixture
def checkout(make_product, make_carrier):
    """A product in stock and a carrier delivering to Alger (16) and Oran (31)."""
    product = make_product(name="Engraved Mug", price=1500.0, stock_quantity=10)
    carrier = make_carrier(name="FastShip", rates={"16": (400, 600), "31": (500, 800)})
    return {"product": product, "carrier": carrier}


@pytest.fixture
def submission(checkout):
    """Keyword arguments for a valid guest submission of two mugs to Alger, home delivery."""
    return {
        "items": [{"kind": "product", "reference_id": str(checkout["product"].id), "quantity": 2}],
        "full_name": "Amina Benali",
        "phone": "0555123456",
        "region_code": "16",
        "street": "12 Rue Didouche Mourad",
        "carrier_id": str(checkout["carrier"].id),
        "delivery_method": "home",
    }
