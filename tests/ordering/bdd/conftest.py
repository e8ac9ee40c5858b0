"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.cart.normalizer import CartEntry
from ordering.catalogue.catalogue import Product
from ordering.coupon.coupon import Coupon
from ordering.shipping.carrier import Carrier, ShippingRate
from protean import current_domain
from pytest_bdd import given, parsers


@pytest.fixture
def context():
    """Mutable scenario state shared between steps."""
    return {"products": {}, "carriers": {}, "cart": [], "outcomes": []}


@pytest.fixture
def contact():
    """Valid shopper contact fields for a home-delivered submission."""
    return {
        "full_name": "Amina Benali",
        "phone": "0555123456",
        "street": "12 Rue Didouche Mourad",
    }


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced {price:d} with {stock:d} in stock'))
def product_in_stock(context, name, price, stock):
    product = Product(name=name, price=float(price), stock_quantity=stock)
    current_domain.repository_for(Product).add(product)
    context["products"][name] = product


@given(parsers.cfparse('the carrier "{name}" charges {desk:d} desk and {home:d} home in region "{region}"'))
def carrier_with_rate(context, name, desk, home, region):
    carrier = Carrier.register(name=name)
    current_domain.repository_for(Carrier).add(carrier)
    current_domain.repository_for(ShippingRate).add(ShippingRate.for_region(carrier.id, region, desk, home))
    context["carriers"][name] = carrier


@given(parsers.cfparse('a percentage coupon "{code}" worth {value:d} with a minimum spend of {min_spend:d}'))
def percentage_coupon(code, value, min_spend):
    coupon = Coupon.issue(code=code, discount_type="percentage", discount_value=float(value), min_spend=float(min_spend))
    current_domain.repository_for(Coupon).add(coupon)


@given(parsers.cfparse('a fixed coupon "{code}" worth {value:d} limited to {limit:d} use'))
def fixed_coupon_with_limit(code, value, limit):
    coupon = Coupon.issue(code=code, discount_type="fixed", discount_value=float(value), usage_limit=limit)
    current_domain.repository_for(Coupon).add(coupon)


@given(parsers.cfparse('the cart holds {quantity:d} "{name}"'))
def cart_holds(context, quantity, name):
    product = context["products"][name]
    context["cart"].append(CartEntry(kind="product", reference_id=str(product.id), quantity=quantity))
