"""Integration tests for the checkout endpoints via TestClient."""

from ordering.catalogue.catalogue import Product
from ordering.coupon.coupon import Coupon
from protean import current_domain


def _body(submission, **overrides):
    return {**submission, **overrides}


class TestCarriersEndpoint:
    def test_lists_carriers_servicing_the_region(self, client, checkout, make_carrier):
        make_carrier(name="Nowhere Express", rates={"16": (0, 0)})

        response = client.get("/checkout/carriers", params={"region_code": "16"})

        assert response.status_code == 200
        assert response.json() == [
            {
                "id": str(checkout["carrier"].id),
                "name": "FastShip",
                "logo_url": None,
                "is_active": True,
                "desk_price": 400,
                "home_price": 600,
            }
        ]

    def test_unknown_region_is_a_bad_request(self, client):
        assert client.get("/checkout/carriers", params={"region_code": "99"}).status_code == 400


class TestCouponValidationEndpoint:
    def test_valid_coupon(self, client, make_coupon):
        make_coupon(code="SAVE10", discount_type="percentage", discount_value=10.0)
        response = client.post("/checkout/coupons/validate", json={"code": "save10", "cart_total": 3000})
        assert response.json() == {"valid": True, "discount_type": "percentage", "discount_value": 10.0}

    def test_unknown_coupon(self, client):
        response = client.post("/checkout/coupons/validate", json={"code": "NOPE", "cart_total": 3000})
        assert response.json() == {"valid": False, "reason": "not found"}


class TestQuoteEndpoint:
    def test_quote_matches_the_persisted_total(self, client, submission, make_coupon):
        make_coupon(code="SAVE10", discount_type="percentage", discount_value=10.0)
        quote = client.post(
            "/checkout/quote",
            json={
                "items": submission["items"],
                "region_code": "16",
                "carrier_id": submission["carrier_id"],
                "delivery_method": "home",
                "coupon_code": "SAVE10",
            },
        ).json()

        assert quote["subtotal"] == 3000
        assert quote["discount_amount"] == 300
        assert quote["shipping_cost"] == 600
        assert quote["total"] == 3300
        assert quote["coupon"]["valid"] is True

        response = client.post("/checkout/orders", json=_body(submission, coupon_code="SAVE10"))
        order = client.get(f"/orders/{response.json()['order_id']}").json()
        assert order["total_amount"] == quote["total"]

    def test_invalid_coupon_is_reported_not_applied(self, client, submission, make_coupon):
        make_coupon(code="BIG", min_spend=10_000.0)
        quote = client.post(
            "/checkout/quote",
            json={
                "items": submission["items"],
                "region_code": "16",
                "carrier_id": submission["carrier_id"],
                "delivery_method": "desk",
                "coupon_code": "BIG",
            },
        ).json()
        assert quote["total"] == 3400
        assert quote["coupon"] == {"valid": False, "reason": "minimum spend not met"}

    def test_missing_rate_is_a_conflict(self, client, submission):
        response = client.post(
            "/checkout/quote",
            json={
                "items": submission["items"],
                "region_code": "01",
                "carrier_id": submission["carrier_id"],
                "delivery_method": "home",
            },
        )
        assert response.status_code == 409
        assert response.json()["error"] == "rate_unavailable"


class TestSubmitEndpoint:
    def test_submit_creates_the_order(self, client, submission, checkout):
        response = client.post("/checkout/orders", json=submission)

        assert response.status_code == 201
        order_id = response.json()["order_id"]
        order = client.get(f"/orders/{order_id}").json()
        assert order["status"] == "pending"
        assert order["delivery"]["contact_name"] == "Amina Benali"
        assert current_domain.repository_for(Product).get(checkout["product"].id).stock_quantity == 8

    def test_validation_error_is_a_bad_request(self, client, submission):
        response = client.post("/checkout/orders", json=_body(submission, phone="123"))
        assert response.status_code == 400

    def test_coupon_rejection_is_a_conflict_with_the_reason(self, client, submission, make_coupon):
        coupon = make_coupon(code="LAUNCH", discount_type="fixed", discount_value=500.0, usage_limit=1)

        assert client.post("/checkout/orders", json=_body(submission, coupon_code="LAUNCH")).status_code == 201
        response = client.post("/checkout/orders", json=_body(submission, coupon_code="LAUNCH"))

        assert response.status_code == 409
        assert response.json() == {"error": "coupon_rejected", "reason": "usage limit reached"}
        assert current_domain.repository_for(Coupon).get(coupon.id).used_count == 1

    def test_resubmission_with_the_same_id(self, client, submission):
        first = client.post("/checkout/orders", json=_body(submission, order_id="web-order-1"))
        second = client.post("/checkout/orders", json=_body(submission, order_id="web-order-1"))

        assert first.json() == second.json() == {"order_id": "web-order-1"}
        assert len(client.get("/orders").json()) == 1
