"""BDD tests for coupon usage limits at submission and bulk status updates."""

from ordering.audit.activity import ActivityLogEntry
from ordering.cart.normalizer import CartEntry
from ordering.coupon.coupon import Coupon, validate_coupon
from ordering.errors import CheckoutRejected
from ordering.order.lifecycle import DeleteOrder, bulk_change_status
from ordering.order.submission import place_order
from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when


scenarios("features/order_fulfillment.feature")


def _submit(context, contact, coupon_code=None):
    return place_order(
        items=context["cart"],
        region_code="16",
        carrier_id=str(context["carriers"]["FastShip"].id),
        delivery_method="home",
        coupon_code=coupon_code,
        **contact,
    )


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the coupon "{code}" is valid for both shoppers'))
def coupon_valid_for_both(code):
    assert validate_coupon(code, 1500).valid
    assert validate_coupon(code, 1500).valid


@given(parsers.cfparse("{count:d} placed orders"))
def placed_orders(context, contact, count):
    product = context["products"]["Engraved Mug"]
    context["cart"] = [CartEntry(kind="product", reference_id=str(product.id), quantity=1)]
    context["order_ids"] = [_submit(context, contact) for _ in range(count)]


@given(parsers.cfparse("{count:d} of those orders were deleted"))
def orders_deleted(context, count):
    for order_id in context["order_ids"][:count]:
        current_domain.process(DeleteOrder(order_id=order_id, actor_id="admin-001"), asynchronous=False)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('two shoppers submit with coupon "{code}"'))
def two_shoppers_submit(context, contact, code):
    for _ in range(2):
        try:
            _submit(context, contact, coupon_code=code)
            context["outcomes"].append("placed")
        except CheckoutRejected as exc:
            context["outcomes"].append(exc.reason)


@when(parsers.cfparse('an operator bulk-sets the orders to "{status}"'))
def bulk_set(context, status):
    context["bulk"] = bulk_change_status(context["order_ids"], status, actor_id="admin-001")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("{count:d} order is placed"))
def orders_placed(context, count):
    assert context["outcomes"].count("placed") == count


@then(parsers.cfparse('{count:d} submission is rejected with reason "{reason}"'))
def submissions_rejected(context, count, reason):
    assert context["outcomes"].count(reason) == count


@then(parsers.cfparse('the coupon "{code}" has been used {count:d} time'))
def coupon_used(code, count):
    assert current_domain.repository_for(Coupon).find_by_code(code).used_count == count


@then(parsers.cfparse("{succeeded:d} orders succeed and {failed:d} fail"))
def bulk_outcome(context, succeeded, failed):
    assert len(context["bulk"].succeeded) == succeeded
    assert len(context["bulk"].failed) == failed


@then(parsers.cfparse('there are {count:d} "{action}" activity entries'))
def activity_entries(count, action):
    assert len(current_domain.repository_for(ActivityLogEntry).recent(action=action)) == count
