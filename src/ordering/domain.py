"""Ordering bounded context: checkout pricing and order fulfillment.

Covers carts, the carrier/region rate table, coupons, the transactional
order submission and the back-office order lifecycle with its activity log.
"""

from protean.domain import Domain

ordering = Domain(name="ordering")
