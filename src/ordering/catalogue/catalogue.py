"""Catalogue collaborators: the slice of products and packs that checkout reads.

Catalogue management lives elsewhere; the ordering context only needs the
current name, price, availability and (for products) the stock ceiling.
"""

from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering


@ordering.aggregate
class Product:
    name = String(required=True, max_length=255, sanitize=False)
    price = Float(required=True, min_value=0.0)
    stock_quantity = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)

    def commit_stock(self, quantity):
        """Take `quantity` units out of stock for a placed order."""
        if quantity > self.stock_quantity:
            raise ValidationError({"stock_quantity": [f"Insufficient stock for {self.name}"]})
        self.stock_quantity -= quantity


@ordering.aggregate
class Pack:
    """A bundle sold as one unit at its own fixed price. Not stock-tracked."""

    name = String(required=True, max_length=255, sanitize=False)
    price = Float(required=True, min_value=0.0)
    is_active = Boolean(default=True)


def load_catalogue(product_ids, pack_ids):
    """Fetch the referenced products and packs, keyed by id.

    Missing ids are simply absent from the result; the normalizer decides
    what that means.
    """
    products = {}
    if product_ids:
        found = current_domain.repository_for(Product)._dao.query.filter(id__in=list(product_ids)).all().items
        products = {str(p.id): p for p in found}

    packs = {}
    if pack_ids:
        found = current_domain.repository_for(Pack)._dao.query.filter(id__in=list(pack_ids)).all().items
        packs = {str(p.id): p for p in found}

    return products, packs
