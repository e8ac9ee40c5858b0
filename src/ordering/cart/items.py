"""Cart item management: commands and handler.

Product lines are clamped to the product's current stock whenever they are
added or increased. Pack lines are unbounded.
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.normalizer import LineKind
from ordering.catalogue.catalogue import Pack, Product
from ordering.domain import ordering


@ordering.command(part_of="ShoppingCart")
class AddToCart:
    cart_id = Identifier(required=True)
    kind = String(required=True, choices=LineKind)
    reference_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    variant_selections = Text(sanitize=False)  # JSON: {option name: chosen value}


@ordering.command(part_of="ShoppingCart")
class UpdateCartQuantity:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    new_quantity = Integer(required=True)


@ordering.command(part_of="ShoppingCart")
class RemoveFromCart:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)


def _stock_ceiling(kind, reference_id):
    """Current stock for a product line, None for packs."""
    if kind == LineKind.BUNDLE.value:
        pack = current_domain.repository_for(Pack).get(reference_id)
        if not pack.is_active:
            raise ValidationError({"reference_id": ["Pack is not available"]})
        return None

    product = current_domain.repository_for(Product).get(reference_id)
    if not product.is_active:
        raise ValidationError({"reference_id": ["Product is not available"]})
    return product.stock_quantity


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.add_item(
            kind=command.kind,
            reference_id=command.reference_id,
            quantity=command.quantity,
            variant_selections=json.loads(command.variant_selections) if command.variant_selections else None,
            max_quantity=_stock_ceiling(command.kind, command.reference_id),
        )
        repo.add(cart)

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        item = cart.find_item(command.item_id)
        max_quantity = None
        if command.new_quantity > 0:
            max_quantity = _stock_ceiling(item.kind, item.reference_id)
        cart.update_item_quantity(
            item_id=command.item_id,
            new_quantity=command.new_quantity,
            max_quantity=max_quantity,
        )
        repo.add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.remove_item(item_id=command.item_id)
        repo.add(cart)
