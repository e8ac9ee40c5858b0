"""Cart sources: where checkout gets its entries from.

Authenticated shoppers have a server-held `ShoppingCart`; guests and
"buy now" flows hand their entries over with the request. Checkout code talks
to a `CartSource` and never branches on who the shopper is.
"""

from abc import ABC, abstractmethod

from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.normalizer import CartEntry


class CartSource(ABC):
    """Abstract interface for the cart a checkout draws from."""

    @abstractmethod
    def entries(self) -> list[CartEntry]: ...

    @abstractmethod
    def clear(self) -> None:
        """Empty the cart after its entries became an order."""
        ...


class LocalCart(CartSource):
    """Entries held by the caller. Clearing never touches storage."""

    def __init__(self, entries):
        self._entries = list(entries)

    def entries(self) -> list[CartEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries = []


class RemoteCart(CartSource):
    """A persisted `ShoppingCart`, loaded fresh when the source is built."""

    def __init__(self, cart_id):
        self._repo = current_domain.repository_for(ShoppingCart)
        self._cart = self._repo.get(cart_id)

    @property
    def customer_id(self):
        return str(self._cart.customer_id) if self._cart.customer_id else None

    def entries(self) -> list[CartEntry]:
        return self._cart.entries()

    def clear(self) -> None:
        self._cart.clear()
        self._repo.add(self._cart)


def cart_source_for(cart_id=None, entries=None) -> CartSource:
    """Pick the source for a checkout: the stored cart when given, else the local entries."""
    if cart_id:
        return RemoteCart(cart_id)
    return LocalCart(entries or [])
