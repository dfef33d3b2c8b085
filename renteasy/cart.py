"""Cart flattening.

Clients send the cart as a nested mapping ``{shop_name: {item_name: {"qty": n, "price": p}}}``. Orders store it as a
flat list of line items plus a total.
"""

from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from renteasy.types import CartEntry, LineItem


@dataclass
class FlattenedCart:
    items: List[LineItem] = field(default_factory=list)
    total: float = 0.0
    shops: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def primary_shop(self) -> Optional[str]:
        """The first shop that contributed a line item."""
        return self.shops[0] if self.shops else None


def flatten_cart(cart: Mapping[str, Mapping[str, CartEntry]]) -> FlattenedCart:
    """Turn the nested cart into line items, skipping entries whose quantity is not positive.

    Iteration follows the cart's insertion order, so line items appear in the order the client listed them.
    The total is rounded to two decimal places.
    """
    result = FlattenedCart()
    running_total = 0.0

    for shop, entries in cart.items():
        contributed = False
        for item_name, entry in (entries or {}).items():
            if entry.qty <= 0:
                continue
            result.items.append(LineItem(name=item_name, price=entry.price, quantity=entry.qty))
            running_total += entry.qty * entry.price
            contributed = True
        if contributed:
            result.shops.append(shop)

    result.total = round(running_total, 2)
    return result
