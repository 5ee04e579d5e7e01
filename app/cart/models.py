"""
app/cart/models.py
------------------
Read-only cart snapshot as returned by the storefront GraphQL API.

A zero-priced line is a gift candidate; any positive price makes it a
qualifying (paid) line that counts toward promotion thresholds.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple


ZERO = Decimal('0')


@dataclass(frozen=True)
class CartLineItem:
    line_item_id:        str
    product_id:          int
    variant_id:          Optional[int]
    quantity:            int
    extended_sale_price: Decimal
    name:                str = ''

    @property
    def is_gift(self) -> bool:
        return self.extended_sale_price == ZERO

    @classmethod
    def from_graphql(cls, node: dict) -> 'CartLineItem':
        # Prices arrive as JSON floats; go through str to keep Decimal exact
        price = node.get('extendedSalePrice') or {}
        return cls(
            line_item_id=str(node['entityId']),
            product_id=int(node['productEntityId']),
            variant_id=node.get('variantEntityId'),
            quantity=int(node['quantity']),
            extended_sale_price=Decimal(str(price.get('value') or 0)),
            name=node.get('name') or '',
        )


@dataclass
class Cart:
    cart_id:        str
    physical_items: List[CartLineItem] = field(default_factory=list)
    digital_items:  List[CartLineItem] = field(default_factory=list)

    @property
    def line_items(self) -> List[CartLineItem]:
        return [*self.physical_items, *self.digital_items]

    @classmethod
    def from_graphql(cls, node: dict) -> 'Cart':
        line_items = node.get('lineItems') or {}
        return cls(
            cart_id=str(node['entityId']),
            physical_items=[CartLineItem.from_graphql(i) for i in line_items.get('physicalItems') or []],
            digital_items=[CartLineItem.from_graphql(i) for i in line_items.get('digitalItems') or []],
        )


def split_line_items(items) -> Tuple[List[CartLineItem], List[CartLineItem]]:
    """
    Partition line items into (qualifying, gift_candidates).

    Raises ValueError for a negative price: such a cart cannot be
    partitioned and the pass must not guess.
    """
    qualifying: List[CartLineItem] = []
    gifts:      List[CartLineItem] = []
    for item in items:
        if item.extended_sale_price < ZERO:
            raise ValueError(
                f"Line item {item.line_item_id} has a negative price "
                f"({item.extended_sale_price})"
            )
        if item.is_gift:
            gifts.append(item)
        else:
            qualifying.append(item)
    return qualifying, gifts
