"""
app/promotions/models.py
------------------------
Normalized free-gift promotion values.

These are built from validated platform payloads by the catalog and are
read-only from here on; the platform owns the promotion configuration.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple


NO_VARIANT = 'none'

GiftKey = Tuple[Optional[int], object]   # (product_id, variant_id or NO_VARIANT)


def gift_key(product_id: Optional[int], variant_id: Optional[int]) -> GiftKey:
    """Key of one distinct gift in the entitlement map."""
    return (product_id, variant_id if variant_id else NO_VARIANT)


@dataclass(frozen=True)
class GiftItem:
    """One gift granted per activation. variant_id None = product-level gift."""
    product_id: Optional[int]
    variant_id: Optional[int]
    quantity:   int

    @property
    def key(self) -> GiftKey:
        return gift_key(self.product_id, self.variant_id)


@dataclass(frozen=True)
class GiftPromotion:
    """An enabled promotion that grants at least one free gift."""
    id:               int
    name:             str
    minimum_quantity: int = 1
    apply_once:       bool = False
    gift_items:       Tuple[GiftItem, ...] = field(default_factory=tuple)
    display_name:     Optional[str] = None
    promo_code:       Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'id':               self.id,
            'name':             self.name,
            'display_name':     self.display_name,
            'promo_code':       self.promo_code,
            'minimum_quantity': self.minimum_quantity,
            'apply_once':       self.apply_once,
            'gift_items': [
                {'product_id': g.product_id, 'variant_id': g.variant_id, 'quantity': g.quantity}
                for g in self.gift_items
            ],
        }

    def __repr__(self):
        return f'<GiftPromotion {self.id} {self.name!r} min={self.minimum_quantity} once={self.apply_once}>'
