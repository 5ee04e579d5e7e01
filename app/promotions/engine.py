"""
app/promotions/engine.py
------------------------
Pure-Python free-gift entitlement engine.

Given the paid quantities in a cart and the gift promotions resolved for
each paid product, compute how many of each distinct gift the cart may
hold.

No platform calls happen here. The reconciler decides how to act on the
resulting map.
"""
from __future__ import annotations
from typing import Dict, Iterable, List, Mapping, Optional

from app.promotions.models import GiftKey, GiftPromotion


# ── Inputs ────────────────────────────────────────────────────────

def aggregate_qualifying(items: Iterable) -> Dict[int, int]:
    """Total quantity per paid product id, summed over all paid lines."""
    totals: Dict[int, int] = {}
    for item in items:
        totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
    return totals


def dedupe_promotions(promotions_by_product: Mapping[int, Optional[List[GiftPromotion]]]) -> List[GiftPromotion]:
    """
    Flatten the per-product lists, first occurrence wins. A product whose
    lookup failed (None) contributes nothing.
    """
    seen: Dict[int, GiftPromotion] = {}
    for promos in promotions_by_product.values():
        for promo in promos or []:
            seen.setdefault(promo.id, promo)
    return list(seen.values())


# ── Per-promotion rule ────────────────────────────────────────────

def gifts_allowed(promo: GiftPromotion, qualifying_qty: int) -> int:
    """
    Activations earned by `qualifying_qty` paid units.
    Apply-once: 1 once the threshold is met. Otherwise one per full multiple.
    """
    minimum = max(1, promo.minimum_quantity)
    if promo.apply_once:
        return 1 if qualifying_qty >= minimum else 0
    return qualifying_qty // minimum


# ── Main public function ──────────────────────────────────────────

def compute_entitlements(
    qualifying: Mapping[int, int],
    promotions_by_product: Mapping[int, Optional[List[GiftPromotion]]],
) -> Dict[GiftKey, int]:
    """
    Build the entitlement map {(gift product, gift variant | "none"): max quantity}.

    Each promotion is counted once even when several paid products reach
    it: their quantities are pooled into a single qualifying total. The
    activation count is added per gift item, not multiplied by the gift's
    own quantity.
    """
    allowed: Dict[GiftKey, int] = {}

    for promo in dedupe_promotions(promotions_by_product):
        triggering = [
            product_id
            for product_id, promos in promotions_by_product.items()
            if any(p.id == promo.id for p in promos or [])
        ]
        qualifying_qty = sum(qualifying.get(pid, 0) for pid in triggering)
        if qualifying_qty == 0:
            continue   # stale lookup: no triggering product left in cart

        count = gifts_allowed(promo, qualifying_qty)
        for gift in promo.gift_items:
            allowed[gift.key] = allowed.get(gift.key, 0) + count

    return allowed
