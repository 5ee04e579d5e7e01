"""
app/cart/reconcile.py
---------------------
Free-gift reconciliation pass.

Loads one cart snapshot, works out which zero-priced lines the paid lines
still justify, and removes the rest. A line holding more of a gift than the
cart is entitled to is removed whole: there is no quantity-update step in
this flow.

Removals go through a LineItemRemover and are always issued with
skip_validation=True so a removal never starts a nested pass.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from app.cart.models import Cart, split_line_items
from app.platform.errors import PlatformError
from app.promotions.engine import aggregate_qualifying, compute_entitlements, dedupe_promotions
from app.promotions.models import gift_key

logger = logging.getLogger(__name__)


NO_PROMOTIONS_MESSAGE = 'Free gifts removed - qualifying products no longer in cart'


class CartReader(Protocol):
    def get_cart(self, cart_id: str) -> Optional[Cart]: ...


class LineItemRemover(Protocol):
    def remove_item(self, cart_id: str, line_item_id: str, skip_validation: bool = False): ...


@dataclass
class ReconcileResult:
    removed_gift_line_item_ids: List[str] = field(default_factory=list)
    message: Optional[str] = None
    # The platform deleted the cart when the last line went
    cart_deleted: bool = False

    def to_dict(self) -> dict:
        return {
            'removed_gift_line_item_ids': list(self.removed_gift_line_item_ids),
            'message': self.message,
            'cart_deleted': self.cart_deleted,
        }


def removal_message(count: int) -> Optional[str]:
    if count == 0:
        return None
    return f"{count} free gift{'s' if count > 1 else ''} removed due to cart changes"


class CartReconciler:
    def __init__(self, cart_reader: CartReader, catalog, remover: LineItemRemover,
                 lookup_workers: int = 4):
        self.cart_reader    = cart_reader
        self.catalog        = catalog
        self.remover        = remover
        self.lookup_workers = max(1, lookup_workers)

    # ── Steps ─────────────────────────────────────────────────────

    def _load(self, cart_id: str) -> Optional[Cart]:
        try:
            return self.cart_reader.get_cart(cart_id)
        except PlatformError as exc:
            logger.error("Could not load cart %s for gift reconciliation: %s", cart_id, exc)
            return None

    def _lookup(self, product_id: int):
        try:
            return self.catalog.get_promotions_for_product(product_id)
        except Exception:
            logger.exception("Promotion lookup failed for product %s", product_id)
            return None

    def resolve_promotions(self, product_ids: List[int]) -> Dict[int, Optional[list]]:
        """One catalog lookup per paid product, issued concurrently."""
        if not product_ids:
            return {}
        workers = min(self.lookup_workers, len(product_ids))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(self._lookup, product_ids))
        return dict(zip(product_ids, results))

    def _remove(self, cart_id: str, doomed) -> ReconcileResult:
        """Remove each (line, reason) independently, in cart order."""
        result = ReconcileResult()
        for gift, reason in doomed:
            try:
                remaining = self.remover.remove_item(cart_id, gift.line_item_id, skip_validation=True)
            except Exception:
                logger.exception("Failed to remove gift line %s from cart %s", gift.line_item_id, cart_id)
                continue
            result.removed_gift_line_item_ids.append(gift.line_item_id)
            logger.info("Removed gift line %s (%s)", gift.line_item_id, reason)
            if remaining is None:
                logger.info("Cart %s was deleted with its last line", cart_id)
                result.cart_deleted = True
                break
        return result

    # ── Main entry point ──────────────────────────────────────────

    def reconcile(self, cart_id: Optional[str]) -> ReconcileResult:
        if not cart_id:
            return ReconcileResult()

        cart = self._load(cart_id)
        if cart is None:
            return ReconcileResult()

        qualifying_items, gifts = split_line_items(cart.line_items)
        if not gifts:
            logger.debug("Cart %s holds no free gifts", cart_id)
            return ReconcileResult()

        qualifying = aggregate_qualifying(qualifying_items)
        promotions_by_product = self.resolve_promotions(list(qualifying))
        active = dedupe_promotions(promotions_by_product)
        logger.info("Cart %s: %d gift line(s), %d paid product(s), %d active promotion(s)",
                    cart_id, len(gifts), len(qualifying), len(active))

        if not active:
            result = self._remove(cart_id, [(g, 'no qualifying promotion') for g in gifts])
            if result.removed_gift_line_item_ids:
                result.message = NO_PROMOTIONS_MESSAGE
            return result

        allowed = compute_entitlements(qualifying, promotions_by_product)
        logger.debug("Cart %s entitlements: %s", cart_id, allowed)

        doomed = []
        for gift in gifts:
            allowed_qty = allowed.get(gift_key(gift.product_id, gift.variant_id), 0)
            if allowed_qty == 0:
                doomed.append((gift, 'not entitled'))
            elif gift.quantity > allowed_qty:
                logger.warning("Gift line %s holds %d, entitled to %d; removing the line",
                               gift.line_item_id, gift.quantity, allowed_qty)
                doomed.append((gift, 'over entitled quantity'))

        result = self._remove(cart_id, doomed)
        result.message = removal_message(len(result.removed_gift_line_item_ids))
        return result
