"""
app/cart/actions.py
-------------------
Customer-facing cart operations that can change gift entitlement:
add to cart, remove a line, apply a coupon.

Each runs its own mutation first and reconciles gifts afterwards.
Reconciliation after a mutation is secondary: a fault there is logged and
never fails the mutation that triggered it. An explicit reconcile() lets
faults through. CartActions is the remover handed to its own
reconciler, so removals issued by a pass carry skip_validation=True and
do not recurse.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from app.cart.models import Cart
from app.cart.reconcile import CartReconciler, ReconcileResult
from app.platform.errors import LineItemNotFoundError, CartNotFoundError, PlatformError
from app.platform.signals import cart_updated

logger = logging.getLogger(__name__)


@dataclass
class AddToCartResult:
    cart_id:              Optional[str]
    created:              bool = False
    coupon_applied:       bool = False
    removed_line_item_ids: List[str] = field(default_factory=list)
    reconciliation:       ReconcileResult = field(default_factory=ReconcileResult)

    def to_dict(self) -> dict:
        return {
            'cart_id':               self.cart_id,
            'created':               self.created,
            'coupon_applied':        self.coupon_applied,
            'removed_line_item_ids': list(self.removed_line_item_ids),
            'reconciliation':        self.reconciliation.to_dict(),
        }


class CartActions:
    def __init__(self, client, catalog, lookup_workers: int = 4):
        self.client = client
        self.reconciler = CartReconciler(client, catalog, remover=self,
                                         lookup_workers=lookup_workers)

    def _changed(self, cart_id: str, deleted: bool = False) -> None:
        cart_updated.send(self, cart_id=cart_id, deleted=deleted)

    def reconcile(self, cart_id: Optional[str]) -> ReconcileResult:
        """Run a pass on request. Malformed cart data reaches the caller."""
        result = self.reconciler.reconcile(cart_id)
        if result.removed_gift_line_item_ids:
            logger.warning("Cart %s: removed gifts %s", cart_id, result.removed_gift_line_item_ids)
        return result

    def _reconcile_after_change(self, cart_id: Optional[str]) -> ReconcileResult:
        """Pass following a mutation; any fault is logged and reported as 'nothing removed'."""
        try:
            return self.reconcile(cart_id)
        except Exception:
            logger.exception("Gift reconciliation failed for cart %s", cart_id)
            return ReconcileResult()

    # ── Remove ────────────────────────────────────────────────────

    def remove_item(self, cart_id: Optional[str], line_item_id: Optional[str],
                    skip_validation: bool = False) -> Optional[str]:
        """
        Delete one line. Returns the surviving cart id, or None when the
        platform deleted the cart because its last line went, either here
        or in the gift pass that follows.
        """
        if not cart_id:
            raise CartNotFoundError('Cart not found')
        if not line_item_id:
            raise LineItemNotFoundError('Line item not found')

        remaining = self.client.delete_cart_line_item(cart_id, line_item_id)
        self._changed(cart_id, deleted=remaining is None)

        if not skip_validation and remaining:
            logger.debug("Validating gifts after removing line %s", line_item_id)
            result = self._reconcile_after_change(remaining)
            if result.cart_deleted:
                return None
        return remaining

    # ── Coupon ────────────────────────────────────────────────────

    def apply_coupon(self, cart_id: Optional[str], coupon_code: str) -> ReconcileResult:
        if not cart_id:
            raise CartNotFoundError('Cart not found')
        self.client.apply_checkout_coupon(cart_id, coupon_code)
        self._changed(cart_id)
        return self._reconcile_after_change(cart_id)

    # ── Add ───────────────────────────────────────────────────────

    def _add_or_create(self, cart_id: Optional[str], line_items: List[dict]):
        cart = self.client.get_cart(cart_id) if cart_id else None
        if cart:
            updated = self.client.add_cart_line_items(cart.cart_id, line_items)
            self._changed(updated)
            return updated, False

        new_id = self.client.create_cart(line_items)
        self._changed(new_id)
        return new_id, True

    def _drop_unselected_gifts(self, cart: Cart, product_id: int,
                               gift_product_id: int, gift_variant_id: Optional[int]) -> List[str]:
        """
        Applying a gift coupon adds every gift of the promotion. Keep only
        the one the customer picked; paid lines are never touched.
        """
        removed: List[str] = []
        for item in cart.line_items:
            if not item.is_gift or item.product_id == product_id:
                continue
            selected = (item.product_id == gift_product_id and
                        (not gift_variant_id or item.variant_id == gift_variant_id))
            if selected:
                continue
            try:
                self.remove_item(cart.cart_id, item.line_item_id, skip_validation=True)
            except (PlatformError, LookupError) as exc:
                logger.error("Failed to remove unselected gift %s: %s", item.line_item_id, exc)
                continue
            removed.append(item.line_item_id)
        return removed

    def add_to_cart(self, cart_id: Optional[str], product_id: int, quantity: int,
                    selected_options: Optional[dict] = None, promo_code: Optional[str] = None,
                    gift_product_id: Optional[int] = None,
                    gift_variant_id: Optional[int] = None) -> AddToCartResult:
        line_item = {'productEntityId': product_id, 'quantity': quantity}
        if selected_options:
            line_item['selectedOptions'] = selected_options

        new_cart_id, created = self._add_or_create(cart_id, [line_item])
        result = AddToCartResult(cart_id=new_cart_id, created=created)
        logger.info("Added product %s x%d to cart %s", product_id, quantity, new_cart_id)

        if promo_code:
            try:
                self.client.apply_checkout_coupon(new_cart_id, promo_code)
                self._changed(new_cart_id)
                result.coupon_applied = True
            except PlatformError as exc:
                # Items are already in the cart; the coupon can be applied later
                logger.error("Failed to apply promo code %r to cart %s: %s", promo_code, new_cart_id, exc)

        if result.coupon_applied and gift_product_id:
            cart = self.client.get_cart(new_cart_id)
            if cart:
                result.removed_line_item_ids = self._drop_unselected_gifts(
                    cart, product_id, gift_product_id, gift_variant_id)

        result.reconciliation = self._reconcile_after_change(new_cart_id)
        if result.reconciliation.cart_deleted:
            result.cart_id = None
        return result
