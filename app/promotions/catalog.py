"""
app/promotions/catalog.py
-------------------------
Promotion catalog reader: which enabled free-gift promotions apply to a
paid product.

`get_promotions_for_product` returns [] when nothing applies and None when
the catalog could not be read (platform failure, timeout, payload that
fails validation). Callers treat None as "no promotion applies"; a gift is
a soft enhancement and never blocks checkout.
"""
from __future__ import annotations

import logging
from typing import List, Optional

import requests
from pydantic import ValidationError

from app.platform.errors import PlatformError
from app.promotions.models import GiftItem, GiftPromotion
from app.promotions.schemas import (
    CouponCodesResponse, PromotionPayload, PromotionsResponse,
)

logger = logging.getLogger(__name__)


COUPON_REDEMPTION = 'COUPON'


# ── Filtering ─────────────────────────────────────────────────────

def is_gift_promotion(promo: PromotionPayload) -> bool:
    """Enabled, and at least one rule grants a gift item."""
    return promo.status == 'ENABLED' and bool(promo.gift_rules)


def applies_to_product(promo: PromotionPayload, product_id: int) -> bool:
    """
    True if any rule lists `product_id` among its qualifying products, or
    if a rule has no product condition but grants a gift item (treated as
    applying broadly).
    """
    for rule in promo.rules:
        products = rule.condition_products
        if products:
            if product_id in products:
                return True
        elif rule.gift_item is not None:
            return True
    return False


def to_gift_promotion(promo: PromotionPayload, promo_code: Optional[str] = None) -> GiftPromotion:
    """Normalize a validated payload. Threshold and apply-once come from the first gift rule."""
    first = promo.gift_rules[0]
    return GiftPromotion(
        id=promo.id,
        name=promo.name,
        display_name=promo.display_name,
        promo_code=promo_code if promo_code is not None else promo.display_name,
        minimum_quantity=max(1, first.minimum_quantity or 1),
        apply_once=bool(first.apply_once),
        gift_items=tuple(
            GiftItem(
                product_id=rule.gift_item.product_id,
                variant_id=rule.gift_item.variant_id,
                quantity=rule.gift_item.quantity,
            )
            for rule in promo.gift_rules
        ),
    )


# ── Reader ────────────────────────────────────────────────────────

class PromotionCatalog:
    """Reads promotions fresh from the platform on every lookup."""

    def __init__(self, client):
        self.client = client

    def _fetch_gift_promotions(self) -> Optional[List[PromotionPayload]]:
        try:
            raw = self.client.fetch_promotions()
            parsed = PromotionsResponse.model_validate(raw)
        except ValidationError as exc:
            logger.error("Promotions response failed validation: %s", exc)
            return None
        except (PlatformError, requests.RequestException) as exc:
            logger.error("Could not fetch promotions: %s", exc)
            return None

        logger.debug("Fetched %d promotions", len(parsed.data))
        return [p for p in parsed.data if is_gift_promotion(p)]

    def fetch_coupon_code(self, promotion_id: int) -> Optional[str]:
        """First coupon code of a COUPON promotion, or None. Never raises."""
        try:
            raw = self.client.fetch_promotion_codes(promotion_id)
            parsed = CouponCodesResponse.model_validate(raw)
        except (ValidationError, PlatformError, requests.RequestException) as exc:
            logger.warning("Could not fetch coupon codes for promotion %s: %s", promotion_id, exc)
            return None
        return parsed.data[0].code if parsed.data else None

    def _normalize(self, promo: PromotionPayload) -> GiftPromotion:
        code = None
        if promo.redemption_type == COUPON_REDEMPTION:
            code = self.fetch_coupon_code(promo.id)
        return to_gift_promotion(promo, promo_code=code)

    def get_promotions_for_product(self, product_id: int) -> Optional[List[GiftPromotion]]:
        promos = self._fetch_gift_promotions()
        if promos is None:
            return None

        matching = [p for p in promos if applies_to_product(p, product_id)]
        logger.info("Product %s: %d gift promotion(s) apply", product_id, len(matching))
        return [self._normalize(p) for p in matching]

    def get_gift_promotions(self) -> Optional[List[GiftPromotion]]:
        """All enabled gift promotions, without product filtering."""
        promos = self._fetch_gift_promotions()
        if promos is None:
            return None
        return [self._normalize(p) for p in promos]
