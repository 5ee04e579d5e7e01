"""
app/promotions/schemas.py
-------------------------
Strict contracts for the platform's promotion payloads.

Responses are validated here, at the ingestion boundary; anything that does
not fit raises pydantic.ValidationError and never reaches the calculator.
Unknown keys are ignored.
"""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


PromotionStatus = Literal['ENABLED', 'DISABLED', 'EXPIRED']


class GiftItemPayload(BaseModel):
    product_id: Optional[int] = None
    variant_id: Optional[int] = None
    quantity:   int


class RuleActionPayload(BaseModel):
    gift_item: Optional[GiftItemPayload] = None


class CartItemsConditionPayload(BaseModel):
    products: Optional[List[int]] = None


class CartConditionPayload(BaseModel):
    items:            Optional[CartItemsConditionPayload] = None
    minimum_quantity: Optional[int] = None


class RuleConditionPayload(BaseModel):
    cart: Optional[CartConditionPayload] = None


class PromotionRulePayload(BaseModel):
    action:     Optional[RuleActionPayload] = None
    apply_once: Optional[bool] = None
    condition:  Optional[RuleConditionPayload] = None

    @property
    def gift_item(self) -> Optional[GiftItemPayload]:
        return self.action.gift_item if self.action else None

    @property
    def condition_products(self) -> List[int]:
        cart = self.condition.cart if self.condition else None
        items = cart.items if cart else None
        return list(items.products or []) if items else []

    @property
    def minimum_quantity(self) -> Optional[int]:
        cart = self.condition.cart if self.condition else None
        return cart.minimum_quantity if cart else None


class PromotionPayload(BaseModel):
    id:              int
    name:            str
    status:          PromotionStatus
    redemption_type: Optional[str] = None
    coupon_type:     Optional[str] = None
    display_name:    Optional[str] = None
    rules:           List[PromotionRulePayload]

    @property
    def gift_rules(self) -> List[PromotionRulePayload]:
        return [rule for rule in self.rules if rule.gift_item is not None]


class PromotionsResponse(BaseModel):
    data: List[PromotionPayload] = Field(default_factory=list)


class CouponCodePayload(BaseModel):
    id:           int
    code:         str
    current_uses: int = 0
    max_uses:     int = 0


class CouponCodesResponse(BaseModel):
    data: List[CouponCodePayload] = Field(default_factory=list)
