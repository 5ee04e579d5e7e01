"""
conftest.py — in-memory fakes of the commerce platform shared by the tests.
"""
import threading
from decimal import Decimal

import pytest

from app.cart.models import Cart, CartLineItem
from app.platform.errors import MissingCartError, PlatformError
from app.promotions.models import GiftItem, GiftPromotion


# ── Builders ──────────────────────────────────────────────────────

def line(line_item_id, product_id, quantity=1, price='10.00', variant_id=None):
    return CartLineItem(
        line_item_id=line_item_id, product_id=product_id, variant_id=variant_id,
        quantity=quantity, extended_sale_price=Decimal(price),
    )


def gift_line(line_item_id, product_id, quantity=1, variant_id=None):
    return line(line_item_id, product_id, quantity, price='0', variant_id=variant_id)


def promo(promo_id, minimum=1, apply_once=False, gifts=((900, None),), name=None):
    return GiftPromotion(
        id=promo_id, name=name or f'Promo {promo_id}',
        minimum_quantity=minimum, apply_once=apply_once,
        gift_items=tuple(GiftItem(product_id=p, variant_id=v, quantity=1) for p, v in gifts),
    )


def raw_rule(products=None, gift_product=900, gift_variant=None, minimum=None,
             apply_once=None, gift=True):
    rule = {'condition': {'cart': {}}}
    if products is not None:
        rule['condition']['cart']['items'] = {'products': products}
    if minimum is not None:
        rule['condition']['cart']['minimum_quantity'] = minimum
    if apply_once is not None:
        rule['apply_once'] = apply_once
    if gift:
        item = {'product_id': gift_product, 'quantity': 1}
        if gift_variant is not None:
            item['variant_id'] = gift_variant
        rule['action'] = {'gift_item': item}
    else:
        rule['action'] = {'cart_value': {'discount': {'percentage_amount': '10'}}}
    return rule


def raw_promotion(promo_id, rules, status='ENABLED', redemption_type='AUTOMATIC',
                  display_name=None):
    data = {
        'id': promo_id, 'name': f'Promo {promo_id}', 'status': status,
        'redemption_type': redemption_type, 'rules': rules,
    }
    if display_name is not None:
        data['display_name'] = display_name
    return data


# ── Fakes ─────────────────────────────────────────────────────────

class FakeCommerceClient:
    """Stands in for CommerceClient; carts and promotions live in dicts."""

    def __init__(self, promotions=None, codes=None):
        self.promotions = list(promotions or [])
        self.codes = dict(codes or {})
        self.promotions_error = None
        self.carts = {}
        self.failing_removals = set()
        self.failing_coupons = set()
        self.coupon_gifts = {}          # code -> [CartLineItem] added on apply
        self.removal_calls = []
        self.promotion_fetches = 0
        self._next_id = 1
        self._lock = threading.Lock()

    # management API
    def fetch_promotions(self):
        with self._lock:
            self.promotion_fetches += 1
        if self.promotions_error:
            raise self.promotions_error
        return {'data': self.promotions}

    def fetch_promotion_codes(self, promotion_id):
        codes = self.codes.get(promotion_id, [])
        if isinstance(codes, Exception):
            raise codes
        return {'data': codes}

    # storefront cart
    def put_cart(self, cart_id, *items):
        self.carts[cart_id] = Cart(cart_id=cart_id, physical_items=list(items))
        return self.carts[cart_id]

    def get_cart(self, cart_id):
        return self.carts.get(cart_id) if cart_id else None

    def delete_cart_line_item(self, cart_id, line_item_id):
        self.removal_calls.append(line_item_id)
        if line_item_id in self.failing_removals:
            raise PlatformError(f'Cannot delete {line_item_id}')
        cart = self.carts[cart_id]
        cart.physical_items = [i for i in cart.physical_items if i.line_item_id != line_item_id]
        if not cart.physical_items:
            del self.carts[cart_id]
            return None
        return cart_id

    def _new_line(self, data):
        self._next_id += 1
        return line(f'li-{self._next_id}', data['productEntityId'], data['quantity'])

    def add_cart_line_items(self, cart_id, line_items):
        cart = self.carts.get(cart_id)
        if cart is None:
            raise MissingCartError()
        cart.physical_items.extend(self._new_line(d) for d in line_items)
        return cart_id

    def create_cart(self, line_items):
        self._next_id += 1
        cart_id = f'cart-{self._next_id}'
        self.carts[cart_id] = Cart(cart_id=cart_id,
                                   physical_items=[self._new_line(d) for d in line_items])
        return cart_id

    def apply_checkout_coupon(self, checkout_id, coupon_code):
        if coupon_code in self.failing_coupons:
            raise PlatformError(f'Coupon {coupon_code} is invalid')
        self.carts[checkout_id].physical_items.extend(self.coupon_gifts.get(coupon_code, []))
        return checkout_id


class FakeCatalog:
    """Per-product promotion lookups; products in `failing` return None."""

    def __init__(self, by_product=None, failing=(), raising=()):
        self.by_product = dict(by_product or {})
        self.failing = set(failing)
        self.raising = set(raising)
        self.lookups = []

    def get_promotions_for_product(self, product_id):
        self.lookups.append(product_id)
        if product_id in self.raising:
            raise RuntimeError('catalog exploded')
        if product_id in self.failing:
            return None
        return list(self.by_product.get(product_id, []))


# ── Fixtures ──────────────────────────────────────────────────────

@pytest.fixture
def fake_client():
    return FakeCommerceClient()


@pytest.fixture
def app(fake_client):
    from app import create_app
    return create_app('testing', commerce_client=fake_client)


@pytest.fixture
def client(app):
    return app.test_client()
