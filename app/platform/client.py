"""
app/platform/client.py
----------------------
HTTP client for the hosted commerce platform.

Two APIs are used:
  management REST  (X-Auth-Token)      promotions, coupon codes, storefront tokens
  storefront GraphQL (Bearer token)     cart read and cart mutations

Every call is bounded by `timeout`; transport failures surface as
PlatformError / PlatformTimeout so callers decide whether they are fatal.
"""
from __future__ import annotations

import logging
from typing import List, Optional

import requests

from app.cart.models import Cart
from app.platform.errors import MissingCartError, PlatformError, PlatformTimeout
from app.platform.tokens import StorefrontTokenProvider

logger = logging.getLogger(__name__)


# ── GraphQL documents ─────────────────────────────────────────────

_LINE_ITEM_FIELDS = """
  entityId
  name
  productEntityId
  variantEntityId
  quantity
  extendedSalePrice { value }
"""

GET_CART_QUERY = """
query GetCart($cartId: String) {
  site {
    cart(entityId: $cartId) {
      entityId
      lineItems {
        physicalItems { %s }
        digitalItems { %s }
      }
    }
  }
}
""" % (_LINE_ITEM_FIELDS, _LINE_ITEM_FIELDS)

DELETE_CART_LINE_ITEM_MUTATION = """
mutation DeleteCartLineItemMutation($input: DeleteCartLineItemInput!) {
  cart {
    deleteCartLineItem(input: $input) {
      cart { entityId }
    }
  }
}
"""

ADD_CART_LINE_ITEMS_MUTATION = """
mutation AddCartLineItemsMutation($input: AddCartLineItemsInput!) {
  cart {
    addCartLineItems(input: $input) {
      cart { entityId }
    }
  }
}
"""

CREATE_CART_MUTATION = """
mutation CreateCartMutation($input: CreateCartInput!) {
  cart {
    createCart(input: $input) {
      cart { entityId }
    }
  }
}
"""

APPLY_CHECKOUT_COUPON_MUTATION = """
mutation ApplyCheckoutCouponMutation($input: ApplyCheckoutCouponInput!) {
  checkout {
    applyCheckoutCoupon(input: $input) {
      checkout { entityId }
    }
  }
}
"""


class CommerceClient:
    """Thin wrapper over requests.Session for the platform's APIs."""

    def __init__(self, store_hash: str, access_token: str, channel_id: int = 1,
                 api_url: str = 'https://api.bigcommerce.com',
                 graphql_url: Optional[str] = None, timeout: float = 10.0,
                 session: Optional[requests.Session] = None,
                 tokens: Optional[StorefrontTokenProvider] = None):
        self.store_hash  = store_hash
        self.channel_id  = channel_id
        self.timeout     = timeout
        self.rest_base   = f"{api_url.rstrip('/')}/stores/{store_hash}/v3"
        self.graphql_url = graphql_url or f"https://store-{store_hash}.mybigcommerce.com/graphql"

        self.session = session or requests.Session()
        self._rest_headers = {
            'Accept':       'application/json',
            'Content-Type': 'application/json',
            'X-Auth-Token': access_token,
        }
        # Shared per app when injected; a standalone client caches its own
        self.tokens = tokens or StorefrontTokenProvider(self.issue_storefront_token)

    @classmethod
    def from_config(cls, cfg, tokens: Optional[StorefrontTokenProvider] = None) -> 'CommerceClient':
        return cls(
            store_hash=cfg['BIGCOMMERCE_STORE_HASH'],
            access_token=cfg['BIGCOMMERCE_ACCESS_TOKEN'],
            channel_id=cfg['BIGCOMMERCE_CHANNEL_ID'],
            api_url=cfg['BIGCOMMERCE_API_URL'],
            graphql_url=cfg.get('BIGCOMMERCE_GRAPHQL_URL') or None,
            timeout=cfg['PLATFORM_TIMEOUT'],
            tokens=tokens,
        )

    # ── Transport ─────────────────────────────────────────────────

    def _send(self, method: str, url: str, **kwargs) -> dict:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as exc:
            raise PlatformTimeout(f"{method} {url} timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise PlatformError(f"{method} {url} failed: {exc}") from exc

        if response.status_code >= 400:
            raise PlatformError(
                f"{method} {url} returned {response.status_code}",
                status_code=response.status_code,
                messages=[response.text[:500]],
            )
        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise PlatformError(f"{method} {url} returned a non-JSON body") from exc

    def rest(self, method: str, path: str, **kwargs) -> dict:
        return self._send(method, f"{self.rest_base}{path}", headers=self._rest_headers, **kwargs)

    def graphql(self, query: str, variables: Optional[dict] = None) -> dict:
        headers = {
            'Accept':        'application/json',
            'Content-Type':  'application/json',
            'Authorization': f"Bearer {self.tokens.acquire()}",
        }
        try:
            body = self._send('POST', self.graphql_url, headers=headers,
                              json={'query': query, 'variables': variables or {}})
        except PlatformError as exc:
            if exc.status_code == 401:
                self.tokens.invalidate()
            raise

        errors = body.get('errors') or []
        if errors:
            messages = [e.get('message', '') for e in errors]
            raise PlatformError('; '.join(messages), messages=messages)
        return body.get('data') or {}

    # ── Management API ────────────────────────────────────────────

    def issue_storefront_token(self, expires_at: int) -> str:
        body = self.rest('POST', '/storefront/api-token', json={
            'channel_id': self.channel_id,
            'expires_at': expires_at,
        })
        token = (body.get('data') or {}).get('token')
        if not token:
            raise PlatformError('Storefront token response carried no token')
        return token

    def fetch_promotions(self) -> dict:
        return self.rest('GET', '/promotions')

    def fetch_promotion_codes(self, promotion_id: int) -> dict:
        return self.rest('GET', f"/promotions/{promotion_id}/codes")

    # ── Storefront cart ───────────────────────────────────────────

    def get_cart(self, cart_id: Optional[str]) -> Optional[Cart]:
        if not cart_id:
            return None
        data = self.graphql(GET_CART_QUERY, {'cartId': cart_id})
        node = (data.get('site') or {}).get('cart')
        return Cart.from_graphql(node) if node else None

    def delete_cart_line_item(self, cart_id: str, line_item_id: str) -> Optional[str]:
        """Delete one line. Returns the cart id, or None when the platform deleted the cart."""
        data = self.graphql(DELETE_CART_LINE_ITEM_MUTATION, {
            'input': {'cartEntityId': cart_id, 'lineItemEntityId': line_item_id},
        })
        payload = (data.get('cart') or {}).get('deleteCartLineItem') or {}
        cart = payload.get('cart')
        return cart['entityId'] if cart else None

    def add_cart_line_items(self, cart_id: str, line_items: List[dict]) -> str:
        data = self.graphql(ADD_CART_LINE_ITEMS_MUTATION, {
            'input': {'cartEntityId': cart_id, 'data': {'lineItems': line_items}},
        })
        return self._cart_id_from(data, 'addCartLineItems')

    def create_cart(self, line_items: List[dict]) -> str:
        data = self.graphql(CREATE_CART_MUTATION, {'input': {'lineItems': line_items}})
        return self._cart_id_from(data, 'createCart')

    def apply_checkout_coupon(self, checkout_id: str, coupon_code: str) -> str:
        data = self.graphql(APPLY_CHECKOUT_COUPON_MUTATION, {
            'input': {'checkoutEntityId': checkout_id, 'data': {'couponCode': coupon_code}},
        })
        payload = (data.get('checkout') or {}).get('applyCheckoutCoupon') or {}
        checkout = payload.get('checkout')
        if not checkout:
            raise PlatformError(f"Coupon {coupon_code!r} was not applied")
        return checkout['entityId']

    @staticmethod
    def _cart_id_from(data: dict, field: str) -> str:
        cart = ((data.get('cart') or {}).get(field) or {}).get('cart')
        if not cart or not cart.get('entityId'):
            raise MissingCartError()
        return cart['entityId']
