"""
test_platform.py — Tests for the storefront token cache and the platform client.
Run: pytest test_platform.py -v
"""
import threading
from decimal import Decimal

import pytest
import requests

from app.platform.client import CommerceClient
from app.platform.errors import MissingCartError, PlatformError, PlatformTimeout
from app.platform.tokens import StorefrontTokenProvider


# ── Helpers ───────────────────────────────────────────────────────

class StubResponse:
    def __init__(self, status_code=200, body=None, text=''):
        self.status_code = status_code
        self._body = body
        self.text = text
        self.content = b'x' if body is not None else b''

    def json(self):
        return self._body


class StubSession:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def request(self, method, url, timeout=None, **kwargs):
        self.requests.append({'method': method, 'url': url, 'timeout': timeout, **kwargs})
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


TOKEN = StubResponse(body={'data': {'token': 'sf-token'}})


def make_client(*responses):
    session = StubSession(*responses)
    client = CommerceClient('abc123', 'secret', channel_id=2, timeout=3.5, session=session)
    return client, session


def cart_body(items, digital=()):
    def node(i):
        return {'entityId': i[0], 'name': 'n', 'productEntityId': i[1], 'variantEntityId': i[2],
                'quantity': i[3], 'extendedSalePrice': {'value': i[4]}}
    return {'data': {'site': {'cart': {
        'entityId': 'c1',
        'lineItems': {'physicalItems': [node(i) for i in items],
                      'digitalItems': [node(i) for i in digital]},
    }}}}


# ── 1. Token provider ─────────────────────────────────────────────

class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_token_is_cached_until_leeway():
    issued = []
    clock = Clock()
    provider = StorefrontTokenProvider(lambda exp: issued.append(exp) or f't{len(issued)}',
                                       ttl=600, leeway=60, clock=clock)
    assert provider.acquire() == 't1'
    clock.now += 500
    assert provider.acquire() == 't1'
    clock.now += 50            # inside the leeway window
    assert provider.acquire() == 't2'
    assert issued == [1600, 2150]


def test_invalidate_forces_new_token():
    count = []
    provider = StorefrontTokenProvider(lambda exp: count.append(1) or 'tok', clock=Clock())
    provider.acquire()
    provider.invalidate()
    provider.acquire()
    assert len(count) == 2


def test_concurrent_acquire_issues_once():
    issued = []
    gate = threading.Event()

    def issue(exp):
        gate.wait(1)
        issued.append(exp)
        return 'tok'

    provider = StorefrontTokenProvider(issue)
    threads = [threading.Thread(target=provider.acquire) for _ in range(5)]
    for t in threads:
        t.start()
    gate.set()
    for t in threads:
        t.join()
    assert len(issued) == 1


# ── 2. REST ───────────────────────────────────────────────────────

def test_fetch_promotions_uses_management_api():
    client, session = make_client(StubResponse(body={'data': []}))
    assert client.fetch_promotions() == {'data': []}
    req = session.requests[0]
    assert req['url'] == 'https://api.bigcommerce.com/stores/abc123/v3/promotions'
    assert req['headers']['X-Auth-Token'] == 'secret'
    assert req['timeout'] == 3.5


def test_rest_error_status_raises():
    client, _ = make_client(StubResponse(status_code=500, body={}, text='oops'))
    with pytest.raises(PlatformError) as exc:
        client.fetch_promotion_codes(4)
    assert exc.value.status_code == 500


def test_timeout_becomes_platform_timeout():
    client, _ = make_client(requests.Timeout('slow'))
    with pytest.raises(PlatformTimeout):
        client.fetch_promotions()


def test_connection_error_becomes_platform_error():
    client, _ = make_client(requests.ConnectionError('refused'))
    with pytest.raises(PlatformError):
        client.fetch_promotions()


# ── 3. GraphQL ────────────────────────────────────────────────────

def test_get_cart_parses_line_items():
    client, session = make_client(
        TOKEN,
        StubResponse(body=cart_body([('a', 10, 5, 2, 19.99), ('g', 900, None, 1, 0)],
                                    digital=[('d', 20, None, 1, 5)])),
    )
    cart = client.get_cart('c1')
    assert [i.line_item_id for i in cart.line_items] == ['a', 'g', 'd']
    assert cart.physical_items[0].extended_sale_price == Decimal('19.99')
    assert cart.physical_items[1].is_gift
    assert session.requests[0]['url'].endswith('/v3/storefront/api-token')
    assert session.requests[0]['json']['channel_id'] == 2
    assert session.requests[1]['url'] == 'https://store-abc123.mybigcommerce.com/graphql'
    assert session.requests[1]['headers']['Authorization'] == 'Bearer sf-token'


def test_get_cart_missing_returns_none():
    client, _ = make_client(TOKEN, StubResponse(body={'data': {'site': {'cart': None}}}))
    assert client.get_cart('gone') is None


def test_get_cart_without_id_makes_no_call():
    client, session = make_client()
    assert client.get_cart(None) is None
    assert session.requests == []


def test_graphql_errors_raise():
    client, _ = make_client(TOKEN, StubResponse(body={'errors': [{'message': 'Not enough stock: x'}]}))
    with pytest.raises(PlatformError) as exc:
        client.add_cart_line_items('c1', [{'productEntityId': 1, 'quantity': 1}])
    assert exc.value.messages == ['Not enough stock: x']


def test_unauthorized_graphql_drops_cached_token():
    client, _ = make_client(
        TOKEN,
        StubResponse(status_code=401, body={}),
        StubResponse(body={'data': {'token': 'fresh'}}),
        StubResponse(body={'data': {'site': {'cart': None}}}),
    )
    with pytest.raises(PlatformError):
        client.get_cart('c1')
    client.get_cart('c1')
    assert client.tokens.acquire() == 'fresh'


def test_delete_last_line_returns_none():
    client, session = make_client(
        TOKEN, StubResponse(body={'data': {'cart': {'deleteCartLineItem': {'cart': None}}}}))
    assert client.delete_cart_line_item('c1', 'a') is None
    assert session.requests[1]['json']['variables'] == {
        'input': {'cartEntityId': 'c1', 'lineItemEntityId': 'a'}}


def test_delete_returns_surviving_cart_id():
    client, _ = make_client(
        TOKEN, StubResponse(body={'data': {'cart': {'deleteCartLineItem': {'cart': {'entityId': 'c1'}}}}}))
    assert client.delete_cart_line_item('c1', 'a') == 'c1'


def test_create_cart_without_id_raises_missing_cart():
    client, _ = make_client(TOKEN, StubResponse(body={'data': {'cart': {'createCart': None}}}))
    with pytest.raises(MissingCartError):
        client.create_cart([{'productEntityId': 1, 'quantity': 1}])


def test_apply_coupon_returns_checkout_id():
    client, _ = make_client(
        TOKEN,
        StubResponse(body={'data': {'checkout': {'applyCheckoutCoupon': {'checkout': {'entityId': 'c1'}}}}}),
    )
    assert client.apply_checkout_coupon('c1', 'GIFT') == 'c1'


def test_null_price_reads_as_zero():
    client, _ = make_client(TOKEN, StubResponse(body=cart_body([('g', 900, None, 1, None)])))
    cart = client.get_cart('c1')
    assert cart.physical_items[0].extended_sale_price == Decimal('0')
    assert cart.physical_items[0].is_gift


def test_injected_token_provider_is_used():
    provider = StorefrontTokenProvider(lambda exp: 'shared', clock=Clock())
    session = StubSession(StubResponse(body={'data': {'site': {'cart': None}}}))
    client = CommerceClient('abc123', 'secret', session=session, tokens=provider)
    assert client.tokens is provider
    client.get_cart('c1')
    # no api-token request: the shared provider supplied the token
    assert len(session.requests) == 1
    assert session.requests[0]['headers']['Authorization'] == 'Bearer shared'
