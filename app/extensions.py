"""
app/extensions.py
-----------------
Per-app platform collaborators stored on `app.extensions`.

`init_commerce` builds the storefront token provider, the client, the
promotion catalog and the cart actions once per app; the getters fetch
them back inside a request or CLI command.
"""
from flask import current_app

EXTENSION_KEY = 'commerce'


def init_commerce(app, client=None):
    """Wire the platform collaborators. Tests pass a fake `client`."""
    from app.cart.actions import CartActions
    from app.platform.client import CommerceClient
    from app.platform.tokens import StorefrontTokenProvider
    from app.promotions.catalog import PromotionCatalog

    tokens = None
    if client is None:
        # The provider issues through the client it is injected into
        tokens = StorefrontTokenProvider(
            lambda expires_at: client.issue_storefront_token(expires_at),
            ttl=app.config['STOREFRONT_TOKEN_TTL'],
            leeway=app.config['STOREFRONT_TOKEN_LEEWAY'],
        )
        client = CommerceClient.from_config(app.config, tokens=tokens)

    catalog = PromotionCatalog(client)
    actions = CartActions(client, catalog,
                          lookup_workers=app.config.get('PROMOTION_LOOKUP_WORKERS', 4))
    app.extensions[EXTENSION_KEY] = {
        'tokens':  tokens,
        'client':  client,
        'catalog': catalog,
        'actions': actions,
    }
    return actions


def get_client():
    return current_app.extensions[EXTENSION_KEY]['client']


def get_catalog():
    return current_app.extensions[EXTENSION_KEY]['catalog']


def get_cart_actions():
    return current_app.extensions[EXTENSION_KEY]['actions']
