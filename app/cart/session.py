"""
app/cart/session.py
-------------------
The shopper's cart id, kept in the Flask session under key 'cart_id'.

The cart itself lives on the commerce platform; only its id is stored here.
"""
from typing import Optional
from flask import session


CART_ID_KEY = 'cart_id'


def get_cart_id() -> Optional[str]:
    return session.get(CART_ID_KEY)


def set_cart_id(cart_id: str) -> None:
    session[CART_ID_KEY] = cart_id
    session.modified = True


def clear_cart_id() -> None:
    """Forget the cart, e.g. after the platform deleted it with its last line."""
    session.pop(CART_ID_KEY, None)
    session.modified = True
