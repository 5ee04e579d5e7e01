"""
app/cart/routes.py
------------------
JSON endpoints that drive the cart actions for the current session's cart.
"""
from flask import current_app, jsonify, request

from app.cart import cart
from app.cart.session import clear_cart_id, get_cart_id, set_cart_id
from app.extensions import get_cart_actions


# ── Helper ────────────────────────────────────────────────────────

def _optional_int(value):
    if value in (None, ''):
        return None
    return int(value)


def _bad_request(message):
    return jsonify(ok=False, error=message), 400


# ── Add ───────────────────────────────────────────────────────────

@cart.route('/items', methods=['POST'])
def add_item():
    data = request.get_json(silent=True) or {}
    try:
        product_id = int(data['product_id'])
        quantity   = int(data.get('quantity', 1))
        gift_product_id = _optional_int(data.get('gift_product_id'))
        gift_variant_id = _optional_int(data.get('gift_variant_id'))
    except (KeyError, TypeError, ValueError):
        return _bad_request('product_id and a numeric quantity are required')
    if quantity <= 0:
        return _bad_request('quantity must be positive')

    result = get_cart_actions().add_to_cart(
        get_cart_id(), product_id, quantity,
        selected_options=data.get('selected_options'),
        promo_code=(data.get('promo_code') or '').strip() or None,
        gift_product_id=gift_product_id,
        gift_variant_id=gift_variant_id,
    )
    if result.cart_id:
        set_cart_id(result.cart_id)
    else:
        clear_cart_id()
    current_app.logger.info(f"Cart {result.cart_id}: added product {product_id} x{quantity}")
    return jsonify(ok=True, **result.to_dict()), 201 if result.created else 200


# ── Remove ────────────────────────────────────────────────────────

@cart.route('/items/<line_item_id>', methods=['DELETE'])
def remove_item(line_item_id):
    cart_id = get_cart_id()
    remaining = get_cart_actions().remove_item(cart_id, line_item_id)
    if remaining is None:
        # Last line removed: the platform deleted the cart
        clear_cart_id()
    return jsonify(ok=True, cart_id=remaining)


# ── Coupon ────────────────────────────────────────────────────────

@cart.route('/coupon', methods=['POST'])
def apply_coupon():
    data = request.get_json(silent=True) or {}
    code = (data.get('code') or '').strip()
    if not code:
        return _bad_request('code is required')

    result = get_cart_actions().apply_coupon(get_cart_id(), code)
    if result.cart_deleted:
        clear_cart_id()
    return jsonify(ok=True, **result.to_dict())


# ── Reconcile ─────────────────────────────────────────────────────

@cart.route('/reconcile', methods=['POST'])
def reconcile():
    """Explicit gift reconciliation for the session's cart."""
    cart_id = get_cart_id()
    try:
        result = get_cart_actions().reconcile(cart_id)
    except ValueError as e:
        current_app.logger.error(f"Cart {cart_id}: malformed cart data: {e}")
        return jsonify(ok=False, error=str(e)), 422
    if result.cart_deleted:
        clear_cart_id()
    return jsonify(ok=True, **result.to_dict())
