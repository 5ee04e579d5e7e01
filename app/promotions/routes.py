"""
app/promotions/routes.py
------------------------
Read-only JSON views of the free-gift promotions, plus an entitlement
preview for a sample cart.
"""
from flask import jsonify, request

from app.extensions import get_catalog
from app.promotions import promotions
from app.promotions.engine import compute_entitlements


# ── Product promotions ────────────────────────────────────────────

@promotions.route('/product/<int:product_id>')
def for_product(product_id):
    """Gift promotions a product page can advertise."""
    promos = get_catalog().get_promotions_for_product(product_id)
    if promos is None:
        # Catalog unreachable: behave as if nothing applies
        return jsonify(product_id=product_id, available=False, promotions=[])
    return jsonify(product_id=product_id, available=True,
                   promotions=[p.to_dict() for p in promos])


# ── Preview ───────────────────────────────────────────────────────

@promotions.route('/preview', methods=['POST'])
def preview():
    """
    Receives a sample of paid quantities, e.g.
        {"items": [{"product_id": 1, "quantity": 3}]}
    and returns the gifts that cart would be entitled to.
    """
    data = request.get_json(silent=True) or {}

    qualifying = {}
    for row in data.get('items') or []:
        try:
            pid = int(row['product_id'])
            qty = int(row.get('quantity', 1))
        except (KeyError, TypeError, ValueError):
            continue
        if qty <= 0:
            continue
        qualifying[pid] = qualifying.get(pid, 0) + qty

    catalog = get_catalog()
    by_product = {pid: catalog.get_promotions_for_product(pid) for pid in qualifying}
    allowed = compute_entitlements(qualifying, by_product)

    return jsonify(entitlements=[
        {'product_id': product_id, 'variant_id': None if variant == 'none' else variant, 'quantity': qty}
        for (product_id, variant), qty in allowed.items()
    ])
