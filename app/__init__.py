import click
from flask import Flask, jsonify
from config import config


def create_app(config_name='default', commerce_client=None):
    """Application factory — creates and configures the Flask app."""
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # ── Logging ───────────────────────────────────────────────────
    from app.utils.logging import setup_logging
    setup_logging(app)

    # ── Platform collaborators ────────────────────────────────────
    from app.extensions import init_commerce
    init_commerce(app, client=commerce_client)

    # ── Blueprints ────────────────────────────────────────────────
    from app.cart import cart as cart_blueprint
    app.register_blueprint(cart_blueprint, url_prefix='/cart')

    from app.promotions import promotions as promotions_blueprint
    app.register_blueprint(promotions_blueprint, url_prefix='/promotions')

    @app.get('/health')
    def health():
        return jsonify(ok=True)

    # ── Error Handlers ────────────────────────────────────────────
    register_error_handlers(app)

    # ── CLI Commands ──────────────────────────────────────────────
    register_commands(app)

    # ── ProxyFix (HTTPS termination at the load balancer) ──
    from werkzeug.middleware.proxy_fix import ProxyFix
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app


def register_error_handlers(app):
    from app.platform.errors import (
        CartNotFoundError, LineItemNotFoundError, PlatformError,
    )

    @app.errorhandler(CartNotFoundError)
    @app.errorhandler(LineItemNotFoundError)
    def not_found(e):
        return jsonify(ok=False, error=str(e)), 404

    @app.errorhandler(PlatformError)
    def platform_error(e):
        app.logger.error(f"Platform error: {e} (status={e.status_code})")
        return jsonify(ok=False, error='The store is temporarily unavailable.',
                       details=e.messages), 502

    @app.errorhandler(404)
    def route_not_found(e):
        return jsonify(ok=False, error='Not found'), 404

    @app.errorhandler(500)
    def internal_error(e):
        return jsonify(ok=False, error='Server error'), 500


def register_commands(app):
    """Register custom Flask CLI commands."""

    @app.cli.command('reconcile-cart')
    @click.argument('cart_id')
    def reconcile_cart(cart_id):
        """Run one gift reconciliation pass against CART_ID."""
        from app.extensions import get_cart_actions

        try:
            result = get_cart_actions().reconcile(cart_id)
        except ValueError as e:
            raise click.ClickException(f'Cart {cart_id} holds malformed line items: {e}')
        if result.cart_deleted:
            click.echo(f'⚠️  Cart {cart_id}: last line removed, the cart no longer exists.')
        if not result.removed_gift_line_item_ids:
            click.echo(f'✅  Cart {cart_id}: gifts are consistent, nothing removed.')
            return
        click.echo(f'⚠️  Cart {cart_id}: {result.message}')
        for line_item_id in result.removed_gift_line_item_ids:
            click.echo(f'   - {line_item_id}')

    @app.cli.command('gift-promotions')
    @click.option('--product-id', type=int, default=None,
                  help='Only promotions that apply to this paid product')
    def gift_promotions(product_id):
        """List enabled free-gift promotions (diagnostic)."""
        from app.extensions import get_catalog

        catalog = get_catalog()
        promos = (catalog.get_promotions_for_product(product_id)
                  if product_id is not None else catalog.get_gift_promotions())
        if promos is None:
            click.echo('❌  Promotion catalog is unreachable.')
            return
        if not promos:
            click.echo('No gift promotions found.')
            return

        click.echo(f'{"ID":<8} {"Min":<5} {"Once":<6} {"Code":<14} {"Gifts"}')
        click.echo('─' * 60)
        for p in promos:
            gifts = ', '.join(
                f'{g.product_id}/{g.variant_id or "-"} x{g.quantity}' for g in p.gift_items
            )
            click.echo(f'{p.id:<8} {p.minimum_quantity:<5} {"yes" if p.apply_once else "no":<6} '
                       f'{p.promo_code or "-":<14} {gifts}')
