"""Zavira storefront checkout Flask application."""

from __future__ import annotations

from typing import Optional

from flask import Flask

from .common.db.session import create_session_factory
from .common.services import logging as event_log
from .common.services.cart_service import CartService
from .common.services.checkout_service import CheckoutService
from .common.services.discount_service import DiscountService
from .common.services.order_service import OrderService
from .common.services.payment_service import PaymentDispatcher
from .common.services.pricing_service import ZoneRule
from .config import StorefrontConfig
from .routes import api
from .services import (
    CheckoutRegistry,
    HttpPaymentGateway,
    InMemoryDiscountRepository,
    InMemoryOrderRepository,
    JsonCartStorage,
    MockCardTokenizer,
    SqlDiscountRepository,
    SqlOrderRepository,
    load_discount_seed,
)


def _build_repositories(config: StorefrontConfig):
    seed = load_discount_seed(config.discounts_file)
    if config.app.storage_backend == "sql":
        session_factory = create_session_factory(config.app.database_url)
        discount_repo = SqlDiscountRepository(session_factory)
        discount_repo.seed(seed)
        return discount_repo, SqlOrderRepository(session_factory)
    discount_repo = InMemoryDiscountRepository(seed)
    return discount_repo, InMemoryOrderRepository(discount_repo)


def create_app(config: Optional[StorefrontConfig] = None, *, gateway=None, tokenizer=None) -> Flask:
    config = config or StorefrontConfig.load()
    settings = config.app
    event_log.configure(settings.log_level)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.secret_key
    app.config["STOREFRONT_CONFIG"] = config

    discount_repo, order_repo = _build_repositories(config)
    discount_service = DiscountService(discount_repo)
    order_service = OrderService(order_repo, currency=settings.currency)
    dispatcher = PaymentDispatcher(
        order_service,
        gateway or HttpPaymentGateway(settings.payment_initiation_url, timeout=settings.payment_timeout_seconds),
        simulated_latency=settings.simulated_payment_latency,
    )
    tokenizer = tokenizer or MockCardTokenizer()
    default_zone = ZoneRule(
        base_rate=settings.flat_shipping_rate,
        free_threshold=settings.free_shipping_threshold,
    )

    def build_checkout(session_id: str, cart=None) -> CheckoutService:
        if cart is None:
            cart = CartService(
                storage=JsonCartStorage(config.carts_dir / f"{session_id}.json"),
                max_quantity_per_item=settings.max_quantity_per_item,
                max_items_in_cart=settings.max_items_in_cart,
                max_unit_price=settings.max_unit_price,
            )
        return CheckoutService(
            cart=cart,
            discounts=discount_service,
            dispatcher=dispatcher,
            tokenizer=tokenizer,
            tax_rate=settings.tax_rate,
            zones=settings.shipping_zones,
            default_zone=default_zone,
        )

    app.extensions["storefront_components"] = {
        "discount_repo": discount_repo,
        "order_repo": order_repo,
        "discount_service": discount_service,
        "order_service": order_service,
        "dispatcher": dispatcher,
        "checkouts": CheckoutRegistry(build_checkout),
    }

    app.register_blueprint(api.api_bp)

    return app


def main() -> None:
    app = create_app()
    app.run(host="0.0.0.0", port=5000, debug=False)


if __name__ == "__main__":
    main()
