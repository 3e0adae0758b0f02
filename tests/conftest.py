"""Shared pytest fixtures for the storefront tests."""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from zavira.common.db.session import create_session_factory
from zavira.common.services.cart_service import CartService
from zavira.common.services.checkout_service import CheckoutService
from zavira.common.services.discount_service import Discount, DiscountService
from zavira.common.services.order_service import OrderService
from zavira.common.services.payment_service import PaymentDispatcher
from zavira.config import DEFAULT_DISCOUNTS
from zavira.services import (
    InMemoryDiscountRepository,
    InMemoryOrderRepository,
    MockCardTokenizer,
    PaymentGateway,
    PaymentInitiation,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

SHIPPING_DATA = {
    "first_name": "Ayesha",
    "last_name": "Rahman",
    "email": "ayesha@example.com",
    "street": "221 Lakeshore Drive",
    "apartment": "Suite 4",
    "city": "Springfield",
    "region": "IL",
    "postal_code": "62704",
    "country": "US",
    "phone": "+1 (217) 555-0100",
}

CARD_PAYMENT = {
    "method": "card",
    "card": {
        "number": "4242 4242 4242 4242",
        "expiry": "12/29",
        "cvc": "123",
        "name": "Ayesha Rahman",
    },
}

WALLET_PAYMENT = {"method": "mobile_wallet", "provider": "bkash"}

COD_PAYMENT = {"method": "cash_on_delivery"}


@pytest.fixture
def discount_seed():
    """Default discount catalog: WELCOME20, FREESHIP, HOLIDAY15."""
    return [Discount.from_dict(d) for d in DEFAULT_DISCOUNTS]


@pytest.fixture
def discount_repo(discount_seed):
    return InMemoryDiscountRepository(discount_seed)


@pytest.fixture
def order_repo(discount_repo):
    return InMemoryOrderRepository(discount_repo)


@pytest.fixture
def discount_service(discount_repo):
    return DiscountService(discount_repo)


@pytest.fixture
def order_service(order_repo):
    return OrderService(order_repo, currency="USD")


@pytest.fixture
def gateway():
    """Payment-initiation gateway that always hands back a redirect."""
    gw = MagicMock(spec=PaymentGateway)
    gw.initiate.return_value = PaymentInitiation(
        payment_url="/checkout/mock-payment?orderId=ORD-TEST&method=bkash",
        transaction_id="mock_1700000000000",
    )
    return gw


@pytest.fixture
def dispatcher(order_service, gateway):
    return PaymentDispatcher(order_service, gateway)


@pytest.fixture
def cart():
    return CartService()


@pytest.fixture
def checkout(cart, discount_service, dispatcher):
    return CheckoutService(
        cart=cart,
        discounts=discount_service,
        dispatcher=dispatcher,
        tokenizer=MockCardTokenizer(),
        tax_rate=Decimal("0.08"),
    )


@pytest.fixture
def checkout_at_payment(checkout, cart):
    """Checkout with one 125.00 bag in the cart, waiting for payment."""
    cart.add_item("bag-101", "Black", Decimal("125.00"), 1, "Leather Tote")
    checkout.start()
    checkout.submit_shipping(dict(SHIPPING_DATA))
    return checkout


@pytest.fixture
def session_factory():
    """SQLAlchemy session factory over a fresh in-memory SQLite database."""
    return create_session_factory("sqlite:///:memory:")
