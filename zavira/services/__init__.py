"""Storefront collaborators: repositories, payment gateway, tokenizer, cart storage."""

from .card_tokenizer import CardToken, CardTokenizer, MockCardTokenizer
from .cart_storage import CartStorage, InMemoryCartStorage, JsonCartStorage
from .checkout_registry import CheckoutRegistry
from .discount_repository import (
    DiscountRepository,
    InMemoryDiscountRepository,
    SqlDiscountRepository,
    load_discount_seed,
)
from .order_repository import InMemoryOrderRepository, OrderRepository, SqlOrderRepository
from .payment_gateway import HttpPaymentGateway, PaymentGateway, PaymentInitiation

__all__ = [
    "CardToken",
    "CardTokenizer",
    "MockCardTokenizer",
    "CartStorage",
    "InMemoryCartStorage",
    "JsonCartStorage",
    "CheckoutRegistry",
    "DiscountRepository",
    "InMemoryDiscountRepository",
    "SqlDiscountRepository",
    "load_discount_seed",
    "InMemoryOrderRepository",
    "OrderRepository",
    "SqlOrderRepository",
    "HttpPaymentGateway",
    "PaymentGateway",
    "PaymentInitiation",
]
