"""Routes a checkout's payment to its method-specific completion path.

Card and cash-on-delivery payments complete locally: the order is recorded and
the cart cleared straight away. Mobile-wallet payments are handed to the
payment-initiation gateway; the dispatcher stops at the redirect URL and the
order is confirmed later through the gateway's callback.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Union

from ..errors import PaymentFailure, PaymentGatewayError, ValidationError
from ..utils.money import round_money
from ..utils.validators import validate_card_details
from .logging import log_event

SUPPORTED_WALLETS = ("bkash", "nagad")


class PaymentMethodKind(str, Enum):
    CARD = "card"
    MOBILE_WALLET = "mobile_wallet"
    CASH_ON_DELIVERY = "cash_on_delivery"

    @classmethod
    def parse(cls, value: Optional[str]) -> "PaymentMethodKind":
        v = (value or "").strip().lower()
        aliases = {"mobile": cls.MOBILE_WALLET, "cod": cls.CASH_ON_DELIVERY}
        if v in aliases:
            return aliases[v]
        try:
            return cls(v)
        except ValueError:
            raise ValidationError("Please choose a payment method.", {"method": "invalid"}) from None


@dataclass(frozen=True)
class CardPayment:
    token: str
    brand: str
    last4: str
    holder_name: str

    kind = PaymentMethodKind.CARD


@dataclass(frozen=True)
class MobileWalletPayment:
    provider: str

    kind = PaymentMethodKind.MOBILE_WALLET


@dataclass(frozen=True)
class CashOnDeliveryPayment:
    kind = PaymentMethodKind.CASH_ON_DELIVERY


PaymentSelection = Union[CardPayment, MobileWalletPayment, CashOnDeliveryPayment]


def build_payment_selection(data: Optional[Mapping], tokenizer) -> PaymentSelection:
    """Validate the submitted payment form and return a selection safe to keep.

    Card fields are checked for format and go straight to the tokenizer; only
    the token and the last four digits come back out.
    """
    data = data or {}
    kind = PaymentMethodKind.parse(data.get("method") or data.get("paymentMethod"))
    if kind is PaymentMethodKind.CARD:
        card = validate_card_details(data.get("card") or data)
        try:
            token = tokenizer.tokenize(card)
        except PaymentGatewayError as exc:
            raise PaymentFailure(exc.message) from exc
        return CardPayment(token=token.token, brand=token.brand, last4=token.last4, holder_name=card.name)
    if kind is PaymentMethodKind.MOBILE_WALLET:
        provider = str(data.get("provider") or "bkash").strip().lower()
        if provider not in SUPPORTED_WALLETS:
            raise ValidationError("Unsupported mobile wallet.", {"provider": "unsupported"})
        return MobileWalletPayment(provider=provider)
    return CashOnDeliveryPayment()


@dataclass(frozen=True)
class Success:
    order: object

    status = "success"


@dataclass(frozen=True)
class Pending:
    order_id: str
    redirect_url: str
    transaction_id: Optional[str] = None

    status = "pending"


@dataclass(frozen=True)
class Failure:
    reason: str

    status = "failure"


DispatchResult = Union[Success, Pending, Failure]


def result_to_dict(result: DispatchResult) -> Dict:
    if isinstance(result, Success):
        return {"status": result.status, "order": result.order.to_dict()}
    if isinstance(result, Pending):
        return {
            "status": result.status,
            "order_id": result.order_id,
            "redirect_url": result.redirect_url,
            "transaction_id": result.transaction_id,
        }
    return {"status": result.status, "reason": result.reason}


class PaymentDispatcher:
    def __init__(self, order_service, gateway, *, simulated_latency: float = 0.0, sleep=time.sleep):
        self._orders = order_service
        self._gateway = gateway
        self._latency = simulated_latency
        self._sleep = sleep

    def dispatch(self, payment: PaymentSelection, draft, breakdown, cart) -> DispatchResult:
        log_event("info", "payment.dispatch", method=payment.kind, attempt_id=draft.attempt_id)
        if isinstance(payment, MobileWalletPayment):
            return self._dispatch_wallet(payment, draft, breakdown)
        if self._latency:
            self._sleep(self._latency)
        order = self._orders.create_order(
            draft=draft,
            breakdown=breakdown,
            payment_method_kind=payment.kind.value,
            cart=cart,
        )
        return Success(order=order)

    def _dispatch_wallet(self, payment: MobileWalletPayment, draft, breakdown) -> DispatchResult:
        order_id = draft.ensure_attempt_id(f"{payment.kind.value}:{payment.provider}")
        amount = round_money(breakdown.total)
        try:
            initiation = self._gateway.initiate(order_id=order_id, payment_method=payment.provider, amount=amount)
        except PaymentGatewayError as exc:
            if exc.confirmed:
                # the next attempt gets a fresh id only once this one is known to have failed
                draft.attempt_id = None
            log_event("warning", "payment.failed", order_id=order_id, reason=exc.message, confirmed=exc.confirmed)
            return Failure(reason="Failed to initiate payment. Please try again.")
        log_event("info", "payment.redirect", order_id=order_id, transaction_id=initiation.transaction_id)
        return Pending(order_id=order_id, redirect_url=initiation.payment_url, transaction_id=initiation.transaction_id)
