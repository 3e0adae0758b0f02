"""Client for the payment-initiation service used by mobile-wallet checkouts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import requests

from ..common.errors import PaymentGatewayError
from ..common.services.logging import log_event


@dataclass(frozen=True)
class PaymentInitiation:
    payment_url: str
    transaction_id: Optional[str] = None


class PaymentGateway(ABC):
    @abstractmethod
    def initiate(self, *, order_id: str, payment_method: str, amount: Decimal) -> PaymentInitiation:
        """Start a payment and return where to send the customer.

        Raises PaymentGatewayError for every kind of failure.
        """


class HttpPaymentGateway(PaymentGateway):
    def __init__(self, url: str, *, timeout: float = 10.0) -> None:
        self._url = url
        self._timeout = timeout

    def initiate(self, *, order_id: str, payment_method: str, amount: Decimal) -> PaymentInitiation:
        payload = {"orderId": order_id, "paymentMethod": payment_method, "amount": float(amount)}
        try:
            response = requests.post(self._url, json=payload, timeout=self._timeout)
        except requests.exceptions.Timeout as exc:
            raise PaymentGatewayError(f"payment service timed out: {exc}", confirmed=False) from exc
        except requests.exceptions.RequestException as exc:
            raise PaymentGatewayError(f"payment service unreachable: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = None

        if not 200 <= response.status_code < 300:
            error = data.get("error") if isinstance(data, dict) else None
            # 5xx: the upstream outcome is unknown
            raise PaymentGatewayError(
                f"payment service returned {response.status_code}: {error or 'no detail'}",
                confirmed=response.status_code < 500,
            )
        if not isinstance(data, dict):
            raise PaymentGatewayError("payment service returned a malformed response")
        if data.get("success") is not True:
            raise PaymentGatewayError(str(data.get("error") or "payment service declined the request"))
        payment_url = data.get("paymentUrl")
        if not isinstance(payment_url, str) or not payment_url.strip():
            raise PaymentGatewayError("payment service response has no paymentUrl")

        transaction_id = data.get("transactionId")
        log_event("info", "payment.initiated", order_id=order_id, transaction_id=transaction_id)
        return PaymentInitiation(
            payment_url=payment_url,
            transaction_id=str(transaction_id) if transaction_id is not None else None,
        )
