from typing import Dict, Optional


class CheckoutError(Exception):
    """Base class for errors raised by the cart/checkout core."""

    code = "checkout_error"
    status = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict:
        return {"error": self.message, "code": self.code}


class ValidationError(CheckoutError):
    """Malformed cart, shipping or payment input. Blocks the step."""

    code = "validation_error"
    status = 400

    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.fields = dict(fields or {})

    def to_dict(self) -> Dict:
        payload = super().to_dict()
        if self.fields:
            payload["fields"] = dict(self.fields)
        return payload


class DiscountRejected(CheckoutError):
    code = "discount_rejected"
    status = 422

    def __init__(self, reason, message: Optional[str] = None) -> None:
        super().__init__(message or reason.message)
        self.reason = reason

    def to_dict(self) -> Dict:
        payload = super().to_dict()
        payload["reason"] = self.reason.value
        return payload


class PaymentFailure(CheckoutError):
    """Dispatcher-level failure. The order draft is kept so the customer can retry."""

    code = "payment_failed"
    status = 402


class PaymentInProgress(PaymentFailure):
    code = "payment_in_progress"
    status = 409

    def __init__(self, message: str = "A payment for this checkout is already being processed.") -> None:
        super().__init__(message)


class IntegrityViolation(CheckoutError):
    """State machine misuse. Reaching this from the UI means a bug in the core."""

    code = "integrity_violation"
    status = 409


class PaymentGatewayError(Exception):
    """Raised by payment collaborators. Never shown to the customer as-is.

    ``confirmed`` is False when the outcome is unknown (timeout, dropped
    connection), so the attempt may still be in progress upstream.
    """

    def __init__(self, message: str, *, confirmed: bool = True) -> None:
        super().__init__(message)
        self.message = message
        self.confirmed = confirmed
