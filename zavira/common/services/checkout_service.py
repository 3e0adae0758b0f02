"""Checkout flow: Cart -> Shipping -> Payment -> Confirmation.

Each forward move has a gate. Going back to an earlier step keeps whatever the
customer already entered. Confirmation is terminal and read-only.
"""

import threading
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Sequence

from ..config import ShippingZone
from ..errors import DiscountRejected, IntegrityViolation, PaymentFailure, PaymentInProgress, ValidationError
from ..utils.validators import validate_shipping_address
from .discount_service import Applied
from .logging import log_event
from .order_service import OrderDraft
from .payment_service import Failure, Pending, Success, build_payment_selection, result_to_dict
from .pricing_service import DEFAULT_TAX_RATE, DEFAULT_ZONE, PriceBreakdown, ZoneRule, compute_breakdown, resolve_zone


class CheckoutStep(str, Enum):
    CART = "cart"
    SHIPPING = "shipping"
    PAYMENT = "payment"
    CONFIRMATION = "confirmation"

    @property
    def index(self) -> int:
        return _ORDER.index(self)


_ORDER = [CheckoutStep.CART, CheckoutStep.SHIPPING, CheckoutStep.PAYMENT, CheckoutStep.CONFIRMATION]


class CheckoutService:
    def __init__(
        self,
        *,
        cart,
        discounts,
        dispatcher,
        tokenizer,
        tax_rate=DEFAULT_TAX_RATE,
        zones: Sequence[ShippingZone] = (),
        default_zone: ZoneRule = DEFAULT_ZONE,
    ):
        self._cart = cart
        self._discounts = discounts
        self._dispatcher = dispatcher
        self._tokenizer = tokenizer
        self._tax_rate = tax_rate
        self._zones = list(zones)
        self._default_zone = default_zone
        self._step = CheckoutStep.CART
        self._draft = OrderDraft()
        self._order = None
        self._pending: Optional[Pending] = None
        self._last_failure: Optional[str] = None
        self._dispatch_lock = threading.Lock()

    @property
    def step(self) -> CheckoutStep:
        return self._step

    @property
    def draft(self) -> OrderDraft:
        return self._draft

    @property
    def order(self):
        return self._order

    @property
    def pending(self) -> Optional[Pending]:
        return self._pending

    @property
    def last_failure(self) -> Optional[str]:
        return self._last_failure

    @property
    def cart(self):
        return self._cart

    def breakdown(self) -> PriceBreakdown:
        zone = resolve_zone(self._draft.address, self._zones, self._default_zone)
        return compute_breakdown(
            self._cart.get_items(),
            discount=self._draft.discount,
            zone_rule=zone,
            tax_rate=self._tax_rate,
        )

    def start(self) -> CheckoutStep:
        self._require_step(CheckoutStep.CART)
        self._require_items()
        self._draft.snapshot_items(self._cart.get_items())
        return self._move_to(CheckoutStep.SHIPPING)

    def submit_shipping(self, data) -> CheckoutStep:
        self._require_step(CheckoutStep.SHIPPING)
        self._require_items()
        address = validate_shipping_address(data)
        self._draft.address = address
        self._draft.snapshot_items(self._cart.get_items())
        return self._move_to(CheckoutStep.PAYMENT)

    def submit_payment(self, data):
        if self._step is CheckoutStep.CONFIRMATION:
            # already paid, never dispatch twice
            return Success(order=self._order)
        self._require_step(CheckoutStep.PAYMENT)
        if self._draft.address is None:
            raise IntegrityViolation("payment submitted without a shipping address")
        self._require_items()
        if not self._dispatch_lock.acquire(blocking=False):
            raise PaymentInProgress()
        try:
            return self._submit_payment_locked(data)
        finally:
            self._dispatch_lock.release()

    def _submit_payment_locked(self, data):
        payment = build_payment_selection(data, self._tokenizer)
        self._draft.payment = payment
        self._draft.snapshot_items(self._cart.get_items())
        if self._draft.discount is not None:
            self._revalidate_discount()
        breakdown = self.breakdown()
        try:
            result = self._dispatcher.dispatch(payment, self._draft, breakdown, self._cart)
        except DiscountRejected:
            # usage limit reached between applying the code and recording the order
            self._draft.discount = None
            raise
        if isinstance(result, Success):
            self._order = result.order
            self._pending = None
            self._last_failure = None
            self._move_to(CheckoutStep.CONFIRMATION)
        elif isinstance(result, Pending):
            self._pending = result
            self._last_failure = None
        elif isinstance(result, Failure):
            self._pending = None
            self._last_failure = result.reason
            raise PaymentFailure(result.reason)
        return result

    def _revalidate_discount(self) -> None:
        try:
            applied = self._discounts.require(self._draft.discount.code, self._cart.get_subtotal())
        except DiscountRejected:
            self._draft.discount = None
            raise
        self._draft.discount = applied.discount

    def apply_discount(self, code: str, now: Optional[datetime] = None) -> Applied:
        if self._step is CheckoutStep.CONFIRMATION:
            raise IntegrityViolation("checkout already completed")
        applied = self._discounts.require(code, self._cart.get_subtotal(), now)
        self._draft.discount = applied.discount
        log_event("info", "discount.applied", code=applied.discount.code, deduction=str(applied.deduction))
        return applied

    def remove_discount(self) -> None:
        if self._step is CheckoutStep.CONFIRMATION:
            raise IntegrityViolation("checkout already completed")
        self._draft.discount = None

    def go_back(self, step) -> CheckoutStep:
        if self._step is CheckoutStep.CONFIRMATION:
            return self._step
        target = self._parse_step(step)
        if target.index >= self._step.index:
            raise IntegrityViolation(f"cannot go back from {self._step.value} to {target.value}")
        self._pending = None
        return self._move_to(target)

    def cancel(self) -> CheckoutStep:
        """Abandon the checkout. The cart is kept, the draft is dropped."""
        if self._step is CheckoutStep.CONFIRMATION:
            raise IntegrityViolation("checkout already completed")
        self._draft = OrderDraft()
        self._pending = None
        self._last_failure = None
        log_event("info", "checkout.cancelled")
        return self._move_to(CheckoutStep.CART)

    def to_dict(self) -> Dict:
        return {
            "step": self._step.value,
            "draft": self._draft.to_dict(),
            "breakdown": self.breakdown().to_dict(),
            "order": self._order.to_dict() if self._order is not None else None,
            "pending": result_to_dict(self._pending) if self._pending is not None else None,
            "last_failure": self._last_failure,
        }

    def _move_to(self, step: CheckoutStep) -> CheckoutStep:
        log_event("info", "checkout.step", from_step=self._step, to_step=step)
        self._step = step
        return step

    def _require_step(self, expected: CheckoutStep) -> None:
        if self._step is not expected:
            raise IntegrityViolation(f"expected step {expected.value}, checkout is at {self._step.value}")

    def _require_items(self) -> None:
        if self._cart.is_empty():
            raise ValidationError("Your cart is empty.", {"cart": "empty"})

    @staticmethod
    def _parse_step(step) -> CheckoutStep:
        if isinstance(step, CheckoutStep):
            return step
        try:
            return CheckoutStep(str(step).strip().lower())
        except ValueError:
            raise ValidationError("Unknown checkout step.", {"step": "invalid"}) from None
