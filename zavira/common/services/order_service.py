from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from ..utils.money import round_money
from ..utils.validators import ShippingAddress
from .logging import log_event


def new_order_id() -> str:
    return f"ORD-{uuid4().hex[:12].upper()}"


@dataclass(frozen=True)
class OrderLine:
    product_id: str
    variant_label: str
    display_name: str
    unit_price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @classmethod
    def from_cart_item(cls, item) -> "OrderLine":
        return cls(
            product_id=item.product_id,
            variant_label=item.variant_label,
            display_name=item.display_name,
            unit_price=item.unit_price,
            quantity=item.quantity,
        )

    def to_dict(self) -> Dict:
        return {
            "product_id": self.product_id,
            "variant_label": self.variant_label,
            "display_name": self.display_name,
            "unit_price": str(round_money(self.unit_price)),
            "quantity": self.quantity,
        }


@dataclass(frozen=True)
class Order:
    """A completed checkout. Never modified once created."""

    order_id: str
    items: Tuple[OrderLine, ...]
    subtotal: Decimal
    shipping_cost: Decimal
    tax: Decimal
    discount_amount: Decimal
    total: Decimal
    address: ShippingAddress
    payment_method_kind: str
    created_at: datetime
    currency: str = "USD"
    discount_code: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "order_id": self.order_id,
            "items": [line.to_dict() for line in self.items],
            "subtotal": str(self.subtotal),
            "shipping_cost": str(self.shipping_cost),
            "tax": str(self.tax),
            "discount_amount": str(self.discount_amount),
            "total": str(self.total),
            "currency": self.currency,
            "address": self.address.to_dict(),
            "payment_method_kind": self.payment_method_kind,
            "discount_code": self.discount_code,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class OrderDraft:
    """Checkout data collected so far. Mutable until the order is created."""

    items: List = field(default_factory=list)
    address: Optional[ShippingAddress] = None
    payment: Optional[object] = None
    discount: Optional[object] = None
    attempt_id: Optional[str] = None
    attempt_method: Optional[str] = None

    def snapshot_items(self, cart_items) -> None:
        self.items = [OrderLine.from_cart_item(it) for it in cart_items]

    def ensure_attempt_id(self, method: str) -> str:
        """Reuse the attempt id for retries with the same payment method.

        Switching method starts a new attempt, so an abandoned wallet attempt
        never shares its id with an order recorded another way.
        """
        if not self.attempt_id or self.attempt_method != method:
            self.attempt_id = new_order_id()
            self.attempt_method = method
        return self.attempt_id

    def to_dict(self) -> Dict:
        return {
            "items": [line.to_dict() for line in self.items],
            "address": self.address.to_dict() if self.address else None,
            "payment_method": self.payment.kind.value if self.payment is not None else None,
            "discount_code": self.discount.code if self.discount is not None else None,
        }


class OrderService:
    """Builds orders from the checkout draft and hands them to the order repository."""

    def __init__(self, repository, *, currency: str = "USD"):
        self._repo = repository
        self._currency = currency

    def build_order(self, *, order_id: str, draft: OrderDraft, breakdown, payment_method_kind: str) -> Order:
        totals = breakdown.rounded()
        return Order(
            order_id=order_id,
            items=tuple(draft.items),
            subtotal=totals.subtotal,
            shipping_cost=totals.shipping_cost,
            tax=totals.tax,
            discount_amount=totals.discount_amount,
            total=totals.total,
            address=draft.address,
            payment_method_kind=payment_method_kind,
            created_at=datetime.now(timezone.utc),
            currency=self._currency,
            discount_code=draft.discount.code if draft.discount is not None else None,
        )

    def create_order(self, *, draft: OrderDraft, breakdown, payment_method_kind: str, cart) -> Order:
        """Create the order from the draft, then clear the cart.

        The draft's attempt id is the order id, so a retried call returns the
        order already stored instead of creating a second one.
        """
        order = self.build_order(
            order_id=draft.ensure_attempt_id(payment_method_kind),
            draft=draft,
            breakdown=breakdown,
            payment_method_kind=payment_method_kind,
        )
        stored = self._repo.save_order(order)
        cart.clear()
        log_event(
            "info",
            "order.created",
            order_id=stored.order_id,
            items=len(stored.items),
            total=str(stored.total),
            payment_method=payment_method_kind,
        )
        return stored

    def get_order(self, order_id: str) -> Optional[Order]:
        if not order_id:
            return None
        return self._repo.get_order(order_id)
