from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import uuid4

from ..errors import ValidationError
from ..utils.money import ZERO, to_money
from .logging import log_event


@dataclass
class CartItem:
    id: str
    product_id: str
    variant_label: str
    unit_price: Decimal
    quantity: int
    display_name: str = ""

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "variant_label": self.variant_label,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "display_name": self.display_name,
        }


class CartService:
    """Line items of one shopping session.

    The cart is the single source of truth for what the customer intends to buy.
    When a storage adapter is given, the cart is loaded from it once and written
    back after every mutation.
    """

    def __init__(
        self,
        *,
        storage=None,
        max_quantity_per_item: int = 10,
        max_items_in_cart: int = 20,
        max_unit_price: Decimal = Decimal("10000"),
    ):
        self._storage = storage
        self._max_quantity = max_quantity_per_item
        self._max_items = max_items_in_cart
        self._max_unit_price = max_unit_price
        self._items: List[CartItem] = []
        if storage is not None:
            self._items = [it for it in storage.load() if self._is_valid_item(it)][: self._max_items]

    def add_item(
        self,
        product_id: str,
        variant_label: str,
        unit_price,
        quantity: int = 1,
        display_name: str = "",
    ) -> CartItem:
        if not product_id:
            raise ValidationError("product_id required", {"product_id": "required"})
        try:
            price = to_money(unit_price)
        except ValueError as exc:
            raise ValidationError("unit_price must be a number", {"unit_price": "invalid"}) from exc
        if price <= 0:
            raise ValidationError("unit_price must be > 0", {"unit_price": "must be > 0"})
        if price > self._max_unit_price:
            raise ValidationError("unit_price exceeds the maximum", {"unit_price": "too large"})
        qnty = self._coerce_quantity(quantity)
        if qnty < 1:
            raise ValidationError("quantity must be >= 1", {"quantity": "must be >= 1"})
        variant = (variant_label or "").strip()

        existing = self._find(product_id=product_id, variant_label=variant)
        if existing:
            existing.quantity = min(existing.quantity + qnty, self._max_quantity)
            item = existing
        else:
            if len(self._items) >= self._max_items:
                raise ValidationError("cart is full", {"cart": f"at most {self._max_items} items"})
            item = CartItem(
                id=str(uuid4()),
                product_id=str(product_id),
                variant_label=variant,
                unit_price=price,
                quantity=min(qnty, self._max_quantity),
                display_name=display_name or "",
            )
            self._items.append(item)
        self._persist()
        log_event("info", "cart.item_added", item_id=item.id, product_id=item.product_id, quantity=item.quantity)
        return item

    def update_quantity(self, item_id: str, delta: int) -> Optional[CartItem]:
        it = self._get(item_id)
        if it is None:
            return None
        new_q = it.quantity + self._coerce_quantity(delta)
        # removal is explicit, quantity never drops below one
        it.quantity = max(1, min(new_q, self._max_quantity))
        self._persist()
        return it

    def remove_item(self, item_id: str) -> None:
        before = len(self._items)
        self._items = [it for it in self._items if it.id != item_id]
        if len(self._items) != before:
            self._persist()
            log_event("info", "cart.item_removed", item_id=item_id)
        return None

    def clear(self) -> None:
        self._items = []
        self._persist()

    def get_items(self) -> List[CartItem]:
        return list(self._items)

    def get_item(self, item_id: str) -> Optional[CartItem]:
        return self._get(item_id)

    def get_item_count(self) -> int:
        return sum(it.quantity for it in self._items)

    def get_subtotal(self) -> Decimal:
        return sum((it.line_total for it in self._items), ZERO)

    def is_empty(self) -> bool:
        return not self._items

    def _get(self, item_id: str) -> Optional[CartItem]:
        for it in self._items:
            if it.id == item_id:
                return it
        return None

    def _find(self, *, product_id: str, variant_label: str) -> Optional[CartItem]:
        for it in self._items:
            if it.product_id == product_id and it.variant_label == variant_label:
                return it
        return None

    @staticmethod
    def _coerce_quantity(value) -> int:
        if isinstance(value, bool):
            raise ValidationError("quantity must be an integer", {"quantity": "invalid"})
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ValidationError("quantity must be an integer", {"quantity": "invalid"}) from exc

    def _is_valid_item(self, it: CartItem) -> bool:
        return (
            bool(it.id)
            and bool(it.product_id)
            and Decimal("0") < it.unit_price <= self._max_unit_price
            and 1 <= it.quantity <= self._max_quantity
        )

    def _persist(self) -> None:
        if self._storage is not None:
            self._storage.save(self._items)
