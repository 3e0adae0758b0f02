"""Session-scoped persistence for cart contents."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Iterable, List

from ..common.services.cart_service import CartItem
from ..common.services.logging import log_event


class CartStorage(ABC):
    @abstractmethod
    def load(self) -> List[CartItem]:
        ...

    @abstractmethod
    def save(self, items: Iterable[CartItem]) -> None:
        ...


class InMemoryCartStorage(CartStorage):
    def __init__(self) -> None:
        self._items: List[Dict] = []

    def load(self) -> List[CartItem]:
        return [item for item in (_from_dict(d) for d in self._items) if item is not None]

    def save(self, items: Iterable[CartItem]) -> None:
        self._items = [it.to_dict() for it in items]


class JsonCartStorage(CartStorage):
    """One JSON file per shopping session."""

    def __init__(self, data_file: Path) -> None:
        self._data_file = data_file

    def load(self) -> List[CartItem]:
        if not self._data_file.exists():
            return []
        text = self._data_file.read_text(encoding="utf-8")
        if not text.strip():
            return []
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            # corrupted cart data is dropped, not repaired
            log_event("warning", "cart.storage_corrupted", path=str(self._data_file))
            self._data_file.unlink(missing_ok=True)
            return []
        if not isinstance(payload, list):
            return []
        return [item for item in (_from_dict(d) for d in payload) if item is not None]

    def save(self, items: Iterable[CartItem]) -> None:
        self._data_file.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps([it.to_dict() for it in items], ensure_ascii=False, indent=2)
        self._data_file.write_text(content + "\n", encoding="utf-8")


def _from_dict(data) -> CartItem | None:
    if not isinstance(data, dict):
        return None
    try:
        quantity = data.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            return None
        unit_price = Decimal(str(data["unit_price"]))
        if not unit_price.is_finite():
            return None
        return CartItem(
            id=str(data["id"]),
            product_id=str(data["product_id"]),
            variant_label=str(data.get("variant_label", "")),
            unit_price=unit_price,
            quantity=quantity,
            display_name=str(data.get("display_name", "")),
        )
    except (KeyError, InvalidOperation):
        return None
