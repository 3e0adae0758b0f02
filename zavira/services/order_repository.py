"""Order storage.

Recording an order also counts one use of its discount code. Both happen in
one step: if the code has run out, no order is stored. Saving the same order
id again returns the stored order and counts nothing.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import or_, select, update

from ..common.errors import DiscountRejected
from ..common.models.discount import DiscountRecord
from ..common.models.order import OrderRecord
from ..common.services.discount_service import RejectionReason, as_utc
from ..common.services.order_service import Order, OrderLine
from ..common.utils.money import round_money
from ..common.utils.validators import ShippingAddress

PAYMENT_STATUSES = {"success": "paid", "paid": "paid", "failed": "failed"}


def initial_status(payment_method_kind: str) -> Dict[str, str]:
    if payment_method_kind == "card":
        return {"status": "confirmed", "payment_status": "paid"}
    return {"status": "confirmed", "payment_status": "pending"}


class OrderRepository(ABC):
    @abstractmethod
    def save_order(self, order: Order) -> Order:
        ...

    @abstractmethod
    def get_order(self, order_id: str) -> Optional[Order]:
        ...

    @abstractmethod
    def list_orders(self) -> List[Order]:
        ...

    @abstractmethod
    def get_status(self, order_id: str) -> Optional[Dict]:
        ...

    @abstractmethod
    def update_payment_status(self, order_id: str, status: str, transaction_id: Optional[str] = None) -> bool:
        ...


class InMemoryOrderRepository(OrderRepository):
    def __init__(self, discounts) -> None:
        self._discounts = discounts
        self._lock = threading.RLock()
        self._orders: Dict[str, Order] = {}
        self._status: Dict[str, Dict] = {}

    def save_order(self, order: Order) -> Order:
        with self._lock:
            existing = self._orders.get(order.order_id)
            if existing is not None:
                return existing
            if order.discount_code:
                self._discounts.increment_usage(order.discount_code)
            self._orders[order.order_id] = order
            self._status[order.order_id] = dict(initial_status(order.payment_method_kind), transaction_id=None)
            return order

    def get_order(self, order_id: str) -> Optional[Order]:
        with self._lock:
            return self._orders.get(order_id)

    def list_orders(self) -> List[Order]:
        with self._lock:
            return sorted(self._orders.values(), key=lambda o: o.created_at)

    def get_status(self, order_id: str) -> Optional[Dict]:
        with self._lock:
            status = self._status.get(order_id)
            return dict(status) if status else None

    def update_payment_status(self, order_id: str, status: str, transaction_id: Optional[str] = None) -> bool:
        payment_status = _payment_status(status)
        with self._lock:
            if order_id not in self._orders:
                return False
            self._status[order_id] = {
                "status": "processing" if payment_status == "paid" else "pending",
                "payment_status": payment_status,
                "transaction_id": transaction_id,
            }
            return True


class SqlOrderRepository(OrderRepository):
    def __init__(self, session_factory) -> None:
        self._session_factory = session_factory

    def save_order(self, order: Order) -> Order:
        with self._session_factory() as session:
            existing = session.get(OrderRecord, order.order_id)
            if existing is not None:
                return _to_order(existing)
            if order.discount_code:
                result = session.execute(
                    update(DiscountRecord)
                    .where(
                        DiscountRecord.code == order.discount_code,
                        or_(
                            DiscountRecord.usage_limit.is_(None),
                            DiscountRecord.usage_count < DiscountRecord.usage_limit,
                        ),
                    )
                    .values(usage_count=DiscountRecord.usage_count + 1)
                )
                if result.rowcount == 0:
                    # rolls back with the session, no order is written
                    raise DiscountRejected(RejectionReason.USAGE_EXCEEDED)
            status = initial_status(order.payment_method_kind)
            session.add(
                OrderRecord(
                    id=order.order_id,
                    items=[line.to_dict() for line in order.items],
                    address=order.address.to_dict(),
                    subtotal=order.subtotal,
                    shipping_cost=order.shipping_cost,
                    tax=order.tax,
                    discount_amount=order.discount_amount,
                    total=order.total,
                    currency=order.currency,
                    discount_code=order.discount_code,
                    payment_method=order.payment_method_kind,
                    status=status["status"],
                    payment_status=status["payment_status"],
                    created_at=order.created_at,
                    paid_at=order.created_at if status["payment_status"] == "paid" else None,
                )
            )
            session.flush()
            return order

    def get_order(self, order_id: str) -> Optional[Order]:
        with self._session_factory() as session:
            row = session.get(OrderRecord, order_id)
            return _to_order(row) if row else None

    def list_orders(self) -> List[Order]:
        with self._session_factory() as session:
            rows = session.execute(select(OrderRecord).order_by(OrderRecord.created_at)).scalars().all()
            return [_to_order(r) for r in rows]

    def get_status(self, order_id: str) -> Optional[Dict]:
        with self._session_factory() as session:
            row = session.get(OrderRecord, order_id)
            if not row:
                return None
            return {"status": row.status, "payment_status": row.payment_status, "transaction_id": row.external_payment_id}

    def update_payment_status(self, order_id: str, status: str, transaction_id: Optional[str] = None) -> bool:
        payment_status = _payment_status(status)
        with self._session_factory() as session:
            row = session.get(OrderRecord, order_id)
            if not row:
                return False
            row.payment_status = payment_status
            row.status = "processing" if payment_status == "paid" else "pending"
            row.external_payment_id = transaction_id
            if payment_status == "paid":
                row.paid_at = datetime.now(timezone.utc)
            session.flush()
            return True


def _payment_status(status: str) -> str:
    try:
        return PAYMENT_STATUSES[(status or "").strip().lower()]
    except KeyError:
        raise ValueError(f"unknown payment status: {status!r}") from None


def _to_order(row: OrderRecord) -> Order:
    return Order(
        order_id=row.id,
        items=tuple(
            OrderLine(
                product_id=line["product_id"],
                variant_label=line.get("variant_label", ""),
                display_name=line.get("display_name", ""),
                unit_price=round_money(line["unit_price"]),
                quantity=int(line["quantity"]),
            )
            for line in row.items or []
        ),
        subtotal=round_money(row.subtotal),
        shipping_cost=round_money(row.shipping_cost),
        tax=round_money(row.tax),
        discount_amount=round_money(row.discount_amount),
        total=round_money(row.total),
        address=ShippingAddress(**row.address),
        payment_method_kind=row.payment_method,
        created_at=as_utc(row.created_at),
        currency=row.currency,
        discount_code=row.discount_code,
    )


