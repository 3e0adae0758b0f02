"""Discount catalog storage used by the discount engine."""

from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from sqlalchemy import or_, select, update

from ..common.errors import DiscountRejected
from ..common.models.discount import DiscountRecord
from ..common.services.discount_service import Discount, DiscountKind, RejectionReason, as_utc, normalize_code
from ..common.services.logging import log_event


class DiscountRepository(ABC):
    """Read access to the discount catalog. Discount CRUD belongs to the admin side."""

    @abstractmethod
    def list_discounts(self) -> List[Discount]:
        ...

    @abstractmethod
    def get_discount(self, code: str) -> Optional[Discount]:
        ...

    @abstractmethod
    def increment_usage(self, code: str) -> Discount:
        ...


class InMemoryDiscountRepository(DiscountRepository):
    def __init__(self, discounts: Iterable[Discount] = ()) -> None:
        self._lock = threading.RLock()
        self._discounts: Dict[str, Discount] = {}
        for discount in discounts:
            self._discounts[normalize_code(discount.code)] = discount

    def list_discounts(self) -> List[Discount]:
        with self._lock:
            return sorted(self._discounts.values(), key=lambda d: d.code)

    def get_discount(self, code: str) -> Optional[Discount]:
        with self._lock:
            return self._discounts.get(normalize_code(code))

    def increment_usage(self, code: str) -> Discount:
        """Count one more use. Raises when the code is gone or its limit is reached."""

        with self._lock:
            key = normalize_code(code)
            discount = self._discounts.get(key)
            if discount is None:
                raise DiscountRejected(RejectionReason.NOT_FOUND)
            if discount.usage_exhausted():
                raise DiscountRejected(RejectionReason.USAGE_EXCEEDED)
            updated = discount.with_usage(discount.usage_count + 1)
            self._discounts[key] = updated
            return updated


class SqlDiscountRepository(DiscountRepository):
    def __init__(self, session_factory) -> None:
        self._session_factory = session_factory

    def list_discounts(self) -> List[Discount]:
        with self._session_factory() as session:
            rows = session.execute(select(DiscountRecord).order_by(DiscountRecord.code)).scalars().all()
            return [_to_discount(r) for r in rows]

    def get_discount(self, code: str) -> Optional[Discount]:
        with self._session_factory() as session:
            row = session.get(DiscountRecord, normalize_code(code))
            return _to_discount(row) if row else None

    def increment_usage(self, code: str) -> Discount:
        key = normalize_code(code)
        with self._session_factory() as session:
            if session.get(DiscountRecord, key) is None:
                raise DiscountRejected(RejectionReason.NOT_FOUND)
            result = session.execute(
                update(DiscountRecord)
                .where(
                    DiscountRecord.code == key,
                    or_(
                        DiscountRecord.usage_limit.is_(None),
                        DiscountRecord.usage_count < DiscountRecord.usage_limit,
                    ),
                )
                .values(usage_count=DiscountRecord.usage_count + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise DiscountRejected(RejectionReason.USAGE_EXCEEDED)
            session.expire_all()
            return _to_discount(session.get(DiscountRecord, key))

    def seed(self, discounts: Iterable[Discount]) -> int:
        """Insert discounts that are not stored yet. Existing codes keep their usage count."""

        added = 0
        with self._session_factory() as session:
            for d in discounts:
                if session.get(DiscountRecord, d.code) is not None:
                    continue
                session.add(
                    DiscountRecord(
                        code=d.code,
                        kind=d.kind.value,
                        value=d.value,
                        min_purchase=d.min_purchase,
                        active_from=d.active_from,
                        active_until=d.active_until,
                        usage_limit=d.usage_limit,
                        usage_count=d.usage_count,
                        enabled=d.enabled,
                    )
                )
                added += 1
        return added


def _to_discount(row: DiscountRecord) -> Discount:
    return Discount(
        code=row.code,
        kind=DiscountKind(row.kind),
        value=row.value,
        min_purchase=row.min_purchase,
        active_from=as_utc(row.active_from),
        active_until=as_utc(row.active_until) if row.active_until else None,
        usage_limit=row.usage_limit,
        usage_count=row.usage_count or 0,
        enabled=bool(row.enabled),
    )


def load_discount_seed(data_file: Path) -> List[Discount]:
    """Read the discount seed file. Entries that fail to parse are skipped."""

    if not data_file.exists():
        return []
    text = data_file.read_text(encoding="utf-8")
    if not text.strip():
        return []
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"discount seed file is not valid JSON: {data_file}") from exc
    if not isinstance(payload, list):
        raise ValueError("discount seed file must contain a list")
    discounts: List[Discount] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        try:
            discounts.append(Discount.from_dict(item))
        except (KeyError, TypeError, ValueError) as exc:
            log_event("warning", "discount.seed_skipped", code=item.get("code"), error=str(exc))
    return discounts
