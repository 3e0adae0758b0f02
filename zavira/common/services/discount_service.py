from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Union

from ..errors import DiscountRejected
from ..utils.money import to_money
from .logging import log_event
from .pricing_service import discount_amount, meets_minimum


class DiscountKind(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    FREE_SHIPPING = "free_shipping"

    @classmethod
    def parse(cls, value: str) -> "DiscountKind":
        v = (value or "").strip().lower()
        # admin screens call free shipping codes "shipping"
        if v == "shipping":
            return cls.FREE_SHIPPING
        return cls(v)


class RejectionReason(str, Enum):
    NOT_FOUND = "not_found"
    DISABLED = "disabled"
    NOT_ACTIVE = "not_active"
    USAGE_EXCEEDED = "usage_exceeded"
    MIN_PURCHASE_NOT_MET = "min_purchase_not_met"

    @property
    def message(self) -> str:
        return _REASON_MESSAGES[self]


_REASON_MESSAGES = {
    RejectionReason.NOT_FOUND: "This discount code does not exist.",
    RejectionReason.DISABLED: "This discount code is no longer available.",
    RejectionReason.NOT_ACTIVE: "This discount code is not active right now.",
    RejectionReason.USAGE_EXCEEDED: "This discount code has reached its usage limit.",
    RejectionReason.MIN_PURCHASE_NOT_MET: "Your order does not meet the minimum purchase for this code.",
}


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


@dataclass(frozen=True)
class Discount:
    code: str
    kind: DiscountKind
    value: Decimal
    active_from: datetime
    active_until: Optional[datetime] = None
    min_purchase: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    usage_count: int = 0
    enabled: bool = True

    def __post_init__(self):
        if self.usage_limit is not None and self.usage_count > self.usage_limit:
            raise ValueError("usage_count cannot exceed usage_limit")

    def is_active_at(self, now: datetime) -> bool:
        now = as_utc(now)
        if now < as_utc(self.active_from):
            return False
        if self.active_until is not None and now > as_utc(self.active_until):
            return False
        return True

    def usage_exhausted(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit

    def with_usage(self, usage_count: int) -> "Discount":
        return replace(self, usage_count=usage_count)

    def to_dict(self) -> Dict:
        return {
            "code": self.code,
            "kind": self.kind.value,
            "value": str(self.value),
            "min_purchase": str(self.min_purchase) if self.min_purchase is not None else None,
            "active_from": self.active_from.isoformat(),
            "active_until": self.active_until.isoformat() if self.active_until else None,
            "usage_limit": self.usage_limit,
            "usage_count": self.usage_count,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Discount":
        code = normalize_code(data.get("code"))
        if len(code) < 3:
            raise ValueError("discount code must be at least 3 characters")
        value = to_money(data.get("value", 0))
        if value < 0:
            raise ValueError("discount value must be >= 0")
        min_purchase = data.get("min_purchase", data.get("minPurchase"))
        usage_limit = data.get("usage_limit", data.get("usageLimit"))
        active_until = data.get("active_until", data.get("activeUntil"))
        return cls(
            code=code,
            kind=DiscountKind.parse(data.get("kind", data.get("type", "percentage"))),
            value=value,
            active_from=_parse_ts(data.get("active_from", data.get("activeFrom"))),
            active_until=_parse_ts(active_until) if active_until else None,
            min_purchase=to_money(min_purchase) if min_purchase is not None else None,
            usage_limit=int(usage_limit) if usage_limit is not None else None,
            usage_count=int(data.get("usage_count", data.get("usageCount", 0)) or 0),
            enabled=_parse_bool(data.get("enabled", data.get("isActive", True))),
        )


_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"enabled must be a boolean, got {value!r}")


def _parse_ts(value) -> datetime:
    if value is None:
        return datetime(1970, 1, 1, tzinfo=timezone.utc)
    if isinstance(value, datetime):
        return as_utc(value)
    return as_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))


@dataclass(frozen=True)
class Applied:
    discount: Discount
    deduction: Decimal

    ok = True


@dataclass(frozen=True)
class Rejected:
    reason: RejectionReason

    ok = False

    @property
    def message(self) -> str:
        return self.reason.message


Verdict = Union[Applied, Rejected]


class DiscountService:
    """Validates discount codes against the discount catalog."""

    def __init__(self, repository):
        self._repo = repository

    def validate(self, code: str, subtotal: Decimal, now: Optional[datetime] = None) -> Verdict:
        # first failing check wins
        now = as_utc(now or datetime.now(timezone.utc))
        discount = self._repo.get_discount(normalize_code(code)) if normalize_code(code) else None
        if discount is None:
            return Rejected(RejectionReason.NOT_FOUND)
        if not discount.enabled:
            return Rejected(RejectionReason.DISABLED)
        if not discount.is_active_at(now):
            return Rejected(RejectionReason.NOT_ACTIVE)
        if discount.usage_exhausted():
            return Rejected(RejectionReason.USAGE_EXCEEDED)
        if not meets_minimum(subtotal, discount):
            return Rejected(RejectionReason.MIN_PURCHASE_NOT_MET)
        return Applied(discount=discount, deduction=discount_amount(subtotal, discount))

    def require(self, code: str, subtotal: Decimal, now: Optional[datetime] = None) -> Applied:
        verdict = self.validate(code, subtotal, now)
        if isinstance(verdict, Rejected):
            log_event("info", "discount.rejected", code=normalize_code(code), reason=verdict.reason)
            raise DiscountRejected(verdict.reason)
        return verdict
