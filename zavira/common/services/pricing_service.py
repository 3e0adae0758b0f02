"""Pure price computation over cart contents.

Nothing here keeps state: every call recomputes the breakdown from the items,
discount and zone rule it is given, so the same inputs always give the same
totals. Values are kept unrounded; round with ``round_money`` when displaying
or persisting.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Optional, Sequence

from ..config import ShippingZone
from ..utils.money import ZERO, round_money

DEFAULT_TAX_RATE = Decimal("0.08")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ZoneRule:
    base_rate: Decimal
    free_threshold: Decimal
    name: str = "default"


DEFAULT_ZONE = ZoneRule(base_rate=Decimal("15.00"), free_threshold=Decimal("150.00"))


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    shipping_cost: Decimal
    tax: Decimal
    discount_amount: Decimal
    total: Decimal
    item_count: int = 0

    @property
    def can_checkout(self) -> bool:
        return self.item_count > 0

    def rounded(self) -> "PriceBreakdown":
        return PriceBreakdown(
            subtotal=round_money(self.subtotal),
            shipping_cost=round_money(self.shipping_cost),
            tax=round_money(self.tax),
            discount_amount=round_money(self.discount_amount),
            total=round_money(self.total),
            item_count=self.item_count,
        )

    def to_dict(self) -> Dict:
        r = self.rounded()
        return {
            "subtotal": str(r.subtotal),
            "shipping_cost": str(r.shipping_cost),
            "tax": str(r.tax),
            "discount_amount": str(r.discount_amount),
            "total": str(r.total),
            "item_count": r.item_count,
            "can_checkout": r.can_checkout,
        }


EMPTY_BREAKDOWN = PriceBreakdown(ZERO, ZERO, ZERO, ZERO, ZERO, 0)


def subtotal_of(items: Iterable) -> Decimal:
    return sum((it.unit_price * it.quantity for it in items), ZERO)


def shipping_cost(subtotal: Decimal, zone_rule: Optional[ZoneRule] = None) -> Decimal:
    rule = zone_rule or DEFAULT_ZONE
    if subtotal >= rule.free_threshold:
        return ZERO
    return rule.base_rate


def discount_amount(subtotal: Decimal, discount=None) -> Decimal:
    if discount is None:
        return ZERO
    kind = discount.kind.value
    if kind == "percentage":
        return min(subtotal * discount.value / HUNDRED, subtotal)
    if kind == "fixed_amount":
        return min(discount.value, subtotal)
    # free shipping has no monetary deduction
    return ZERO


def meets_minimum(subtotal: Decimal, discount) -> bool:
    return discount.min_purchase is None or subtotal >= discount.min_purchase


def tax(subtotal: Decimal, rate: Decimal = DEFAULT_TAX_RATE) -> Decimal:
    """Tax on the subtotal before any discount is taken off."""
    return subtotal * rate


def compute_breakdown(
    items: Sequence,
    discount=None,
    zone_rule: Optional[ZoneRule] = None,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
) -> PriceBreakdown:
    if not items:
        return EMPTY_BREAKDOWN
    sub = subtotal_of(items)
    if discount is not None and not meets_minimum(sub, discount):
        discount = None
    ship = shipping_cost(sub, zone_rule)
    if discount is not None and discount.kind.value == "free_shipping":
        ship = ZERO
    deduction = discount_amount(sub, discount)
    tx = tax(sub, tax_rate)
    total = max(sub - deduction + ship + tx, ZERO)
    return PriceBreakdown(
        subtotal=sub,
        shipping_cost=ship,
        tax=tx,
        discount_amount=deduction,
        total=total,
        item_count=sum(it.quantity for it in items),
    )


def zone_rule_from(zone: ShippingZone) -> ZoneRule:
    return ZoneRule(base_rate=zone.base_rate, free_threshold=zone.free_threshold, name=zone.name)


def resolve_zone(address, zones: Sequence[ShippingZone], default: ZoneRule = DEFAULT_ZONE) -> ZoneRule:
    """Pick the first zone listing the address region or city, else the default."""
    if address is None:
        return default
    keys = {(address.region or "").strip().lower(), (address.city or "").strip().lower()} - {""}
    for zone in zones:
        if keys & {r.lower() for r in zone.regions}:
            return zone_rule_from(zone)
    return default
