"""Tests for the pricing engine."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from zavira.common.config import ShippingZone
from zavira.common.services.cart_service import CartItem
from zavira.common.services.discount_service import Discount, DiscountKind
from zavira.common.services.pricing_service import (
    DEFAULT_ZONE,
    EMPTY_BREAKDOWN,
    ZoneRule,
    compute_breakdown,
    resolve_zone,
    shipping_cost,
)
from zavira.common.utils.validators import ShippingAddress

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _item(price, quantity=1, product_id="bag-101"):
    return CartItem(
        id=f"line-{product_id}",
        product_id=product_id,
        variant_label="",
        unit_price=Decimal(price),
        quantity=quantity,
    )


def _discount(kind, value="0"):
    return Discount(code="TEST10", kind=kind, value=Decimal(value), active_from=START)


def _address(city="Springfield", region="IL"):
    return ShippingAddress(
        first_name="Ayesha",
        last_name="Rahman",
        email="ayesha@example.com",
        street="221 Lakeshore Drive",
        city=city,
        region=region,
        postal_code="62704",
        country="US",
    )


class TestShipping:
    """Flat-rate shipping with a free-shipping threshold."""

    def test_free_at_threshold(self):
        assert shipping_cost(Decimal("150.00")) == Decimal("0")

    def test_charged_just_below_threshold(self):
        assert shipping_cost(Decimal("149.99")) == Decimal("15.00")

    def test_zone_rule_overrides_default(self):
        rule = ZoneRule(base_rate=Decimal("5.00"), free_threshold=Decimal("50.00"), name="Dhaka")

        assert shipping_cost(Decimal("49.99"), rule) == Decimal("5.00")
        assert shipping_cost(Decimal("50.00"), rule) == Decimal("0")


class TestBreakdown:
    """Totals for whole carts."""

    def test_cart_of_125_totals_150(self):
        """125.00 + 15.00 shipping + 10.00 tax."""
        b = compute_breakdown([_item("125.00")]).rounded()

        assert b.subtotal == Decimal("125.00")
        assert b.shipping_cost == Decimal("15.00")
        assert b.tax == Decimal("10.00")
        assert b.discount_amount == Decimal("0.00")
        assert b.total == Decimal("150.00")
        assert b.can_checkout

    def test_percentage_discount_keeps_tax_on_pre_discount_subtotal(self):
        """20% off 125.00 takes 25.00 off; tax stays 10.00."""
        b = compute_breakdown([_item("125.00")], _discount(DiscountKind.PERCENTAGE, "20")).rounded()

        assert b.discount_amount == Decimal("25.00")
        assert b.tax == Decimal("10.00")
        assert b.total == Decimal("125.00")

    def test_fixed_amount_is_capped_at_subtotal(self):
        """The total never goes negative."""
        b = compute_breakdown([_item("20.00")], _discount(DiscountKind.FIXED_AMOUNT, "500"))

        assert b.discount_amount == Decimal("20.00")
        assert b.total == Decimal("16.60")
        assert b.total >= 0

    def test_discount_below_minimum_purchase_is_ignored(self):
        discount = Discount(
            code="BIG50",
            kind=DiscountKind.FIXED_AMOUNT,
            value=Decimal("50"),
            active_from=START,
            min_purchase=Decimal("200"),
        )

        b = compute_breakdown([_item("125.00")], discount)

        assert b.discount_amount == Decimal("0")
        assert b.total == Decimal("150.00")

    def test_free_shipping_discount_zeroes_shipping(self):
        b = compute_breakdown([_item("40.00")], _discount(DiscountKind.FREE_SHIPPING))

        assert b.shipping_cost == Decimal("0")
        assert b.discount_amount == Decimal("0")
        assert b.total == Decimal("43.20")

    def test_empty_cart_is_all_zero_and_cannot_check_out(self):
        b = compute_breakdown([])

        assert b == EMPTY_BREAKDOWN
        assert b.total == Decimal("0")
        assert not b.can_checkout

    def test_shipping_uses_pre_discount_subtotal(self):
        """A discount that drops the net below 150 keeps free shipping."""
        b = compute_breakdown([_item("160.00")], _discount(DiscountKind.FIXED_AMOUNT, "30"))

        assert b.shipping_cost == Decimal("0")

    def test_same_inputs_give_same_result(self):
        """Recomputing never drifts and never mutates the items."""
        items = [_item("33.33", 3), _item("0.01", 1, "pin-1")]
        discount = _discount(DiscountKind.PERCENTAGE, "15")

        first = compute_breakdown(items, discount)
        second = compute_breakdown(items, discount)

        assert first == second
        assert [it.quantity for it in items] == [3, 1]

    def test_intermediate_values_stay_unrounded(self):
        b = compute_breakdown([_item("0.125")], tax_rate=Decimal("0.08"))

        assert b.tax == Decimal("0.01000")
        assert b.rounded().subtotal == Decimal("0.13")

    def test_custom_tax_rate(self):
        b = compute_breakdown([_item("200.00")], tax_rate=Decimal("0.10"))

        assert b.tax == Decimal("20.0000")
        assert b.total == Decimal("220.00")

    def test_to_dict_renders_cents(self):
        data = compute_breakdown([_item("125.00")]).to_dict()

        assert data["total"] == "150.00"
        assert data["shipping_cost"] == "15.00"
        assert data["item_count"] == 1
        assert data["can_checkout"] is True


class TestResolveZone:
    """Shipping zone selection by address."""

    ZONES = [
        ShippingZone(name="Dhaka", regions=("Dhaka",), base_rate=Decimal("5"), free_threshold=Decimal("50")),
        ShippingZone(name="Midwest", regions=("IL", "IN"), base_rate=Decimal("9"), free_threshold=Decimal("100")),
    ]

    def test_no_address_gives_default(self):
        assert resolve_zone(None, self.ZONES) is DEFAULT_ZONE

    def test_matches_region_case_insensitively(self):
        rule = resolve_zone(_address(region="il"), self.ZONES)

        assert rule.name == "Midwest"
        assert rule.base_rate == Decimal("9")

    def test_matches_city(self):
        rule = resolve_zone(_address(city="dhaka", region="Dhaka Division"), self.ZONES)

        assert rule.name == "Dhaka"

    @pytest.mark.parametrize("region", ["CA", "Ontario"])
    def test_unlisted_region_falls_back_to_default(self, region):
        assert resolve_zone(_address(city="Elsewhere", region=region), self.ZONES) is DEFAULT_ZONE
