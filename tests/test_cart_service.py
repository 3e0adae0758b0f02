"""Tests for the cart store."""

from decimal import Decimal

import pytest

from zavira.common.errors import ValidationError
from zavira.common.services.cart_service import CartService
from zavira.services import InMemoryCartStorage


class TestAddItem:
    """Adding lines to the cart."""

    def test_same_product_and_variant_merges_into_one_line(self, cart):
        """A repeated add increments the existing line."""
        first = cart.add_item("bag-101", "Black", Decimal("125.00"), 1)
        second = cart.add_item("bag-101", "Black", Decimal("125.00"), 2)

        assert first.id == second.id
        assert len(cart.get_items()) == 1
        assert cart.get_items()[0].quantity == 3

    def test_other_variant_is_a_separate_line(self, cart):
        """Variant label is part of the line identity."""
        cart.add_item("bag-101", "Black", Decimal("125.00"))
        cart.add_item("bag-101", "Cognac", Decimal("125.00"))

        assert len(cart.get_items()) == 2

    def test_quantity_clamps_to_per_item_ceiling(self, cart):
        """Increments stop at the per-line maximum."""
        cart.add_item("scarf-7", "One size", Decimal("40"), 8)
        item = cart.add_item("scarf-7", "One size", Decimal("40"), 5)

        assert item.quantity == 10

    def test_string_and_float_prices_become_decimal(self, cart):
        """Prices arrive as JSON strings or floats."""
        a = cart.add_item("ring-1", "", "19.99")
        b = cart.add_item("ring-2", "", 0.1)

        assert a.unit_price == Decimal("19.99")
        assert b.unit_price == Decimal("0.1")

    @pytest.mark.parametrize("price", [0, "-5", "abc", None, True, "NaN"])
    def test_bad_price_is_rejected(self, cart, price):
        """Zero, negative and non-numeric prices raise ValidationError."""
        with pytest.raises(ValidationError) as exc:
            cart.add_item("bag-101", "Black", price)

        assert "unit_price" in exc.value.fields
        assert cart.is_empty()

    def test_price_above_maximum_is_rejected(self, cart):
        """Unit prices above the store ceiling are refused."""
        with pytest.raises(ValidationError):
            cart.add_item("watch-1", "", Decimal("10000.01"))

    @pytest.mark.parametrize("quantity", [0, -1, "two"])
    def test_bad_quantity_is_rejected(self, cart, quantity):
        """Quantity below one raises ValidationError."""
        with pytest.raises(ValidationError) as exc:
            cart.add_item("bag-101", "Black", Decimal("125.00"), quantity)

        assert "quantity" in exc.value.fields

    def test_missing_product_id_is_rejected(self, cart):
        with pytest.raises(ValidationError):
            cart.add_item("", "Black", Decimal("125.00"))

    def test_full_cart_refuses_new_lines(self):
        """A new line past max_items_in_cart raises, merging still works."""
        cart = CartService(max_items_in_cart=2)
        cart.add_item("a", "", Decimal("10"))
        cart.add_item("b", "", Decimal("10"))

        with pytest.raises(ValidationError):
            cart.add_item("c", "", Decimal("10"))

        cart.add_item("a", "", Decimal("10"))
        assert cart.get_item_count() == 3


class TestUpdateQuantity:
    """Quantity changes on existing lines."""

    def test_quantity_never_drops_below_one(self, cart):
        """Decrementing past one leaves the line at one."""
        item = cart.add_item("bag-101", "Black", Decimal("125.00"), 2)

        cart.update_quantity(item.id, -5)

        assert cart.get_item(item.id).quantity == 1

    def test_quantity_clamps_to_ceiling(self, cart):
        item = cart.add_item("bag-101", "Black", Decimal("125.00"), 2)

        cart.update_quantity(item.id, 50)

        assert cart.get_item(item.id).quantity == 10

    def test_unknown_item_returns_none(self, cart):
        assert cart.update_quantity("missing", 1) is None


class TestRemoveAndTotals:
    """Removal, clearing and aggregate values."""

    def test_remove_unknown_item_is_a_no_op(self, cart):
        cart.add_item("bag-101", "Black", Decimal("125.00"))

        cart.remove_item("missing")

        assert len(cart.get_items()) == 1

    def test_remove_item_deletes_the_line(self, cart):
        item = cart.add_item("bag-101", "Black", Decimal("125.00"), 3)

        cart.remove_item(item.id)

        assert cart.is_empty()

    def test_subtotal_and_item_count(self, cart):
        """Subtotal sums price times quantity; item count sums quantities."""
        cart.add_item("bag-101", "Black", Decimal("125.00"), 2)
        cart.add_item("scarf-7", "", Decimal("19.99"), 3)

        assert cart.get_subtotal() == Decimal("309.97")
        assert cart.get_item_count() == 5

    def test_get_items_returns_a_copy(self, cart):
        cart.add_item("bag-101", "Black", Decimal("125.00"))

        cart.get_items().clear()

        assert len(cart.get_items()) == 1

    def test_clear_empties_the_cart(self, cart):
        cart.add_item("bag-101", "Black", Decimal("125.00"))

        cart.clear()

        assert cart.is_empty()
        assert cart.get_subtotal() == Decimal("0")


class TestStorage:
    """Carts backed by a storage adapter."""

    def test_mutations_are_saved_and_reloaded(self):
        """A new cart over the same storage sees the saved lines."""
        storage = InMemoryCartStorage()
        cart = CartService(storage=storage)
        item = cart.add_item("bag-101", "Black", Decimal("125.00"), 2)
        cart.update_quantity(item.id, 1)

        reloaded = CartService(storage=storage)

        assert [(it.product_id, it.quantity) for it in reloaded.get_items()] == [("bag-101", 3)]
        assert reloaded.get_subtotal() == Decimal("375.00")

    def test_clear_is_persisted(self):
        storage = InMemoryCartStorage()
        cart = CartService(storage=storage)
        cart.add_item("bag-101", "Black", Decimal("125.00"))

        cart.clear()

        assert CartService(storage=storage).is_empty()
