from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Convert a price-like value to Decimal without rounding.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.
    """
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, bool):
        raise ValueError("invalid money amount")
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"invalid money amount: {value!r}") from exc
    else:
        raise ValueError(f"invalid money amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"invalid money amount: {value!r}")
    return amount


def round_money(amount: Decimal) -> Decimal:
    """Round to cents. Only used where a value is displayed or persisted."""
    return to_money(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(amount: Decimal) -> str:
    return str(round_money(amount))
