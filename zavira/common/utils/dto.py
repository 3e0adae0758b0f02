from typing import Dict, Optional

from .money import money_str


def to_cart_dto(cart, breakdown, currency: str) -> Dict:
    return {
        "items": [dict(it.to_dict(), line_total=money_str(it.line_total)) for it in cart.get_items()],
        "item_count": cart.get_item_count(),
        "currency": currency,
        "totals": breakdown.to_dict(),
    }


def to_order_dto(order, status: Optional[Dict] = None) -> Dict:
    data = order.to_dict()
    if status:
        data["status"] = status.get("status")
        data["payment_status"] = status.get("payment_status")
    return data
