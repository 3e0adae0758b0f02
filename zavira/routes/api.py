"""JSON API for the storefront cart and checkout."""

from __future__ import annotations

import time
from typing import Any, Dict
from urllib.parse import urlencode
from uuid import uuid4

from flask import Blueprint, current_app, jsonify, request, session

from ..common.errors import CheckoutError, IntegrityViolation
from ..common.services.checkout_service import CheckoutService
from ..common.services.logging import log_event
from ..common.services.payment_service import result_to_dict
from ..common.utils.dto import to_cart_dto, to_order_dto


api_bp = Blueprint("storefront_api", __name__, url_prefix="/api")


def _components() -> Dict[str, Any]:
    return current_app.extensions["storefront_components"]


def _config():
    return current_app.config["STOREFRONT_CONFIG"]


def _session_id() -> str:
    sid = session.get("checkout_sid")
    if not sid:
        sid = uuid4().hex
        session["checkout_sid"] = sid
    return sid


def _checkout() -> CheckoutService:
    return _components()["checkouts"].get(_session_id())


def _shopping_checkout() -> CheckoutService:
    """Checkout for requests that change the cart or its discount."""
    return _components()["checkouts"].restart_if_completed(_session_id())


def _payload() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _cart_response(checkout: CheckoutService, status: int = 200):
    body = to_cart_dto(checkout.cart, checkout.breakdown(), _config().app.currency)
    return jsonify(body), status


@api_bp.errorhandler(CheckoutError)
def handle_checkout_error(exc: CheckoutError):
    if isinstance(exc, IntegrityViolation):
        log_event("error", "checkout.integrity_violation", detail=exc.message)
        return jsonify({"error": "This checkout step is not available right now.", "code": exc.code}), exc.status
    return jsonify(exc.to_dict()), exc.status


@api_bp.get("/cart")
def get_cart():
    return _cart_response(_checkout())


@api_bp.post("/cart/items")
def add_cart_item():
    payload = _payload()
    checkout = _shopping_checkout()
    checkout.cart.add_item(
        product_id=str(payload.get("product_id") or payload.get("id") or "").strip(),
        variant_label=str(payload.get("variant_label") or payload.get("size") or ""),
        unit_price=payload.get("unit_price", payload.get("price")),
        quantity=payload.get("quantity", 1),
        display_name=str(payload.get("display_name") or payload.get("name") or ""),
    )
    return _cart_response(checkout, 201)


@api_bp.patch("/cart/items/<item_id>")
def update_cart_item(item_id: str):
    checkout = _shopping_checkout()
    if checkout.cart.update_quantity(item_id, _payload().get("delta", 0)) is None:
        return jsonify({"error": "item not found"}), 404
    return _cart_response(checkout)


@api_bp.delete("/cart/items/<item_id>")
def remove_cart_item(item_id: str):
    checkout = _shopping_checkout()
    checkout.cart.remove_item(item_id)
    return _cart_response(checkout)


@api_bp.get("/checkout")
def get_checkout():
    return jsonify(_checkout().to_dict())


@api_bp.post("/checkout/start")
def start_checkout():
    checkout = _shopping_checkout()
    checkout.start()
    return jsonify(checkout.to_dict())


@api_bp.post("/checkout/shipping")
def submit_shipping():
    checkout = _checkout()
    payload = _payload()
    checkout.submit_shipping(payload.get("address") or payload)
    return jsonify(checkout.to_dict())


@api_bp.post("/checkout/payment")
def submit_payment():
    checkout = _checkout()
    result = checkout.submit_payment(_payload())
    body = checkout.to_dict()
    body["result"] = result_to_dict(result)
    return jsonify(body)


@api_bp.post("/checkout/back")
def go_back():
    checkout = _checkout()
    checkout.go_back(_payload().get("step", ""))
    return jsonify(checkout.to_dict())


@api_bp.post("/checkout/cancel")
def cancel_checkout():
    checkout = _checkout()
    checkout.cancel()
    return jsonify(checkout.to_dict())


@api_bp.post("/checkout/discount")
def apply_discount():
    checkout = _shopping_checkout()
    applied = checkout.apply_discount(str(_payload().get("code") or ""))
    body = checkout.to_dict()
    body["discount"] = applied.discount.to_dict()
    return jsonify(body)


@api_bp.delete("/checkout/discount")
def remove_discount():
    checkout = _shopping_checkout()
    checkout.remove_discount()
    return jsonify(checkout.to_dict())


@api_bp.get("/orders/<order_id>")
def get_order(order_id: str):
    order = _components()["order_service"].get_order(order_id)
    if order is None:
        return jsonify({"error": "order not found"}), 404
    status = _components()["order_repo"].get_status(order_id)
    return jsonify(to_order_dto(order, status))


@api_bp.post("/payment/create")
def create_payment():
    """Mock payment-initiation service: sends the customer to a simulated wallet page."""

    payload = _payload()
    order_id = str(payload.get("orderId") or "").strip()
    if not order_id:
        return jsonify({"error": "Order ID is required"}), 400
    method = str(payload.get("paymentMethod") or "bkash")
    query = urlencode({"orderId": order_id, "method": method})
    return jsonify(
        {
            "success": True,
            "paymentUrl": f"/checkout/mock-payment?{query}",
            "transactionId": f"mock_{int(time.time() * 1000)}",
        }
    )


@api_bp.post("/payment/webhook")
def payment_webhook():
    payload = _payload()
    order_id = str(payload.get("orderId") or "").strip()
    status = str(payload.get("status") or "").strip()
    if not order_id or not status:
        return jsonify({"error": "Missing required fields"}), 400
    try:
        updated = _components()["order_repo"].update_payment_status(
            order_id, status, payload.get("transactionId")
        )
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400
    if not updated:
        return jsonify({"error": "order not found"}), 404
    log_event("info", "payment.webhook", order_id=order_id, status=status)
    return jsonify({"success": True})
