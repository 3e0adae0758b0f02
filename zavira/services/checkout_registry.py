"""Per-session checkout instances for the web layer."""

from __future__ import annotations

import threading
from typing import Callable, Dict

from ..common.services.checkout_service import CheckoutService, CheckoutStep


class CheckoutRegistry:
    """Keeps one checkout per shopping session.

    ``factory(session_id, cart)`` builds a checkout; ``cart`` is None for a new
    session and the existing cart when a finished checkout is restarted. The
    finished order stays readable through the order repository.
    """

    def __init__(self, factory: Callable[..., CheckoutService]) -> None:
        self._factory = factory
        self._lock = threading.Lock()
        self._checkouts: Dict[str, CheckoutService] = {}

    def get(self, session_id: str) -> CheckoutService:
        """Current checkout of the session.

        A confirmed checkout is kept while its cart is empty so the confirmation
        can be shown; once the customer shops again it is replaced.
        """
        with self._lock:
            checkout = self._checkouts.get(session_id)
            if checkout is None:
                checkout = self._factory(session_id, None)
            elif checkout.step is CheckoutStep.CONFIRMATION and not checkout.cart.is_empty():
                checkout = self._factory(session_id, checkout.cart)
            self._checkouts[session_id] = checkout
            return checkout

    def restart_if_completed(self, session_id: str) -> CheckoutService:
        """Replace a confirmed checkout with a fresh one that shares the cart."""

        with self._lock:
            checkout = self._checkouts.get(session_id)
            if checkout is None:
                checkout = self._factory(session_id, None)
            elif checkout.step is CheckoutStep.CONFIRMATION:
                checkout = self._factory(session_id, checkout.cart)
            self._checkouts[session_id] = checkout
            return checkout
