"""Tokenization boundary for card payments.

Raw card details stop here. Everything after this point only sees the token.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from uuid import uuid4

from ..common.utils.validators import CardDetails


@dataclass(frozen=True)
class CardToken:
    token: str
    brand: str
    last4: str


class CardTokenizer(ABC):
    @abstractmethod
    def tokenize(self, card: CardDetails) -> CardToken:
        ...


def card_brand(digits: str) -> str:
    if digits.startswith("4"):
        return "visa"
    if digits[:2] in {"51", "52", "53", "54", "55"}:
        return "mastercard"
    if digits[:2] in {"34", "37"}:
        return "amex"
    return "card"


class MockCardTokenizer(CardTokenizer):
    """Stand-in for a PCI tokenization service. Issues random tokens."""

    def tokenize(self, card: CardDetails) -> CardToken:
        digits = card.digits
        return CardToken(token=f"tok_{uuid4().hex}", brand=card_brand(digits), last4=digits[-4:])
