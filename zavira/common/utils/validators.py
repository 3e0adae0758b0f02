import re
from dataclasses import asdict, dataclass
from typing import Dict, Mapping, Optional

from ..errors import ValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
NAME_RE = re.compile(r"^[A-Za-zÀ-ÖØ-öø-ÿ\s\-']+$")
PHONE_RE = re.compile(r"^[\d\s\-+()]*$")
CARD_NUMBER_RE = re.compile(r"^[\d\s]{13,19}$")
CARD_EXPIRY_RE = re.compile(r"^(0[1-9]|1[0-2])\s?/\s?([0-9]{2})$")
CARD_CVC_RE = re.compile(r"^[0-9]{3,4}$")


@dataclass(frozen=True)
class ShippingAddress:
    first_name: str
    last_name: str
    email: str
    street: str
    city: str
    region: str
    postal_code: str
    country: str
    apartment: str = ""
    phone: str = ""

    @property
    def recipient_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class CardDetails:
    """Raw card input. Lives only until it is handed to the tokenizer."""

    number: str
    expiry: str
    cvc: str
    name: str

    @property
    def digits(self) -> str:
        return re.sub(r"\s", "", self.number)

    def __repr__(self) -> str:
        return f"CardDetails(last4={self.digits[-4:]!r})"


def _text(data: Mapping, *keys: str) -> str:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return str(value).strip()
    return ""


def _check_length(errors: Dict[str, str], field: str, value: str, lo: int, hi: int, message: str) -> None:
    if len(value) < lo:
        errors[field] = message
    elif len(value) > hi:
        errors[field] = f"must be less than {hi} characters"


def validate_shipping_address(data: Optional[Mapping]) -> ShippingAddress:
    data = data or {}
    fields = {
        "first_name": _text(data, "first_name", "firstName"),
        "last_name": _text(data, "last_name", "lastName"),
        "email": _text(data, "email"),
        "street": _text(data, "street", "address"),
        "apartment": _text(data, "apartment"),
        "city": _text(data, "city"),
        "region": _text(data, "region", "state"),
        "postal_code": _text(data, "postal_code", "zipCode", "zip_code"),
        "country": _text(data, "country"),
        "phone": _text(data, "phone"),
    }
    errors: Dict[str, str] = {}

    for name_field in ("first_name", "last_name"):
        value = fields[name_field]
        _check_length(errors, name_field, value, 1, 100, "This field is required")
        if name_field not in errors and not NAME_RE.match(value):
            errors[name_field] = "Only letters, spaces, hyphens, and apostrophes allowed"

    if not EMAIL_RE.match(fields["email"]):
        errors["email"] = "Please enter a valid email address"
    elif len(fields["email"]) > 255:
        errors["email"] = "must be less than 255 characters"

    _check_length(errors, "street", fields["street"], 5, 200, "Please enter a valid address")
    if len(fields["apartment"]) > 100:
        errors["apartment"] = "must be less than 100 characters"
    _check_length(errors, "city", fields["city"], 2, 100, "Please enter a valid city")
    _check_length(errors, "region", fields["region"], 1, 100, "Please enter a region or state")
    _check_length(errors, "postal_code", fields["postal_code"], 3, 20, "Please enter a valid ZIP code")
    _check_length(errors, "country", fields["country"], 1, 100, "Please select a country")

    if fields["phone"] and (not PHONE_RE.match(fields["phone"]) or len(fields["phone"]) > 20):
        errors["phone"] = "Please enter a valid phone number"

    if errors:
        raise ValidationError("Please correct the highlighted shipping fields.", errors)
    return ShippingAddress(**fields)


def validate_card_details(data: Optional[Mapping]) -> CardDetails:
    data = data or {}
    card = CardDetails(
        number=_text(data, "number", "cardNumber"),
        expiry=_text(data, "expiry", "cardExpiry"),
        cvc=_text(data, "cvc", "cardCvc"),
        name=_text(data, "name", "cardName"),
    )
    errors: Dict[str, str] = {}
    if not CARD_NUMBER_RE.match(card.number) or not 13 <= len(card.digits) <= 19:
        errors["number"] = "Please enter a valid card number"
    if not CARD_EXPIRY_RE.match(card.expiry):
        errors["expiry"] = "Please enter a valid expiry date (MM/YY)"
    if not CARD_CVC_RE.match(card.cvc):
        errors["cvc"] = "Please enter a valid CVC"
    _check_length(errors, "name", card.name, 1, 100, "Please enter the name on the card")
    if errors:
        raise ValidationError("Please correct the highlighted card fields.", errors)
    return card
