import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
import json
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv


@dataclass(frozen=True)
class ShippingZone:
    name: str
    regions: Tuple[str, ...]
    base_rate: Decimal
    free_threshold: Decimal
    estimated_days: str = ""


@dataclass
class AppConfig:
    database_url: str
    secret_key: str
    log_level: str
    currency: str
    tax_rate: Decimal = Decimal("0.08")
    free_shipping_threshold: Decimal = Decimal("150.00")
    flat_shipping_rate: Decimal = Decimal("15.00")
    shipping_zones: List[ShippingZone] = field(default_factory=list)
    payment_initiation_url: str = "http://127.0.0.1:5000/api/payment/create"
    payment_timeout_seconds: float = 10.0
    max_quantity_per_item: int = 10
    max_items_in_cart: int = 20
    max_unit_price: Decimal = Decimal("10000")
    simulated_payment_latency: float = 0.0
    storage_backend: str = "memory"


STORAGE_BACKENDS = {"memory", "sql"}


def validate_currency(value: Optional[str]) -> str:
    v = (value or "USD").strip().upper()
    if len(v) != 3:
        raise ValueError("Invalid currency code: expected ISO4217 length 3")
    return v


def _decimal(value, name: str, default: str) -> Decimal:
    if value is None or str(value).strip() == "":
        return Decimal(default)
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a number") from exc
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"{name} must be >= 0")
    return amount


def _int(value, name: str, default: int) -> int:
    if value is None or str(value).strip() == "":
        return default
    try:
        number = int(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if number < 1:
        raise ValueError(f"{name} must be >= 1")
    return number


def _float(value, name: str, default: float) -> float:
    if value is None or str(value).strip() == "":
        return default
    try:
        number = float(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc
    if number < 0:
        raise ValueError(f"{name} must be >= 0")
    return number


def parse_shipping_zones(raw) -> List[ShippingZone]:
    if not raw:
        return []
    if isinstance(raw, str):
        raw = json.loads(raw)
    if not isinstance(raw, list):
        raise ValueError("SHIPPING_ZONES must be a list")
    zones = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        if entry.get("isActive", entry.get("is_active", True)) is False:
            continue
        regions = entry.get("regions") or entry.get("countries") or []
        zones.append(
            ShippingZone(
                name=str(entry.get("name", "")),
                regions=tuple(str(r).strip() for r in regions if str(r).strip()),
                base_rate=_decimal(entry.get("baseRate", entry.get("base_rate")), "baseRate", "0"),
                free_threshold=_decimal(
                    entry.get("freeShippingThreshold", entry.get("free_threshold")), "freeShippingThreshold", "0"
                ),
                estimated_days=str(entry.get("estimatedDays", entry.get("estimated_days", "")) or ""),
            )
        )
    return zones


def _load_settings_file(path: Optional[Path] = None) -> dict:
    try:
        path = path or Path(__file__).resolve().parents[2] / "data" / "settings.json"
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                return data
    except (OSError, ValueError):
        pass
    return {}


def load_env(
    settings_file: Optional[Path] = None,
    overrides: Optional[Dict] = None,
    *,
    data_dir: Optional[Path] = None,
) -> AppConfig:
    # data/settings.json wins over the environment; .env is the fallback
    load_dotenv()
    s = dict(_load_settings_file(settings_file))
    s.update(overrides or {})

    def pick(key: str, default=None):
        value = s.get(key)
        if value is None or value == "":
            value = os.getenv(key)
        return default if value is None or value == "" else value

    storage_backend = str(pick("STORAGE_BACKEND", "memory")).strip().lower()
    if storage_backend not in STORAGE_BACKENDS:
        raise ValueError(f"STORAGE_BACKEND must be one of {sorted(STORAGE_BACKENDS)}")

    tax_rate = _decimal(pick("TAX_RATE"), "TAX_RATE", "0.08")
    if tax_rate > 1:
        raise ValueError("TAX_RATE must be a fraction between 0 and 1")

    return AppConfig(
        database_url=pick("DATABASE_URL", f"sqlite:///{data_dir / 'app.db'}" if data_dir else "sqlite:///data/app.db"),
        secret_key=pick("SECRET_KEY", "dev_secret"),
        log_level=str(pick("LOG_LEVEL", "INFO")),
        currency=validate_currency(pick("CURRENCY")),
        tax_rate=tax_rate,
        free_shipping_threshold=_decimal(pick("FREE_SHIPPING_THRESHOLD"), "FREE_SHIPPING_THRESHOLD", "150.00"),
        flat_shipping_rate=_decimal(pick("FLAT_SHIPPING_RATE"), "FLAT_SHIPPING_RATE", "15.00"),
        shipping_zones=parse_shipping_zones(pick("SHIPPING_ZONES")),
        payment_initiation_url=str(
            pick("PAYMENT_INITIATION_URL", "http://127.0.0.1:5000/api/payment/create")
        ).strip(),
        payment_timeout_seconds=_float(pick("PAYMENT_TIMEOUT_SECONDS"), "PAYMENT_TIMEOUT_SECONDS", 10.0),
        max_quantity_per_item=_int(pick("MAX_QUANTITY_PER_ITEM"), "MAX_QUANTITY_PER_ITEM", 10),
        max_items_in_cart=_int(pick("MAX_ITEMS_IN_CART"), "MAX_ITEMS_IN_CART", 20),
        max_unit_price=_decimal(pick("MAX_UNIT_PRICE"), "MAX_UNIT_PRICE", "10000"),
        simulated_payment_latency=_float(pick("SIMULATED_PAYMENT_LATENCY"), "SIMULATED_PAYMENT_LATENCY", 0.0),
        storage_backend=storage_backend,
    )
