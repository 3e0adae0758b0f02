"""Storefront application settings."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .common.config import AppConfig, load_env
from .common.services.logging import log_event

DEFAULT_SETTINGS = {
    "CURRENCY": "USD",
    "TAX_RATE": "0.08",
    "FREE_SHIPPING_THRESHOLD": "150.00",
    "FLAT_SHIPPING_RATE": "15.00",
    "SHIPPING_ZONES": [],
    "PAYMENT_TIMEOUT_SECONDS": "10",
    "MAX_QUANTITY_PER_ITEM": "10",
    "MAX_ITEMS_IN_CART": "20",
    "STORAGE_BACKEND": "memory",
}

DEFAULT_DISCOUNTS = [
    {
        "code": "WELCOME20",
        "kind": "percentage",
        "value": "20",
        "min_purchase": "0",
        "active_from": "2024-01-01T00:00:00+00:00",
        "active_until": None,
        "usage_limit": 100,
        "usage_count": 45,
        "enabled": True,
    },
    {
        "code": "FREESHIP",
        "kind": "free_shipping",
        "value": "0",
        "active_from": "2024-01-01T00:00:00+00:00",
        "active_until": None,
        "usage_limit": None,
        "usage_count": 120,
        "enabled": True,
    },
    {
        "code": "HOLIDAY15",
        "kind": "percentage",
        "value": "15",
        "active_from": "2024-11-25T00:00:00+00:00",
        "active_until": "2024-12-25T23:59:59+00:00",
        "usage_limit": 200,
        "usage_count": 78,
        "enabled": True,
    },
]


@dataclass
class StorefrontConfig:
    """Paths and secrets of the storefront app plus the checkout settings."""

    secret_key: str
    data_dir: Path
    app: AppConfig

    @property
    def settings_file(self) -> Path:
        return self.data_dir / "settings.json"

    @property
    def discounts_file(self) -> Path:
        return self.data_dir / "discounts.json"

    @property
    def carts_dir(self) -> Path:
        return self.data_dir / "carts"

    @classmethod
    def load(cls, data_dir: Optional[Path] = None, **overrides) -> "StorefrontConfig":
        """Build settings from the environment and make sure the data files exist."""

        root = Path(data_dir or os.environ.get("ZAVIRA_DATA_DIR") or Path.cwd() / "data")
        root.mkdir(parents=True, exist_ok=True)
        (root / "carts").mkdir(parents=True, exist_ok=True)

        settings_file = root / "settings.json"
        if not settings_file.exists():
            settings_file.write_text(
                json.dumps(DEFAULT_SETTINGS, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
            log_event("info", "config.settings_created", path=str(settings_file))

        discounts_file = root / "discounts.json"
        if not discounts_file.exists():
            discounts_file.write_text(
                json.dumps(DEFAULT_DISCOUNTS, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )

        app_config = load_env(settings_file, overrides, data_dir=root)
        secret_key = os.environ.get("ZAVIRA_SECRET_KEY") or app_config.secret_key
        return cls(secret_key=secret_key, data_dir=root, app=app_config)
