"""Tests for settings loading."""

import json
from decimal import Decimal

import pytest

from zavira.common.config import load_env, parse_shipping_zones, validate_currency
from zavira.config import StorefrontConfig

SETTING_KEYS = [
    "DATABASE_URL",
    "SECRET_KEY",
    "LOG_LEVEL",
    "CURRENCY",
    "TAX_RATE",
    "FREE_SHIPPING_THRESHOLD",
    "FLAT_SHIPPING_RATE",
    "SHIPPING_ZONES",
    "PAYMENT_INITIATION_URL",
    "PAYMENT_TIMEOUT_SECONDS",
    "MAX_QUANTITY_PER_ITEM",
    "MAX_ITEMS_IN_CART",
    "MAX_UNIT_PRICE",
    "SIMULATED_PAYMENT_LATENCY",
    "STORAGE_BACKEND",
    "ZAVIRA_DATA_DIR",
    "ZAVIRA_SECRET_KEY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in SETTING_KEYS:
        monkeypatch.delenv(key, raising=False)


def _settings(tmp_path, **values):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(values), encoding="utf-8")
    return path


class TestLoadEnv:
    """Settings file first, environment second, defaults last."""

    def test_defaults(self, tmp_path):
        config = load_env(tmp_path / "missing.json", data_dir=tmp_path)

        assert config.tax_rate == Decimal("0.08")
        assert config.free_shipping_threshold == Decimal("150.00")
        assert config.flat_shipping_rate == Decimal("15.00")
        assert config.max_quantity_per_item == 10
        assert config.max_items_in_cart == 20
        assert config.currency == "USD"
        assert config.storage_backend == "memory"
        assert config.database_url == f"sqlite:///{tmp_path / 'app.db'}"

    def test_settings_file_wins_over_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TAX_RATE", "0.10")
        monkeypatch.setenv("CURRENCY", "eur")

        config = load_env(_settings(tmp_path, TAX_RATE="0.05"))

        assert config.tax_rate == Decimal("0.05")
        assert config.currency == "EUR"

    def test_overrides_win_over_settings_file(self, tmp_path):
        config = load_env(_settings(tmp_path, MAX_ITEMS_IN_CART="20"), {"MAX_ITEMS_IN_CART": "5"})

        assert config.max_items_in_cart == 5

    @pytest.mark.parametrize(
        "key,value",
        [
            ("TAX_RATE", "abc"),
            ("TAX_RATE", "1.5"),
            ("FLAT_SHIPPING_RATE", "-1"),
            ("MAX_QUANTITY_PER_ITEM", "0"),
            ("PAYMENT_TIMEOUT_SECONDS", "soon"),
            ("STORAGE_BACKEND", "redis"),
        ],
    )
    def test_invalid_values_fail_at_load(self, tmp_path, key, value):
        with pytest.raises(ValueError):
            load_env(_settings(tmp_path, **{key: value}))

    def test_currency_must_be_three_letters(self):
        with pytest.raises(ValueError):
            validate_currency("US")


class TestShippingZones:
    def test_admin_zone_shape(self):
        zones = parse_shipping_zones(
            [
                {
                    "name": "Dhaka",
                    "countries": ["Dhaka", " Gazipur "],
                    "baseRate": 60,
                    "freeShippingThreshold": 2000,
                    "estimatedDays": "1-2",
                    "isActive": True,
                },
                {"name": "Remote", "countries": ["Bandarban"], "baseRate": 150, "isActive": False},
            ]
        )

        assert len(zones) == 1
        assert zones[0].regions == ("Dhaka", "Gazipur")
        assert zones[0].base_rate == Decimal("60")
        assert zones[0].estimated_days == "1-2"

    def test_zones_from_json_string(self):
        zones = parse_shipping_zones('[{"name": "Midwest", "regions": ["IL"], "base_rate": "9", "free_threshold": "100"}]')

        assert zones[0].free_threshold == Decimal("100")

    def test_zones_must_be_a_list(self):
        with pytest.raises(ValueError):
            parse_shipping_zones({"name": "Dhaka"})


class TestStorefrontConfig:
    """Application-level config and data directory."""

    def test_creates_data_files(self, tmp_path):
        config = StorefrontConfig.load(tmp_path / "data")

        assert config.settings_file.exists()
        assert config.discounts_file.exists()
        assert config.carts_dir.is_dir()
        assert config.app.database_url.endswith("app.db")
        codes = [d["code"] for d in json.loads(config.discounts_file.read_text(encoding="utf-8"))]
        assert codes == ["WELCOME20", "FREESHIP", "HOLIDAY15"]

    def test_existing_settings_are_kept(self, tmp_path):
        data_dir = tmp_path / "data"
        data_dir.mkdir()
        (data_dir / "settings.json").write_text(json.dumps({"TAX_RATE": "0.07"}), encoding="utf-8")

        config = StorefrontConfig.load(data_dir)

        assert config.app.tax_rate == Decimal("0.07")

    def test_secret_key_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ZAVIRA_SECRET_KEY", "s3cret")

        assert StorefrontConfig.load(tmp_path / "data").secret_key == "s3cret"

    def test_keyword_overrides(self, tmp_path):
        config = StorefrontConfig.load(tmp_path / "data", STORAGE_BACKEND="sql")

        assert config.app.storage_backend == "sql"
