"""Tests for inventory_config settings loading."""

import pytest
import yaml

from inventory_config import DATABASE_URL_ENV, InventorySettings, load_settings, parse_settings


class TestDefaults:
    def test_packaged_defaults(self):
        settings = load_settings(environ={})
        assert settings.database_url.startswith("sqlite")
        assert settings.expiry_alert_days == 7
        assert settings.sweep_interval_seconds == 86400
        assert settings.transaction_timeout_seconds is None
        assert settings.log_level == "INFO"

    def test_settings_are_frozen(self):
        settings = load_settings(environ={})
        with pytest.raises(AttributeError):
            settings.pool_size = 1


class TestOverrides:
    def test_file_overrides_defaults(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(
            "database_url: postgresql://inv@localhost/inventory\n"
            "expiry_alert_days: 3\n"
            "transaction_timeout_seconds: 2.5\n"
            "log_level: debug\n"
        )
        settings = load_settings(path, environ={})
        assert settings.database_url == "postgresql://inv@localhost/inventory"
        assert settings.expiry_alert_days == 3
        assert settings.transaction_timeout_seconds == 2.5
        assert settings.log_level == "DEBUG"
        assert settings.pool_size == 20

    def test_environment_overrides_url(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("database_url: sqlite:///from_file.db\n")
        settings = load_settings(path, environ={DATABASE_URL_ENV: "sqlite:///from_env.db"})
        assert settings.database_url == "sqlite:///from_env.db"


class TestValidation:
    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown settings"):
            parse_settings({"database_url": "sqlite://", "colour": "blue"})

    def test_missing_url(self):
        with pytest.raises(KeyError):
            parse_settings({"pool_size": 3})

    @pytest.mark.parametrize(
        "field,value",
        [
            ("pool_size", 0),
            ("expiry_alert_days", -1),
            ("sweep_interval_seconds", 0),
            ("transaction_timeout_seconds", 0),
            ("log_level", "LOUD"),
        ],
    )
    def test_out_of_range(self, field, value):
        with pytest.raises(ValueError):
            parse_settings({"database_url": "sqlite://", field: value})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "nope.yaml", environ={})

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("database_url: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_settings(path, environ={})

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_settings(path, environ={})


def test_direct_construction_validates():
    with pytest.raises(ValueError):
        InventorySettings(database_url="")
