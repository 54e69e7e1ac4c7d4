import pytest

from simple_ledger.config import settings as settings_module
from simple_ledger.config.settings import ConfigLoader, Settings


@pytest.mark.unit
class TestSettings:

    def test_defaults_from_empty_config(self):
        settings = Settings.load(config={}, environ={})

        assert settings == Settings()
        assert settings.default_page_size == 20

    def test_values_from_config(self):
        config = {
            "database_path": "ledger/books.db",
            "default_page_size": 50,
            "log_level": "debug",
            "log_format": "json",
        }

        settings = Settings.load(config=config, environ={})

        assert settings.database_path == "ledger/books.db"
        assert settings.default_page_size == 50
        assert settings.log_level == "DEBUG"
        assert settings.log_format == "json"

    def test_environment_overrides_config(self):
        settings = Settings.load(
            config={"database_path": "a.db", "log_level": "INFO"},
            environ={"SIMPLE_LEDGER_DB": "/tmp/b.db", "SIMPLE_LEDGER_LOG_LEVEL": "warning"},
        )

        assert settings.database_path == "/tmp/b.db"
        assert settings.log_level == "WARNING"

    def test_invalid_page_size(self):
        with pytest.raises(ValueError, match="default_page_size"):
            Settings.load(config={"default_page_size": 0}, environ={})

    def test_invalid_log_format(self):
        with pytest.raises(ValueError, match="log_format"):
            Settings.load(config={"log_format": "xml"}, environ={})


@pytest.mark.unit
class TestConfigLoader:

    def test_bundled_defaults_are_loaded(self, tmp_path, monkeypatch):
        # Arrange
        monkeypatch.setattr(settings_module, "USER_CONFIG_DIR", tmp_path)

        # Act
        config = ConfigLoader.load_parsers_config()

        # Assert
        formats = {p["format"] for p in config["parsers"]}
        assert {"csv", "xlsx"} <= formats

    def test_user_config_wins(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings_module, "USER_CONFIG_DIR", tmp_path)
        (tmp_path / "settings.json").write_text('{"default_page_size": 5}')

        assert ConfigLoader.load_settings_config() == {"default_page_size": 5}

    def test_missing_config_raises(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings_module, "USER_CONFIG_DIR", tmp_path)

        with pytest.raises(FileNotFoundError):
            ConfigLoader.load_config("nope.json")

    def test_seed_chart_is_consistent(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings_module, "USER_CONFIG_DIR", tmp_path)

        accounts = ConfigLoader.load_chart_of_accounts_config()["accounts"]

        codes = [a["code"] for a in accounts]
        assert len(codes) == len(set(codes))
        assert {a["type"] for a in accounts} == {"asset", "liability", "equity", "revenue", "expense"}
