import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

# Package defaults (bundled with code)
PACKAGE_CONFIG_DIR = Path(__file__).parent / "defaults"

# User configs (in project root, gitignored)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent
USER_CONFIG_DIR = PROJECT_ROOT / "config"

ENV_DATABASE_PATH = "SIMPLE_LEDGER_DB"
ENV_LOG_LEVEL = "SIMPLE_LEDGER_LOG_LEVEL"


class ConfigLoader:
    """Load configuration with user overrides"""

    @staticmethod
    def load_config(config_name: str) -> Dict[str, Any]:
        """
        Load config with fallback: user config -> default config

        Args:
            config_name: Name of the config file (e.g., 'settings.json')

        Raises:
            FileNotFoundError: If no config file was found

        Returns:
            Parsed JSON configuration
        """
        user_config_path = USER_CONFIG_DIR / config_name
        if user_config_path.exists():
            with open(user_config_path) as f:
                return json.load(f)

        default_config_path = PACKAGE_CONFIG_DIR / config_name
        if default_config_path.exists():
            with open(default_config_path) as f:
                return json.load(f)

        raise FileNotFoundError(
            f"Config file '{config_name}' not found in:\n"
            f" - {user_config_path}\n"
            f" - {default_config_path}"
        )

    @staticmethod
    def load_settings_config() -> Dict[str, Any]:
        return ConfigLoader.load_config('settings.json')

    @staticmethod
    def load_parsers_config() -> Dict[str, Any]:
        """Load chart-of-accounts parser registry configuration"""
        return ConfigLoader.load_config('parsers.json')

    @staticmethod
    def load_chart_of_accounts_config() -> Dict[str, Any]:
        """Load the seed chart of accounts"""
        return ConfigLoader.load_config('chart_of_accounts.json')


@dataclass(frozen=True)
class Settings:
    """Application settings; environment variables win over JSON config"""
    database_path: str = "data/ledger.db"
    default_page_size: int = 20
    log_level: str = "INFO"
    log_format: str = "console"  # console | json

    @classmethod
    def load(
        cls,
        config: Optional[Dict[str, Any]] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> "Settings":
        """
        Build settings from config and environment.

        Args:
            config: Optional config dict. If None, loads settings.json via ConfigLoader.
            environ: Optional environment mapping. If None, uses os.environ.
        """
        if config is None:
            config = ConfigLoader.load_settings_config()
        if environ is None:
            environ = dict(os.environ)

        defaults = cls()
        settings = cls(
            database_path=config.get("database_path", defaults.database_path),
            default_page_size=int(config.get("default_page_size", defaults.default_page_size)),
            log_level=config.get("log_level", defaults.log_level),
            log_format=config.get("log_format", defaults.log_format),
        )

        if settings.default_page_size < 1:
            raise ValueError(f"default_page_size must be positive, got {settings.default_page_size}")
        if settings.log_format not in ("console", "json"):
            raise ValueError(f"log_format must be 'console' or 'json', got {settings.log_format!r}")

        return cls(
            database_path=environ.get(ENV_DATABASE_PATH, settings.database_path),
            default_page_size=settings.default_page_size,
            log_level=environ.get(ENV_LOG_LEVEL, settings.log_level).upper(),
            log_format=settings.log_format,
        )
