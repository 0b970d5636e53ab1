"""
Configuration management for paketdash.

Values are resolved in this order:
1. Environment variables (see ENV_MAPPINGS)
2. User config file (~/.paketdash/config.json)
3. Built-in defaults
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Pick up API_URL and friends from a local .env during development
load_dotenv(Path.cwd() / ".env")


class Config:
    """Layered configuration backed by a JSON file in the user's home directory."""

    DEFAULTS: dict[str, Any] = {
        "host": "127.0.0.1",
        "port": 8090,
        "api_url": "http://localhost:8000",
        "backend_api_url": "http://localhost:8000",
        "public_api_url": "http://localhost:8000",
        "request_timeout": 30,
        "debounce_ms": 300,
        "page_size": 10,
        "batch_size": 50,
        "response_cache_max_entries": 256,
        "log_level": "INFO",
        "mock_port": 8000,
        "mock_rows": 120,
    }

    ENV_MAPPINGS: dict[str, str] = {
        "host": "PAKETDASH_HOST",
        "port": "PAKETDASH_PORT",
        "api_url": "API_URL",
        "backend_api_url": "BACKEND_API_URL",
        "public_api_url": "PUBLIC_API_URL",
        "request_timeout": "PAKETDASH_REQUEST_TIMEOUT",
        "debounce_ms": "PAKETDASH_DEBOUNCE_MS",
        "page_size": "PAKETDASH_PAGE_SIZE",
        "batch_size": "PAKETDASH_BATCH_SIZE",
        "response_cache_max_entries": "PAKETDASH_CACHE_MAX_ENTRIES",
        "log_level": "PAKETDASH_LOG_LEVEL",
        "mock_port": "PAKETDASH_MOCK_PORT",
        "mock_rows": "PAKETDASH_MOCK_ROWS",
    }

    # Older names still honored when the primary variable is unset
    ENV_FALLBACKS: dict[str, tuple[str, ...]] = {
        "public_api_url": ("NEXT_PUBLIC_API_URL",),
    }

    def __init__(self, config_path: Path | None = None):
        if config_path is None:
            config_path = Path.home() / ".paketdash" / "config.json"
        self.config_path = config_path

    def _load_config_file(self) -> dict[str, Any]:
        """Load values from the config file, or an empty dict if it is missing or broken."""
        if not self.config_path.exists():
            return {}

        try:
            with open(self.config_path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read config file {self.config_path}: {e}")
            return {}

        if not isinstance(data, dict):
            return {}
        return {key: value for key, value in data.items() if key in self.DEFAULTS}

    def _save_config_file(self, data: dict[str, Any]):
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            json.dump(data, f, indent=2)

    def _coerce(self, key: str, raw: str) -> Any:
        """Convert an environment string to the type of the key's default."""
        default = self.DEFAULTS.get(key)
        if isinstance(default, bool):
            return raw.lower() in ("true", "1", "yes", "on")
        if isinstance(default, int):
            try:
                return int(raw)
            except ValueError:
                logger.warning(f"Ignoring non-integer value for {key}: {raw!r}")
                return default
        return raw

    def get_env(self, key: str) -> str | None:
        """Raw environment value for a key, checking fallback names after the primary one."""
        for env_key in (self.ENV_MAPPINGS.get(key, key.upper()), *self.ENV_FALLBACKS.get(key, ())):
            value = os.getenv(env_key)
            if value is not None:
                return value
        return None

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key
            default: Returned when the key is unknown and set nowhere

        Returns:
            The resolved value
        """
        env_value = self.get_env(key)
        if env_value is not None:
            return self._coerce(key, env_value)

        file_values = self._load_config_file()
        if key in file_values:
            return file_values[key]

        if key in self.DEFAULTS:
            return self.DEFAULTS[key]
        return default

    def get_all(self) -> dict[str, Any]:
        """Get every known key with its resolved value."""
        return {key: self.get(key) for key in self.DEFAULTS}

    def set(self, key: str, value: Any):
        """Persist a value to the config file."""
        if key not in self.DEFAULTS:
            raise KeyError(f"Unknown configuration key: {key}")
        data = self._load_config_file()
        data[key] = value
        self._save_config_file(data)

    def unset(self, key: str):
        """Remove a value from the config file so the default applies again."""
        data = self._load_config_file()
        if key in data:
            del data[key]
            self._save_config_file(data)
