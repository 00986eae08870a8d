"""Persistent settings for Tag Chain.

Settings are stored in ~/.tagchain/settings.json and persist between sessions.
A handful of environment variables override whatever the file says.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Settings file location
SETTINGS_DIR = Path.home() / ".tagchain"
SETTINGS_FILE = SETTINGS_DIR / "settings.json"

# Default settings
DEFAULTS = {
    # Where the game front end finds the proxy
    "api_url": "http://127.0.0.1:3000",
    # Where `tagchain serve` listens
    "host": "127.0.0.1",
    "port": 3000,
    "ao3_base_url": "https://archiveofourown.org",
    "user_agent": "Mozilla/5.0 (compatible; TagChainGame/1.0)",
    "request_timeout": 15.0,  # seconds
    "debounce_ms": 400,
    "suggestion_limit": 30,
    "difficulty": 500,
}

# Environment variable -> (setting key, converter)
ENV_OVERRIDES = {
    "TAGCHAIN_API_URL": ("api_url", str),
    "TAGCHAIN_HOST": ("host", str),
    "TAGCHAIN_PORT": ("port", int),
    "TAGCHAIN_AO3_URL": ("ao3_base_url", str),
}


class Settings:
    """Persistent settings manager.

    Example:
        settings = Settings()
        port = settings.get("port")
        settings.set("difficulty", 2000)
    """

    def __init__(self, path: Optional[Path] = None, environ: Optional[dict[str, str]] = None) -> None:
        """Initialize settings, loading from disk if available.

        Args:
            path: Settings file. Defaults to ~/.tagchain/settings.json
            environ: Environment mapping for overrides. Defaults to os.environ
        """
        self._path = path or SETTINGS_FILE
        self._data: dict[str, Any] = DEFAULTS.copy()
        # Environment values shadow _data but are never written back to disk
        self._overrides: dict[str, Any] = {}
        self._load()
        self._apply_env(os.environ if environ is None else environ)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        """Load settings from disk."""
        if not self._path.exists():
            return

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
            # Merge with defaults (new settings get defaults)
            for key, value in loaded.items():
                self._data[key] = value
            logger.debug(f"Loaded settings from {self._path}")
        except Exception as e:
            logger.warning(f"Failed to load settings: {e}")

    def _apply_env(self, environ) -> None:
        for var, (key, convert) in ENV_OVERRIDES.items():
            raw = environ.get(var)
            if not raw:
                continue
            try:
                self._overrides[key] = convert(raw)
            except ValueError:
                logger.warning(f"Ignoring invalid {var}={raw!r}")

    def save(self) -> None:
        """Save settings to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
            logger.debug(f"Saved settings to {self._path}")
        except Exception as e:
            logger.warning(f"Failed to save settings: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get a setting value.

        Args:
            key: Setting key
            default: Default value if key not found

        Returns:
            Setting value or default
        """
        if key in self._overrides:
            return self._overrides[key]
        return self._data.get(key, default if default is not None else DEFAULTS.get(key))

    def set(self, key: str, value: Any, save: bool = True) -> None:
        """Set a setting value.

        Args:
            key: Setting key
            value: Value to set
            save: If True (default), immediately save to disk
        """
        self._data[key] = value
        if save:
            self.save()


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
