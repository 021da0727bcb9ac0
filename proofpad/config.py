"""Configuration management — JSON-based, stored in ~/.config/proofpad/."""
import json
import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "api_base_url": "https://languagetool-master.fly.dev",
    "language": "en-US",
    "debounce_ms": 600,
    "min_text_length": 3,
    "request_timeout_ms": 10000,
    "health_interval_ms": 30000,
    "selection_policy": "first",  # "first" or "none"
    "lt_username": "",  # LanguageTool Plus credentials (optional)
    "lt_api_key": "",
    "fallback_spelling": True,
    "debug_logging": False,
    "max_chip_suggestions": 3,
    "max_apply_suggestions": 5,
}

CONFIG_DIR = Path.home() / ".config" / "proofpad"
CONFIG_FILE = CONFIG_DIR / "config.json"

# Environment variable → config key. Applied on top of the file, never saved.
ENV_OVERRIDES = {
    "PROOFPAD_API_BASE": "api_base_url",
    "PROOFPAD_LT_USERNAME": "lt_username",
    "PROOFPAD_LT_API_KEY": "lt_api_key",
}


class Config:
    def __init__(self, path: Optional[Path] = None, environ=None):
        self.path = Path(path) if path is not None else CONFIG_FILE
        self._environ = os.environ if environ is None else environ
        self._data = dict(DEFAULT_CONFIG)
        self._overrides = {}
        self.load()

    def load(self):
        if self.path.exists():
            try:
                with open(self.path, "r") as f:
                    stored = json.load(f)
                if isinstance(stored, dict):
                    self._data.update(stored)
                else:
                    logger.warning("Ignoring config %s: not a JSON object", self.path)
            except (json.JSONDecodeError, IOError) as e:
                logger.warning("Ignoring unreadable config %s: %s", self.path, e)

        self._overrides = {
            key: self._environ[env]
            for env, key in ENV_OVERRIDES.items()
            if self._environ.get(env)
        }

    def save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2, ensure_ascii=False)

    def get(self, key, default=None):
        if key in self._overrides:
            return self._overrides[key]
        return self._data.get(key, default)

    def set(self, key, value):
        self._data[key] = value
        self._overrides.pop(key, None)
        self.save()

    def override(self, key, value):
        """Set a value for this process only (command line flags)."""
        self._overrides[key] = value

    @property
    def api_base_url(self):
        return self.get("api_base_url")

    @property
    def language(self):
        return self.get("language", "auto")

    @language.setter
    def language(self, val):
        self.set("language", val)

    @property
    def debounce_ms(self):
        return int(self.get("debounce_ms", 600))

    @property
    def min_text_length(self):
        return int(self.get("min_text_length", 3))

    @property
    def request_timeout_ms(self):
        return int(self.get("request_timeout_ms", 10000))

    @property
    def health_interval_ms(self):
        return int(self.get("health_interval_ms", 30000))

    @property
    def selection_policy(self):
        return self.get("selection_policy", "first")

    @property
    def lt_username(self):
        return self.get("lt_username", "")

    @property
    def lt_api_key(self):
        return self.get("lt_api_key", "")

    @property
    def fallback_spelling(self):
        return bool(self.get("fallback_spelling", True))

    @property
    def debug_logging(self):
        return bool(self.get("debug_logging", False))

    @property
    def max_chip_suggestions(self):
        return int(self.get("max_chip_suggestions", 3))

    @property
    def max_apply_suggestions(self):
        return int(self.get("max_apply_suggestions", 5))
