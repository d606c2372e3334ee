"""Configuration management for opengamesync.

Settings are read, highest priority first, from the environment
(``OPENGAMESYNC_API_KEY``, ``OPENGAMESYNC_API_URL``,
``OPENGAMESYNC_MAX_CONCURRENCY``) and from ``~/.config/opengamesync/config``,
a file of ``KEY=value`` lines.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .exceptions import ConfigError
from .utils import DEFAULT_API_URL

logger = logging.getLogger(__name__)

ENV_API_KEY = "OPENGAMESYNC_API_KEY"
ENV_API_URL = "OPENGAMESYNC_API_URL"
ENV_MAX_CONCURRENCY = "OPENGAMESYNC_MAX_CONCURRENCY"


class Config:
    """Configuration loaded from the environment and the config file."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file
                (default: ~/.config/opengamesync)
        """
        self.config_dir = config_dir or Path.home() / ".config" / "opengamesync"
        self.config_file = self.config_dir / "config"

    def _read_file(self) -> dict[str, str]:
        """Read ``KEY=value`` pairs from the config file.

        Returns:
            Dictionary of settings, empty if the file does not exist
        """
        if not self.config_file.exists():
            return {}

        values: dict[str, str] = {}
        try:
            with open(self.config_file, encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith("#") or "=" not in line:
                        continue
                    key, value = line.split("=", 1)
                    values[key.strip()] = value.strip().strip("\"'")
        except OSError as e:
            logger.warning("Could not read config file %s: %s", self.config_file, e)
        return values

    def _write_value(self, key: str, value: str) -> None:
        """Store a single setting in the config file, keeping the others."""
        values = self._read_file()
        values[key] = value

        self.config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w", encoding="utf-8") as f:
            f.write("# opengamesync configuration\n")
            for k, v in values.items():
                f.write(f"{k}={v}\n")
        # The file holds the API key
        self.config_file.chmod(0o600)

    def _get(self, key: str) -> Optional[str]:
        value = os.environ.get(key)
        if value:
            return value
        return self._read_file().get(key) or None

    @property
    def api_key(self) -> Optional[str]:
        """API key for the HTTP backend."""
        return self._get(ENV_API_KEY)

    @property
    def api_url(self) -> str:
        """Base URL of the HTTP backend."""
        return (self._get(ENV_API_URL) or DEFAULT_API_URL).rstrip("/")

    @property
    def max_concurrency(self) -> Optional[int]:
        """Maximum number of concurrent transfers (None means unbounded)."""
        raw = self._get(ENV_MAX_CONCURRENCY)
        if raw is None:
            return None
        try:
            value = int(raw)
        except ValueError as e:
            raise ConfigError(
                f"{ENV_MAX_CONCURRENCY} must be an integer, got {raw!r}"
            ) from e
        if value < 1:
            raise ConfigError(f"{ENV_MAX_CONCURRENCY} must be at least 1")
        return value

    def is_configured(self) -> bool:
        """Check whether an API key is available."""
        return self.api_key is not None

    def save_api_key(self, api_key: str) -> None:
        """Save the API key to the config file."""
        self._write_value(ENV_API_KEY, api_key)

    def save_api_url(self, api_url: str) -> None:
        """Save the API URL to the config file."""
        self._write_value(ENV_API_URL, api_url.rstrip("/"))

    def get_config_path(self) -> Path:
        """Return the path of the config file."""
        return self.config_file


config = Config()
