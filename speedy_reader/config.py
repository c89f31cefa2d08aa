"""
Configuration loading and persistence.

Settings live in a TOML document under the user's config directory. The file is
created with defaults on first run; environment variables (optionally loaded
from a .env file) override individual keys without being written back.
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import tomli_w
from dotenv import load_dotenv

from .exceptions import ConfigError

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

APP_NAME = "speedy-reader"


def _xdg_dir(env_var: str, fallback: str) -> Path:
    base = os.getenv(env_var)
    return Path(base) if base else Path.home() / fallback


def config_dir() -> Path:
    """Directory holding config.toml."""
    return _xdg_dir("XDG_CONFIG_HOME", ".config") / APP_NAME


def data_dir() -> Path:
    """Directory holding the database and log files."""
    return _xdg_dir("XDG_DATA_HOME", ".local/share") / APP_NAME


@dataclass
class Config:
    """Reader configuration."""
    db_path: Path = field(default_factory=lambda: data_dir() / "feeds.db")

    # Optional: summarization is disabled without a key
    claude_api_key: str | None = None
    summary_model: str | None = None

    # Optional: bookmark actions are disabled without a token
    raindrop_token: str | None = None
    bookmark_collection: str = "News Links"

    # 0 disables scheduled refresh in the interactive loop
    refresh_interval_minutes: int = 30
    default_tags: list[str] = field(default_factory=lambda: ["rss"])

    log_level: str = "WARNING"

    @staticmethod
    def config_path() -> Path:
        """Location of the config document (SPEEDY_READER_CONFIG overrides)."""
        override = os.getenv("SPEEDY_READER_CONFIG")
        if override:
            return Path(override).expanduser()
        return config_dir() / "config.toml"

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """
        Load config from disk, creating a default file if none exists.

        Raises:
            ConfigError: If the file exists but cannot be read or parsed
        """
        path = path or cls.config_path()

        if path.exists():
            try:
                data = tomllib.loads(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
                raise ConfigError(f"Could not read config {path}: {e}") from e
            config = cls.from_dict(data)
        else:
            config = cls()
            try:
                config.save(path)
            except OSError as e:
                logger.warning(f"Could not write default config to {path}: {e}")

        config.apply_env()
        return config

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Build a Config from a parsed TOML mapping, validating value types."""
        config = cls()

        for key in ("claude_api_key", "raindrop_token", "summary_model"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"{key} must be a string")
            setattr(config, key, value or None)

        if "db_path" in data:
            if not isinstance(data["db_path"], str):
                raise ConfigError("db_path must be a string")
            config.db_path = Path(data["db_path"]).expanduser()

        if "bookmark_collection" in data:
            if not isinstance(data["bookmark_collection"], str):
                raise ConfigError("bookmark_collection must be a string")
            config.bookmark_collection = data["bookmark_collection"]

        if "refresh_interval_minutes" in data:
            interval = data["refresh_interval_minutes"]
            if isinstance(interval, bool) or not isinstance(interval, int) or interval < 0:
                raise ConfigError("refresh_interval_minutes must be a non-negative integer")
            config.refresh_interval_minutes = interval

        if "default_tags" in data:
            tags = data["default_tags"]
            if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
                raise ConfigError("default_tags must be a list of strings")
            config.default_tags = [t.strip() for t in tags if t.strip()]

        unknown = set(data) - {f for f in cls.__dataclass_fields__}
        if unknown:
            logger.debug(f"Ignoring unknown config keys: {sorted(unknown)}")

        return config

    def apply_env(self):
        """Apply environment variable overrides."""
        if api_key := os.getenv("ANTHROPIC_API_KEY"):
            self.claude_api_key = api_key
        if token := os.getenv("RAINDROP_TOKEN"):
            self.raindrop_token = token
        if db_path := os.getenv("SPEEDY_READER_DB_PATH"):
            self.db_path = Path(db_path).expanduser()
        if log_level := os.getenv("LOG_LEVEL"):
            self.log_level = log_level.upper()

    def save(self, path: Path | None = None):
        """Write the config document, omitting unset optional keys."""
        path = path or self.config_path()
        path.parent.mkdir(parents=True, exist_ok=True)

        values = {
            "db_path": str(self.db_path),
            "claude_api_key": self.claude_api_key,
            "summary_model": self.summary_model,
            "raindrop_token": self.raindrop_token,
            "bookmark_collection": self.bookmark_collection,
            "refresh_interval_minutes": self.refresh_interval_minutes,
            "default_tags": self.default_tags,
        }
        # TOML has no null; unset keys are left out
        document = {key: value for key, value in values.items() if value is not None}
        path.write_text(tomli_w.dumps(document), encoding="utf-8")

    @property
    def has_summarizer(self) -> bool:
        return bool(self.claude_api_key)

    @property
    def has_bookmarks(self) -> bool:
        return bool(self.raindrop_token)
