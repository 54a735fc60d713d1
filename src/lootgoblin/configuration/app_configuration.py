from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from lootgoblin.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_DATABASE_PATH = "./data/lootgoblin.db"
DEFAULT_SETTINGS_CACHE_TTL = 600.0


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml`` and exposes
    dictionary-like helpers plus typed shortcuts for the values the bot reads
    at startup. Uses fcntl file locks for safe concurrent access across
    processes.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            logger.warning("[APP CONFIGURATION] Config file %s not found, using defaults.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def database_path(self) -> Path:
        """Return the SQLite database file path, resolved against the working directory."""
        database = self._data.get("database", {})
        value = DEFAULT_DATABASE_PATH
        if isinstance(database, dict) and database.get("path"):
            value = str(database["path"])
        return Path(value).resolve()

    @property
    def settings_cache_ttl(self) -> float:
        """Return how long cached guild settings stay valid, in seconds.

        Default is 600 seconds (10 minutes).
        """
        cache_config = self._data.get("settings_cache", {})
        if isinstance(cache_config, dict):
            return float(cache_config.get("ttl_seconds", DEFAULT_SETTINGS_CACHE_TTL))
        return DEFAULT_SETTINGS_CACHE_TTL


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
