"""
TTL cache for guild settings.

Permission checks run before every organizer command, so the settings they
need are cached here. Entries expire after a fixed TTL and are evicted
explicitly whenever a guild's settings are written.
"""

from typing import Any, Callable, Dict, Optional, Tuple
import time

from lootgoblin.configuration.app_configuration import app_config
from lootgoblin.util.logger import get_logger

logger = get_logger("database_cache")

GUILD_SETTINGS_CACHE_TTL = 600.0


def guild_settings_cache_key(guild_id: Any) -> str:
    """Return the cache key under which a guild's settings are stored."""
    return f"guild-settings-{int(guild_id)}"


class SettingsCache:
    """
    TTL-based key/value cache.

    Stores values with the time they were cached and drops them once the
    TTL has elapsed. Misses and expiries both return None; None itself is
    never stored.

    A caller that loads a value on a miss takes a ``token()`` before loading
    and passes it to ``set()``; if the key was invalidated in between, the
    loaded value is stale and is not stored.
    """

    def __init__(self, ttl_seconds: float = GUILD_SETTINGS_CACHE_TTL, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the cache.

        Args:
            ttl_seconds: Time-to-live in seconds for cached entries (default: 600)
            clock: Monotonic time source, replaceable in tests
        """
        self._cache: Dict[str, Tuple[float, Any]] = {}
        self._invalidations: Dict[str, int] = {}
        self._clear_count = 0
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def get(self, cache_key: str) -> Optional[Any]:
        """
        Get a cached value if still valid.

        Returns:
            Cached value if valid, None if expired or not found
        """
        entry = self._cache.get(cache_key)
        if entry is None:
            return None

        timestamp, value = entry
        if self._clock() - timestamp < self._ttl_seconds:
            logger.debug("[CACHE] Hit for key: %s", cache_key)
            return value

        self._cache.pop(cache_key, None)
        logger.debug("[CACHE] Expired key: %s", cache_key)
        return None

    def token(self, cache_key: str) -> Tuple[int, int]:
        """Return a marker that changes whenever ``cache_key`` is invalidated."""
        return self._clear_count, self._invalidations.get(cache_key, 0)

    def set(self, cache_key: str, value: Any, token: Optional[Tuple[int, int]] = None) -> None:
        """Cache a value with the current timestamp, unless ``token`` is out of date."""
        if value is None:
            return
        if token is not None and token != self.token(cache_key):
            logger.debug("[CACHE] Dropped stale value for key: %s", cache_key)
            return
        self._cache[cache_key] = (self._clock(), value)
        logger.debug("[CACHE] Set key: %s", cache_key)

    def invalidate(self, cache_key: Optional[str] = None) -> int:
        """
        Evict one entry, or every entry when no key is given.

        Returns:
            Number of entries evicted
        """
        if cache_key is None:
            count = len(self._cache)
            self._cache.clear()
            self._clear_count += 1
            logger.debug("[CACHE] Cleared all %d entries", count)
            return count

        self._invalidations[cache_key] = self._invalidations.get(cache_key, 0) + 1
        if self._cache.pop(cache_key, None) is None:
            return 0
        logger.debug("[CACHE] Invalidated key: %s", cache_key)
        return 1

    def __contains__(self, cache_key: str) -> bool:
        return self.get(cache_key) is not None

    def get_cache_stats(self) -> Dict[str, float]:
        """Return the cache size and TTL."""
        return {
            "size": len(self._cache),
            "ttl_seconds": self._ttl_seconds,
        }


# Shared between the settings service (invalidates) and the permission gate (reads)
settings_cache = SettingsCache(ttl_seconds=app_config.settings_cache_ttl)
