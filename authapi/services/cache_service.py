"""Redis cache service for resolved roles."""

import json
import logging
from typing import Optional, Any

import redis

from authapi.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class CacheService:
    """Redis-backed caching service. Every failure degrades to a cache miss."""

    def __init__(self, settings: Settings = default_settings):
        self._settings = settings
        self._client: Optional[redis.Redis] = None

    @property
    def enabled(self) -> bool:
        return self._settings.CACHE_ENABLED

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(
                self._settings.REDIS_URL,
                decode_responses=True,
                max_connections=100,
                socket_connect_timeout=1,
            )
        return self._client

    def get(self, key: str) -> Optional[str]:
        """Get a cached value by key."""
        if not self.enabled:
            return None
        try:
            return self.client.get(key)
        except redis.RedisError as e:
            logger.debug(f"Cache get failed for {key}: {e}")
            return None

    def set(self, key: str, value: str, ttl_seconds: int = 600) -> None:
        """Set a cached value with TTL."""
        if not self.enabled:
            return
        try:
            self.client.setex(key, ttl_seconds, value)
        except redis.RedisError as e:
            logger.debug(f"Cache set failed for {key}: {e}")

    def get_json(self, key: str) -> Optional[Any]:
        """Get and parse a JSON cached value."""
        raw = self.get(key)
        if raw:
            return json.loads(raw)
        return None

    def set_json(self, key: str, value: Any, ttl_seconds: int = 600) -> None:
        """Serialize and cache a JSON value."""
        self.set(key, json.dumps(value, default=str), ttl_seconds)

    def delete(self, key: str) -> None:
        """Delete a cached key."""
        if not self.enabled:
            return
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            logger.debug(f"Cache delete failed for {key}: {e}")

    def invalidate_pattern(self, pattern: str) -> None:
        """Delete all keys matching a pattern."""
        if not self.enabled:
            return
        try:
            keys = list(self.client.scan_iter(match=pattern))
            if keys:
                self.client.delete(*keys)
        except redis.RedisError as e:
            logger.debug(f"Cache invalidation failed for {pattern}: {e}")

    def health_check(self) -> bool:
        """Check if Redis is reachable."""
        if not self.enabled:
            return False
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False
