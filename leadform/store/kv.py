"""
Key/value stores backing the handoff channels.

A `session` store is scoped to one browsing session and expires; a `durable`
store is scoped to the device and never expires. Both expose the same small
get/set/remove surface so the form engine can run in-process (MemoryStore)
or behind the API (RedisStore).
"""
from typing import Dict, Optional

from leadform.settings import settings
from leadform.store.redis_conn import get_redis


class MemoryStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


class RedisStore:
    """Namespaced redis store; `ttl_sec=None` means no expiry."""

    def __init__(self, namespace: str, ttl_sec: Optional[int] = None, redis=None):
        self.namespace = namespace
        self.ttl_sec = ttl_sec
        self._redis = redis

    @property
    def redis(self):
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    def _key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    def get(self, key: str) -> Optional[str]:
        return self.redis.get(self._key(key))

    def set(self, key: str, value: str) -> None:
        if self.ttl_sec:
            self.redis.set(self._key(key), str(value), ex=int(self.ttl_sec))
        else:
            self.redis.set(self._key(key), str(value))

    def remove(self, key: str) -> None:
        self.redis.delete(self._key(key))


def session_store(session_id: str) -> RedisStore:
    return RedisStore(f"session:{session_id}:", ttl_sec=settings.SESSION_TTL_SEC)


def durable_store(device_id: str) -> RedisStore:
    return RedisStore(f"device:{device_id}:")
