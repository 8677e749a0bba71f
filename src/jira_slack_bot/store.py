"""Namespaced key-value storage backing the bot's mutable state.

Three namespaces are used: ``last_ticket`` (channel -> ticket),
``identity`` (Slack user -> JIRA username) and ``notified``
("channel:ticket" -> POSIX timestamp of the last notification).
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

import redis

from jira_slack_bot.config import Config

logger = logging.getLogger(__name__)

LAST_TICKET = "last_ticket"
IDENTITY = "identity"
NOTIFIED = "notified"

KEY_PREFIX = "jira-slack-bot:"

# HGET and HDEL in one atomic step.
_DELETE_IF_EQUAL = """
if redis.call("HGET", KEYS[1], ARGV[1]) == ARGV[2] then
    return redis.call("HDEL", KEYS[1], ARGV[1])
end
return 0
"""


class StoreError(Exception):
    """A read or write against the backing store failed."""


class KeyValueStore(Protocol):
    def get(self, namespace: str, key: str) -> str | None: ...

    def set(self, namespace: str, key: str, value: str) -> None: ...

    def get_all(self, namespace: str) -> dict[str, str]: ...

    def delete_if_equal(self, namespace: str, key: str, expected: str) -> bool: ...


class MemoryStore:
    """Process-local store; state is lost on restart."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, dict[str, str]] = {}

    def get(self, namespace: str, key: str) -> str | None:
        with self._lock:
            return self._data.get(namespace, {}).get(key)

    def set(self, namespace: str, key: str, value: str) -> None:
        with self._lock:
            self._data.setdefault(namespace, {})[key] = value

    def get_all(self, namespace: str) -> dict[str, str]:
        with self._lock:
            return dict(self._data.get(namespace, {}))

    def delete_if_equal(self, namespace: str, key: str, expected: str) -> bool:
        """Delete only if the value is still ``expected``."""
        with self._lock:
            entries = self._data.get(namespace, {})
            if entries.get(key) != expected:
                return False
            del entries[key]
            return True


class RedisStore:
    """Store keeping one Redis hash per namespace."""

    def __init__(self, client: redis.Redis) -> None:
        self._redis = client
        self._delete_if_equal = client.register_script(_DELETE_IF_EQUAL)

    @classmethod
    def from_url(cls, url: str) -> RedisStore:
        return cls(redis.Redis.from_url(url, decode_responses=True))

    @staticmethod
    def _hash(namespace: str) -> str:
        return f"{KEY_PREFIX}{namespace}"

    def get(self, namespace: str, key: str) -> str | None:
        try:
            return self._redis.hget(self._hash(namespace), key)
        except redis.RedisError as exc:
            raise StoreError(f"get {namespace}/{key} failed: {exc}") from exc

    def set(self, namespace: str, key: str, value: str) -> None:
        try:
            self._redis.hset(self._hash(namespace), key, value)
        except redis.RedisError as exc:
            raise StoreError(f"set {namespace}/{key} failed: {exc}") from exc

    def get_all(self, namespace: str) -> dict[str, str]:
        try:
            return dict(self._redis.hgetall(self._hash(namespace)))
        except redis.RedisError as exc:
            raise StoreError(f"get_all {namespace} failed: {exc}") from exc

    def delete_if_equal(self, namespace: str, key: str, expected: str) -> bool:
        try:
            deleted = self._delete_if_equal(keys=[self._hash(namespace)], args=[key, expected])
        except redis.RedisError as exc:
            raise StoreError(f"delete_if_equal {namespace}/{key} failed: {exc}") from exc
        return bool(deleted)


def create_store(config: Config) -> KeyValueStore:
    """Return a Redis-backed store when ``redis_url`` is set, else in-memory."""
    if config.redis_url:
        logger.info("Using Redis store")
        return RedisStore.from_url(config.redis_url)
    logger.info("Using in-memory store; state will not survive a restart")
    return MemoryStore()
