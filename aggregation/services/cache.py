"""TTL cache stores keyed by a logical name plus a parameter map."""

from __future__ import annotations

import json
import threading
import time
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

import redis as redislib
from redis.exceptions import RedisError

from aggregation.settings import Settings
from aggregation.utils.logging import get_logger

logger = get_logger(__name__)


class CacheKeys:
    NEWS = "news"
    USER_PREFERENCES = "user_preferences"


def build_cache_key(logical_key: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Return ``logical_key:k1=v1&k2=v2`` with parameters sorted by name."""
    if not params:
        return logical_key
    joined = "&".join(
        f"{name}={'' if params[name] is None else params[name]}" for name in sorted(params)
    )
    return f"{logical_key}:{joined}"


class CacheStore(Protocol):
    def get(self, logical_key: str, params: Optional[Mapping[str, Any]] = None) -> Any: ...  # noqa: D401
    def set(
        self,
        logical_key: str,
        params: Optional[Mapping[str, Any]],
        value: Any,
        ttl_seconds: Optional[float] = None,
    ) -> None: ...  # noqa: D401
    def delete(self, logical_key: str, params: Optional[Mapping[str, Any]] = None) -> None: ...  # noqa: D401
    def clear(self) -> None: ...  # noqa: D401


class InMemoryCacheStore:
    """Thread-safe in-process store with lazy expiry and a background sweep.

    Eviction is TTL-only: entries have a bounded lifetime but the number of
    distinct keys is not capped.
    """

    def __init__(
        self,
        *,
        default_ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: Dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._default_ttl = default_ttl_seconds
        self._clock = clock
        self._hits = 0
        self._misses = 0
        self._sweeper: Optional[threading.Thread] = None
        self._stop = threading.Event()

    def get(self, logical_key: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        key = build_cache_key(logical_key, params)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            expires_at, value = entry
            if expires_at <= now:
                del self._entries[key]
                self._misses += 1
                return None
            self._hits += 1
            return value

    def set(
        self,
        logical_key: str,
        params: Optional[Mapping[str, Any]],
        value: Any,
        ttl_seconds: Optional[float] = None,
    ) -> None:
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        key = build_cache_key(logical_key, params)
        expires_at = self._clock() + ttl
        with self._lock:
            self._entries[key] = (expires_at, value)

    def delete(self, logical_key: str, params: Optional[Mapping[str, Any]] = None) -> None:
        key = build_cache_key(logical_key, params)
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"hits": self._hits, "misses": self._misses, "keys": len(self._entries)}

    def sweep(self) -> int:
        """Evict every expired entry and return how many were removed."""
        now = self._clock()
        with self._lock:
            snapshot = list(self._entries.items())
        expired = [key for key, (expires_at, _) in snapshot if expires_at <= now]
        removed = 0
        for key in expired:
            with self._lock:
                # the entry may have been refreshed since the snapshot
                entry = self._entries.get(key)
                if entry is not None and entry[0] <= now:
                    del self._entries[key]
                    removed += 1
        return removed

    def start_sweeper(self, interval_seconds: float = 120) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            args=(interval_seconds,),
            name="cache-sweeper",
            daemon=True,
        )
        self._sweeper.start()

    def stop_sweeper(self, timeout: float = 1.0) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout)
            self._sweeper = None

    def _sweep_loop(self, interval_seconds: float) -> None:
        while not self._stop.wait(interval_seconds):
            try:
                removed = self.sweep()
            except Exception:  # pragma: no cover - best-effort housekeeping
                logger.exception("cache.sweep.failed")
                continue
            if removed:
                logger.debug("cache.sweep", extra={"evicted": removed})


class _RedisLikeClient(Protocol):
    def get(self, name: str) -> Any: ...
    def set(self, name: str, value: str, *, ex: int | None = None) -> Any: ...
    def delete(self, *names: str) -> int: ...
    def scan_iter(self, match: str | None = None) -> Any: ...


class RedisCacheStore:
    """Redis 기반 CacheStore 구현.

    - 값은 JSON 문자열로 저장하며 만료는 `SET key value EX <ttl>` 로 위임
    - Redis 오류나 디코딩 실패는 캐시 미스로 취급하고 요청은 계속 진행
    """

    def __init__(self, client: _RedisLikeClient, *, prefix: str = "newsfeed", default_ttl_seconds: int = 300) -> None:
        self._client = client
        self._prefix = prefix
        self._default_ttl = default_ttl_seconds

    def _format(self, logical_key: str, params: Optional[Mapping[str, Any]]) -> str:
        return f"{self._prefix}:{build_cache_key(logical_key, params)}"

    def get(self, logical_key: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        key = self._format(logical_key, params)
        try:
            data = self._client.get(key)
        except RedisError as exc:
            logger.warning("cache.redis.get_failed", extra={"key": key, "error": str(exc)})
            return None
        if data is None:
            return None
        try:
            return json.loads(data)
        except (TypeError, ValueError):
            logger.warning("cache.redis.decode_failed", extra={"key": key})
            return None

    def set(
        self,
        logical_key: str,
        params: Optional[Mapping[str, Any]],
        value: Any,
        ttl_seconds: Optional[float] = None,
    ) -> None:
        key = self._format(logical_key, params)
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        try:
            self._client.set(key, json.dumps(value, default=str), ex=max(1, int(ttl)))
        except RedisError as exc:
            logger.warning("cache.redis.set_failed", extra={"key": key, "error": str(exc)})

    def delete(self, logical_key: str, params: Optional[Mapping[str, Any]] = None) -> None:
        key = self._format(logical_key, params)
        try:
            self._client.delete(key)
        except RedisError as exc:
            logger.warning("cache.redis.delete_failed", extra={"key": key, "error": str(exc)})

    def clear(self) -> None:
        try:
            keys = list(self._client.scan_iter(match=f"{self._prefix}:*"))
            if keys:
                self._client.delete(*keys)
        except RedisError as exc:
            logger.warning("cache.redis.clear_failed", extra={"error": str(exc)})


def build_cache_store(settings: Settings) -> InMemoryCacheStore | RedisCacheStore:
    """Pick the configured backend; an unreachable redis degrades to memory."""
    default_ttl = int(settings.news_cache_ttl_seconds)
    if settings.cache_backend != "redis":
        return InMemoryCacheStore(default_ttl_seconds=default_ttl)

    try:
        client = redislib.Redis.from_url(
            settings.cache_redis_url,
            decode_responses=True,
            socket_connect_timeout=0.2,
            socket_timeout=float(settings.cache_redis_socket_timeout_seconds),
        )
    except ValueError as exc:
        logger.warning("cache.store.memory", extra={"reason": "redis_url_invalid", "error": str(exc)})
        return InMemoryCacheStore(default_ttl_seconds=default_ttl)
    try:
        client.ping()
    except RedisError:
        logger.warning("cache.store.memory", extra={"reason": "redis_ping_failed"})
        return InMemoryCacheStore(default_ttl_seconds=default_ttl)
    logger.info("cache.store.redis", extra={"redis_url": settings.cache_redis_url})
    return RedisCacheStore(client, default_ttl_seconds=default_ttl)
