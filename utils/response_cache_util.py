"""
Short-lived cache of successful module responses.

Two identical requests (same method, path and query string) within the TTL are
answered from the cache without calling the handler again. Only status 200
responses are stored and entries are never invalidated before they expire.

Backends follow MEM_OR_EXTERNAL: an in-process dict (MEM, default) or Redis.
"""

import base64
import json
import logging
import time
from dataclasses import dataclass
from typing import Callable

import redis.asyncio as aioredis
from fastapi import Request

from utils.config_util import GatewaySettings
from utils.constants import Defaults

logger = logging.getLogger('cloudmusic.gateway')

# Never replayed to another caller
EXCLUDED_HEADERS = frozenset({'set-cookie', 'content-length', 'transfer-encoding', 'connection', 'cache-control'})


@dataclass
class CacheEntry:
    status: int
    body: bytes
    headers: list[tuple[str, str]]
    expires_at: float

    def to_json(self) -> str:
        return json.dumps({
            'status': self.status,
            'body': base64.b64encode(self.body).decode('ascii'),
            'headers': self.headers,
            'expires_at': self.expires_at,
        })

    @classmethod
    def from_json(cls, raw: str | bytes) -> 'CacheEntry':
        data = json.loads(raw)
        return cls(
            status=int(data['status']),
            body=base64.b64decode(data['body']),
            headers=[(k, v) for k, v in data['headers']],
            expires_at=float(data['expires_at']),
        )


class MemoryCache:
    def __init__(self, clock: Callable[[], float] = time.time, cleanup_interval: float = 60.0):
        self._cache: dict[str, CacheEntry] = {}
        self._clock = clock
        self._cleanup_interval = cleanup_interval
        self._last_cleanup = clock()

    def __len__(self) -> int:
        return len(self._cache)

    def set(self, key: str, entry: CacheEntry):
        self._cache[key] = entry
        if self._clock() - self._last_cleanup >= self._cleanup_interval:
            self._cleanup_expired()

    def get(self, key: str) -> CacheEntry | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        if self._clock() < entry.expires_at:
            return entry
        self._cache.pop(key, None)
        return None

    def _cleanup_expired(self):
        current_time = self._clock()
        self._last_cleanup = current_time
        expired_keys = [key for key, entry in self._cache.items() if current_time >= entry.expires_at]
        for key in expired_keys:
            del self._cache[key]
        if expired_keys:
            logger.debug(f'Cleaned up {len(expired_keys)} expired response cache entries')


def default_cache_key(request: Request) -> str:
    return f'{request.method.upper()} {request.url.path}?{request.url.query}'


class ResponseCache:
    """TTL cache of 200 responses keyed by method, path and query string.

    Set-Cookie headers are never stored, so a hit never carries the session
    cookies the original response issued. Expired in-memory entries are swept
    on write.
    """

    prefix = 'response_cache:'

    def __init__(
        self,
        ttl_seconds: int = Defaults.CACHE_TTL_SECONDS,
        key_func: Callable[[Request], str] = default_cache_key,
        redis_client: aioredis.Redis | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.key_func = key_func
        self.clock = clock
        self.redis = redis_client
        self.is_redis = redis_client is not None
        self.memory = None if self.is_redis else MemoryCache(clock=clock)

    @classmethod
    def from_settings(cls, settings: GatewaySettings) -> 'ResponseCache':
        if settings.mem_or_external.upper() == 'MEM':
            return cls(ttl_seconds=settings.cache_ttl_seconds)
        client = aioredis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            password=settings.redis_password or None,
        )
        logger.info(f'Response cache backed by Redis at {settings.redis_host}:{settings.redis_port}')
        return cls(ttl_seconds=settings.cache_ttl_seconds, redis_client=client)

    def make_key(self, request: Request) -> str:
        return self.key_func(request)

    async def get(self, key: str) -> CacheEntry | None:
        if not self.is_redis:
            return self.memory.get(key)
        try:
            raw = await self.redis.get(self.prefix + key)
        except Exception as e:
            logger.warning(f'Response cache read failed for {key}: {e}')
            return None
        if not raw:
            return None
        return CacheEntry.from_json(raw)

    async def set(self, key: str, status: int, body: bytes, headers: list[tuple[str, str]]) -> CacheEntry:
        entry = CacheEntry(
            status=status,
            body=body,
            headers=[(k, v) for k, v in headers if k.lower() not in EXCLUDED_HEADERS],
            expires_at=self.clock() + self.ttl_seconds,
        )
        if not self.is_redis:
            self.memory.set(key, entry)
            return entry
        try:
            await self.redis.setex(self.prefix + key, self.ttl_seconds, entry.to_json())
        except Exception as e:
            logger.warning(f'Response cache write failed for {key}: {e}')
        return entry

    def remaining_seconds(self, entry: CacheEntry) -> int:
        return max(0, int(round(entry.expires_at - self.clock())))

    async def aclose(self):
        if self.is_redis:
            await self.redis.aclose()
