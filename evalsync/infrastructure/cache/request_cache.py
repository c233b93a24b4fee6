"""In-process request cache with TTL, in-flight deduplication and pub/sub.

One RequestCache is built per process by evalsync.core.lifespan and
passed to every consumer. Entries are plain Python values; subscribers
are called synchronously on every set() for their key.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from evalsync.core.cache_keys import request_key
from evalsync.domain.exceptions import ServerException
from evalsync.infrastructure.webhook.transport import decode_json_body, send_request
from evalsync.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

CacheObserver = Callable[[Any], None]

_MISSING = object()


@dataclass
class CacheEntry:
    """A cached value and the monotonic time it was stored."""

    key: str
    data: Any
    timestamp: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return now - self.timestamp < self.ttl


class RequestCache:
    """Keyed TTL cache of request results.

    - fetch_with_cache() returns a valid entry without network access,
      joins an in-flight request for the same key, or performs the call
      and stores the decoded body.
    - Failed requests (including a body with success false) are never
      cached; the in-flight marker is dropped so the next call retries.
    - invalidate(), force_refresh() and clear() supersede a request in
      flight: its waiters still get the answer, which is not stored.
    - subscribe() registers callbacks that receive every value written
      with set() for that key.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        default_ttl: float = 300,
        default_headers: dict[str, str] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty cache.

        Args:
            http_client: Client used for cache misses (not closed by the cache).
            default_ttl: TTL in seconds when a call does not pass one.
            default_headers: Headers added to every request (e.g. Authorization).
            clock: Monotonic time source in seconds; injectable for tests.
        """
        self._http = http_client
        self.default_ttl = default_ttl
        self._default_headers = dict(default_headers or {})
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._observers: dict[str, set[CacheObserver]] = {}
        self._pending: dict[str, asyncio.Future[Any]] = {}

    # ---- Pub/sub ----

    def subscribe(self, key: str, observer: CacheObserver) -> Callable[[], None]:
        """Register observer for key; return a function that removes it."""
        self._observers.setdefault(key, set()).add(observer)

        def unsubscribe() -> None:
            observers = self._observers.get(key)
            if observers is None:
                return
            observers.discard(observer)
            if not observers:
                del self._observers[key]

        return unsubscribe

    def _notify(self, key: str, data: Any) -> None:
        for observer in list(self._observers.get(key, ())):
            try:
                observer(data)
            except Exception:
                logger.exception("Cache observer failed for key %s", key)

    # ---- Entries ----

    def set(self, key: str, data: Any, ttl: float | None = None) -> None:
        """Store data under key and notify the key's subscribers."""
        ttl = self.default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(key, data, self._clock(), ttl)
        logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)
        self._notify(key, data)

    def _lookup(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return _MISSING
        if not entry.is_valid(self._clock()):
            del self._entries[key]
            logger.debug("Cache EXPIRED: %s", key)
            return _MISSING
        return entry.data

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value, or default when missing or expired."""
        value = self._lookup(key)
        return default if value is _MISSING else value

    def invalidate(self, key: str) -> bool:
        """Remove one entry. Returns True if it existed.

        A request in flight for key still answers its waiters, but its
        result is not stored and later calls start a new request.
        """
        self._pending.pop(key, None)
        removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug("Cache DELETE: %s", key)
        return removed

    def invalidate_pattern(self, pattern: str) -> int:
        """Remove every entry whose key contains pattern. Returns the count."""
        for key in [key for key in self._pending if pattern in key]:
            del self._pending[key]
        doomed = [key for key in self._entries if pattern in key]
        for key in doomed:
            del self._entries[key]
        if doomed:
            logger.info("Cache INVALIDATE: %s (%s keys)", pattern, len(doomed))
        return len(doomed)

    def clear(self) -> None:
        """Drop every entry and in-flight marker. Subscribers are kept."""
        self._entries.clear()
        self._pending.clear()
        logger.debug("Cache CLEARED")

    def __len__(self) -> int:
        return len(self._entries)

    # ---- Fetching ----

    async def fetch_with_cache(
        self,
        url: str,
        *,
        method: str = "POST",
        json: Any = None,
        headers: dict[str, str] | None = None,
        ttl: float | None = None,
        key: str | None = None,
    ) -> Any:
        """Return the decoded body for a request, from cache when valid.

        Args:
            url: Request URL.
            method: HTTP method.
            json: JSON body; part of the derived cache key.
            headers: Extra request headers (not part of the key).
            ttl: Entry TTL in seconds; default_ttl when None.
            key: Explicit cache key; derived from method/url/body when None.

        Raises:
            NetworkException, ServerException, ParseException: From the request.
        """
        cache_key = key or request_key(method, url, json)
        cached = self._lookup(cache_key)
        if cached is not _MISSING:
            logger.debug("Cache HIT: %s", cache_key)
            return cached

        pending = self._pending.get(cache_key)
        if pending is None:
            logger.debug("Cache MISS: %s", cache_key)
            pending = asyncio.ensure_future(
                self._fetch_and_store(cache_key, url, method, json, headers, ttl)
            )
            self._pending[cache_key] = pending
        else:
            logger.debug("Cache JOIN in-flight: %s", cache_key)
        # Shielded so one caller's cancellation does not cancel the shared request.
        return await asyncio.shield(pending)

    async def force_refresh(
        self,
        url: str,
        *,
        method: str = "POST",
        json: Any = None,
        headers: dict[str, str] | None = None,
        ttl: float | None = None,
        key: str | None = None,
    ) -> Any:
        """Invalidate the entry for this request, then fetch it again.

        Never joins a request already in flight for the key, so the answer
        always comes from a request started after the call.
        """
        self.invalidate(key or request_key(method, url, json))
        return await self.fetch_with_cache(
            url, method=method, json=json, headers=headers, ttl=ttl, key=key
        )

    async def _fetch_and_store(
        self,
        cache_key: str,
        url: str,
        method: str,
        json_body: Any,
        headers: dict[str, str] | None,
        ttl: float | None,
    ) -> Any:
        this_request = self._pending.get(cache_key)
        try:
            data = await self._request(url, method, json_body, headers)
            # Superseded by invalidate(), force_refresh() or clear(): answer, don't store.
            if this_request is not None and self._pending.get(cache_key) is this_request:
                self.set(cache_key, data, ttl)
            else:
                logger.debug("Cache SKIP stale result: %s", cache_key)
            return data
        finally:
            if this_request is not None and self._pending.get(cache_key) is this_request:
                del self._pending[cache_key]

    async def _request(
        self,
        url: str,
        method: str,
        json_body: Any,
        headers: dict[str, str] | None,
    ) -> Any:
        request_headers = {**self._default_headers, **(headers or {})}
        operation = json_body.get("operation") if isinstance(json_body, dict) else None
        resp = await send_request(
            self._http,
            url,
            method=method,
            json_body=json_body,
            headers=request_headers,
            operation=operation,
        )
        data = decode_json_body(resp.text)
        if isinstance(data, dict) and data.get("success") is False:
            raise ServerException(data.get("message") or "Operation failed", operation=operation)
        return data
