"""Request cache interface (port) for the application layer.

Implemented by evalsync.infrastructure.cache.RequestCache.
"""

from collections.abc import Callable
from typing import Any, Protocol


class IRequestCache(Protocol):
    """Protocol for the request cache used by services and the roster manager."""

    def get(self, key: str, default: Any = None) -> Any:
        """Return cached value, or default when missing or expired."""
        ...

    def set(self, key: str, data: Any, ttl: float | None = None) -> None:
        """Store value with optional TTL in seconds and notify subscribers."""
        ...

    def invalidate(self, key: str) -> bool:
        """Remove one key from the cache."""
        ...

    def invalidate_pattern(self, pattern: str) -> int:
        """Remove every key containing pattern."""
        ...

    def subscribe(self, key: str, observer: Callable[[Any], None]) -> Callable[[], None]:
        """Register observer for key; return the unsubscribe function."""
        ...

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
        """Return the decoded body for a request, from cache when valid."""
        ...

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
        """Invalidate then fetch, guaranteeing a network round-trip."""
        ...
