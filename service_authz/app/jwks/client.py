"""
JWKS client with a per-key TTL cache and single-flight fetching.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Dict, Any, Optional, Callable

import httpx

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.retry import RetryConfig, RetryError, retry_on_exception
from ..errors import KeyFetchError


@dataclass
class KeyCacheEntry:
    """A signing key and the moment it was fetched."""
    kid: str
    key: Dict[str, Any]
    fetched_at: float
    ttl: float

    @property
    def expires_at(self) -> float:
        return self.fetched_at + self.ttl

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class JWKSClient:
    """Client for fetching and caching signing keys by key id.

    Each successful fetch replaces the whole cache, so a key the identity
    provider stops publishing is forgotten at the next refresh. At most one
    fetch of the key set is in flight; every cold kid waits on it.
    """

    def __init__(self,
                 jwks_url: str,
                 cache_ttl: float = 3600,
                 timeout: float = 3.0,
                 retry_config: Optional[RetryConfig] = None,
                 min_refresh_interval: float = 5.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 clock: Callable[[], float] = time.monotonic,
                 metrics: Optional[MetricsCollector] = None):
        self.jwks_url = jwks_url
        self.cache_ttl = cache_ttl
        self.timeout = timeout
        self.min_refresh_interval = min_refresh_interval
        self.logger = get_logger("authz.jwks")
        self.metrics = metrics

        self._transport = transport
        self._clock = clock
        self._entries: Dict[str, KeyCacheEntry] = {}
        self._inflight: Optional["asyncio.Future[None]"] = None
        self._lock = asyncio.Lock()
        self._last_fetch: Optional[float] = None

        retry_config = retry_config or RetryConfig(max_attempts=3, base_delay=0.2, max_delay=2.0)
        self._fetch_document = retry_on_exception(
            (httpx.TransportError, httpx.HTTPStatusError),
            retry_config
        )(self._request_jwks)

    async def get_key(self, kid: str) -> Dict[str, Any]:
        """Return the JWK for ``kid`` if the current key set publishes it."""
        key = self._cached(kid)
        if key is not None:
            self._record("jwks_cache_lookups_total", result="hit")
            return key

        async with self._lock:
            key = self._cached(kid)
            if key is not None:
                self._record("jwks_cache_lookups_total", result="hit")
                return key

            self._record("jwks_cache_lookups_total", result="miss")
            pending = self._inflight
            if pending is None:
                # A kid missing from a key set fetched moments ago stays missing.
                if self._recently_fetched():
                    self.logger.warning("Key not published, refresh throttled", kid=kid)
                    raise KeyFetchError("Signing key not published", details={"kid": kid})
                pending = asyncio.ensure_future(self._refresh(kid))
                pending.add_done_callback(self._fetch_done)
                self._inflight = pending

        await asyncio.shield(pending)

        key = self._cached(kid)
        if key is None:
            self.logger.warning("Key not found", kid=kid)
            raise KeyFetchError("Signing key not published", details={"kid": kid})
        return key

    def _cached(self, kid: str) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(kid)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry.key

    def _recently_fetched(self) -> bool:
        return (self._last_fetch is not None
                and self._clock() - self._last_fetch < self.min_refresh_interval)

    def _fetch_done(self, task: "asyncio.Future[None]"):
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled():
            # waiters re-raise it; mark it retrieved when nobody waits
            task.exception()

    async def _refresh(self, kid: str):
        try:
            document = await self._fetch_document()
        except RetryError as e:
            self._record("jwks_fetch_total", status="error")
            self.logger.error("Failed to fetch JWKS", kid=kid, attempts=e.attempts, error=str(e.last_exception))
            raise KeyFetchError(
                "JWKS endpoint unavailable",
                details={"kid": kid, "error": str(e.last_exception)}
            ) from e
        except KeyFetchError:
            self._record("jwks_fetch_total", status="error")
            raise

        keys = document.get("keys") if isinstance(document, dict) else None
        if not isinstance(keys, list):
            self._record("jwks_fetch_total", status="error")
            raise KeyFetchError("JWKS document has no key list", details={"kid": kid})

        now = self._clock()
        entries = {
            jwk["kid"]: KeyCacheEntry(kid=jwk["kid"], key=jwk, fetched_at=now, ttl=self.cache_ttl)
            for jwk in keys
            if isinstance(jwk, dict) and isinstance(jwk.get("kid"), str) and jwk["kid"]
        }
        retired = sorted(set(self._entries) - set(entries))
        self._entries = entries
        self._last_fetch = now

        self._record("jwks_fetch_total", status="ok")
        self.logger.info("JWKS refreshed", keys_count=len(entries), requested_kid=kid, retired=retired)

    async def _request_jwks(self) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport,
                                     follow_redirects=True) as client:
            response = await client.get(self.jwks_url)

        if 400 <= response.status_code < 500:
            raise KeyFetchError(
                "JWKS endpoint rejected the request",
                details={"status_code": response.status_code}
            )
        # 5xx is treated as transient and retried
        response.raise_for_status()

        try:
            return response.json()
        except ValueError as e:
            raise KeyFetchError("JWKS response is not valid JSON") from e

    def _record(self, metric: str, **labels):
        if self.metrics is not None:
            self.metrics.increment_counter(metric, **labels)

    def cache_stats(self) -> Dict[str, Any]:
        """Summarize the cache for health reporting."""
        now = self._clock()
        return {
            "entries": len(self._entries),
            "fresh": sum(1 for e in self._entries.values() if not e.is_expired(now)),
            "inflight": 0 if self._inflight is None else 1
        }

    def clear_cache(self):
        """Clear all cached keys."""
        self._entries.clear()
        self._last_fetch = None
        self.logger.info("JWKS cache cleared")
