"""
JWKS client package.

Retrieves and caches the JSON Web Key Set used to verify token signatures.

Key points:
- Keys are cached per kid for a TTL (default one hour).
- Concurrent lookups for the same cold kid share a single fetch.
- Fetches carry a timeout and a small bounded retry with backoff; when
  they ultimately fail the caller gets KeyFetchError and denies.
"""

from .client import JWKSClient, KeyCacheEntry

__all__ = ["JWKSClient", "KeyCacheEntry"]
