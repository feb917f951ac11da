"""In-memory, content-addressed cache for rendered code images.

Entries are keyed by a fingerprint of every parameter that affects the output
and hold the encoded PNG bytes. Stored bytes are never replaced with different
content for the same fingerprint, so a hit is always ready to serve.

By default the cache keeps every entry for the lifetime of the process.
Passing ``max_entries`` turns on least-recently-used eviction.

Reads do not run concurrently with each other: ``get`` takes the same
exclusive ``threading.Lock`` as writes. The standard library has no
shared-exclusive lock, and every critical section is a constant-time
dictionary operation. No render ever runs while the lock is held.
"""

from __future__ import annotations

import json
import logging
import threading
from collections import OrderedDict
from concurrent.futures import Future
from hashlib import sha256
from typing import Callable

logger = logging.getLogger(__name__)

# Bump to invalidate fingerprints when rendering output changes
RENDER_VERSION = "v1"


class RenderCache:
    """Thread-safe fingerprint -> bytes cache with optional single-flight.

    One lock guards the entry map, the in-flight map and the counters.
    Render work never runs under the lock.

    Attributes:
        max_entries: Maximum number of cached items (None for unlimited).
    """

    def __init__(self, max_entries: int | None = None) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._max_entries = max_entries
        self._store: OrderedDict[str, bytes] = OrderedDict()
        self._in_flight: dict[str, Future[bytes]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._coalesced = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"RenderCache(max_entries={self._max_entries}, size={len(self._store)}, "
            f"hits={self._hits}, misses={self._misses}, evictions={self._evictions})"
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, fingerprint: object) -> bool:
        with self._lock:
            return fingerprint in self._store

    def get(self, fingerprint: str) -> bytes | None:
        """Return the cached bytes, or None if not yet rendered.

        Args:
            fingerprint: Cache key from build_fingerprint().
        """

        with self._lock:
            data = self._lookup_locked(fingerprint)

        if data is None:
            logger.debug("cache.miss", extra={"cache_key": fingerprint[:16]})
        else:
            logger.debug("cache.hit", extra={"cache_key": fingerprint[:16]})
        return data

    def put(self, fingerprint: str, data: bytes) -> None:
        """Store a completed render. Last writer wins.

        Args:
            fingerprint: Cache key from build_fingerprint().
            data: Encoded image bytes.
        """

        with self._lock:
            self._store_locked(fingerprint, data)
            size = len(self._store)

        logger.debug(
            "cache.set",
            extra={"cache_key": fingerprint[:16], "size": size, "bytes": len(data)},
        )

    def get_or_create(
        self,
        fingerprint: str,
        factory: Callable[[], bytes],
    ) -> tuple[bytes, bool]:
        """Return cached bytes or render them once for all concurrent callers.

        The first caller to miss registers an in-flight future and runs
        ``factory`` outside the lock. Callers arriving while it runs wait on
        that future and get the same bytes, or the same exception. A failed
        render leaves the fingerprint absent so a later call can retry.

        Args:
            fingerprint: Cache key from build_fingerprint().
            factory: Zero-argument callable producing the image bytes.

        Returns:
            Tuple of (data, cached). ``cached`` is False only for the caller
            that actually ran the factory.
        """

        with self._lock:
            future = self._in_flight.get(fingerprint)
            leader = future is None
            if leader:
                data = self._lookup_locked(fingerprint)
                if data is not None:
                    logger.debug("cache.hit", extra={"cache_key": fingerprint[:16]})
                    return data, True
                future = Future()
                self._in_flight[fingerprint] = future
            else:
                # Followers count as coalesced only
                self._coalesced += 1

        if not leader:
            logger.debug("cache.coalesced", extra={"cache_key": fingerprint[:16]})
            return future.result(), True

        logger.debug("cache.miss", extra={"cache_key": fingerprint[:16]})
        try:
            data = factory()
        except BaseException as exc:
            with self._lock:
                self._in_flight.pop(fingerprint, None)
            future.set_exception(exc)
            raise

        with self._lock:
            self._store_locked(fingerprint, data)
            self._in_flight.pop(fingerprint, None)
        future.set_result(data)

        logger.debug(
            "cache.set",
            extra={"cache_key": fingerprint[:16], "bytes": len(data)},
        )
        return data, False

    def clear(self) -> None:
        """Remove all cached entries and reset counters."""

        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0
            self._coalesced = 0

    def stats(self) -> dict[str, int | None]:
        """Return lightweight cache metrics without exposing values."""

        with self._lock:
            return {
                "max_entries": self._max_entries,
                "entries": len(self._store),
                "bytes": sum(len(v) for v in self._store.values()),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "coalesced": self._coalesced,
                "in_flight": len(self._in_flight),
            }

    def _lookup_locked(self, fingerprint: str) -> bytes | None:
        data = self._store.get(fingerprint)
        if data is None:
            self._misses += 1
            return None
        self._hits += 1
        if self._max_entries is not None:
            self._store.move_to_end(fingerprint)  # mark as recently used
        return data

    def _store_locked(self, fingerprint: str, data: bytes) -> None:
        self._store[fingerprint] = data
        self._store.move_to_end(fingerprint)
        if self._max_entries is None:
            return
        while len(self._store) > self._max_entries:
            # popitem(last=False) removes the least recently used entry
            self._store.popitem(last=False)
            self._evictions += 1


def build_fingerprint(content: str, size: int, shape: str, kind: str) -> str:
    """Build a stable cache key from every output-affecting parameter.

    The fields are encoded in a fixed order, so the key does not depend on the
    order parameters arrived in, and JSON quoting keeps separators inside
    ``content`` from colliding with field boundaries.

    Args:
        content: Text encoded in the code.
        size: Requested size in pixels.
        shape: "square" or "rectangle".
        kind: Code kind value (e.g. "code-image").

    Returns:
        Hex-encoded SHA-256 digest string.
    """

    raw = json.dumps(
        [RENDER_VERSION, kind, content, int(size), shape],
        ensure_ascii=False,
        separators=(",", ":"),
    )
    return sha256(raw.encode("utf-8")).hexdigest()
