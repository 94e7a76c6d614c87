"""Two-layer TTL cache for resolution responses."""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from concurrent.futures import Future
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

from common.logging_utils import extra_context, is_debug_enabled

from .errors import ErrorKind
from .models import FINGERPRINT_PREFIX, InstallationKind, PathKind, ResolutionResponse

logger = logging.getLogger(__name__)


class CacheBackend(ABC):
    """Persistent key/value store holding response dicts with an optional TTL."""

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the stored value or None when absent or expired."""

    @abstractmethod
    def set(self, key: str, value: Dict[str, Any], ttl: Optional[float] = None) -> None:
        """Store ``value``; ``ttl`` None means no expiry."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry."""

    def get_entry(self, key: str) -> Optional[Tuple[Dict[str, Any], Optional[float]]]:
        """Return ``(value, expires_at)`` or None when absent or expired.

        Backends that do not track expiry report ``expires_at`` as None; so do
        entries stored without a TTL.
        """
        value = self.get(key)
        return None if value is None else (value, None)

    def has(self, key: str) -> bool:
        """Return True when ``key`` holds a live value."""
        return self.get(key) is not None


@dataclass
class CacheEntry:
    """A single fast-layer entry with TTL."""

    value: ResolutionResponse
    ttl: Optional[float] = None
    created_at: float = field(default_factory=time.time)

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.ttl is None:
            return False
        return (now if now is not None else time.time()) >= self.created_at + self.ttl


@dataclass
class CacheStats:
    """Counters since construction."""

    hits: int = 0
    misses: int = 0
    memory_hits: int = 0
    persistent_hits: int = 0
    writes: int = 0
    evictions: int = 0
    invalidations: int = 0
    joined: int = 0
    entries: int = 0

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["hit_ratio"] = round(self.hit_ratio, 4)
        return data


class MultiLayerCache:
    """In-process fast layer in front of an optional persistent backend.

    Writes go to both layers. At most one computation per key is in flight
    through ``get_or_compute``; concurrent callers for that key join it.
    ``clear()`` bumps a generation counter so computations started before it
    never write their result back to either layer.
    """

    def __init__(
        self,
        persistent: Optional[CacheBackend] = None,
        default_ttl: Optional[float] = 300,
        negative_ttl: Optional[float] = None,
        max_entries: int = 1000,
    ):
        """Initialize the cache.

        Args:
            persistent: Optional slower layer surviving process restarts.
            default_ttl: TTL in seconds for usable responses; None never expires.
            negative_ttl: TTL for recovery-exhausted errors; None disables
                negative caching.
            max_entries: Fast-layer size; least recently used entries go first.
        """
        self._persistent = persistent
        self._default_ttl = default_ttl
        self._negative_ttl = negative_ttl
        self._max_entries = max(1, int(max_entries))
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._inflight: Dict[str, Future] = {}
        self._generation = 0
        self._lock = threading.Lock()
        # Held across a generation check plus persistent write, and by clear().
        self._persist_lock = threading.Lock()
        self._stats = CacheStats()

    @property
    def persistent(self) -> Optional[CacheBackend]:
        return self._persistent

    @property
    def default_ttl(self) -> Optional[float]:
        return self._default_ttl

    @property
    def negative_ttl(self) -> Optional[float]:
        return self._negative_ttl

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def should_cache(self, response: ResolutionResponse) -> bool:
        """Usable responses always; recovery-exhausted errors only with a negative TTL."""
        if response.is_usable:
            return True
        return self._negative_ttl is not None and response.error_kind is ErrorKind.RECOVERY_EXHAUSTED

    def _ttl_for(self, response: ResolutionResponse) -> Optional[float]:
        return self._negative_ttl if response.is_error else self._default_ttl

    def _fast_get_locked(self, key: str) -> Optional[ResolutionResponse]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired():
            del self._entries[key]
            self._stats.evictions += 1
            return None
        self._entries.move_to_end(key)
        self._stats.hits += 1
        self._stats.memory_hits += 1
        return entry.value

    def _store_locked(self, key: str, response: ResolutionResponse, ttl: Optional[float]) -> None:
        self._entries[key] = CacheEntry(value=response, ttl=ttl, created_at=time.time())
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)
            self._stats.evictions += 1

    def get(self, key: str) -> Optional[ResolutionResponse]:
        """Look up ``key`` in the fast layer, then the persistent layer.

        A persistent hit is promoted into the fast layer for the time it has
        left on disk, capped by this cache's own TTL.

        Args:
            key: Request fingerprint.

        Returns:
            ResolutionResponse or None on a miss.
        """
        with self._lock:
            cached = self._fast_get_locked(key)
            generation = self._generation
        if cached is not None:
            return cached

        if self._persistent is not None:
            found = self._persistent_get(key)
            if found is not None:
                response, expires_at = found
                ttl = self._promotion_ttl(response, expires_at)
                with self._lock:
                    if generation == self._generation:
                        self._store_locked(key, response, ttl)
                    self._stats.hits += 1
                    self._stats.persistent_hits += 1
                if is_debug_enabled(logger):
                    logger.debug("Persistent cache hit", extra=extra_context(
                        event="cache_hit", component="cache", action="get", outcome="persistent",
                        key=key, ttl=ttl
                    ))
                return response

        with self._lock:
            self._stats.misses += 1
        return None

    def _promotion_ttl(self, response: ResolutionResponse, expires_at: Optional[float]) -> Optional[float]:
        ttl = self._ttl_for(response)
        if expires_at is None:
            return ttl
        remaining = max(0.0, expires_at - time.time())
        return remaining if ttl is None else min(ttl, remaining)

    def _persistent_get(self, key: str) -> Optional[Tuple[ResolutionResponse, Optional[float]]]:
        try:
            found = self._persistent.get_entry(key)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Persistent cache read failed for %s: %s", key, exc)
            return None
        if found is None:
            return None
        data, expires_at = found
        try:
            return ResolutionResponse.from_dict(data), expires_at
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Dropping malformed persistent cache entry %s: %s", key, exc)
            self._persistent_delete(key)
            return None

    def _persistent_delete(self, key: str) -> None:
        try:
            self._persistent.delete(key)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Persistent cache delete failed for %s: %s", key, exc)

    def put(self, key: str, response: ResolutionResponse, ttl: Optional[float] = None) -> None:
        """Write-through to both layers.

        Args:
            key: Request fingerprint.
            response: Response to store.
            ttl: Override in seconds; defaults to the TTL for the response's status.
        """
        effective_ttl = ttl if ttl is not None else self._ttl_for(response)
        with self._lock:
            self._store_locked(key, response, effective_ttl)
            self._stats.writes += 1
        self._persistent_put(key, response, effective_ttl)

    def _persistent_put(self, key: str, response: ResolutionResponse, ttl: Optional[float]) -> None:
        if self._persistent is None:
            return
        try:
            self._persistent.set(key, response.to_dict(), ttl)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Persistent cache write failed for %s: %s", key, exc)

    def _persistent_put_if_current(
        self, key: str, response: ResolutionResponse, ttl: Optional[float], generation: int
    ) -> bool:
        with self._persist_lock:
            with self._lock:
                current = generation == self._generation
            if current:
                self._persistent_put(key, response, ttl)
        return current

    def get_or_compute(
        self,
        key: str,
        compute: Callable[[], ResolutionResponse],
        cacheable: Optional[Callable[[ResolutionResponse], bool]] = None,
    ) -> ResolutionResponse:
        """Return the cached response or run ``compute`` once for all concurrent callers.

        Exceptions from ``compute`` propagate to the owner and every joined caller.

        Args:
            key: Request fingerprint.
            compute: Produces the response on a miss.
            cacheable: Policy deciding whether the result is stored; defaults
                to ``should_cache``.

        Returns:
            ResolutionResponse: cached or freshly computed.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        with self._lock:
            cached = self._fast_get_locked(key)
            if cached is not None:
                return cached
            future = self._inflight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._inflight[key] = future
                generation = self._generation
            else:
                self._stats.joined += 1

        if not owner:
            if is_debug_enabled(logger):
                logger.debug("Joining in-flight computation", extra=extra_context(
                    event="cache_join", component="cache", action="get_or_compute", key=key
                ))
            return future.result()

        try:
            response = compute()
        except BaseException as exc:
            self._release(key, future)
            future.set_exception(exc)
            raise

        should_cache = (cacheable or self.should_cache)(response)
        ttl = self._ttl_for(response)
        with self._lock:
            current = generation == self._generation
            if should_cache and current:
                self._store_locked(key, response, ttl)
                self._stats.writes += 1
            if self._inflight.get(key) is future:
                del self._inflight[key]
        if should_cache and current:
            current = self._persistent_put_if_current(key, response, ttl, generation)
        if should_cache and not current and is_debug_enabled(logger):
            logger.debug("Discarding result computed before clear", extra=extra_context(
                event="cache_skip", component="cache", action="get_or_compute",
                outcome="stale_generation", key=key
            ))
        future.set_result(response)
        return response

    def _release(self, key: str, future: Future) -> None:
        with self._lock:
            if self._inflight.get(key) is future:
                del self._inflight[key]

    def clear(self) -> None:
        """Invalidate both layers; in-flight computations will not write back."""
        with self._persist_lock:
            with self._lock:
                self._entries.clear()
                self._inflight.clear()
                self._generation += 1
                self._stats.invalidations += 1
            if self._persistent is not None:
                try:
                    self._persistent.clear()
                except Exception as exc:  # pylint: disable=broad-exception-caught
                    logger.warning("Persistent cache clear failed: %s", exc)
        logger.info("Path resolution cache cleared")

    def invalidate(
        self,
        path_kind: Optional[PathKind] = None,
        installation_kind: Optional[InstallationKind] = None,
    ) -> int:
        """Drop entries for a path kind and/or installation kind.

        Args:
            path_kind: Only drop entries for this path kind.
            installation_kind: Only drop entries for this installation kind.

        Returns:
            int: Number of fast-layer entries removed. With neither argument
            the whole cache is cleared.
        """
        if path_kind is None and installation_kind is None:
            with self._lock:
                removed = len(self._entries)
            self.clear()
            return removed

        def matches(key: str) -> bool:
            parts = key.split(":", 3)
            if len(parts) != 4 or parts[0] != FINGERPRINT_PREFIX:
                return False
            if path_kind is not None and parts[1] != path_kind.value:
                return False
            return installation_kind is None or parts[2] == installation_kind.value

        with self._lock:
            doomed = [k for k in self._entries if matches(k)]
            for key in doomed:
                del self._entries[key]
            self._stats.invalidations += 1
        if self._persistent is not None:
            for key in doomed:
                self._persistent_delete(key)
        return len(doomed)

    def stats(self) -> CacheStats:
        """Snapshot of the counters plus the current fast-layer size."""
        with self._lock:
            snapshot = CacheStats(**asdict(self._stats))
            snapshot.entries = len(self._entries)
        return snapshot

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
