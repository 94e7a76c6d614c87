"""On-disk persistent layer for the resolution cache.

One JSON file per key, bucketed by sha1 prefix. Failures are logged and
reported as misses; they never interrupt resolution.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import tempfile
import time
from typing import Any, Dict, Optional, Tuple

from common.logging_utils import safe_path

from .cache import CacheBackend

logger = logging.getLogger(__name__)

CACHE_VERSION = 1


class FileCacheBackend(CacheBackend):
    """JSON files under ``directory``; the directory lives outside any installation."""

    def __init__(self, directory: str, default_ttl: Optional[float] = None):
        self.directory = os.path.abspath(os.path.expanduser(directory))
        self.default_ttl = default_ttl

    def _path(self, key: str) -> str:
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()
        return os.path.join(self.directory, digest[:2], digest[2:4], f"{digest}.json")

    def _load(self, path: str) -> Optional[Dict[str, Any]]:
        try:
            with open(path, "r", encoding="utf-8") as fh:
                record = json.load(fh)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning("Unreadable cache file %s: %s", safe_path(path), exc)
            return None
        if not isinstance(record, dict) or record.get("v") != CACHE_VERSION:
            return None
        return record

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the stored response dict, or None when absent, expired or unreadable."""
        found = self.get_entry(key)
        return found[0] if found is not None else None

    def get_entry(self, key: str) -> Optional[Tuple[Dict[str, Any], Optional[float]]]:
        """Return ``(value, expires_at)`` for a live entry.

        Expired files are removed on read. ``expires_at`` is None for entries
        written without a TTL.
        """
        path = self._path(key)
        record = self._load(path)
        if record is None:
            return None
        ttl = record.get("ttl")
        created_at = record.get("created_at") or 0
        expires_at = created_at + ttl if ttl is not None else None
        if expires_at is not None and time.time() >= expires_at:
            self._remove(path)
            return None
        value = record.get("value")
        return (value, expires_at) if isinstance(value, dict) else None

    def set(self, key: str, value: Dict[str, Any], ttl: Optional[float] = None) -> None:
        """Atomically write ``value`` for ``key``.

        Args:
            key: Cache key, hashed into the file name.
            value: JSON-serializable response dict.
            ttl: Seconds until expiry; falls back to ``default_ttl``.
        """
        path = self._path(key)
        record = {
            "v": CACHE_VERSION,
            "key": key,
            "created_at": time.time(),
            "ttl": ttl if ttl is not None else self.default_ttl,
            "value": value,
        }
        tmp = None
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                prefix=os.path.basename(path) + ".", suffix=".tmp", dir=os.path.dirname(path)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(record, fh, ensure_ascii=False)
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Failed to write cache file %s: %s", safe_path(path), exc)
            if tmp is not None:
                self._remove(tmp)

    def delete(self, key: str) -> None:
        """Remove the file for ``key`` if present."""
        self._remove(self._path(key))

    def clear(self) -> None:
        """Remove every bucket under the cache directory."""
        if not os.path.isdir(self.directory):
            return
        for entry in os.listdir(self.directory):
            target = os.path.join(self.directory, entry)
            try:
                if os.path.isdir(target):
                    shutil.rmtree(target)
                else:
                    os.remove(target)
            except OSError as exc:
                logger.warning("Failed to clear cache entry %s: %s", safe_path(target), exc)

    @staticmethod
    def _remove(path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Failed to remove cache file %s: %s", safe_path(path), exc)
