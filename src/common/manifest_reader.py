"""Dependency-manifest reader (composer.json).

Only the pieces path resolution needs: loading the JSON object and reading
``config``/``extra`` override keys.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_path

logger = logging.getLogger(__name__)


class ManifestError(Exception):
    """Raised when a manifest is missing, unreadable or not a JSON object."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{reason}: {path}")
        self.path = path
        self.reason = reason


def find_manifest(root: str) -> Optional[str]:
    """Return the manifest path under ``root`` if it is a regular file."""
    candidate = os.path.join(root, Constants.MANIFEST_FILE)
    return candidate if os.path.isfile(candidate) else None


def read_manifest(path: str) -> Dict[str, Any]:
    """Load and return the manifest object at ``path``.

    Raises:
        ManifestError: file missing, unreadable, invalid JSON, or not an object.
    """
    if not os.path.isfile(path):
        raise ManifestError(path, "Manifest not found")
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        logger.warning("Invalid JSON in manifest %s: %s", safe_path(path), exc)
        raise ManifestError(path, "Invalid JSON in manifest") from exc
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Failed to read manifest %s: %s", safe_path(path), exc)
        raise ManifestError(path, "Unreadable manifest") from exc

    if not isinstance(data, dict):
        raise ManifestError(path, "Manifest is not a JSON object")

    if is_debug_enabled(logger):
        logger.debug("Manifest loaded", extra=extra_context(
            event="function_exit", component="manifest_reader", action="read",
            outcome="loaded", path=safe_path(path)
        ))
    return data


def get_config_value(manifest: Dict[str, Any], key: str) -> Optional[Any]:
    """Return ``config.<key>`` or None."""
    config = manifest.get("config")
    if not isinstance(config, dict):
        return None
    return config.get(key)


def get_extra_value(manifest: Dict[str, Any], namespace: str, key: str) -> Optional[Any]:
    """Return ``extra.<namespace>.<key>`` or None."""
    extra = manifest.get("extra")
    if not isinstance(extra, dict):
        return None
    section = extra.get(namespace)
    if not isinstance(section, dict):
        return None
    return section.get(key)
