"""Constants and runtime tunables used in the project."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    MANIFEST_FILE = "composer.json"
    LOCK_FILE = "composer.lock"
    INSTALLED_MANIFEST = "composer/installed.json"
    PACKAGE_REGISTRY_FILE = "PackageStates.php"
    EXTENSION_MARKER_FILE = "ext_emconf.php"

    DEFAULT_VENDOR_DIR = "vendor"
    DEFAULT_WEB_DIR = "public"
    DEFAULT_CONFIG_DIR = "typo3conf"
    EXTENSION_SUBDIR = "ext"
    PLATFORM_EXTRA_NAMESPACE = "typo3/cms"
    CORE_PACKAGE_VENDOR = "typo3"
    CORE_PACKAGE_PREFIX = "cms-"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "UPGRADE_PATHS_LOG_LEVEL"
    ENV_CONFIG = "UPGRADE_PATHS_CONFIG"
    ENV_CACHE_TTL = "UPGRADE_PATHS_CACHE_TTL"
    ENV_CACHE_DIR = "UPGRADE_PATHS_CACHE_DIR"

    PATH_CACHE_TTL_SEC = 300
    PATH_NEGATIVE_CACHE_TTL_SEC: Optional[int] = None
    PATH_CACHE_MAX_ENTRIES = 1000
    PATH_CACHE_DIR: Optional[str] = None
    RESOLVE_MAX_WORKERS = 8


DEFAULT_CONFIG_LOCATIONS = (
    "upgrade-paths.yml",
    "upgrade-paths.yaml",
    os.path.join("~", ".config", "upgrade-paths", "config.yml"),
)


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the first YAML config found; never raises.

    Precedence: explicit ``path``, ``$UPGRADE_PATHS_CONFIG``, then the default
    locations relative to the working directory and the user's home.
    """
    candidates = []
    if path:
        candidates.append(path)
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        candidates.append(env_path)
    candidates.extend(DEFAULT_CONFIG_LOCATIONS)

    for candidate in candidates:
        expanded = os.path.expanduser(candidate)
        if not os.path.isfile(expanded):
            continue
        try:
            with open(expanded, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Failed to load config %s: %s", expanded, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring config %s: top-level value is not a mapping", expanded)
            return {}
        return data
    return {}


def _coerce_ttl(value: Any) -> Optional[int]:
    """Return a non-negative int TTL, or None when the value is unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        ttl = int(value)
    except (TypeError, ValueError):
        return None
    return ttl if ttl >= 0 else None


def apply_config(cfg: Optional[Dict[str, Any]] = None) -> None:
    """Overlay the ``path_resolution`` section and environment onto Constants.

    Environment variables win over the YAML file. Invalid values are logged
    and ignored.
    """
    section = (cfg or {}).get("path_resolution") or {}
    if not isinstance(section, dict):
        logger.warning("Ignoring path_resolution config: expected a mapping")
        section = {}

    cache = section.get("cache") or {}
    if isinstance(cache, dict):
        if "ttl" in cache:
            ttl = _coerce_ttl(cache.get("ttl"))
            if ttl is None:
                logger.warning("Invalid path_resolution.cache.ttl: %r", cache.get("ttl"))
            else:
                Constants.PATH_CACHE_TTL_SEC = ttl
        if "negative_ttl" in cache:
            raw = cache.get("negative_ttl")
            Constants.PATH_NEGATIVE_CACHE_TTL_SEC = _coerce_ttl(raw) or None
        if "max_entries" in cache:
            max_entries = _coerce_ttl(cache.get("max_entries"))
            if max_entries:
                Constants.PATH_CACHE_MAX_ENTRIES = max_entries
            else:
                logger.warning("Invalid path_resolution.cache.max_entries: %r", cache.get("max_entries"))
        if cache.get("directory"):
            Constants.PATH_CACHE_DIR = os.path.expanduser(str(cache["directory"]))

    workers = section.get("max_workers")
    if workers is not None:
        coerced = _coerce_ttl(workers)
        if coerced:
            Constants.RESOLVE_MAX_WORKERS = coerced

    env_ttl = os.environ.get(Constants.ENV_CACHE_TTL)
    if env_ttl is not None:
        ttl = _coerce_ttl(env_ttl)
        if ttl is None:
            logger.warning("Invalid %s: %r", Constants.ENV_CACHE_TTL, env_ttl)
        else:
            Constants.PATH_CACHE_TTL_SEC = ttl
    env_dir = os.environ.get(Constants.ENV_CACHE_DIR)
    if env_dir:
        Constants.PATH_CACHE_DIR = os.path.expanduser(env_dir)


def load_config(path: Optional[str] = None) -> None:
    """Load YAML config and environment overrides into Constants."""
    apply_config(_load_yaml_config(path))
