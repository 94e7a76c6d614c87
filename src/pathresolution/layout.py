"""Layout hints: directory names derived from overrides and the manifest."""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

from constants import Constants
from common.manifest_reader import (
    ManifestError,
    find_manifest,
    get_config_value,
    get_extra_value,
    read_manifest,
)

from .models import ResolutionConfiguration

# Keys understood in ResolutionConfiguration.custom_paths
VENDOR_DIR_KEY = "vendor-dir"
WEB_DIR_KEY = "web-dir"
CONFIG_DIR_KEY = "typo3conf-dir"


def _non_blank(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class LayoutHints:
    """Directory names for one installation root.

    Overrides from the configuration win over manifest keys. The manifest is
    read lazily, at most once per instance.
    """

    def __init__(self, root: str, configuration: ResolutionConfiguration):
        self.root = root
        self.configuration = configuration
        self._loaded = False
        self._manifest: Optional[Dict[str, Any]] = None
        self._manifest_error: Optional[str] = None

    def _load(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        path = find_manifest(self.root)
        if path is None:
            self._manifest_error = f"Manifest not found: {os.path.join(self.root, Constants.MANIFEST_FILE)}"
            return
        try:
            self._manifest = read_manifest(path)
        except ManifestError as exc:
            self._manifest_error = str(exc)

    @property
    def manifest(self) -> Optional[Dict[str, Any]]:
        self._load()
        return self._manifest

    @property
    def manifest_error(self) -> Optional[str]:
        self._load()
        return self._manifest_error

    @property
    def has_manifest(self) -> bool:
        return self.manifest is not None

    def absolute(self, relative: str) -> str:
        """Join ``relative`` onto the root; absolute values are only normalized."""
        return os.path.normpath(os.path.join(self.root, relative))

    def vendor_dir(self) -> Optional[str]:
        """Vendor directory name, or None without an override or a manifest."""
        override = _non_blank(self.configuration.custom_path(VENDOR_DIR_KEY))
        if override:
            return override
        if self.manifest is None:
            return None
        return _non_blank(get_config_value(self.manifest, "vendor-dir")) or Constants.DEFAULT_VENDOR_DIR

    def web_dir(self) -> Optional[str]:
        """Web root name, or None without an override or a manifest."""
        override = _non_blank(self.configuration.custom_path(WEB_DIR_KEY))
        if override:
            return override
        if self.manifest is None:
            return None
        configured = get_extra_value(self.manifest, Constants.PLATFORM_EXTRA_NAMESPACE, "web-dir")
        return _non_blank(configured) or Constants.DEFAULT_WEB_DIR

    def config_dir_override(self) -> Optional[str]:
        return _non_blank(self.configuration.custom_path(CONFIG_DIR_KEY))

    def config_dir_candidates(self) -> List[str]:
        """Absolute platform-config candidates, most specific first."""
        override = self.config_dir_override()
        if override:
            return [self.absolute(override)]
        candidates = []
        web = self.web_dir()
        if web:
            candidates.append(self.absolute(os.path.join(web, Constants.DEFAULT_CONFIG_DIR)))
        candidates.append(self.absolute(Constants.DEFAULT_CONFIG_DIR))
        return list(dict.fromkeys(candidates))
