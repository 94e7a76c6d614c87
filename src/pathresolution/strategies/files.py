"""Strategies for the installed-packages manifest and the package-registry file."""

from __future__ import annotations

import os

from constants import Constants

from ..layout import LayoutHints
from ..models import (
    InstallationKind,
    PathKind,
    ResolutionRequest,
    ResolutionResponse,
    StrategyPriority,
)
from .base import ALL_CONCRETE_KINDS, MANIFEST_KINDS, PathResolutionStrategy


class InstalledManifestFileStrategy(PathResolutionStrategy):
    """``<vendor>/composer/installed.json`` for the derived, then the default, vendor dir."""

    identifier = "installed_manifest_file"
    path_kinds = frozenset({PathKind.DEPENDENCY_MANIFEST_LOCK_FILE})
    installation_kinds = MANIFEST_KINDS

    def priority(self, path_kind: PathKind, installation_kind: InstallationKind) -> StrategyPriority:
        if installation_kind in (InstallationKind.STANDARD, InstallationKind.CUSTOM):
            return StrategyPriority.HIGH
        return StrategyPriority.MEDIUM

    def resolve(self, request: ResolutionRequest) -> ResolutionResponse:
        hints = LayoutHints(request.installation_root, request.configuration)
        vendors = [hints.vendor_dir(), Constants.DEFAULT_VENDOR_DIR]
        candidates = [
            hints.absolute(os.path.join(vendor, Constants.INSTALLED_MANIFEST))
            for vendor in vendors if vendor
        ]
        return self._first_existing(request, candidates)


class PackageStatesFileStrategy(PathResolutionStrategy):
    """``PackageStates.php`` inside each platform-config candidate."""

    identifier = "package_states_file"
    path_kinds = frozenset({PathKind.PACKAGE_REGISTRY_FILE})
    installation_kinds = ALL_CONCRETE_KINDS

    def priority(self, path_kind: PathKind, installation_kind: InstallationKind) -> StrategyPriority:
        if installation_kind is InstallationKind.LEGACY:
            return StrategyPriority.HIGHEST
        return StrategyPriority.HIGH

    def resolve(self, request: ResolutionRequest) -> ResolutionResponse:
        hints = LayoutHints(request.installation_root, request.configuration)
        candidates = [
            os.path.join(config_dir, Constants.PACKAGE_REGISTRY_FILE)
            for config_dir in hints.config_dir_candidates()
        ]
        return self._first_existing(request, candidates)
