"""Strategies for the vendor directory, web root and platform-config directory."""

from __future__ import annotations

from ..errors import ErrorKind
from ..layout import LayoutHints
from ..models import (
    InstallationKind,
    PathKind,
    ResolutionRequest,
    ResolutionResponse,
    StrategyPriority,
)
from .base import ALL_CONCRETE_KINDS, MANIFEST_KINDS, PathResolutionStrategy


def _manifest_priority(installation_kind: InstallationKind) -> StrategyPriority:
    if installation_kind is InstallationKind.CUSTOM:
        return StrategyPriority.HIGHEST
    if installation_kind is InstallationKind.STANDARD:
        return StrategyPriority.HIGH
    return StrategyPriority.MEDIUM


class ManifestVendorDirectoryStrategy(PathResolutionStrategy):
    """Vendor directory from the ``vendor-dir`` override or ``config.vendor-dir``."""

    identifier = "manifest_vendor_dir"
    path_kinds = frozenset({PathKind.VENDOR_DIRECTORY})
    installation_kinds = MANIFEST_KINDS

    def priority(self, path_kind: PathKind, installation_kind: InstallationKind) -> StrategyPriority:
        return _manifest_priority(installation_kind)

    def resolve(self, request: ResolutionRequest) -> ResolutionResponse:
        hints = LayoutHints(request.installation_root, request.configuration)
        vendor = hints.vendor_dir()
        if vendor is None:
            return self._failure(
                request, ErrorKind.CONFIGURATION_ERROR,
                hints.manifest_error or "No manifest and no vendor-dir override",
            )
        return self._first_existing(request, [hints.absolute(vendor)])


class ManifestWebRootStrategy(PathResolutionStrategy):
    """Web root from the ``web-dir`` override or ``extra."typo3/cms".web-dir``."""

    identifier = "manifest_web_dir"
    path_kinds = frozenset({PathKind.WEB_ROOT})
    installation_kinds = MANIFEST_KINDS

    def priority(self, path_kind: PathKind, installation_kind: InstallationKind) -> StrategyPriority:
        return _manifest_priority(installation_kind)

    def resolve(self, request: ResolutionRequest) -> ResolutionResponse:
        hints = LayoutHints(request.installation_root, request.configuration)
        web = hints.web_dir()
        if web is None:
            return self._failure(
                request, ErrorKind.CONFIGURATION_ERROR,
                hints.manifest_error or "No manifest and no web-dir override",
            )
        return self._first_existing(request, [hints.absolute(web)])


class PlatformConfigDirectoryStrategy(PathResolutionStrategy):
    """Platform-config directory beneath the web root, or at the root for legacy trees."""

    identifier = "platform_config_dir"
    path_kinds = frozenset({PathKind.PLATFORM_CONFIG_DIRECTORY})
    installation_kinds = ALL_CONCRETE_KINDS

    def priority(self, path_kind: PathKind, installation_kind: InstallationKind) -> StrategyPriority:
        if installation_kind is InstallationKind.CUSTOM:
            return StrategyPriority.HIGHEST
        if installation_kind in (InstallationKind.STANDARD, InstallationKind.LEGACY):
            return StrategyPriority.HIGH
        return StrategyPriority.MEDIUM

    def resolve(self, request: ResolutionRequest) -> ResolutionResponse:
        hints = LayoutHints(request.installation_root, request.configuration)
        return self._first_existing(request, hints.config_dir_candidates())
