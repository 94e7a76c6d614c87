"""Built-in path resolution strategies."""

from typing import List

from .base import PathResolutionStrategy
from .directories import (
    ManifestVendorDirectoryStrategy,
    ManifestWebRootStrategy,
    PlatformConfigDirectoryStrategy,
)
from .extensions import (
    ComposerExtensionStrategy,
    LegacyExtensionStrategy,
    SearchDirectoryExtensionStrategy,
)
from .files import InstalledManifestFileStrategy, PackageStatesFileStrategy


def builtin_strategies() -> List[PathResolutionStrategy]:
    """Fresh instances of every built-in strategy."""
    return [
        ManifestVendorDirectoryStrategy(),
        ManifestWebRootStrategy(),
        PlatformConfigDirectoryStrategy(),
        InstalledManifestFileStrategy(),
        PackageStatesFileStrategy(),
        ComposerExtensionStrategy(),
        LegacyExtensionStrategy(),
        SearchDirectoryExtensionStrategy(),
    ]


__all__ = [
    "PathResolutionStrategy",
    "ManifestVendorDirectoryStrategy",
    "ManifestWebRootStrategy",
    "PlatformConfigDirectoryStrategy",
    "InstalledManifestFileStrategy",
    "PackageStatesFileStrategy",
    "ComposerExtensionStrategy",
    "LegacyExtensionStrategy",
    "SearchDirectoryExtensionStrategy",
    "builtin_strategies",
]
