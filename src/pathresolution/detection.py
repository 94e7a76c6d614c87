"""Infer an installation's layout convention from filesystem evidence."""

from __future__ import annotations

import logging
import os

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_path
from common.manifest_reader import (
    ManifestError,
    find_manifest,
    get_config_value,
    get_extra_value,
    read_manifest,
)

from .models import InstallationKind

logger = logging.getLogger(__name__)

LEGACY_MARKERS = ("typo3_src", os.path.join("typo3", "sysext"), Constants.DEFAULT_CONFIG_DIR)
CONTAINER_MARKERS = (os.path.join("app", "public"), os.path.join("app", "vendor"))


def _is_non_default(value, default: str) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    return os.path.normpath(value.strip()) != default


def detect_installation_kind(root: str) -> InstallationKind:
    """Return the concrete InstallationKind for ``root``.

    Rules, first match wins:
      * manifest with non-default vendor/web dir, or a ``web/typo3conf`` -> custom
      * manifest, no root vendor dir, ``app/public`` or ``app/vendor`` -> containerized
      * manifest -> standard
      * ``typo3_src``, ``typo3/sysext`` or ``typo3conf`` -> legacy
      * otherwise generic
    """
    kind = _detect(root)
    if is_debug_enabled(logger):
        logger.debug("Installation kind detected", extra=extra_context(
            event="decision", component="detection", action="detect_installation_kind",
            outcome=kind.value, root=safe_path(root)
        ))
    return kind


def _detect(root: str) -> InstallationKind:
    manifest_path = find_manifest(root)
    if manifest_path is not None:
        try:
            manifest = read_manifest(manifest_path)
        except ManifestError:
            manifest = {}
        vendor = get_config_value(manifest, "vendor-dir")
        web = get_extra_value(manifest, Constants.PLATFORM_EXTRA_NAMESPACE, "web-dir")
        if (
            _is_non_default(vendor, Constants.DEFAULT_VENDOR_DIR)
            or _is_non_default(web, Constants.DEFAULT_WEB_DIR)
            or os.path.isdir(os.path.join(root, "web", Constants.DEFAULT_CONFIG_DIR))
        ):
            return InstallationKind.CUSTOM
        if not os.path.isdir(os.path.join(root, Constants.DEFAULT_VENDOR_DIR)) and any(
            os.path.isdir(os.path.join(root, marker)) for marker in CONTAINER_MARKERS
        ):
            return InstallationKind.CONTAINERIZED
        return InstallationKind.STANDARD

    if any(os.path.exists(os.path.join(root, marker)) for marker in LEGACY_MARKERS):
        return InstallationKind.LEGACY
    return InstallationKind.GENERIC
