"""Last-resort conventional locations, tried after every strategy failed."""

from __future__ import annotations

import logging
import os
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled

from .errors import ErrorKind
from .models import (
    InstallationKind,
    PathKind,
    ResolutionMetadata,
    ResolutionRequest,
    ResolutionResponse,
    StrategyFailure,
)
from .validator import PathValidator

logger = logging.getLogger(__name__)

RECOVERY_IDENTIFIER = "error_recovery"

_EXT = "typo3conf/ext/{key}"
_LOCK = Constants.LOCK_FILE

# Web roots of hand-rolled installations, checked for a typo3conf directory
CUSTOM_WEB_ROOTS = ("app", "htdocs", "public_html")

# PathKind -> InstallationKind (None = any other kind) -> relative conventions, in order
CONVENTIONS: Dict[PathKind, Dict[Optional[InstallationKind], Tuple[str, ...]]] = {
    PathKind.VENDOR_DIRECTORY: {
        InstallationKind.CONTAINERIZED: ("app/vendor", "vendor"),
        None: ("vendor",),
    },
    PathKind.WEB_ROOT: {
        InstallationKind.CUSTOM: ("web", "public", "."),
        InstallationKind.CONTAINERIZED: ("app/public", "public", "."),
        InstallationKind.LEGACY: (".",),
        None: ("public", "."),
    },
    PathKind.PLATFORM_CONFIG_DIRECTORY: {
        InstallationKind.LEGACY: ("typo3conf",),
        InstallationKind.CONTAINERIZED: ("app/public/typo3conf", "public/typo3conf", "typo3conf"),
        None: ("public/typo3conf", "web/typo3conf", "typo3conf", "public_html/typo3conf"),
    },
    PathKind.DEPENDENCY_MANIFEST_LOCK_FILE: {
        InstallationKind.CONTAINERIZED: (
            "app/vendor/composer/installed.json", "vendor/composer/installed.json", _LOCK,
        ),
        None: ("vendor/composer/installed.json", _LOCK),
    },
    PathKind.PACKAGE_REGISTRY_FILE: {
        InstallationKind.LEGACY: ("typo3conf/PackageStates.php",),
        None: (
            "public/typo3conf/PackageStates.php",
            "web/typo3conf/PackageStates.php",
            "typo3conf/PackageStates.php",
            "public_html/typo3conf/PackageStates.php",
        ),
    },
    PathKind.EXTENSION_DIRECTORY: {
        None: (
            "public/" + _EXT,
            "web/" + _EXT,
            _EXT,
            "app/public/" + _EXT,
            "htdocs/" + _EXT,
            "public_html/" + _EXT,
        ),
    },
}


def conventions_for(request: ResolutionRequest) -> List[str]:
    """Relative conventional locations for the request, most likely first."""
    table = CONVENTIONS.get(request.path_kind, {})
    templates = table.get(request.installation_kind) or table.get(None, ())
    key = request.extension.key if request.extension else ""
    return [os.path.normpath(t.format(key=key)) for t in templates]


def configuration_suggestions(request: ResolutionRequest) -> List[str]:
    """Actionable configuration hints for a request that nothing resolved.

    Args:
        request: The exhausted request.

    Returns:
        Human-readable suggestions, possibly empty.
    """
    configuration = request.configuration
    is_extension = request.path_kind is PathKind.EXTENSION_DIRECTORY
    suggestions = []
    if not configuration.custom_paths:
        suggestions.append(
            "Add custom_paths overrides (vendor-dir, web-dir, typo3conf-dir) to describe a non-standard layout"
        )
    if is_extension and not configuration.search_directories:
        suggestions.append("Add search_directories listing the folders that hold extensions")
    if request.installation_kind is InstallationKind.CUSTOM:
        suggestions.append("Check that the manifest's vendor-dir and web-dir match the directory structure")
    for web_root in CUSTOM_WEB_ROOTS:
        if not os.path.isdir(os.path.join(request.installation_root, web_root, Constants.DEFAULT_CONFIG_DIR)):
            continue
        hint = f"Found '{web_root}/{Constants.DEFAULT_CONFIG_DIR}': set custom_paths web-dir to '{web_root}'"
        if is_extension:
            hint += f" or add '{web_root}/{Constants.DEFAULT_CONFIG_DIR}/{Constants.EXTENSION_SUBDIR}' to search_directories"
        suggestions.append(hint)
    return suggestions


class ErrorRecoveryManager:
    """Turns a fully failed strategy pass into a partial result or a terminal error."""

    def __init__(self, validator: Optional[PathValidator] = None):
        self.validator = validator or PathValidator()

    def recover(
        self,
        request: ResolutionRequest,
        attempted_paths: Iterable[str] = (),
        failures: Sequence[StrategyFailure] = (),
    ) -> ResolutionResponse:
        root = request.installation_root
        tried: List[str] = []
        hits: List[Tuple[str, str]] = []
        for relative in conventions_for(request):
            candidate = os.path.normpath(os.path.join(root, relative))
            tried.append(candidate)
            outcome = self.validator.validate(
                candidate,
                root=root,
                expect_directory=request.path_kind.expects_directory,
                configuration=request.configuration,
            )
            if outcome.valid:
                hits.append((relative, candidate))

        attempted = tuple(attempted_paths) + tuple(tried)
        if hits:
            relative, resolved = hits[0]
            if is_debug_enabled(logger):
                logger.debug("Recovered via convention", extra=extra_context(
                    event="recovery", component="recovery", action="recover",
                    outcome="partial", path_kind=request.path_kind.value, convention=relative
                ))
            metadata = ResolutionMetadata(
                strategy=RECOVERY_IDENTIFIER,
                attempted_paths=attempted,
                failures=tuple(failures),
                fallback_reason=f"convention:{relative}",
            )
            return ResolutionResponse.partial(
                request.path_kind,
                resolved,
                metadata=metadata,
                alternatives=[path for _, path in hits[1:]],
                warnings=[f"Resolved through conventional location '{relative}' after all strategies failed"],
            )

        message = f"Recovery exhausted for {request.path_kind.value}: no strategy or convention matched"
        logger.info("%s (%d paths attempted)", message, len(set(attempted)))
        metadata = ResolutionMetadata(
            attempted_paths=attempted,
            failures=tuple(failures) + (StrategyFailure(RECOVERY_IDENTIFIER, ErrorKind.RECOVERY_EXHAUSTED, message),),
        )
        errors = [message] + [f"{f.strategy}: {f.message}" for f in failures]
        return ResolutionResponse.error(
            request.path_kind,
            errors,
            kind=ErrorKind.RECOVERY_EXHAUSTED,
            metadata=metadata,
            warnings=configuration_suggestions(request),
        )
