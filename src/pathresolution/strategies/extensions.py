"""Extension directory strategies.

Three conventions are covered: packages installed into the vendor directory
by the package manager, the legacy ``typo3conf/ext`` folder, and a scan of
search directories with disambiguation by package name and version.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import re
from glob import escape as glob_escape
from glob import glob
from typing import Any, Dict, List, Optional, Sequence

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from common.manifest_reader import ManifestError, find_manifest, get_extra_value, read_manifest

from ..errors import ErrorKind
from ..layout import LayoutHints
from ..models import (
    ExtensionIdentifier,
    InstallationKind,
    PathKind,
    ResolutionConfiguration,
    ResolutionRequest,
    ResolutionResponse,
    StrategyPriority,
)
from .base import ALL_CONCRETE_KINDS, MANIFEST_KINDS, PathResolutionStrategy

logger = logging.getLogger(__name__)

_EXT_DIR = os.path.join(Constants.DEFAULT_CONFIG_DIR, Constants.EXTENSION_SUBDIR)

DEFAULT_SEARCH_DIRECTORIES = (
    _EXT_DIR,
    os.path.join("public", _EXT_DIR),
    os.path.join("web", _EXT_DIR),
)
CONTAINER_SEARCH_DIRECTORIES = (os.path.join("app", "public", _EXT_DIR),)


def _candidate_manifest(directory: str) -> Optional[Dict[str, Any]]:
    path = find_manifest(directory)
    if path is None:
        return None
    try:
        return read_manifest(path)
    except ManifestError:
        return None


def _manifest_field(directory: str, name: str) -> Optional[str]:
    manifest = _candidate_manifest(directory)
    value = manifest.get(name) if manifest else None
    return value if isinstance(value, str) else None


def _extension_key_of(directory: str) -> Optional[str]:
    manifest = _candidate_manifest(directory)
    if not manifest:
        return None
    value = get_extra_value(manifest, Constants.PLATFORM_EXTRA_NAMESPACE, "extension-key")
    return value if isinstance(value, str) else None


def _is_package_dir(directory: str) -> bool:
    return os.path.isfile(os.path.join(directory, Constants.MANIFEST_FILE)) or os.path.isfile(
        os.path.join(directory, Constants.EXTENSION_MARKER_FILE)
    )


def looks_like_extension(directory: str, key: str) -> bool:
    """True when ``directory`` carries an extension marker for ``key``."""
    if not os.path.isdir(directory):
        return False
    if os.path.isfile(os.path.join(directory, Constants.EXTENSION_MARKER_FILE)):
        return True
    manifest = _candidate_manifest(directory)
    if manifest:
        name = manifest.get("name")
        if isinstance(name, str) and (key in name or key.replace("_", "-") in name):
            return True
        package_type = manifest.get("type")
        if isinstance(package_type, str) and package_type.startswith("typo3-"):
            return True
        if get_extra_value(manifest, Constants.PLATFORM_EXTRA_NAMESPACE, "extension-key") == key:
            return True
    return any(os.path.isdir(os.path.join(directory, sub)) for sub in ("Classes", "Resources"))


def is_excluded(path: str, root: str, patterns: Sequence[str]) -> bool:
    """Match ``patterns`` against the basename and the root-relative path."""
    if not patterns:
        return False
    name = os.path.basename(path)
    relative = os.path.relpath(path, root)
    return any(fnmatch.fnmatch(name, p) or fnmatch.fnmatch(relative, p) for p in patterns)


_OPERATOR_SPACE = re.compile(r"(>=|<=|!=|==|>|<|=)\s+")
_NUMERIC = re.compile(r"^v?(\d+(?:\.\d+)*)$")


def _bump(parts: List[int], index: int) -> str:
    upper = parts[: index + 1]
    upper[index] += 1
    return ".".join(str(p) for p in upper)


def _convert_token(token: str) -> Optional[List[str]]:
    """Translate one Composer constraint token into PEP 440 specifiers."""
    if token in ("*", "x"):
        return []
    if token[0] in "^~":
        match = _NUMERIC.match(token[1:])
        if not match:
            return None
        base = match.group(1)
        parts = [int(p) for p in base.split(".")]
        if token[0] == "^":
            index = next((i for i, p in enumerate(parts) if p), len(parts) - 1)
        else:
            index = max(len(parts) - 2, 0)
        return [f">={base}", f"<{_bump(parts, index)}"]
    if token.endswith((".*", ".x")):
        match = _NUMERIC.match(token[:-2])
        return [f"=={match.group(1)}.*"] if match else None
    for operator in (">=", "<=", "!=", "==", ">", "<", "="):
        if token.startswith(operator):
            version = token[len(operator):].lstrip("vV")
            return [f"{'==' if operator == '=' else operator}{version}"]
    match = _NUMERIC.match(token)
    return [f"=={match.group(1)}"] if match else None


def composer_constraint_to_specifiers(constraint: str) -> Optional[List[SpecifierSet]]:
    """Return one SpecifierSet per ``||`` alternative, or None if unparseable."""
    alternatives = []
    for alternative in re.split(r"\s*\|\|?\s*", constraint.strip()):
        if not alternative:
            continue
        normalized = _OPERATOR_SPACE.sub(r"\1", alternative)
        specifiers: List[str] = []
        for token in re.split(r"[\s,]+", normalized):
            if not token:
                continue
            converted = _convert_token(token)
            if converted is None:
                return None
            specifiers.extend(converted)
        try:
            alternatives.append(SpecifierSet(",".join(specifiers)))
        except InvalidSpecifier:
            return None
    return alternatives or None


def version_satisfies(version: Optional[str], constraint: str) -> bool:
    """True when ``version`` matches the Composer-style ``constraint``."""
    if not version:
        return False
    try:
        parsed = Version(version.lstrip("vV"))
    except InvalidVersion:
        return False
    specifier_sets = composer_constraint_to_specifiers(constraint)
    if not specifier_sets:
        return False
    return any(spec.contains(parsed, prereleases=True) for spec in specifier_sets)


class ComposerExtensionStrategy(PathResolutionStrategy):
    """Extensions installed by the package manager, then ``<web>/typo3conf/ext``."""

    identifier = "composer_extension"
    path_kinds = frozenset({PathKind.EXTENSION_DIRECTORY})
    installation_kinds = MANIFEST_KINDS

    def priority(self, path_kind: PathKind, installation_kind: InstallationKind) -> StrategyPriority:
        return StrategyPriority.HIGH

    def resolve(self, request: ResolutionRequest) -> ResolutionResponse:
        extension: ExtensionIdentifier = request.extension
        hints = LayoutHints(request.installation_root, request.configuration)
        if not hints.has_manifest:
            return self._failure(request, ErrorKind.CONFIGURATION_ERROR, hints.manifest_error or "Manifest missing")

        key = extension.key
        vendor = hints.absolute(hints.vendor_dir())
        vendor_candidates = []
        if extension.composer_name:
            vendor_candidates.append(os.path.normpath(os.path.join(vendor, extension.composer_name)))
        core_vendor = os.path.join(vendor, Constants.CORE_PACKAGE_VENDOR)
        vendor_candidates.append(os.path.join(core_vendor, Constants.CORE_PACKAGE_PREFIX + key))
        vendor_candidates.append(os.path.join(core_vendor, Constants.CORE_PACKAGE_PREFIX + key.replace("_", "-")))
        if not extension.composer_name and os.path.isdir(vendor):
            vendor_candidates.extend(sorted(glob(os.path.join(glob_escape(vendor), "*", glob_escape(key)))))

        ext_candidate = hints.absolute(os.path.join(hints.web_dir(), _EXT_DIR, key))
        excludes = request.configuration.exclude_patterns
        candidates = [
            c for c in dict.fromkeys(vendor_candidates + [ext_candidate])
            if not is_excluded(c, request.installation_root, excludes)
        ]
        if not candidates:
            return self._failure(request, ErrorKind.CANDIDATE_NOT_FOUND, "All candidates excluded")
        if not request.configuration.validate_exists:
            return self._success(request, candidates[0], attempted=[candidates[0]])

        matches = [
            c for c in candidates
            if (looks_like_extension(c, key) if c != ext_candidate else os.path.isdir(c))
        ]
        if matches:
            attempted = candidates[: candidates.index(matches[0]) + 1]
            return self._success(request, matches[0], attempted=attempted, alternatives=matches[1:])
        return self._failure(
            request, ErrorKind.CANDIDATE_NOT_FOUND,
            f"Extension '{key}' not found in vendor directory or {_EXT_DIR}",
            attempted=candidates,
        )


class LegacyExtensionStrategy(PathResolutionStrategy):
    """``<root>/typo3conf/ext/<key>``; needs no manifest."""

    identifier = "legacy_extension"
    path_kinds = frozenset({PathKind.EXTENSION_DIRECTORY})
    installation_kinds = ALL_CONCRETE_KINDS

    def priority(self, path_kind: PathKind, installation_kind: InstallationKind) -> StrategyPriority:
        if installation_kind is InstallationKind.LEGACY:
            return StrategyPriority.HIGHEST
        return StrategyPriority.LOW

    def resolve(self, request: ResolutionRequest) -> ResolutionResponse:
        hints = LayoutHints(request.installation_root, request.configuration)
        config_dir = hints.config_dir_override() or Constants.DEFAULT_CONFIG_DIR
        candidate = hints.absolute(os.path.join(config_dir, Constants.EXTENSION_SUBDIR, request.extension.key))
        return self._first_existing(request, [candidate])


class SearchDirectoryExtensionStrategy(PathResolutionStrategy):
    """Scan configured and default extension folders for the key or package name."""

    identifier = "search_directory_extension"
    path_kinds = frozenset({PathKind.EXTENSION_DIRECTORY})
    installation_kinds = ALL_CONCRETE_KINDS

    def priority(self, path_kind: PathKind, installation_kind: InstallationKind) -> StrategyPriority:
        if installation_kind is InstallationKind.LEGACY:
            return StrategyPriority.LOWEST
        return StrategyPriority.MEDIUM

    def _search_directories(self, request: ResolutionRequest) -> List[str]:
        hints = LayoutHints(request.installation_root, request.configuration)
        relative = list(request.configuration.search_directories)
        web = hints.web_dir()
        if web:
            relative.append(os.path.join(web, _EXT_DIR))
        relative.extend(DEFAULT_SEARCH_DIRECTORIES)
        if request.installation_kind is InstallationKind.CONTAINERIZED:
            relative.extend(CONTAINER_SEARCH_DIRECTORIES)
        return list(dict.fromkeys(hints.absolute(r) for r in relative))

    def resolve(self, request: ResolutionRequest) -> ResolutionResponse:
        extension: ExtensionIdentifier = request.extension
        root = request.installation_root
        excludes = request.configuration.exclude_patterns
        directories = self._search_directories(request)
        candidates = [
            os.path.join(d, extension.key) for d in directories
            if not is_excluded(os.path.join(d, extension.key), root, excludes)
        ]
        if not candidates:
            return self._failure(request, ErrorKind.CANDIDATE_NOT_FOUND, "All search candidates excluded")
        if not request.configuration.validate_exists:
            return self._success(request, candidates[0], attempted=[candidates[0]])

        matches = [c for c in candidates if os.path.isdir(c)]
        attempted = list(candidates)
        if not matches:
            matches = self._match_by_manifest(directories, extension, root, request.configuration)
            attempted.extend(matches)
        if not matches:
            return self._failure(
                request, ErrorKind.CANDIDATE_NOT_FOUND,
                f"Extension '{extension.key}' not found in {len(directories)} search directories",
                attempted=attempted,
            )
        if len(matches) == 1:
            return self._success(request, matches[0], attempted=attempted)

        remaining = self._disambiguate(matches, extension)
        if is_debug_enabled(logger):
            logger.debug("Disambiguated extension candidates", extra=extra_context(
                event="decision", component="strategy", action="disambiguate",
                strategy=self.identifier, candidates=len(matches), remaining=len(remaining),
                outcome="resolved" if len(remaining) == 1 else "ambiguous"
            ))
        if len(remaining) == 1:
            return self._success(request, remaining[0], attempted=attempted, alternatives=matches)
        return self._failure(
            request, ErrorKind.AMBIGUOUS,
            f"Extension '{extension.key}' is ambiguous: {len(remaining)} candidates match",
            attempted=attempted, alternatives=remaining,
        )

    @staticmethod
    def _match_by_manifest(
        directories: Sequence[str],
        extension: ExtensionIdentifier,
        root: str,
        configuration: ResolutionConfiguration,
    ) -> List[str]:
        """Directories whose manifest names the package or declares the key.

        Walks at most ``configuration.max_depth`` levels below each search
        directory, level by level, and never descends into a directory that is
        itself a package.
        """
        excludes = configuration.exclude_patterns
        found = []
        for directory in directories:
            if not os.path.isdir(directory):
                continue
            level = [directory]
            for _ in range(configuration.max_depth):
                deeper = []
                for parent in level:
                    try:
                        entries = sorted(os.listdir(parent))
                    except OSError as exc:
                        logger.warning("Cannot list search directory %s: %s", parent, exc)
                        continue
                    for entry in entries:
                        candidate = os.path.join(parent, entry)
                        if not os.path.isdir(candidate) or is_excluded(candidate, root, excludes):
                            continue
                        if not configuration.follow_symlinks and os.path.islink(candidate):
                            continue
                        if not _is_package_dir(candidate):
                            deeper.append(candidate)
                            continue
                        name_matches = bool(extension.composer_name) and (
                            _manifest_field(candidate, "name") == extension.composer_name
                        )
                        if name_matches or _extension_key_of(candidate) == extension.key:
                            found.append(candidate)
                if not deeper:
                    break
                level = deeper
        return found

    @staticmethod
    def _disambiguate(matches: List[str], extension: ExtensionIdentifier) -> List[str]:
        remaining = matches
        if extension.composer_name:
            named = [m for m in remaining if _manifest_field(m, "name") == extension.composer_name]
            if named:
                remaining = named
        if extension.version and len(remaining) > 1:
            versioned = [
                m for m in remaining
                if version_satisfies(_manifest_field(m, "version"), extension.version)
            ]
            if versioned:
                remaining = versioned
        return remaining
