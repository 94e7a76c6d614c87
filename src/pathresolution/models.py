"""Data models for installation path resolution."""

from __future__ import annotations

import hashlib
import json
import os
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from .errors import ErrorKind, InvalidRequestError

FINGERPRINT_PREFIX = "path_resolution"


class PathKind(Enum):
    """Abstract category of filesystem target."""
    VENDOR_DIRECTORY = "vendor-directory"
    WEB_ROOT = "web-root"
    PLATFORM_CONFIG_DIRECTORY = "platform-config-directory"
    DEPENDENCY_MANIFEST_LOCK_FILE = "dependency-manifest-lock-file"
    PACKAGE_REGISTRY_FILE = "package-registry-file"
    EXTENSION_DIRECTORY = "extension-directory"

    @property
    def expects_directory(self) -> bool:
        return self not in (PathKind.DEPENDENCY_MANIFEST_LOCK_FILE, PathKind.PACKAGE_REGISTRY_FILE)


class InstallationKind(Enum):
    """Directory-layout convention of an installation."""
    STANDARD = "standard-layout"
    CUSTOM = "custom-layout"
    LEGACY = "legacy-monolithic"
    CONTAINERIZED = "containerized"
    GENERIC = "generic"
    AUTO_DETECT = "auto-detect"

    @property
    def is_placeholder(self) -> bool:
        """True when the kind must be inferred from the filesystem first."""
        return self is InstallationKind.AUTO_DETECT

    @classmethod
    def concrete(cls) -> Tuple["InstallationKind", ...]:
        return tuple(kind for kind in cls if not kind.is_placeholder)


class ResolutionStatus(Enum):
    """Outcome of a resolution."""
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


class StrategyPriority(IntEnum):
    """Ordering weight of a strategy; never a correctness signal."""
    HIGHEST = 100
    HIGH = 75
    MEDIUM = 50
    LOW = 25
    LOWEST = 10


# camelCase aliases accepted by ResolutionConfiguration.from_dict
_CONFIG_KEY_ALIASES = {
    "customPaths": "custom_paths",
    "searchDirectories": "search_directories",
    "excludePatterns": "exclude_patterns",
    "validateExists": "validate_exists",
    "followSymlinks": "follow_symlinks",
    "maxDepth": "max_depth",
}

DEFAULT_MAX_DEPTH = 10


def _freeze_paths(value: Union[Mapping[str, str], Iterable[Tuple[str, str]], None]) -> Tuple[Tuple[str, str], ...]:
    if value is None:
        return ()
    items = value.items() if isinstance(value, Mapping) else value
    frozen = {}
    for item in items:
        try:
            name, path = item
        except (TypeError, ValueError) as exc:
            raise InvalidRequestError(f"Invalid custom path entry: {item!r}") from exc
        if not isinstance(name, str) or not isinstance(path, str) or not name:
            raise InvalidRequestError(f"Custom path entries must be non-empty strings: {item!r}")
        frozen[name] = path
    return tuple(sorted(frozen.items()))


def _freeze_strings(value: Optional[Iterable[str]], label: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        raise InvalidRequestError(f"{label} must be a sequence of strings, not a string")
    result = tuple(value)
    for entry in result:
        if not isinstance(entry, str) or not entry:
            raise InvalidRequestError(f"{label} entries must be non-empty strings: {entry!r}")
    return result


@dataclass(frozen=True)
class ResolutionConfiguration:
    """Per-request layout overrides and validation policy.

    ``custom_paths`` accepts a mapping and is stored as a sorted tuple of
    pairs so the configuration stays hashable. ``max_depth`` bounds how many
    directory levels a scan descends below each search directory.
    """
    custom_paths: Tuple[Tuple[str, str], ...] = ()
    search_directories: Tuple[str, ...] = ()
    exclude_patterns: Tuple[str, ...] = ()
    validate_exists: bool = True
    follow_symlinks: bool = True
    max_depth: int = DEFAULT_MAX_DEPTH

    def __post_init__(self) -> None:
        object.__setattr__(self, "custom_paths", _freeze_paths(self.custom_paths))
        object.__setattr__(self, "search_directories", _freeze_strings(self.search_directories, "search_directories"))
        object.__setattr__(self, "exclude_patterns", _freeze_strings(self.exclude_patterns, "exclude_patterns"))
        if not isinstance(self.validate_exists, bool) or not isinstance(self.follow_symlinks, bool):
            raise InvalidRequestError("validate_exists and follow_symlinks must be booleans")
        if isinstance(self.max_depth, bool) or not isinstance(self.max_depth, int) or self.max_depth < 1:
            raise InvalidRequestError(f"max_depth must be a positive integer, got {self.max_depth!r}")

    @classmethod
    def default(cls) -> "ResolutionConfiguration":
        return cls()

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ResolutionConfiguration":
        """Build from a mapping with snake_case or camelCase keys; unknown keys are ignored."""
        if not data:
            return cls()
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = _CONFIG_KEY_ALIASES.get(key, key)
            if name in ("custom_paths", "search_directories", "exclude_patterns",
                        "validate_exists", "follow_symlinks", "max_depth"):
                kwargs[name] = value
        return cls(**kwargs)

    def custom_path(self, name: str) -> Optional[str]:
        """Return the override registered under ``name``.

        Args:
            name: Override name such as ``vendor-dir`` or ``web-dir``.

        Returns:
            The configured relative or absolute path, or None.
        """
        for key, value in self.custom_paths:
            if key == name:
                return value
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "custom_paths": dict(self.custom_paths),
            "search_directories": list(self.search_directories),
            "exclude_patterns": list(self.exclude_patterns),
            "validate_exists": self.validate_exists,
            "follow_symlinks": self.follow_symlinks,
            "max_depth": self.max_depth,
        }


@dataclass(frozen=True)
class ExtensionIdentifier:
    """Extension key plus optional package-manager name and version constraint."""
    key: str
    composer_name: Optional[str] = None
    version: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.key, str) or not self.key.strip():
            raise InvalidRequestError("Extension key must be a non-empty string")
        if os.sep in self.key or "/" in self.key or self.key in (".", ".."):
            raise InvalidRequestError(f"Extension key must be a single path segment: {self.key!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "composer_name": self.composer_name, "version": self.version}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExtensionIdentifier":
        return cls(
            key=data["key"],
            composer_name=data.get("composer_name") or data.get("composerName"),
            version=data.get("version"),
        )


@dataclass(frozen=True)
class ResolutionRequest:
    """What to resolve and where. Structural content forms the cache key."""
    path_kind: PathKind
    installation_root: str
    installation_kind: InstallationKind = InstallationKind.AUTO_DETECT
    configuration: ResolutionConfiguration = field(default_factory=ResolutionConfiguration)
    extension: Optional[ExtensionIdentifier] = None

    def __post_init__(self) -> None:
        if not isinstance(self.path_kind, PathKind):
            raise InvalidRequestError(f"path_kind must be a PathKind, got {self.path_kind!r}")
        if not isinstance(self.installation_kind, InstallationKind):
            raise InvalidRequestError(
                f"installation_kind must be an InstallationKind, got {self.installation_kind!r}"
            )
        if not isinstance(self.configuration, ResolutionConfiguration):
            raise InvalidRequestError("configuration must be a ResolutionConfiguration")
        if not isinstance(self.installation_root, str) or not self.installation_root:
            raise InvalidRequestError("installation_root must be a non-empty string")
        if not os.path.isabs(self.installation_root):
            raise InvalidRequestError(f"installation_root must be absolute: {self.installation_root}")
        if self.extension is not None and not isinstance(self.extension, ExtensionIdentifier):
            raise InvalidRequestError("extension must be an ExtensionIdentifier")
        if self.path_kind is PathKind.EXTENSION_DIRECTORY and self.extension is None:
            raise InvalidRequestError("extension-directory requests need an extension identifier")
        object.__setattr__(self, "installation_root", os.path.normpath(self.installation_root))

    def fingerprint(self) -> str:
        """Cache key: kind prefix plus a digest of the canonical structural content."""
        payload = {
            "root": self.installation_root,
            "configuration": self.configuration.to_dict(),
            "extension": self.extension.to_dict() if self.extension else None,
        }
        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
        return f"{FINGERPRINT_PREFIX}:{self.path_kind.value}:{self.installation_kind.value}:{digest}"

    def with_installation_kind(self, kind: InstallationKind) -> "ResolutionRequest":
        return replace(self, installation_kind=kind)


@dataclass(frozen=True)
class StrategyFailure:
    """One failed attempt, kept for diagnostics."""
    strategy: str
    kind: ErrorKind
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"strategy": self.strategy, "kind": self.kind.value, "message": self.message}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StrategyFailure":
        return cls(strategy=data["strategy"], kind=ErrorKind(data["kind"]), message=data["message"])


def _dedupe(paths: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(p for p in paths if p))


@dataclass(frozen=True)
class ResolutionMetadata:
    """Diagnostics attached to every response."""
    strategy: Optional[str] = None
    attempted_paths: Tuple[str, ...] = ()
    strategy_chain: Tuple[str, ...] = ()
    failures: Tuple[StrategyFailure, ...] = ()
    fallback_reason: Optional[str] = None
    detected_installation_kind: Optional[InstallationKind] = None
    resolution_time: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "attempted_paths", _dedupe(self.attempted_paths))
        object.__setattr__(self, "strategy_chain", tuple(self.strategy_chain))
        object.__setattr__(self, "failures", tuple(self.failures))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy,
            "attempted_paths": list(self.attempted_paths),
            "strategy_chain": list(self.strategy_chain),
            "failures": [f.to_dict() for f in self.failures],
            "fallback_reason": self.fallback_reason,
            "detected_installation_kind": (
                self.detected_installation_kind.value if self.detected_installation_kind else None
            ),
            "resolution_time": self.resolution_time,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ResolutionMetadata":
        detected = data.get("detected_installation_kind")
        return cls(
            strategy=data.get("strategy"),
            attempted_paths=tuple(data.get("attempted_paths") or ()),
            strategy_chain=tuple(data.get("strategy_chain") or ()),
            failures=tuple(StrategyFailure.from_dict(f) for f in data.get("failures") or ()),
            fallback_reason=data.get("fallback_reason"),
            detected_installation_kind=InstallationKind(detected) if detected else None,
            resolution_time=float(data.get("resolution_time") or 0.0),
        )


@dataclass(frozen=True)
class ResolutionResponse:
    """Result of resolving one request.

    ``resolved_path`` is present for success and partial responses and
    absent for errors; construction enforces this.
    """
    status: ResolutionStatus
    path_kind: PathKind
    resolved_path: Optional[str] = None
    alternatives: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    metadata: ResolutionMetadata = field(default_factory=ResolutionMetadata)
    error_kind: Optional[ErrorKind] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "alternatives", _dedupe(self.alternatives))
        object.__setattr__(self, "errors", tuple(self.errors))
        object.__setattr__(self, "warnings", tuple(self.warnings))
        if self.status is ResolutionStatus.ERROR:
            if self.resolved_path:
                raise ValueError("Error responses must not carry a resolved path")
        elif not self.resolved_path:
            raise ValueError(f"{self.status.value} responses require a resolved path")

    @classmethod
    def success(
        cls,
        path_kind: PathKind,
        resolved_path: str,
        metadata: Optional[ResolutionMetadata] = None,
        alternatives: Iterable[str] = (),
        warnings: Iterable[str] = (),
    ) -> "ResolutionResponse":
        return cls(
            status=ResolutionStatus.SUCCESS,
            path_kind=path_kind,
            resolved_path=resolved_path,
            alternatives=tuple(alternatives),
            warnings=tuple(warnings),
            metadata=metadata or ResolutionMetadata(),
        )

    @classmethod
    def partial(
        cls,
        path_kind: PathKind,
        resolved_path: str,
        metadata: Optional[ResolutionMetadata] = None,
        alternatives: Iterable[str] = (),
        warnings: Iterable[str] = (),
    ) -> "ResolutionResponse":
        return cls(
            status=ResolutionStatus.PARTIAL,
            path_kind=path_kind,
            resolved_path=resolved_path,
            alternatives=tuple(alternatives),
            warnings=tuple(warnings),
            metadata=metadata or ResolutionMetadata(),
        )

    @classmethod
    def error(
        cls,
        path_kind: PathKind,
        errors: Union[str, Iterable[str]],
        kind: ErrorKind = ErrorKind.CANDIDATE_NOT_FOUND,
        metadata: Optional[ResolutionMetadata] = None,
        alternatives: Iterable[str] = (),
        warnings: Iterable[str] = (),
    ) -> "ResolutionResponse":
        messages = (errors,) if isinstance(errors, str) else tuple(errors)
        return cls(
            status=ResolutionStatus.ERROR,
            path_kind=path_kind,
            alternatives=tuple(alternatives),
            errors=messages,
            warnings=tuple(warnings),
            metadata=metadata or ResolutionMetadata(),
            error_kind=kind,
        )

    @property
    def is_success(self) -> bool:
        return self.status is ResolutionStatus.SUCCESS

    @property
    def is_partial(self) -> bool:
        return self.status is ResolutionStatus.PARTIAL

    @property
    def is_error(self) -> bool:
        return self.status is ResolutionStatus.ERROR

    @property
    def is_usable(self) -> bool:
        """Success or partial: a path the caller can work with."""
        return not self.is_error

    @property
    def best_alternative(self) -> Optional[str]:
        return self.alternatives[0] if self.alternatives else None

    def with_metadata(self, **changes: Any) -> "ResolutionResponse":
        return replace(self, metadata=replace(self.metadata, **changes))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "path_kind": self.path_kind.value,
            "resolved_path": self.resolved_path,
            "alternatives": list(self.alternatives),
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "metadata": self.metadata.to_dict(),
            "error_kind": self.error_kind.value if self.error_kind else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ResolutionResponse":
        """Rebuild a response; raises KeyError/ValueError on malformed input."""
        error_kind = data.get("error_kind")
        return cls(
            status=ResolutionStatus(data["status"]),
            path_kind=PathKind(data["path_kind"]),
            resolved_path=data.get("resolved_path"),
            alternatives=tuple(data.get("alternatives") or ()),
            errors=tuple(data.get("errors") or ()),
            warnings=tuple(data.get("warnings") or ()),
            metadata=ResolutionMetadata.from_dict(data.get("metadata") or {}),
            error_kind=ErrorKind(error_kind) if error_kind else None,
        )
