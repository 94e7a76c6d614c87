"""Installation path resolution engine."""

from .cache import CacheBackend, CacheStats, MultiLayerCache
from .detection import detect_installation_kind
from .errors import ErrorKind, InvalidRequestError, StrategyConflictError
from .models import (
    ExtensionIdentifier,
    InstallationKind,
    PathKind,
    ResolutionConfiguration,
    ResolutionMetadata,
    ResolutionRequest,
    ResolutionResponse,
    ResolutionStatus,
    StrategyFailure,
    StrategyPriority,
)
from .persistence import FileCacheBackend
from .recovery import ErrorRecoveryManager
from .registry import StrategyRegistry
from .service import PathResolutionService, create_default_service
from .strategies import PathResolutionStrategy, builtin_strategies
from .validator import PathValidator, ValidationOutcome

__all__ = [
    "CacheBackend",
    "CacheStats",
    "MultiLayerCache",
    "detect_installation_kind",
    "ErrorKind",
    "InvalidRequestError",
    "StrategyConflictError",
    "ExtensionIdentifier",
    "InstallationKind",
    "PathKind",
    "ResolutionConfiguration",
    "ResolutionMetadata",
    "ResolutionRequest",
    "ResolutionResponse",
    "ResolutionStatus",
    "StrategyFailure",
    "StrategyPriority",
    "FileCacheBackend",
    "ErrorRecoveryManager",
    "StrategyRegistry",
    "PathResolutionService",
    "create_default_service",
    "PathResolutionStrategy",
    "builtin_strategies",
    "PathValidator",
    "ValidationOutcome",
]
