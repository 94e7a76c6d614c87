"""Path resolution service: cache, registry, strategies, validation, recovery."""

from __future__ import annotations

import concurrent.futures
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from constants import Constants, load_config
from common.logging_utils import Timer, extra_context, is_debug_enabled, safe_path

from .cache import MultiLayerCache
from .detection import detect_installation_kind
from .errors import ErrorKind, InvalidRequestError
from .models import (
    InstallationKind,
    PathKind,
    ResolutionMetadata,
    ResolutionRequest,
    ResolutionResponse,
    StrategyFailure,
)
from .persistence import FileCacheBackend
from .recovery import ErrorRecoveryManager
from .registry import StrategyRegistry
from .strategies import PathResolutionStrategy, builtin_strategies
from .validator import PathValidator

logger = logging.getLogger(__name__)


class PathResolutionService:
    """Single entry point: ``resolve_path(request) -> ResolutionResponse``.

    Per request: cache lookup, strategy candidates in priority order, validation
    of each result, then recovery once every candidate failed. Expected failures
    come back as error responses; only malformed requests raise.
    """

    def __init__(
        self,
        registry: StrategyRegistry,
        cache: Optional[MultiLayerCache] = None,
        validator: Optional[PathValidator] = None,
        recovery: Optional[ErrorRecoveryManager] = None,
    ):
        self.registry = registry
        self.cache = cache if cache is not None else MultiLayerCache()
        self.validator = validator or PathValidator()
        self.recovery = recovery or ErrorRecoveryManager(self.validator)

    def resolve_path(self, request: ResolutionRequest) -> ResolutionResponse:
        """Resolve ``request``; a cached response is returned unchanged.

        Args:
            request: Validated resolution request.

        Returns:
            ResolutionResponse: Success, partial or error; never raises for resolution failures.

        Raises:
            InvalidRequestError: If ``request`` is not a ResolutionRequest.
        """
        if not isinstance(request, ResolutionRequest):
            raise InvalidRequestError(f"Expected ResolutionRequest, got {type(request).__name__}")
        key = request.fingerprint()
        return self.cache.get_or_compute(key, lambda: self._resolve_uncached(request))

    def resolve_many(
        self, requests: Iterable[ResolutionRequest], max_workers: Optional[int] = None
    ) -> List[ResolutionResponse]:
        """Resolve independent requests concurrently; results keep request order.

        Args:
            requests: Requests to resolve.
            max_workers: Thread pool size; defaults to Constants.RESOLVE_MAX_WORKERS.

        Returns:
            list: One response per request, in input order.
        """
        pending = list(requests)
        for request in pending:
            if not isinstance(request, ResolutionRequest):
                raise InvalidRequestError(f"Expected ResolutionRequest, got {type(request).__name__}")
        if not pending:
            return []
        workers = max(1, min(max_workers or Constants.RESOLVE_MAX_WORKERS, len(pending)))
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self.resolve_path, pending))

    def supports_path_kind(self, path_kind: PathKind) -> bool:
        """Return True if some registered strategy resolves ``path_kind``."""
        return self.registry.has_strategy_for(path_kind)

    def available_path_kinds(self, installation_kind: Optional[InstallationKind] = None) -> List[PathKind]:
        """Path kinds resolvable for ``installation_kind``.

        Args:
            installation_kind: Concrete kind to check; None or auto-detect covers all kinds.

        Returns:
            list: Supported path kinds in declaration order.
        """
        if installation_kind is None or installation_kind.is_placeholder:
            return self.registry.supported_path_kinds()
        return [k for k in PathKind if self.registry.has_strategy_for(k, installation_kind)]

    def capabilities(self) -> Dict[str, Any]:
        """Registry summary plus current cache statistics."""
        data = self.registry.capabilities()
        data["cache"] = self.cache.stats().to_dict()
        return data

    def _resolve_uncached(self, request: ResolutionRequest) -> ResolutionResponse:
        with Timer() as timer:
            detected = None
            concrete = request
            if request.installation_kind.is_placeholder:
                detected = detect_installation_kind(request.installation_root)
                concrete = request.with_installation_kind(detected)

            candidates = self.registry.candidates_for(concrete.path_kind, concrete.installation_kind)
            if not candidates:
                response = self._unsupported(concrete)
            else:
                response = self._run_chain(concrete, candidates)

        response = response.with_metadata(
            detected_installation_kind=detected,
            resolution_time=timer.duration(),
        )
        if is_debug_enabled(logger):
            logger.debug("Path resolved", extra=extra_context(
                event="function_exit", component="service", action="resolve_path",
                outcome=response.status.value, path_kind=request.path_kind.value,
                installation_kind=concrete.installation_kind.value,
                strategy=response.metadata.strategy, path=safe_path(response.resolved_path),
                duration_ms=timer.duration_ms()
            ))
        return response

    @staticmethod
    def _unsupported(request: ResolutionRequest) -> ResolutionResponse:
        message = f"No strategy registered for path kind: {request.path_kind.value}"
        logger.warning("%s (installation kind %s)", message, request.installation_kind.value)
        return ResolutionResponse.error(
            request.path_kind,
            message,
            kind=ErrorKind.UNSUPPORTED_PATH_KIND,
            metadata=ResolutionMetadata(
                failures=(StrategyFailure("registry", ErrorKind.UNSUPPORTED_PATH_KIND, message),),
            ),
        )

    def _run_chain(
        self, request: ResolutionRequest, candidates: Sequence[PathResolutionStrategy]
    ) -> ResolutionResponse:
        attempted: List[str] = []
        failures: List[StrategyFailure] = []
        chain: List[str] = []

        for strategy in candidates:
            identifier = strategy.identifier
            chain.append(identifier)
            try:
                response = strategy.resolve(request)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.warning(
                    "Strategy %s failed unexpectedly: %s (type: %s)", identifier, exc, type(exc).__name__
                )
                failures.append(StrategyFailure(
                    identifier, ErrorKind.CANDIDATE_NOT_FOUND, f"Unexpected {type(exc).__name__}: {exc}"
                ))
                continue

            attempted.extend(response.metadata.attempted_paths)
            if response.is_error:
                failures.extend(response.metadata.failures or (StrategyFailure(
                    identifier,
                    response.error_kind or ErrorKind.CANDIDATE_NOT_FOUND,
                    "; ".join(response.errors) or "not found",
                ),))
                continue

            outcome = self.validator.validate(
                response.resolved_path,
                root=request.installation_root,
                expect_directory=request.path_kind.expects_directory,
                configuration=request.configuration,
            )
            if outcome.valid:
                return response.with_metadata(
                    strategy=identifier,
                    attempted_paths=tuple(attempted),
                    strategy_chain=tuple(chain),
                    failures=tuple(failures),
                )
            attempted.append(response.resolved_path)
            failures.append(StrategyFailure(identifier, ErrorKind.VALIDATION_FAILED, outcome.reason or "invalid"))

        recovered = self.recovery.recover(request, attempted, failures)
        return recovered.with_metadata(strategy_chain=tuple(chain))


def create_default_service(
    cache_dir: Optional[str] = None, config_path: Optional[str] = None
) -> PathResolutionService:
    """Service with every built-in strategy and a cache sized from Constants.

    The YAML config and environment overrides are loaded into Constants first.

    Args:
        cache_dir: Directory for the on-disk cache layer; overrides the
            configured cache directory.
        config_path: Explicit YAML config file, tried before the default locations.

    Returns:
        PathResolutionService: ready to resolve requests.
    """
    load_config(config_path)
    directory = cache_dir or Constants.PATH_CACHE_DIR
    persistent = FileCacheBackend(directory, Constants.PATH_CACHE_TTL_SEC) if directory else None
    cache = MultiLayerCache(
        persistent=persistent,
        default_ttl=Constants.PATH_CACHE_TTL_SEC,
        negative_ttl=Constants.PATH_NEGATIVE_CACHE_TTL_SEC,
        max_entries=Constants.PATH_CACHE_MAX_ENTRIES,
    )
    return PathResolutionService(StrategyRegistry(builtin_strategies()), cache=cache)
