"""Registry of path resolution strategies."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional

from common.logging_utils import extra_context, is_debug_enabled

from .errors import StrategyConflictError
from .models import InstallationKind, PathKind
from .strategies.base import PathResolutionStrategy

logger = logging.getLogger(__name__)


class StrategyRegistry:
    """Holds strategies and orders candidates for a (PathKind, InstallationKind) pair."""

    def __init__(self, strategies: Iterable[PathResolutionStrategy] = ()):
        self._strategies: Dict[str, PathResolutionStrategy] = {}
        self._lock = threading.Lock()
        for strategy in strategies:
            self.register(strategy)

    def register(self, strategy: PathResolutionStrategy) -> None:
        """Add ``strategy`` to the registry.

        Args:
            strategy: Strategy with a non-empty, unique identifier.

        Raises:
            ValueError: If the identifier is empty.
            StrategyConflictError: If the identifier is already registered.
        """
        identifier = strategy.identifier
        if not identifier:
            raise ValueError(f"Strategy {strategy!r} has no identifier")
        with self._lock:
            if identifier in self._strategies:
                raise StrategyConflictError(f"Strategy already registered: {identifier}")
            self._strategies[identifier] = strategy
        if is_debug_enabled(logger):
            logger.debug("Strategy registered", extra=extra_context(
                event="register", component="registry", action="register",
                strategy=identifier, path_kinds=sorted(k.value for k in strategy.path_kinds)
            ))

    def strategies(self) -> List[PathResolutionStrategy]:
        """All strategies sorted by identifier."""
        with self._lock:
            return [self._strategies[k] for k in sorted(self._strategies)]

    def candidates_for(
        self, path_kind: PathKind, installation_kind: InstallationKind
    ) -> List[PathResolutionStrategy]:
        """Supporting strategies by descending priority, ties broken by identifier.

        Returns an empty list when nothing supports the pair.
        """
        supporting = [s for s in self.strategies() if s.supports(path_kind, installation_kind)]
        return sorted(
            supporting,
            key=lambda s: (-int(s.priority(path_kind, installation_kind)), s.identifier),
        )

    def has_strategy_for(
        self, path_kind: PathKind, installation_kind: Optional[InstallationKind] = None
    ) -> bool:
        """Return True if any strategy supports ``path_kind``.

        Args:
            path_kind: Kind of path to look up.
            installation_kind: Restrict to this kind; None checks every concrete kind.

        Returns:
            bool: True when at least one registered strategy applies.
        """
        kinds = [installation_kind] if installation_kind else InstallationKind.concrete()
        return any(
            s.supports(path_kind, kind) for s in self.strategies() for kind in kinds
        )

    def supported_path_kinds(self) -> List[PathKind]:
        """Path kinds at least one strategy supports, in declaration order."""
        return [kind for kind in PathKind if self.has_strategy_for(kind)]

    def capabilities(self) -> Dict[str, Any]:
        """Summary of what the registered strategies cover."""
        return {
            "strategies": [
                {
                    "identifier": s.identifier,
                    "path_kinds": sorted(k.value for k in s.path_kinds),
                    "installation_kinds": sorted(k.value for k in s.installation_kinds),
                }
                for s in self.strategies()
            ],
            "path_kinds": [k.value for k in self.supported_path_kinds()],
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._strategies)
