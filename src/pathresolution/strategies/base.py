"""Abstract base class for path resolution strategies."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from typing import FrozenSet, Iterable, List, Sequence

from ..errors import ErrorKind
from ..models import (
    InstallationKind,
    PathKind,
    ResolutionMetadata,
    ResolutionRequest,
    ResolutionResponse,
    StrategyFailure,
    StrategyPriority,
)

ALL_CONCRETE_KINDS: FrozenSet[InstallationKind] = frozenset(InstallationKind.concrete())
MANIFEST_KINDS: FrozenSet[InstallationKind] = frozenset({
    InstallationKind.STANDARD,
    InstallationKind.CUSTOM,
    InstallationKind.CONTAINERIZED,
    InstallationKind.GENERIC,
})


class PathResolutionStrategy(ABC):
    """Resolver for one or more (PathKind, InstallationKind) pairs.

    ``resolve`` is a pure function of the request and the filesystem: it does
    not cache and does not mutate anything. Expected "not found" outcomes are
    returned as error responses, never raised.
    """

    identifier: str = ""
    path_kinds: FrozenSet[PathKind] = frozenset()
    installation_kinds: FrozenSet[InstallationKind] = frozenset()

    def supports(self, path_kind: PathKind, installation_kind: InstallationKind) -> bool:
        """Return True if this strategy handles the pair.

        Args:
            path_kind: Kind of path requested.
            installation_kind: Concrete installation kind.

        Returns:
            bool: True when both kinds are declared on the class.
        """
        return path_kind in self.path_kinds and installation_kind in self.installation_kinds

    @abstractmethod
    def priority(self, path_kind: PathKind, installation_kind: InstallationKind) -> StrategyPriority:
        """Ordering weight for a supported pair.

        Args:
            path_kind: Kind of path requested.
            installation_kind: Concrete installation kind.

        Returns:
            StrategyPriority: higher values are tried first.
        """

    @abstractmethod
    def resolve(self, request: ResolutionRequest) -> ResolutionResponse:
        """Resolve ``request`` against the current filesystem.

        Args:
            request: Request with a concrete installation kind.

        Returns:
            ResolutionResponse: success with the path, or an error carrying
            one StrategyFailure with the reason.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identifier!r})"

    # Response helpers shared by the built-in strategies.

    def _success(
        self,
        request: ResolutionRequest,
        path: str,
        attempted: Iterable[str] = (),
        alternatives: Iterable[str] = (),
        warnings: Iterable[str] = (),
    ) -> ResolutionResponse:
        metadata = ResolutionMetadata(
            strategy=self.identifier,
            attempted_paths=tuple(attempted) or (path,),
        )
        return ResolutionResponse.success(
            request.path_kind, path, metadata=metadata,
            alternatives=[a for a in alternatives if a != path], warnings=warnings,
        )

    def _failure(
        self,
        request: ResolutionRequest,
        kind: ErrorKind,
        message: str,
        attempted: Iterable[str] = (),
        alternatives: Iterable[str] = (),
    ) -> ResolutionResponse:
        metadata = ResolutionMetadata(
            strategy=self.identifier,
            attempted_paths=tuple(attempted),
            failures=(StrategyFailure(self.identifier, kind, message),),
        )
        return ResolutionResponse.error(
            request.path_kind, message, kind=kind, metadata=metadata, alternatives=alternatives
        )

    @staticmethod
    def _exists(path: str, expect_directory: bool) -> bool:
        return os.path.isdir(path) if expect_directory else os.path.isfile(path)

    def _first_existing(self, request: ResolutionRequest, candidates: Sequence[str]) -> ResolutionResponse:
        """Pick the first existing candidate; later existing ones become alternatives.

        With ``validate_exists`` off the first candidate is returned without filesystem checks.
        """
        ordered: List[str] = list(dict.fromkeys(candidates))
        if not ordered:
            return self._failure(request, ErrorKind.CANDIDATE_NOT_FOUND, "No candidate paths derivable")
        if not request.configuration.validate_exists:
            return self._success(request, ordered[0], attempted=[ordered[0]])

        expect_directory = request.path_kind.expects_directory
        found = [c for c in ordered if self._exists(c, expect_directory)]
        if found:
            attempted = ordered[: ordered.index(found[0]) + 1]
            return self._success(request, found[0], attempted=attempted, alternatives=found[1:])
        return self._failure(
            request,
            ErrorKind.CANDIDATE_NOT_FOUND,
            f"No {request.path_kind.value} found at: {', '.join(ordered)}",
            attempted=ordered,
        )
