"""Error taxonomy for path resolution.

Analysis outcomes travel inside responses as ``ErrorKind`` values; exceptions
are reserved for programming errors.
"""

from enum import Enum


class ErrorKind(Enum):
    """Reason a strategy or the whole resolution failed."""
    UNSUPPORTED_PATH_KIND = "unsupported_path_kind"
    CANDIDATE_NOT_FOUND = "candidate_not_found"
    VALIDATION_FAILED = "validation_failed"
    RECOVERY_EXHAUSTED = "recovery_exhausted"
    CONFIGURATION_ERROR = "configuration_error"
    AMBIGUOUS = "ambiguous"

    @property
    def is_terminal(self) -> bool:
        """True for kinds that end a resolution instead of driving iteration."""
        return self in (ErrorKind.UNSUPPORTED_PATH_KIND, ErrorKind.RECOVERY_EXHAUSTED)


class InvalidRequestError(ValueError):
    """Malformed request shape (wrong types, relative root, missing extension)."""


class StrategyConflictError(ValueError):
    """A strategy with the same identifier is already registered."""
