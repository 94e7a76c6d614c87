"""Containment, existence and kind checks for resolved candidate paths."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from common.logging_utils import extra_context, is_debug_enabled, safe_path

from .models import ResolutionConfiguration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationOutcome:
    valid: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


VALID = ValidationOutcome(True)


def is_within(path: str, root: str) -> bool:
    """True when ``path`` equals ``root`` or lies beneath it."""
    try:
        return os.path.commonpath([path, root]) == root
    except ValueError:
        return False


class PathValidator:
    """Confirms a candidate lies inside the root, exists and has the expected kind."""

    def validate(
        self,
        path: str,
        *,
        root: str,
        expect_directory: bool,
        configuration: ResolutionConfiguration,
    ) -> ValidationOutcome:
        """Check a candidate against the installation root and the configuration.

        Containment is always enforced; existence, kind and symlink checks are
        skipped when ``validate_exists`` is off.

        Args:
            path: Absolute candidate path.
            root: Normalized installation root.
            expect_directory: True for directory kinds, False for file kinds.
            configuration: Request configuration carrying the validation policy.

        Returns:
            ValidationOutcome: valid, or invalid with the first failed check.
        """
        outcome = self._check_containment(path, root)
        if outcome.valid and configuration.validate_exists:
            outcome = self._check(path, expect_directory, configuration.follow_symlinks)
        if not outcome.valid and is_debug_enabled(logger):
            logger.debug("Candidate rejected", extra=extra_context(
                event="validation", component="validator", action="validate",
                outcome="rejected", path=safe_path(path), reason=outcome.reason
            ))
        return outcome

    @staticmethod
    def _check_containment(path: str, root: str) -> ValidationOutcome:
        if not path:
            return ValidationOutcome(False, "Empty path")
        if not is_within(os.path.normpath(path), root):
            return ValidationOutcome(False, f"Outside installation root: {path}")
        return VALID

    @staticmethod
    def _check(path: str, expect_directory: bool, follow_symlinks: bool) -> ValidationOutcome:
        normalized = os.path.normpath(path)
        if not follow_symlinks and os.path.islink(normalized):
            return ValidationOutcome(False, f"Symbolic link not allowed: {path}")

        if not os.path.exists(normalized):
            return ValidationOutcome(False, f"Does not exist: {path}")
        if expect_directory and not os.path.isdir(normalized):
            return ValidationOutcome(False, f"Not a directory: {path}")
        if not expect_directory and not os.path.isfile(normalized):
            return ValidationOutcome(False, f"Not a file: {path}")
        return VALID
