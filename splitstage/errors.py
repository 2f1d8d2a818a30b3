"""
Custom exception types used across splitstage.

Defining explicit error classes makes it easier for the CLI and the
review loop to distinguish between recoverable staging failures,
user-facing configuration mistakes, and unexpected bugs.
"""

from __future__ import annotations

from typing import Iterable, List, Optional


class SplitStageError(Exception):
    """Base class for all splitstage specific errors."""


class GitError(SplitStageError):
    """Raised when git operations fail."""


class DiffParseError(SplitStageError):
    """Raised when parsing a diff fails."""


class ConfigurationError(SplitStageError):
    """Raised when flags are invalid or mutually exclusive."""


class PartitionError(SplitStageError):
    """Raised when boundaries violate the one-file-one-boundary invariant."""


class EditError(SplitStageError):
    """Raised when a requested boundary edit cannot be applied."""


class InvalidTransitionError(SplitStageError):
    """Raised when a review action is not valid in the current state."""


class StagingError(SplitStageError):
    """
    Raised when the index could not be brought to a boundary's fileset.

    missing lists expected paths that are not staged (or no longer exist);
    unexpected lists staged paths that do not belong to the boundary.
    """

    def __init__(
        self,
        message: str,
        missing: Optional[Iterable[str]] = None,
        unexpected: Optional[Iterable[str]] = None,
    ) -> None:
        super().__init__(message)
        self.missing: List[str] = sorted(missing or [])
        self.unexpected: List[str] = sorted(unexpected or [])
