"""
Preflight checks for splitstage workflows.

Configuration checks run before any analysis or git access so that
mutually exclusive flags fail fast with actionable errors. Boundary
checks run during review and only ever produce warnings: a missing or
untracked file is reported with next steps but never blocks staging.
"""

from __future__ import annotations

import os
from typing import Iterable, List, Optional, Set

from .config import OUTPUT_FORMATS, Config
from .domain import CommitBoundary, ValidationIssue
from .errors import ConfigurationError


def validate_config(config: Config) -> None:
    """
    Raise ConfigurationError for invalid or mutually exclusive settings.
    """

    if config.flow and config.commit:
        raise ConfigurationError("--flow and --commit are mutually exclusive; --flow already commits each boundary")
    if config.interactive and config.commit:
        raise ConfigurationError("--interactive and --commit are mutually exclusive; use --flow to review and commit")
    if config.output_format not in OUTPUT_FORMATS:
        raise ConfigurationError(
            f"unknown output format {config.output_format!r}; expected one of {', '.join(OUTPUT_FORMATS)}"
        )
    if config.reviews and config.output_format != "terminal":
        raise ConfigurationError(f"interactive review cannot be combined with --format {config.output_format}")

    bounds = {
        "--min-files": config.min_files_per_boundary,
        "--max-files": config.max_files_per_boundary,
        "--max-boundaries": config.max_boundaries,
    }
    for flag, value in bounds.items():
        if value < 1:
            raise ConfigurationError(f"{flag} must be at least 1 (got {value})")
    if config.min_files_per_boundary > config.max_files_per_boundary:
        raise ConfigurationError(
            f"--min-files ({config.min_files_per_boundary}) cannot exceed --max-files ({config.max_files_per_boundary})"
        )

    if config.session_timeout is not None and config.session_timeout <= 0:
        raise ConfigurationError("--timeout must be a positive number of seconds")
    if config.token_budget is not None and config.token_budget < 0:
        raise ConfigurationError("--token-budget cannot be negative")
    if config.validation_threshold < 0:
        raise ConfigurationError("--validation-threshold cannot be negative")
    if config.complexity_threshold < 0:
        raise ConfigurationError("--complexity-threshold cannot be negative")


class FileProbe:
    """
    Answers whether a repository path exists on disk.
    """

    def __init__(self, root: Optional[str] = None) -> None:
        self.root = root or os.getcwd()

    def exists(self, path: str) -> bool:
        return os.path.lexists(os.path.join(self.root, path))


def validate_boundary(
    boundary: CommitBoundary,
    probe: FileProbe,
    tracked: Optional[Set[str]] = None,
) -> List[ValidationIssue]:
    """
    Report boundary files that are missing on disk or unknown to git.

    Deleted files are expected to be missing and added files are expected
    to be untracked. When tracked is None the tracking check is skipped.
    """

    issues: List[ValidationIssue] = []
    for change in boundary.files:
        if change.change_type != "deleted" and not probe.exists(change.path):
            issues.append(
                ValidationIssue(
                    boundary_id=boundary.id,
                    path=change.path,
                    kind="missing",
                    message=f"{change.path} no longer exists on disk",
                )
            )
            continue
        if tracked is not None and change.change_type not in ("added", "renamed") and change.path not in tracked:
            issues.append(
                ValidationIssue(
                    boundary_id=boundary.id,
                    path=change.path,
                    kind="untracked",
                    message=f"{change.path} is not tracked by git",
                )
            )
    return issues


def next_steps(issues: Iterable[ValidationIssue]) -> List[str]:
    steps: List[str] = []
    kinds = {issue.kind for issue in issues}
    if "missing" in kinds:
        steps.append("Restore the missing files or remove them from this boundary")
        steps.append("Re-run the analysis if files were deleted after it ran")
    if "untracked" in kinds:
        steps.append("Check that the untracked files are not ignored by .gitignore")
    return steps


def exceeds_threshold(issues: List[ValidationIssue], threshold: int) -> bool:
    """True when a boundary has more issues than the configured tolerance."""
    return len(issues) > threshold
