"""
Staging of commit boundaries into the git index.

Every boundary is staged the same way: check its files still exist,
reset the index, add exactly the boundary's paths and verify that the
staged set equals the expected set. Any failure surfaces as a
StagingError naming the missing and unexpected paths so the review loop
can offer recovery. Only one boundary is ever staged at a time.
"""

from __future__ import annotations

import logging
from typing import Optional

from .domain import CommitBoundary, StagingStrategy
from .errors import GitError, StagingError
from .git_adapter import GitStagingGateway
from .preflight import FileProbe
from .session import StageBoundary, StagingFailedResult, StagingSucceeded

LOG = logging.getLogger(__name__)


def stage_boundary(
    gateway: GitStagingGateway,
    boundary: CommitBoundary,
    probe: Optional[FileProbe] = None,
    commit_message: Optional[str] = None,
) -> Optional[str]:
    """
    Bring the index to exactly this boundary's files, optionally committing.

    Returns the new commit's sha when commit_message is given.
    """

    expected = set(boundary.index_paths)

    if probe is not None:
        gone = [change.path for change in boundary.files if change.change_type != "deleted" and not probe.exists(change.path)]
        if gone:
            raise StagingError(
                f"{len(gone)} file(s) in {boundary.id} no longer exist on disk",
                missing=gone,
            )

    try:
        gateway.reset_index()
        gateway.stage_files(boundary.index_paths)
        staged = gateway.currently_staged_files()
    except GitError as exc:
        raise StagingError(f"git could not stage {boundary.id}: {exc}") from exc

    missing = expected - staged
    unexpected = staged - expected
    if missing or unexpected:
        details = []
        if missing:
            details.append(f"{len(missing)} expected file(s) not staged")
        if unexpected:
            details.append(f"{len(unexpected)} unexpected file(s) staged")
        raise StagingError(
            f"staged files for {boundary.id} do not match ({', '.join(details)})",
            missing=missing,
            unexpected=unexpected,
        )

    LOG.info("Staged %d file(s) for %s", len(expected), boundary.id)

    if commit_message is None:
        return None

    try:
        sha = gateway.commit(commit_message)
    except GitError as exc:
        raise StagingError(f"commit of {boundary.id} failed: {exc}") from exc
    LOG.info("Committed %s as %s", boundary.id, sha[:7])
    return sha


class StagingExecutor:
    """
    Performs StageBoundary effects and reports the outcome as an action.
    """

    def __init__(
        self,
        gateway: GitStagingGateway,
        probe: Optional[FileProbe] = None,
        dry_run: bool = False,
    ) -> None:
        self.gateway = gateway
        self.probe = probe
        self.dry_run = dry_run

    def execute(self, effect: StageBoundary, boundary: CommitBoundary):
        if self.dry_run:
            LOG.info("Dry run: would stage %d path(s) for %s", len(effect.paths), boundary.id)
            return StagingSucceeded()
        try:
            sha = stage_boundary(self.gateway, boundary, self.probe, effect.commit_message)
        except StagingError as exc:
            LOG.warning("Staging %s failed (attempt %d): %s", boundary.id, effect.attempt, exc)
            return StagingFailedResult(error=str(exc), missing=tuple(exc.missing))
        return StagingSucceeded(commit_sha=sha)


def auto_stage_first(
    strategy: StagingStrategy,
    gateway: GitStagingGateway,
    probe: Optional[FileProbe] = None,
    dry_run: bool = False,
) -> Optional[CommitBoundary]:
    """
    Stage only the first boundary of the strategy and return it.

    StagingError propagates; there is nobody to offer recovery to.
    """

    if not strategy.commits:
        return None
    boundary = strategy.commits[0].boundary
    if dry_run:
        LOG.info("Dry run: would stage %s", boundary.id)
        return boundary
    stage_boundary(gateway, boundary, probe)
    return boundary
