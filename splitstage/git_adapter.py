"""
Git integration for splitstage.

This module is responsible for interacting with the git CLI: reading the
working diff for analysis and driving the index while boundaries are
staged and committed. Every invocation goes through _run_git so that
error handling and logging are centralized.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Iterable, List, Optional, Sequence, Set

from .errors import GitError

LOG = logging.getLogger(__name__)


def _run_git(
    args: List[str],
    cwd: Optional[str] = None,
    input_text: Optional[str] = None,
    ok_codes: Sequence[int] = (0,),
) -> subprocess.CompletedProcess[str]:
    """
    Run a git command and return the completed process.

    A return code outside ok_codes raises GitError carrying git's stderr.
    """

    cmd = ["git", *args]
    LOG.debug("Running git command: %s", " ".join(cmd))
    try:
        completed = subprocess.run(
            cmd,
            cwd=cwd,
            check=False,
            text=True,
            capture_output=True,
            input=input_text,
        )
    except OSError as exc:
        raise GitError(f"failed to execute git: {exc}") from exc

    if completed.returncode not in ok_codes:
        LOG.debug("git stderr: %s", completed.stderr)
        detail = completed.stderr.strip()
        message = f"git command failed: {' '.join(cmd)}"
        if detail:
            message = f"{message}: {detail}"
        raise GitError(message)

    return completed


def ensure_git_repository(cwd: Optional[str] = None) -> str:
    """
    Return the repository's top-level directory or raise GitError.
    """

    try:
        return _run_git(["rev-parse", "--show-toplevel"], cwd=cwd).stdout.strip()
    except GitError as exc:
        raise GitError("not inside a git repository") from exc


def has_head(cwd: Optional[str] = None) -> bool:
    """
    Return True if HEAD points at a commit (False on an unborn branch).
    """

    try:
        _run_git(["rev-parse", "--verify", "--quiet", "HEAD"], cwd=cwd)
    except GitError:
        return False
    return True


def list_untracked_files(cwd: Optional[str] = None) -> List[str]:
    output = _run_git(["ls-files", "--others", "--exclude-standard"], cwd=cwd).stdout
    return [line for line in output.splitlines() if line]


def list_tracked_files(cwd: Optional[str] = None) -> Set[str]:
    output = _run_git(["ls-files"], cwd=cwd).stdout
    return {line for line in output.splitlines() if line}


def get_working_diff(
    staged: bool = False,
    include_untracked: bool = True,
    cwd: Optional[str] = None,
) -> str:
    """
    Return the unified diff to analyze.

    With staged=True only the index is compared against HEAD. Otherwise
    the working tree is compared against HEAD (or against the index on an
    unborn branch) and untracked files are appended as new files.
    """

    if staged or not has_head(cwd):
        diff = _run_git(["diff", "--cached", "--find-renames"], cwd=cwd).stdout
        if staged:
            return diff
    else:
        diff = _run_git(["diff", "HEAD", "--find-renames"], cwd=cwd).stdout

    if not include_untracked:
        return diff

    parts = [diff] if diff else []
    for path in list_untracked_files(cwd):
        # --no-index exits with 1 when the inputs differ.
        untracked = _run_git(
            ["diff", "--no-index", "--", "/dev/null", path],
            cwd=cwd,
            ok_codes=(0, 1),
        ).stdout
        if untracked:
            parts.append(untracked)

    return "".join(part if part.endswith("\n") else part + "\n" for part in parts)


class GitStagingGateway:
    """
    The only component that mutates the git index.

    Staging always happens through a full reset followed by an add of
    exactly one boundary's paths, so the index never mixes boundaries.
    """

    def __init__(self, cwd: Optional[str] = None) -> None:
        self.cwd = cwd

    def reset_index(self) -> None:
        if has_head(self.cwd):
            _run_git(["reset", "-q", "HEAD"], cwd=self.cwd)
        else:
            _run_git(["rm", "--cached", "-r", "-q", "--ignore-unmatch", "."], cwd=self.cwd)

    def stage_files(self, paths: Iterable[str]) -> None:
        path_list = list(paths)
        if not path_list:
            return
        # -A also records deletions of paths that are gone from disk.
        _run_git(["add", "-A", "--", *path_list], cwd=self.cwd)

    def commit(self, message: str) -> str:
        _run_git(["commit", "-q", "-m", message], cwd=self.cwd)
        return _run_git(["rev-parse", "HEAD"], cwd=self.cwd).stdout.strip()

    def currently_staged_files(self) -> Set[str]:
        output = _run_git(
            ["diff", "--cached", "--name-only", "--no-renames"],
            cwd=self.cwd,
        ).stdout
        return {line for line in output.splitlines() if line}

    def tracked_files(self) -> Set[str]:
        return list_tracked_files(self.cwd)
