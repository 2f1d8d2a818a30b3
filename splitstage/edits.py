"""
User-driven boundary edits made during review.

Edits never mutate the commits they receive: apply_edit returns a new
list in which only the affected boundaries are replaced. Split, merge
and remove-files only redistribute files that already sit in the
affected boundaries, and the result is checked to hold exactly the same
files as before. Only the current boundary and the ones after it can be
edited; earlier boundaries were already handled.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple, Union

from .domain import CommitBoundary, CommitMessage, PlannedCommit, RankingResult
from .errors import EditError
from .settings import AnalysisSettings
from .strategy import build_title, plan_commit, suggest_message

LOG = logging.getLogger(__name__)

COMMIT_TYPES = ("feat", "fix", "docs", "style", "refactor", "test", "chore", "perf", "build", "ci")


@dataclass(frozen=True)
class SplitBoundary:
    """Move files from position `at` onward into a new boundary right after."""

    at: int


@dataclass(frozen=True)
class MergeBoundaries:
    """Fold a later boundary's files into the current one."""

    other_id: str


@dataclass(frozen=True)
class RemoveFiles:
    """Move the given paths into a new boundary right after the current one."""

    paths: Tuple[str, ...]


@dataclass(frozen=True)
class ReorderBoundary:
    """Move the current boundary to a later position."""

    to_index: int


@dataclass(frozen=True)
class EditMessage:
    title: str
    body: Optional[str] = None


@dataclass(frozen=True)
class ChangeCommitType:
    commit_type: str


@dataclass(frozen=True)
class RegenerateMessage:
    pass


BoundaryEdit = Union[
    SplitBoundary,
    MergeBoundaries,
    RemoveFiles,
    ReorderBoundary,
    EditMessage,
    ChangeCommitType,
    RegenerateMessage,
]


@dataclass(frozen=True)
class EditContext:
    """What edits need to re-plan a boundary."""

    settings: AnalysisSettings
    ranking: Optional[RankingResult] = None


def _next_id(commits: Sequence[PlannedCommit]) -> str:
    numbers = [0]
    for commit in commits:
        match = re.search(r"(\d+)$", commit.boundary.id)
        if match:
            numbers.append(int(match.group(1)))
    return f"boundary-{max(numbers) + 1}"


def _file_multiset(commits: Sequence[PlannedCommit]) -> Counter:
    return Counter(path for commit in commits for path in commit.boundary.file_paths)


def _replan(boundary: CommitBoundary, context: EditContext) -> PlannedCommit:
    return plan_commit(boundary, context.ranking, context.settings)


def apply_edit(
    commits: Sequence[PlannedCommit],
    index: int,
    edit: BoundaryEdit,
    context: EditContext,
) -> List[PlannedCommit]:
    """
    Return a new commit list with `edit` applied to the commit at `index`.

    Raises EditError when the edit is not possible.
    """

    if not 0 <= index < len(commits):
        raise EditError(f"no boundary at position {index + 1}")

    result = list(commits)
    current = commits[index]
    boundary = current.boundary

    if isinstance(edit, SplitBoundary):
        if not 0 < edit.at < len(boundary.files):
            raise EditError(f"split position must be between 1 and {len(boundary.files) - 1}")
        new_id = _next_id(commits)
        head = replace(boundary, files=boundary.files[: edit.at], dependencies=list(boundary.dependencies))
        tail = replace(
            boundary,
            id=new_id,
            files=boundary.files[edit.at :],
            dependencies=list(boundary.dependencies),
            reasoning=f"Split from {boundary.id}",
        )
        result[index : index + 1] = [_replan(head, context), _replan(tail, context)]

    elif isinstance(edit, MergeBoundaries):
        positions = [pos for pos, commit in enumerate(commits) if commit.boundary.id == edit.other_id]
        if not positions:
            raise EditError(f"unknown boundary {edit.other_id}")
        other_index = positions[0]
        if other_index <= index:
            raise EditError("can only merge with a boundary that has not been reviewed yet")
        other = commits[other_index].boundary
        dependencies = [dep for dep in boundary.dependencies + other.dependencies if dep not in (boundary.id, other.id)]
        merged = replace(
            boundary,
            files=boundary.files + other.files,
            dependencies=sorted(set(dependencies), key=dependencies.index),
            reasoning=f"{boundary.reasoning}; merged with {other.id}".lstrip("; "),
        )
        del result[other_index]
        result[index] = _replan(merged, context)
        for pos, commit in enumerate(result):
            if other.id in commit.boundary.dependencies:
                remapped = [boundary.id if dep == other.id else dep for dep in commit.boundary.dependencies]
                remapped = [dep for dep in dict.fromkeys(remapped) if dep != commit.boundary.id]
                result[pos] = replace(commit, boundary=replace(commit.boundary, dependencies=remapped))

    elif isinstance(edit, RemoveFiles):
        wanted = set(edit.paths)
        unknown = sorted(wanted - set(boundary.file_paths))
        if unknown:
            raise EditError("files not in this boundary: " + ", ".join(unknown))
        if not wanted:
            raise EditError("no files selected")
        kept = [change for change in boundary.files if change.path not in wanted]
        moved = [change for change in boundary.files if change.path in wanted]
        if not kept:
            raise EditError("a boundary must keep at least one file")
        new_id = _next_id(commits)
        head = replace(boundary, files=kept)
        tail = replace(
            boundary,
            id=new_id,
            files=moved,
            dependencies=list(boundary.dependencies),
            reasoning=f"Files removed from {boundary.id}",
        )
        result[index : index + 1] = [_replan(head, context), _replan(tail, context)]

    elif isinstance(edit, ReorderBoundary):
        if not index < edit.to_index < len(commits):
            raise EditError(f"new position must be after the current one (up to {len(commits)})")
        moved_commit = result.pop(index)
        result.insert(edit.to_index, moved_commit)

    elif isinstance(edit, EditMessage):
        title = edit.title.strip()
        if not title:
            raise EditError("commit title cannot be empty")
        kind = title.split(":", 1)[0] if ":" in title else current.message.type
        result[index] = replace(current, message=CommitMessage(title=title, type=kind, body=edit.body or None))

    elif isinstance(edit, ChangeCommitType):
        kind = edit.commit_type.strip().lower()
        if kind not in COMMIT_TYPES:
            raise EditError(f"unknown commit type {edit.commit_type!r}; expected one of {', '.join(COMMIT_TYPES)}")
        title = current.message.title
        if ":" in title:
            title = f"{kind}:{title.split(':', 1)[1]}"
        else:
            title = build_title(kind, boundary.theme, len(boundary.files), context.settings.strategy)
        result[index] = replace(current, message=replace(current.message, title=title, type=kind))

    elif isinstance(edit, RegenerateMessage):
        result[index] = replace(current, message=suggest_message(boundary, context.settings.strategy))

    else:
        raise EditError(f"unsupported edit {edit!r}")

    if _file_multiset(result) != _file_multiset(commits):
        raise EditError("edit would change the set of files under review")

    LOG.info("Applied %s to %s", type(edit).__name__, boundary.id)
    return result
