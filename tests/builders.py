"""
Hand-built changes and commits shared by the tests.
"""

from typing import Iterable, Optional, Sequence

from splitstage.domain import Change, CommitBoundary, DiffLine, Hunk, PlannedCommit
from splitstage.settings import DEFAULT_SETTINGS
from splitstage.strategy import plan_commit


def make_change(
    path: str,
    added: Sequence[str] = (),
    removed: Sequence[str] = (),
    change_type: str = "modified",
    old_path: Optional[str] = None,
) -> Change:
    lines = [DiffLine("removed", text) for text in removed] + [DiffLine("added", text) for text in added]
    hunks = ()
    if lines:
        header = f"@@ -1,{len(removed)} +1,{len(added)} @@"
        hunks = (Hunk(header=header, lines=tuple(lines), start_line=1),)
    return Change(
        path=path,
        change_type=change_type,
        insertions=len(added),
        deletions=len(removed),
        hunks=hunks,
        old_path=old_path,
    )


def make_boundary(
    boundary_id: str,
    paths: Iterable[str],
    dependencies: Sequence[str] = (),
    theme: str = "feature development",
    bucket: str = "core",
) -> CommitBoundary:
    return CommitBoundary(
        id=boundary_id,
        theme=theme,
        priority="medium",
        estimated_complexity=1,
        files=[make_change(path, added=["value = 1"]) for path in paths],
        dependencies=list(dependencies),
        reasoning="Grouped for testing",
        bucket=bucket,
    )


def make_commit(boundary_id: str, paths: Iterable[str], **kwargs) -> PlannedCommit:
    return plan_commit(make_boundary(boundary_id, paths, **kwargs), None, DEFAULT_SETTINGS)
