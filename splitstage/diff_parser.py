"""
Unified diff parsing for splitstage.

The parser converts a raw unified diff string into the ordered Change
records defined in splitstage.domain.

The implementation is intentionally conservative: it focuses on the
unified diff format produced by git (`git diff`, `git diff --cached`)
and ignores metadata that is not needed for analysis (such as modes and
indexes). The goal is to faithfully capture file paths, hunks, and line
contents; nothing here touches the working tree.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from .analysis.language_intel import extract_symbol_name_from_hunk_header
from .domain import Change, DiffLine, Hunk
from .errors import DiffParseError

LOG = logging.getLogger(__name__)

_HUNK_HEADER_RE = re.compile(
    r"^@@ -(?P<old_start>\d+)(?:,(?P<old_count>\d+))?"
    r" \+(?P<new_start>\d+)(?:,(?P<new_count>\d+))?"
    r" @@"
)

_LINE_KINDS = {"+": "added", "-": "removed", " ": "context"}
_LINE_PREFIXES = {kind: prefix for prefix, kind in _LINE_KINDS.items()}


def parse_unified_diff(raw_diff: str) -> List[Change]:
    """
    Parse a unified diff into Change records, in diff order.

    An empty diff yields an empty list. Malformed hunk headers raise
    DiffParseError; a malformed `diff --git` line is skipped.
    """

    lines = raw_diff.splitlines()
    changes: List[Change] = []

    i = 0
    # Skip any preamble until the first file diff.
    while i < len(lines) and not lines[i].startswith("diff --git "):
        i += 1

    while i < len(lines):
        if not lines[i].startswith("diff --git "):
            i += 1
            continue

        change, i = _parse_single_file_diff(lines, i)
        if change is not None:
            changes.append(change)

    LOG.debug("Parsed %d changes from diff", len(changes))
    return changes


def _parse_single_file_diff(
    lines: Sequence[str],
    start_index: int,
) -> Tuple[Optional[Change], int]:
    """
    Parse a single `diff --git` section starting at start_index.

    Returns a tuple of (Change | None, next_index).
    """

    i = start_index
    header_line = lines[i]
    i += 1

    # Example: "diff --git a/path b/path"
    parts = header_line.split()
    if len(parts) < 4:
        LOG.warning("Skipping malformed diff header: %s", header_line)
        while i < len(lines) and not lines[i].startswith("diff --git "):
            i += 1
        return None, i

    path_old: Optional[str] = _strip_prefix(parts[-2], "a/")
    path_new: Optional[str] = _strip_prefix(parts[-1], "b/")

    change_type = "modified"
    is_binary = False

    # Consume metadata lines until we hit file headers or another diff.
    while i < len(lines):
        line = lines[i]

        if line.startswith("diff --git "):
            return _build_change(path_old, path_new, change_type, is_binary, []), i

        if line.startswith("new file mode "):
            change_type = "added"
        elif line.startswith("deleted file mode "):
            change_type = "deleted"
        elif line.startswith("rename from "):
            path_old = line[len("rename from ") :].strip()
            change_type = "renamed"
        elif line.startswith("rename to "):
            path_new = line[len("rename to ") :].strip()
            change_type = "renamed"
        elif line.startswith("Binary files ") and " differ" in line:
            is_binary = True
        elif line.startswith("GIT binary patch"):
            is_binary = True
        elif line.startswith("--- "):
            break

        i += 1

    if is_binary:
        while i < len(lines) and not lines[i].startswith("diff --git "):
            i += 1
        return _build_change(path_old, path_new, change_type, True, []), i

    old_path_line: Optional[str] = None
    new_path_line: Optional[str] = None

    if i < len(lines) and lines[i].startswith("--- "):
        old_path_line = lines[i][4:].strip()
        i += 1
    if i < len(lines) and lines[i].startswith("+++ "):
        new_path_line = lines[i][4:].strip()
        i += 1

    # /dev/null markers refine the change type.
    if old_path_line == "/dev/null":
        change_type = "added"
        path_old = None
    elif old_path_line:
        path_old = _strip_prefix(old_path_line, "a/")

    if new_path_line == "/dev/null":
        change_type = "deleted"
        path_new = None
    elif new_path_line:
        path_new = _strip_prefix(new_path_line, "b/")

    hunks: List[Hunk] = []
    while i < len(lines) and not lines[i].startswith("diff --git "):
        if lines[i].startswith("@@"):
            hunk, i = _parse_hunk(lines, i)
            hunks.append(hunk)
        else:
            i += 1

    return _build_change(path_old, path_new, change_type, is_binary, hunks), i


def _build_change(
    path_old: Optional[str],
    path_new: Optional[str],
    change_type: str,
    is_binary: bool,
    hunks: List[Hunk],
) -> Change:
    path = path_new if change_type != "deleted" else path_old
    path = path or path_old or path_new or ""
    insertions = sum(1 for hunk in hunks for line in hunk.lines if line.kind == "added")
    deletions = sum(1 for hunk in hunks for line in hunk.lines if line.kind == "removed")
    return Change(
        path=path,
        change_type=change_type,  # type: ignore[arg-type]
        insertions=insertions,
        deletions=deletions,
        hunks=tuple(hunks),
        old_path=path_old if change_type == "renamed" else None,
        is_binary=is_binary,
    )


def _parse_hunk(lines: Sequence[str], start_index: int) -> Tuple[Hunk, int]:
    """
    Parse a single hunk starting at `start_index`.
    """

    header = lines[start_index]
    match = _HUNK_HEADER_RE.match(header)
    if not match:
        raise DiffParseError(f"malformed hunk header: {header!r}")

    old_lineno: Optional[int] = int(match.group("old_start"))
    new_lineno: Optional[int] = int(match.group("new_start"))
    start_line = new_lineno

    diff_lines: List[DiffLine] = []
    i = start_index + 1

    while i < len(lines):
        line = lines[i]

        if line.startswith("diff --git ") or line.startswith("@@"):
            break

        if line.startswith("\\ No newline at end of file"):
            i += 1
            continue

        if not line:
            kind = "context"
            content = ""
        elif line[0] in _LINE_KINDS:
            kind = _LINE_KINDS[line[0]]
            content = line[1:]
        else:
            # Unexpected leading character; treat as context.
            kind = "context"
            content = line

        diff_lines.append(
            DiffLine(
                kind=kind,  # type: ignore[arg-type]
                content=content,
                old_lineno=old_lineno if kind != "added" else None,
                new_lineno=new_lineno if kind != "removed" else None,
            )
        )

        if kind in ("context", "removed") and old_lineno is not None:
            old_lineno += 1
        if kind in ("context", "added") and new_lineno is not None:
            new_lineno += 1

        i += 1

    return (
        Hunk(
            header=header,
            lines=tuple(diff_lines),
            start_line=start_line,
            symbol=extract_symbol_name_from_hunk_header(header),
        ),
        i,
    )


def _strip_prefix(path: str, prefix: str) -> str:
    if path.startswith(prefix):
        return path[len(prefix) :]
    return path


def render_changes_diff(changes: Iterable[Change]) -> str:
    """
    Render the given changes back into unified diff text.

    Mode and index lines are omitted; the output is meant for display,
    not for `git apply`.
    """

    output: List[str] = []

    for change in changes:
        path_old = change.old_path or change.path
        path_new = change.path
        output.append(f"diff --git a/{path_old} b/{path_new}")

        if change.change_type == "renamed":
            output.append(f"rename from {path_old}")
            output.append(f"rename to {path_new}")

        if change.is_binary:
            output.append(f"Binary files a/{path_old} and b/{path_new} differ")
            continue

        if not change.hunks:
            continue

        old_label = "/dev/null" if change.change_type == "added" else f"a/{path_old}"
        new_label = "/dev/null" if change.change_type == "deleted" else f"b/{path_new}"
        output.append(f"--- {old_label}")
        output.append(f"+++ {new_label}")

        for hunk in change.hunks:
            output.append(hunk.header)
            for line in hunk.lines:
                output.append(f"{_LINE_PREFIXES[line.kind]}{line.content}")

    if not output:
        return ""

    return "\n".join(output) + "\n"
