"""
Path heuristics that sort changes into coarse buckets.

Buckets drive the fallback grouping of the boundary detector, the
ordering ties of the staging strategy and the split suggestion of the
complexity analyzer. Every change lands in exactly one bucket; the
precedence is breaking, config, test, doc, core, other.
"""

from __future__ import annotations

import posixpath
import re
from typing import Dict, List, Optional

from ..domain import Change
from ..settings import BucketSettings

BUCKET_ORDER = ("breaking", "config", "core", "other", "test", "doc")

BUCKET_REASONS: Dict[str, str] = {
    "breaking": "Isolate breaking changes for careful review",
    "config": "Infrastructure changes should come first",
    "core": "Main functionality changes",
    "other": "Remaining changes outside the main buckets",
    "test": "Tests for the new functionality",
    "doc": "Documentation updates",
}

_TEST_AFFIXES = re.compile(r"(^test_|_test$|_spec$|\.test$|\.spec$)")


def bucket_rank(bucket: str) -> int:
    try:
        return BUCKET_ORDER.index(bucket)
    except ValueError:
        return len(BUCKET_ORDER)


def is_test_file(path: str, settings: BucketSettings) -> bool:
    directories = path.lower().split("/")[:-1]
    if any(part in settings.test_dirs for part in directories):
        return True
    return settings.test_name_pattern.search(posixpath.basename(path).lower()) is not None


def is_doc_file(path: str, settings: BucketSettings) -> bool:
    lower = path.lower()
    if lower.endswith(settings.doc_suffixes):
        return True
    name = posixpath.basename(lower)
    return any(marker in (lower if marker.endswith("/") else name) for marker in settings.doc_markers)


def is_config_file(path: str, settings: BucketSettings) -> bool:
    name = posixpath.basename(path)
    for marker in settings.config_markers:
        if marker.endswith("/"):
            if marker in f"/{path}" or path.startswith(marker):
                return True
        elif marker in name:
            return True
    return False


def is_breaking_change(change: Change, settings: BucketSettings) -> bool:
    """
    A change is breaking when the file is deleted, its name mentions an
    interface or API, or a removed line drops an exported/public symbol.
    """

    if change.change_type == "deleted":
        return True
    name = posixpath.basename(change.path).lower()
    if any(marker in name for marker in settings.breaking_path_markers):
        return True
    return any(
        marker in line
        for line in change.lines_of("removed")
        for marker in settings.breaking_line_markers
    )


def bucket_of(change: Change, settings: BucketSettings) -> str:
    if is_breaking_change(change, settings):
        return "breaking"
    if is_config_file(change.path, settings):
        return "config"
    if is_test_file(change.path, settings):
        return "test"
    if is_doc_file(change.path, settings):
        return "doc"
    if any(f"/{marker}" in f"/{change.path}" for marker in settings.core_markers):
        return "core"
    return "other"


def group_by_bucket(changes: List[Change], settings: BucketSettings) -> Dict[str, List[Change]]:
    """
    Return non-empty buckets in BUCKET_ORDER, preserving input order inside each.
    """

    grouped: Dict[str, List[Change]] = {bucket: [] for bucket in BUCKET_ORDER}
    for change in changes:
        grouped[bucket_of(change, settings)].append(change)
    return {bucket: items for bucket, items in grouped.items() if items}


def tested_stem(path: str, settings: BucketSettings) -> Optional[str]:
    """
    Return the source stem a test file exercises ("tests/test_auth.py"
    -> "auth"), or None when the path is not a test file.
    """

    if not is_test_file(path, settings):
        return None
    stem = posixpath.basename(path)
    while True:
        root, ext = posixpath.splitext(stem)
        if not ext or ext in (".test", ".spec"):
            break
        stem = root
    subject = _TEST_AFFIXES.sub("", stem.lower())
    return subject or None
