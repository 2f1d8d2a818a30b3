"""
Boundary detection: partition the changeset into candidate commits.

The detector is pluggable. Every implementation must return boundaries
that partition the input changes (each change in exactly one boundary)
and validate_partition enforces that contract for all of them.

The default RelationshipGraphDetector groups files in preference order:

1. breaking changes are isolated when the minimum size allows it;
2. files joined by a relationship at or above the threshold are united,
   strongest first, without exceeding the per-boundary maximum;
3. remaining single files are grouped by directory and bucket, and any
   still alone are grouped by bucket.

Size bounds are then repaired. When bounds conflict the boundary count
limit wins over the per-boundary maximum, which wins over the minimum.
"""

from __future__ import annotations

import logging
import math
import posixpath
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .analysis.buckets import BUCKET_REASONS, bucket_of, bucket_rank
from .analysis.relationships import build_dependency_map
from .domain import (
    Change,
    CommitBoundary,
    ComplexityAnalysis,
    FileRelationship,
    RankingResult,
)
from .errors import PartitionError
from .settings import AnalysisSettings, DetectionSettings

LOG = logging.getLogger(__name__)

_BUCKET_THEMES = {
    "breaking": "breaking changes",
    "config": "configuration",
    "test": "testing",
    "doc": "documentation",
}

_PRIORITY_BY_CATEGORY = {"critical": "high", "high": "high", "medium": "medium", "low": "low"}


class BoundaryDetector(ABC):
    """
    Strategy interface for partitioning changes into boundaries.
    """

    @abstractmethod
    def detect(
        self,
        changes: Sequence[Change],
        relationships: Sequence[FileRelationship],
        ranking: RankingResult,
        complexity: ComplexityAnalysis,
        settings: AnalysisSettings,
    ) -> List[CommitBoundary]:
        raise NotImplementedError


@dataclass
class _Group:
    changes: List[Change]
    reasons: List[str] = field(default_factory=list)


class RelationshipGraphDetector(BoundaryDetector):
    """
    Relationship-graph connected components with directory and bucket fallback.
    """

    def detect(
        self,
        changes: Sequence[Change],
        relationships: Sequence[FileRelationship],
        ranking: RankingResult,
        complexity: ComplexityAnalysis,
        settings: AnalysisSettings,
    ) -> List[CommitBoundary]:
        if not changes:
            return []

        detection = settings.detection
        order = {change.path: index for index, change in enumerate(changes)}
        buckets = {change.path: bucket_of(change, settings.buckets) for change in changes}

        groups: List[_Group] = []
        remaining = list(changes)

        if detection.isolate_breaking:
            breaking = [change for change in remaining if buckets[change.path] == "breaking"]
            if breaking and len(breaking) >= detection.min_files:
                groups.append(_Group(breaking, ["Isolated breaking changes for careful review"]))
                remaining = [change for change in remaining if buckets[change.path] != "breaking"]

        related, singles = self._group_related(remaining, relationships, detection, order)
        groups.extend(related)
        groups.extend(self._group_fallback(singles, buckets))

        groups = self._enforce_min(groups, detection, buckets)
        groups = self._enforce_max(groups, detection, order)
        groups = self._enforce_count(groups, detection, buckets)

        groups.sort(key=lambda group: (bucket_rank(self._dominant_bucket(group, buckets)), order[group.changes[0].path]))

        boundaries = [
            self._build_boundary(f"boundary-{index}", group, buckets, ranking, settings)
            for index, group in enumerate(groups, start=1)
        ]
        self._assign_dependencies(boundaries, changes, relationships, settings)
        validate_partition(changes, boundaries)
        LOG.info("Detected %d boundaries for %d changes", len(boundaries), len(changes))
        return boundaries

    def _group_related(
        self,
        changes: List[Change],
        relationships: Sequence[FileRelationship],
        detection: DetectionSettings,
        order: Dict[str, int],
    ) -> Tuple[List[_Group], List[Change]]:
        by_path = {change.path: change for change in changes}
        parent = {path: path for path in by_path}
        size = {path: 1 for path in by_path}
        kinds: Dict[str, List[FileRelationship]] = {path: [] for path in by_path}

        def find(path: str) -> str:
            while parent[path] != path:
                parent[path] = parent[parent[path]]
                path = parent[path]
            return path

        strongest: Dict[Tuple[str, str], FileRelationship] = {}
        for rel in relationships:
            if rel.file1 not in by_path or rel.file2 not in by_path or rel.file1 == rel.file2:
                continue
            if rel.strength < detection.relationship_threshold:
                continue
            key = tuple(sorted((rel.file1, rel.file2), key=order.__getitem__))
            current = strongest.get(key)  # type: ignore[arg-type]
            if current is None or rel.strength > current.strength:
                strongest[key] = rel  # type: ignore[index]

        edges = sorted(strongest.items(), key=lambda item: (-item[1].strength, order[item[0][0]], order[item[0][1]]))
        for (first, second), rel in edges:
            root_a, root_b = find(first), find(second)
            if root_a == root_b:
                kinds[root_a].append(rel)
                continue
            if size[root_a] + size[root_b] > detection.max_files:
                continue
            if order[root_b] < order[root_a]:
                root_a, root_b = root_b, root_a
            parent[root_b] = root_a
            size[root_a] += size[root_b]
            kinds[root_a].extend(kinds.pop(root_b))
            kinds[root_a].append(rel)

        members: Dict[str, List[Change]] = {}
        for change in changes:
            members.setdefault(find(change.path), []).append(change)

        groups: List[_Group] = []
        singles: List[Change] = []
        for root, items in members.items():
            if len(items) == 1:
                singles.append(items[0])
                continue
            groups.append(_Group(items, [_describe_relationships(kinds[root])]))
        return groups, singles

    def _group_fallback(self, singles: List[Change], buckets: Dict[str, str]) -> List[_Group]:
        by_directory: Dict[Tuple[str, str], List[Change]] = {}
        for change in singles:
            key = (posixpath.dirname(change.path), buckets[change.path])
            by_directory.setdefault(key, []).append(change)

        groups: List[_Group] = []
        alone: Dict[str, List[Change]] = {}
        for (directory, bucket), items in by_directory.items():
            if len(items) > 1:
                where = f"{directory}/" if directory else "the repository root"
                groups.append(_Group(items, [f"Files changed together in {where}"]))
            else:
                alone.setdefault(bucket, []).extend(items)

        for bucket, items in alone.items():
            if len(items) == 1:
                groups.append(_Group(items, [f"Standalone change: {BUCKET_REASONS[bucket].lower()}"]))
            else:
                groups.append(_Group(items, [BUCKET_REASONS[bucket]]))
        return groups

    def _enforce_min(self, groups: List[_Group], detection: DetectionSettings, buckets: Dict[str, str]) -> List[_Group]:
        groups = list(groups)
        while len(groups) > 1:
            small = [group for group in groups if len(group.changes) < detection.min_files]
            if not small:
                break
            group = small[0]
            groups.remove(group)
            target = self._merge_target(group, groups, buckets, detection.max_files)
            target.changes.extend(group.changes)
            target.reasons.append(f"merged with {len(group.changes)} file(s) below the minimum boundary size")
        return groups

    def _enforce_max(self, groups: List[_Group], detection: DetectionSettings, order: Dict[str, int]) -> List[_Group]:
        result: List[_Group] = []
        for group in groups:
            count = len(group.changes)
            if count <= detection.max_files:
                result.append(group)
                continue
            items = sorted(group.changes, key=lambda change: order[change.path])
            chunks = math.ceil(count / detection.max_files)
            base, extra = divmod(count, chunks)
            start = 0
            for part in range(chunks):
                end = start + base + (1 if part < extra else 0)
                reasons = group.reasons + [f"part {part + 1} of {chunks} to respect the {detection.max_files}-file limit"]
                result.append(_Group(items[start:end], reasons))
                start = end
        return result

    def _enforce_count(self, groups: List[_Group], detection: DetectionSettings, buckets: Dict[str, str]) -> List[_Group]:
        groups = list(groups)
        while len(groups) > detection.max_boundaries:
            smallest = min(groups, key=lambda group: len(group.changes))
            groups.remove(smallest)
            target = self._merge_target(smallest, groups, buckets, None)
            target.changes.extend(smallest.changes)
            target.reasons.append("merged to respect the boundary count limit")
        return groups

    def _merge_target(
        self,
        group: _Group,
        candidates: List[_Group],
        buckets: Dict[str, str],
        max_files: Optional[int],
    ) -> _Group:
        bucket = self._dominant_bucket(group, buckets)

        def rank(candidate: _Group) -> Tuple[int, int, int]:
            fits = max_files is None or len(candidate.changes) + len(group.changes) <= max_files
            same = self._dominant_bucket(candidate, buckets) == bucket
            return (0 if fits else 1, 0 if same else 1, len(candidate.changes))

        return min(candidates, key=rank)

    @staticmethod
    def _dominant_bucket(group: _Group, buckets: Dict[str, str]) -> str:
        counts = Counter(buckets[change.path] for change in group.changes)
        return min(counts, key=lambda bucket: (-counts[bucket], bucket_rank(bucket)))

    def _build_boundary(
        self,
        boundary_id: str,
        group: _Group,
        buckets: Dict[str, str],
        ranking: RankingResult,
        settings: AnalysisSettings,
    ) -> CommitBoundary:
        bucket = self._dominant_bucket(group, buckets)
        importances = [ranking.importance_of(change.path) for change in group.changes]
        scores = [importance.score for importance in importances if importance is not None]
        categories = [importance.category for importance in importances if importance is not None]

        return CommitBoundary(
            id=boundary_id,
            theme=detect_theme(group.changes, bucket, buckets, settings.detection),
            priority=_priority(categories),  # type: ignore[arg-type]
            estimated_complexity=_estimated_complexity(group.changes, scores),
            files=list(group.changes),
            reasoning="; ".join(group.reasons),
            bucket=bucket,
        )

    def _assign_dependencies(
        self,
        boundaries: List[CommitBoundary],
        changes: Sequence[Change],
        relationships: Sequence[FileRelationship],
        settings: AnalysisSettings,
    ) -> None:
        owner = {change.path: boundary.id for boundary in boundaries for change in boundary.files}
        depends = build_dependency_map(changes, relationships, settings.buckets)
        position = {boundary.id: index for index, boundary in enumerate(boundaries)}
        for boundary in boundaries:
            needed: Set[str] = set()
            for change in boundary.files:
                for target in depends.get(change.path, ()):
                    other = owner.get(target)
                    if other is not None and other != boundary.id:
                        needed.add(other)
            boundary.dependencies = sorted(needed, key=position.__getitem__)


def detect_theme(
    changes: Sequence[Change],
    bucket: str,
    buckets: Dict[str, str],
    settings: DetectionSettings,
) -> str:
    """
    Name a group of files by keyword score over their paths.

    Groups led by breaking changes are always "breaking changes". Groups
    made only of tests, docs or configuration take the bucket's theme;
    otherwise the best-scoring keyword theme wins, table order breaking
    ties, with a bucket-based fallback.
    """

    if bucket == "breaking":
        return _BUCKET_THEMES[bucket]
    if bucket in ("config", "test", "doc") and all(buckets.get(change.path) == bucket for change in changes):
        return _BUCKET_THEMES[bucket]

    best: Optional[str] = None
    best_score = 0
    for theme, markers in settings.themes:
        score = sum(1 for change in changes for marker in markers if marker in change.path.lower())
        if score > best_score:
            best, best_score = theme, score
    if best:
        return best
    return _BUCKET_THEMES.get(bucket, "feature development")


def _priority(categories: Sequence[str]) -> str:
    for category in ("critical", "high", "medium"):
        if category in categories:
            return _PRIORITY_BY_CATEGORY[category]
    return "low"


def _estimated_complexity(changes: Sequence[Change], scores: Sequence[float]) -> int:
    mean = sum(scores) / len(scores) if scores else 0.5
    total_lines = sum(change.total_lines for change in changes)
    value = mean * 5 + min(total_lines / 100, 3.0) + min(len(changes) / 4, 2.0)
    return max(0, min(10, int(round(value))))


def _describe_relationships(relationships: Sequence[FileRelationship]) -> str:
    kinds: List[str] = []
    for rel in relationships:
        if rel.kind not in kinds:
            kinds.append(rel.kind)
    labels = ", ".join(kind.replace("_", " ") for kind in kinds)
    details = "; ".join(rel.detail for rel in relationships[:3] if rel.detail)
    text = f"Files connected by {labels} relationships"
    if details:
        text = f"{text} ({details})"
    return text


def validate_partition(changes: Sequence[Change], boundaries: Sequence[CommitBoundary]) -> None:
    """
    Raise PartitionError unless every change sits in exactly one non-empty boundary.
    """

    expected = [change.path for change in changes]
    seen: Dict[str, str] = {}
    duplicates: List[str] = []

    for boundary in boundaries:
        if not boundary.files:
            raise PartitionError(f"boundary {boundary.id} has no files")
        for path in boundary.file_paths:
            if path in seen:
                duplicates.append(f"{path} ({seen[path]}, {boundary.id})")
            else:
                seen[path] = boundary.id

    missing = [path for path in expected if path not in seen]
    unknown = sorted(set(seen) - set(expected))

    problems: List[str] = []
    if duplicates:
        problems.append("assigned twice: " + ", ".join(duplicates))
    if missing:
        problems.append("unassigned: " + ", ".join(missing))
    if unknown:
        problems.append("not in changeset: " + ", ".join(unknown))
    if problems:
        raise PartitionError("invalid partition; " + "; ".join(problems))


def detect_boundaries(
    changes: Sequence[Change],
    relationships: Sequence[FileRelationship],
    ranking: RankingResult,
    complexity: ComplexityAnalysis,
    settings: AnalysisSettings,
    detector: Optional[BoundaryDetector] = None,
) -> List[CommitBoundary]:
    """
    Run a detector (the relationship graph one by default) and check its output.
    """

    detector = detector or RelationshipGraphDetector()
    boundaries = detector.detect(changes, relationships, ranking, complexity, settings)
    validate_partition(changes, boundaries)
    return boundaries
