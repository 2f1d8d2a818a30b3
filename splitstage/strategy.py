"""
Staging strategy construction.

Boundaries are ordered so that dependencies commit first, then annotated
with a conventional-commit type, a title stub, a risk level, a rough
time estimate and a rationale. Warnings from the complexity analysis are
carried into the strategy together with strategy-level observations.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .analysis.buckets import bucket_rank, is_breaking_change
from .domain import (
    CommitBoundary,
    CommitMessage,
    ComplexityAnalysis,
    PlannedCommit,
    RankingResult,
    StagingStrategy,
)
from .settings import AnalysisSettings, BucketSettings, StrategySettings

LOG = logging.getLogger(__name__)

_PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}
_RISK_RANK = {"low": 0, "medium": 1, "high": 2}


def _tie_key(boundary: CommitBoundary, position: int) -> Tuple[int, int, int]:
    return (bucket_rank(boundary.bucket), _PRIORITY_RANK.get(boundary.priority, 3), position)


def order_boundaries(boundaries: Sequence[CommitBoundary]) -> Tuple[List[CommitBoundary], bool]:
    """
    Topologically order boundaries so dependencies come first.

    Ready boundaries are taken breaking, config, core, other, test, doc,
    then by priority, then by detection order. Returns the ordering and
    whether a dependency cycle forced the fallback to that tie order.
    """

    by_id = {boundary.id: boundary for boundary in boundaries}
    position = {boundary.id: index for index, boundary in enumerate(boundaries)}

    def key(boundary_id: str) -> Tuple[int, int, int]:
        return _tie_key(by_id[boundary_id], position[boundary_id])

    indegree: Dict[str, int] = {boundary.id: 0 for boundary in boundaries}
    dependents: Dict[str, Set[str]] = {boundary.id: set() for boundary in boundaries}
    for boundary in boundaries:
        for dependency in boundary.dependencies:
            if dependency in by_id and dependency != boundary.id and boundary.id not in dependents[dependency]:
                dependents[dependency].add(boundary.id)
                indegree[boundary.id] += 1

    ready = sorted((bid for bid, degree in indegree.items() if degree == 0), key=key)
    ordered: List[str] = []

    while ready:
        bid = ready.pop(0)
        ordered.append(bid)
        for dependent in dependents[bid]:
            indegree[dependent] -= 1
            if indegree[dependent] == 0:
                ready.append(dependent)
        ready.sort(key=key)

    if len(ordered) != len(boundaries):
        # Fall back to the stable tie order if the dependency graph has cycles.
        LOG.warning("Circular dependencies between boundaries; using bucket order")
        return sorted(boundaries, key=lambda boundary: key(boundary.id)), True

    return [by_id[bid] for bid in ordered], False


def commit_type(theme: str, settings: StrategySettings) -> str:
    lower = theme.lower()
    for markers, kind in settings.type_keywords:
        if any(marker in lower for marker in markers):
            return kind
    return settings.default_type


def build_title(kind: str, theme: str, file_count: int, settings: StrategySettings) -> str:
    title = f"{kind}: {theme} ({file_count} files)"
    if len(title) > settings.max_title_length:
        title = title[: settings.max_title_length - 3] + "..."
    return title


def suggest_message(boundary: CommitBoundary, settings: StrategySettings, kind: Optional[str] = None) -> CommitMessage:
    """
    Assemble the title stub for a boundary; long reasoning becomes the body.
    """

    kind = kind or commit_type(boundary.theme, settings)
    body = boundary.reasoning if len(boundary.reasoning) > settings.body_min_reasoning else None
    return CommitMessage(
        title=build_title(kind, boundary.theme, len(boundary.files), settings),
        type=kind,
        body=body,
    )


def boundary_risk(
    boundary: CommitBoundary,
    ranking: Optional[RankingResult],
    buckets: BucketSettings,
    settings: StrategySettings,
) -> str:
    for change in boundary.files:
        if is_breaking_change(change, buckets):
            return "high"
        if ranking is not None:
            importance = ranking.importance_of(change.path)
            if importance is not None and importance.category == "critical":
                return "high"
    if boundary.estimated_complexity >= settings.medium_risk_complexity:
        return "medium"
    return "low"


def estimate_time(boundary: CommitBoundary) -> str:
    minutes = max(2, math.ceil(len(boundary.files) / 2)) + boundary.estimated_complexity // 3
    return f"{minutes} minutes"


def build_rationale(boundary: CommitBoundary) -> str:
    text = f"This commit groups {len(boundary.files)} files related to {boundary.theme}."
    if boundary.reasoning:
        text = f"{text} {boundary.reasoning}"
    return text


def plan_commit(
    boundary: CommitBoundary,
    ranking: Optional[RankingResult],
    settings: AnalysisSettings,
) -> PlannedCommit:
    return PlannedCommit(
        boundary=boundary,
        message=suggest_message(boundary, settings.strategy),
        rationale=build_rationale(boundary),
        risk=boundary_risk(boundary, ranking, settings.buckets, settings.strategy),  # type: ignore[arg-type]
        estimated_time=estimate_time(boundary),
    )


def max_risk(risks: Sequence[str]) -> str:
    if not risks:
        return "low"
    return max(risks, key=lambda risk: _RISK_RANK[risk])


def strategy_kind(commits: Sequence[PlannedCommit]) -> str:
    if any(commit.boundary.dependencies for commit in commits):
        return "sequential"
    if any(commit.risk == "high" for commit in commits):
        return "progressive"
    return "parallel"


def build_strategy(
    boundaries: Sequence[CommitBoundary],
    ranking: Optional[RankingResult],
    complexity: ComplexityAnalysis,
    settings: AnalysisSettings,
    complexity_threshold: Optional[float] = None,
) -> StagingStrategy:
    ordered, cyclic = order_boundaries(boundaries)
    commits = [plan_commit(boundary, ranking, settings) for boundary in ordered]

    warnings = [f"{warning.title}: {warning.message}" for warning in complexity.warnings]

    if len(commits) > settings.strategy.many_commits:
        warnings.append(f"Large number of commits ({len(commits)}). Consider reviewing the grouping.")

    high_risk = sum(1 for commit in commits if commit.risk == "high")
    if high_risk:
        warnings.append(f"{high_risk} high-risk commit(s) need careful review and testing.")

    if any(commit.boundary.dependencies for commit in commits):
        warnings.append("Some commits depend on others. Stage them in the suggested order.")

    if len(commits) == 1 and len(commits[0].boundary.files) > 1:
        warnings.append(
            f"A single boundary holds the entire changeset ({len(commits[0].boundary.files)} files); no split was found."
        )

    if complexity_threshold is not None and complexity.score > complexity_threshold:
        warnings.append(
            f"Complexity score {complexity.score:.0f} exceeds the threshold of {complexity_threshold:.0f}; "
            "splitting is recommended."
        )

    if cyclic:
        warnings.append("Circular dependencies between boundaries; commits follow bucket order instead.")

    return StagingStrategy(
        strategy=strategy_kind(commits),  # type: ignore[arg-type]
        commits=commits,
        warnings=warnings,
        overall_risk=max_risk([commit.risk for commit in commits]),  # type: ignore[arg-type]
    )
