"""
Whole-changeset complexity analysis.

Per-change signals are aggregated into a 0-100 composite score, a
category, threshold warnings, tiered recommendations and, for complex
changesets, a bucket-based split suggestion.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence

from ..domain import (
    Change,
    ComplexityAnalysis,
    ComplexityMetrics,
    ComplexityWarning,
    RankingResult,
    SplitGroup,
    SplitSuggestion,
    WarningImpact,
)
from ..settings import BucketSettings, ComplexitySettings
from .buckets import BUCKET_REASONS, group_by_bucket, is_breaking_change, is_test_file

LOG = logging.getLogger(__name__)

SUGGESTION_ORDER = ("breaking", "config", "core", "test", "doc", "other")

_SUGGESTION_TITLES = {
    "breaking": "refactor: breaking changes and API updates",
    "config": "chore: update configuration and dependencies",
    "test": "test: add comprehensive test coverage",
    "doc": "docs: update documentation",
    "other": "chore: supporting changes",
}


def detect_frameworks(change: Change, settings: ComplexitySettings) -> List[str]:
    text = change.text()
    return [name for name, markers in settings.frameworks if any(marker in text for marker in markers)]


def compute_metrics(
    changes: Sequence[Change],
    ranking: Optional[RankingResult],
    settings: ComplexitySettings,
    buckets: BucketSettings,
) -> ComplexityMetrics:
    critical = 0
    breaking = 0
    tests = 0
    frameworks = set()

    for change in changes:
        if ranking is not None:
            importance = ranking.importance_of(change.path)
            if importance is not None and importance.category == "critical":
                critical += 1
        if is_breaking_change(change, buckets):
            breaking += 1
        if is_test_file(change.path, buckets):
            tests += 1
        frameworks.update(detect_frameworks(change, settings))

    file_count = len(changes)
    return ComplexityMetrics(
        file_count=file_count,
        total_lines=sum(change.total_lines for change in changes),
        critical_changes=critical,
        breaking_changes=breaking,
        test_coverage=(tests / file_count * 100) if file_count else 0.0,
        frameworks_affected=len(frameworks),
    )


def complexity_score(metrics: ComplexityMetrics, settings: ComplexitySettings) -> float:
    score = min(metrics.file_count / settings.file_reference * settings.file_points, settings.file_points)
    score += min(metrics.total_lines / settings.line_reference * settings.line_points, settings.line_points)
    score += min(
        metrics.critical_changes / settings.critical_reference * settings.critical_points,
        settings.critical_points,
    )
    score += min(
        metrics.breaking_changes / settings.breaking_reference * settings.breaking_points,
        settings.breaking_points,
    )
    score += min(metrics.frameworks_affected * settings.framework_points_each, settings.framework_points)
    return min(score, 100.0)


def categorize(score: float, settings: ComplexitySettings) -> str:
    for ceiling, category in settings.category_thresholds:
        if score <= ceiling:
            return category
    return "very-complex"


def estimate_token_usage(metrics: ComplexityMetrics, settings: ComplexitySettings) -> int:
    estimate = metrics.file_count * settings.tokens_per_file + metrics.total_lines * settings.tokens_per_line
    estimate *= 1 + metrics.critical_changes * settings.critical_token_factor
    return math.ceil(estimate)


def build_warnings(
    metrics: ComplexityMetrics,
    settings: ComplexitySettings,
    token_budget: Optional[int] = None,
) -> List[ComplexityWarning]:
    """
    Emit one warning per threshold crossed, in a fixed order.
    """

    warnings: List[ComplexityWarning] = []

    if metrics.file_count > settings.complex_file_count:
        warnings.append(
            ComplexityWarning(
                level="warning",
                title="Large File Count",
                message=f"{metrics.file_count} files changed. This may be difficult to review effectively.",
                suggestions=[
                    "Consider splitting into feature-focused commits",
                    "Group related changes together",
                    "Separate refactoring from new features",
                ],
                impact=WarningImpact(
                    ai_quality="degraded" if metrics.file_count > 20 else "good",
                    reviewability="very-difficult" if metrics.file_count > 25 else "difficult",
                    risk_level="medium",
                ),
            )
        )

    if metrics.total_lines > settings.complex_line_count:
        warnings.append(
            ComplexityWarning(
                level="warning",
                title="Large Change Size",
                message=f"{metrics.total_lines} total lines changed. Analysis may be limited.",
                suggestions=[
                    "Consider committing in smaller chunks",
                    "Separate implementation from tests",
                    "Split complex features into multiple commits",
                ],
                impact=WarningImpact(
                    ai_quality="poor" if metrics.total_lines > 1000 else "degraded",
                    reviewability="difficult",
                    risk_level="medium",
                ),
            )
        )

    if metrics.critical_changes > settings.critical_warning_count:
        warnings.append(
            ComplexityWarning(
                level="error",
                title="Multiple Critical Changes",
                message=f"{metrics.critical_changes} critical changes detected. High risk of introducing bugs.",
                suggestions=[
                    "Separate critical changes into individual commits",
                    "Focus on one breaking change per commit",
                    "Add comprehensive tests for critical changes",
                ],
                impact=WarningImpact(ai_quality="degraded", reviewability="very-difficult", risk_level="high"),
            )
        )

    if metrics.breaking_changes > 0:
        severe = metrics.breaking_changes > 2
        warnings.append(
            ComplexityWarning(
                level="error" if severe else "warning",
                title="Breaking Changes Detected",
                message=f"{metrics.breaking_changes} potentially breaking change(s) found.",
                suggestions=[
                    "Document breaking changes in commit message",
                    "Consider semantic versioning implications",
                    "Add migration guides if needed",
                    "Ensure backward compatibility where possible",
                ],
                impact=WarningImpact(
                    ai_quality="good",
                    reviewability="moderate",
                    risk_level="critical" if severe else "high",
                ),
            )
        )

    if metrics.test_coverage < settings.min_test_ratio and metrics.file_count > settings.test_ratio_min_files:
        warnings.append(
            ComplexityWarning(
                level="warning",
                title="Low Test Coverage",
                message=f"Only {metrics.test_coverage:.0f}% of changed files are tests.",
                suggestions=[
                    "Add tests for new functionality",
                    "Update existing tests for modified code",
                    "Consider a test-driven approach",
                ],
                impact=WarningImpact(ai_quality="good", reviewability="moderate", risk_level="medium"),
            )
        )

    if token_budget is not None:
        estimated = estimate_token_usage(metrics, settings)
        if estimated > token_budget:
            warnings.append(
                ComplexityWarning(
                    level="error",
                    title="Token Budget Exceeded",
                    message=f"Changes require ~{estimated} tokens, but only {token_budget} are available.",
                    suggestions=[
                        "Commit current critical changes first",
                        "Review the changes in smaller batches",
                    ],
                    impact=WarningImpact(ai_quality="poor", reviewability="moderate", risk_level="low"),
                )
            )

    return warnings


def build_recommendations(metrics: ComplexityMetrics, category: str) -> List[str]:
    if category == "simple":
        return ["Optimal change size for review"]

    if category == "moderate":
        recommendations = ["Good change size. Consider running tests before committing"]
        if metrics.test_coverage < 50:
            recommendations.append("Consider adding more test coverage")
        return recommendations

    if category == "complex":
        recommendations = ["Complex change detected. Consider these strategies:"]
        if metrics.file_count > 10:
            recommendations.append("Split by feature areas or components")
        if metrics.critical_changes > 2:
            recommendations.append("Isolate critical changes into separate commits")
        if metrics.breaking_changes > 0:
            recommendations.append("Create dedicated commits for breaking changes")
        recommendations.append("Run comprehensive tests before proceeding")
        return recommendations

    return [
        "Very complex change. Strongly recommend splitting:",
        "1. Create infrastructure/setup changes first",
        "2. Add core feature implementation",
        "3. Add tests and documentation",
        "4. Add any supporting/cleanup changes",
    ]


def suggest_split(
    changes: Sequence[Change],
    metrics: ComplexityMetrics,
    category: str,
    buckets: BucketSettings,
) -> Optional[SplitSuggestion]:
    """
    Suggest one commit per non-empty bucket, breaking first, for
    complex and very complex changesets.
    """

    if category in ("simple", "moderate"):
        return None

    grouped = group_by_bucket(list(changes), buckets)
    commits: List[SplitGroup] = []
    for bucket in SUGGESTION_ORDER:
        members = grouped.get(bucket)
        if not members:
            continue
        title = _SUGGESTION_TITLES.get(bucket)
        if bucket == "core":
            title = "feat: implement core functionality" if len(members) > 1 else "feat: add new feature"
        commits.append(SplitGroup(title=title or bucket, files=[c.path for c in members], reasoning=BUCKET_REASONS[bucket]))

    if category == "very-complex":
        reason = (
            f"Very complex change ({metrics.file_count} files, {metrics.total_lines} lines). "
            "Split recommended for quality."
        )
    else:
        reason = "Complex change detected. Splitting will improve reviewability and reduce risk."

    return SplitSuggestion(reason=reason, commits=commits)


def analyze_complexity(
    changes: Sequence[Change],
    ranking: Optional[RankingResult],
    settings: ComplexitySettings,
    buckets: BucketSettings,
    token_budget: Optional[int] = None,
) -> ComplexityAnalysis:
    metrics = compute_metrics(changes, ranking, settings, buckets)
    score = round(complexity_score(metrics, settings), 2)
    category = categorize(score, settings)
    LOG.debug("Complexity score %.2f (%s) for %d files", score, category, metrics.file_count)

    return ComplexityAnalysis(
        score=score,
        category=category,  # type: ignore[arg-type]
        metrics=metrics,
        warnings=build_warnings(metrics, settings, token_budget),
        recommendations=build_recommendations(metrics, category),
        split_suggestion=suggest_split(changes, metrics, category, buckets),
    )
