"""
Importance ranking of individual changes.

Each change receives a score in [0, 1] built from four weighted signals
(file type, change type, diff content and size), a category derived from
that score, human-readable reasons and an estimated token cost. Scoring
never fails: missing signals fall back to the configured defaults.
"""

from __future__ import annotations

import math
import posixpath
from typing import Dict, List, Optional, Sequence, Tuple

from ..domain import Change, ChangeImportance, Hunk, RankedChange, RankingResult
from ..settings import ImportanceSettings, ScorePattern

CATEGORIES = ("critical", "high", "medium", "low")


def file_type_score(path: str, settings: ImportanceSettings) -> float:
    """
    Score a path by exact file name, then extension, then path segment.
    """

    name = posixpath.basename(path)
    if name in settings.file_scores:
        return settings.file_scores[name]

    _, ext = posixpath.splitext(name)
    if ext and ext in settings.file_scores:
        return settings.file_scores[ext]

    anchored = f"/{path}"
    for segment, score in settings.path_scores:
        if f"/{segment}" in anchored:
            return score

    return settings.default_file_score


def change_type_score(change: Change, settings: ImportanceSettings) -> float:
    return settings.change_type_scores.get(change.change_type, settings.default_file_score)


def line_score(content: str, settings: ImportanceSettings) -> Tuple[float, Optional[ScorePattern]]:
    """
    Score one diff line against the first matching pattern row.

    Blank lines and comments score the trivial weight; unmatched code
    scores as a plain statement when it looks like a call, else minor.
    """

    text = content.strip()
    if not text or text.startswith(settings.comment_prefixes):
        return settings.trivial_score, None

    for row in settings.line_patterns:
        if row.matches(text):
            return row.weight, row

    if len(text) > settings.statement_min_length and "(" in text:
        return settings.statement_score, None

    return settings.minor_score, None


def _hunk_score(hunk: Hunk, settings: ImportanceSettings, reasons: List[str]) -> float:
    score = 0.0
    for line in hunk.lines:
        if line.kind == "context":
            continue
        value, row = line_score(line.content, settings)
        sign = "+"
        if line.kind == "removed":
            value *= settings.removal_weight
            sign = "-"
        score += value
        if row is not None:
            excerpt = line.content.strip()[: settings.reason_excerpt_length]
            reasons.append(f"{sign}{row.label} ({row.category}): {excerpt}")
    return score


def content_score(change: Change, settings: ImportanceSettings) -> Tuple[float, List[str]]:
    """
    Return the mean of per-hunk line score sums, capped at 1, and the
    pattern matches behind it.

    Adding a line to an existing hunk never lowers the score. Adding a
    new hunk of minor lines can, since it pulls the mean down.
    """

    reasons: List[str] = []
    total = sum(_hunk_score(hunk, settings, reasons) for hunk in change.hunks)
    score = min(total / max(len(change.hunks), 1), 1.0)
    return score, reasons


def size_score(change: Change, settings: ImportanceSettings) -> float:
    for floor, score in settings.size_tiers:
        if change.total_lines > floor:
            return score
    return settings.size_floor


def categorize(score: float, settings: ImportanceSettings) -> str:
    for threshold, category in settings.category_thresholds:
        if score >= threshold:
            return category
    return "low"


def estimate_tokens(change: Change, settings: ImportanceSettings) -> int:
    chars = 0
    for hunk in change.hunks:
        chars += len(hunk.header)
        for line in hunk.lines:
            chars += len(line.content) + settings.line_overhead_chars
    chars += len(change.path) + settings.file_overhead_chars
    return math.ceil(chars / settings.chars_per_token)


def score_change(change: Change, settings: ImportanceSettings) -> ChangeImportance:
    content, reasons = content_score(change, settings)
    score = (
        file_type_score(change.path, settings) * settings.file_type_weight
        + change_type_score(change, settings) * settings.change_type_weight
        + content * settings.content_weight
        + size_score(change, settings) * settings.size_weight
    )
    score = max(0.0, min(score, 1.0))

    if change.change_type == "deleted":
        reasons.insert(0, "File deleted")
    elif change.change_type == "renamed":
        reasons.insert(0, f"File renamed from {change.old_path}")

    return ChangeImportance(
        score=round(score, 4),
        category=categorize(score, settings),  # type: ignore[arg-type]
        reasons=reasons,
        tokens=estimate_tokens(change, settings),
    )


def rank_changes(changes: Sequence[Change], settings: ImportanceSettings) -> RankingResult:
    """
    Score every change and sort by descending score, keeping input order on ties.
    """

    ranked = [RankedChange(change, score_change(change, settings)) for change in changes]
    ranked.sort(key=lambda item: -item.importance.score)

    breakdown: Dict[str, int] = {category: 0 for category in CATEGORIES}
    for item in ranked:
        breakdown[item.importance.category] += 1

    return RankingResult(
        ranked=ranked,
        total_tokens=sum(item.importance.tokens for item in ranked),
        breakdown=breakdown,
    )


def select_within_budget(ranking: RankingResult, budget: int) -> List[RankedChange]:
    """
    Pick critical, then high, then remaining changes that fit the token budget.
    """

    selected: List[RankedChange] = []
    used = 0
    for tier in (("critical",), ("high",), ("medium", "low")):
        for item in ranking.ranked:
            if item.importance.category in tier and used + item.importance.tokens <= budget:
                selected.append(item)
                used += item.importance.tokens
    return selected
