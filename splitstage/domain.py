"""
Core domain models for splitstage.

These dataclasses describe file changes, the analysis results derived
from them, commit boundaries, and the staging strategy. They avoid any
direct git dependency so the analyzers can be exercised on hand-built
changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Tuple

ChangeType = Literal["added", "modified", "deleted", "renamed"]
LineKind = Literal["added", "removed", "context"]
RelationshipKind = Literal[
    "import", "similar_changes", "shared_function", "test_pair", "config_related"
]
ImportanceCategory = Literal["critical", "high", "medium", "low"]
ComplexityCategory = Literal["simple", "moderate", "complex", "very-complex"]
Priority = Literal["high", "medium", "low"]
Risk = Literal["low", "medium", "high"]
StrategyKind = Literal["progressive", "parallel", "sequential"]


@dataclass(frozen=True)
class DiffLine:
    """
    A single line within a diff hunk.

    Line numbers are optional and populated by the diff parser when the
    hunk header carries ranges.
    """

    kind: LineKind
    content: str
    old_lineno: Optional[int] = None
    new_lineno: Optional[int] = None


@dataclass(frozen=True)
class Hunk:
    """
    A contiguous block of changes in a single file.
    """

    header: str
    lines: Tuple[DiffLine, ...] = ()
    start_line: Optional[int] = None
    symbol: Optional[str] = None


@dataclass(frozen=True)
class Change:
    """
    One file's diff, snapshotted once per invocation and never mutated.
    """

    path: str
    change_type: ChangeType
    insertions: int = 0
    deletions: int = 0
    hunks: Tuple[Hunk, ...] = ()
    old_path: Optional[str] = None
    is_binary: bool = False

    @property
    def total_lines(self) -> int:
        return self.insertions + self.deletions

    @property
    def paths(self) -> Tuple[str, ...]:
        """Every index path touched by this change (both sides of a rename)."""
        if self.old_path and self.old_path != self.path:
            return (self.old_path, self.path)
        return (self.path,)

    def lines_of(self, kind: LineKind) -> List[str]:
        return [line.content for hunk in self.hunks for line in hunk.lines if line.kind == kind]

    def text(self) -> str:
        return "\n".join(line.content for hunk in self.hunks for line in hunk.lines)


@dataclass(frozen=True)
class FileRelationship:
    file1: str
    file2: str
    kind: RelationshipKind
    strength: float
    detail: str = ""


@dataclass
class ChangeImportance:
    score: float
    category: ImportanceCategory
    reasons: List[str] = field(default_factory=list)
    tokens: int = 0


@dataclass
class RankedChange:
    change: Change
    importance: ChangeImportance


@dataclass
class RankingResult:
    """
    Changes sorted by descending importance, plus token totals.
    """

    ranked: List[RankedChange]
    total_tokens: int
    breakdown: Dict[str, int]

    def importance_of(self, path: str) -> Optional[ChangeImportance]:
        for item in self.ranked:
            if item.change.path == path:
                return item.importance
        return None


@dataclass(frozen=True)
class WarningImpact:
    ai_quality: Literal["excellent", "good", "degraded", "poor"]
    reviewability: Literal["easy", "moderate", "difficult", "very-difficult"]
    risk_level: Literal["low", "medium", "high", "critical"]


@dataclass
class ComplexityWarning:
    level: Literal["info", "warning", "error"]
    title: str
    message: str
    suggestions: List[str]
    impact: WarningImpact


@dataclass
class ComplexityMetrics:
    file_count: int
    total_lines: int
    critical_changes: int
    breaking_changes: int
    test_coverage: float
    frameworks_affected: int


@dataclass
class SplitGroup:
    title: str
    files: List[str]
    reasoning: str


@dataclass
class SplitSuggestion:
    reason: str
    commits: List[SplitGroup]


@dataclass
class ComplexityAnalysis:
    score: float
    category: ComplexityCategory
    metrics: ComplexityMetrics
    warnings: List[ComplexityWarning] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    split_suggestion: Optional[SplitSuggestion] = None


@dataclass
class CommitBoundary:
    """
    A candidate commit: a themed, non-overlapping group of changes.

    bucket records the dominant heuristic bucket (breaking, config, core,
    other, test, doc) and drives ordering ties in the staging strategy.
    """

    id: str
    theme: str
    priority: Priority
    estimated_complexity: int
    files: List[Change]
    dependencies: List[str] = field(default_factory=list)
    reasoning: str = ""
    bucket: str = "core"

    @property
    def file_paths(self) -> List[str]:
        return [change.path for change in self.files]

    @property
    def index_paths(self) -> List[str]:
        paths: List[str] = []
        for change in self.files:
            for path in change.paths:
                if path not in paths:
                    paths.append(path)
        return paths


@dataclass
class CommitMessage:
    title: str
    type: str
    body: Optional[str] = None

    def render(self) -> str:
        if self.body:
            return f"{self.title}\n\n{self.body}"
        return self.title


@dataclass
class PlannedCommit:
    boundary: CommitBoundary
    message: CommitMessage
    rationale: str
    risk: Risk
    estimated_time: str


@dataclass
class StagingStrategy:
    strategy: StrategyKind
    commits: List[PlannedCommit]
    warnings: List[str] = field(default_factory=list)
    overall_risk: Risk = "low"

    @property
    def needs_split(self) -> bool:
        """False when detection collapsed to zero or one boundary."""
        return len(self.commits) > 1


@dataclass(frozen=True)
class ValidationIssue:
    """
    A non-blocking problem with a boundary file (missing or untracked).
    """

    boundary_id: str
    path: str
    kind: Literal["missing", "untracked"]
    message: str


@dataclass
class Plan:
    """
    The full analysis of one invocation, from changes to strategy.
    """

    changes: List[Change]
    relationships: List[FileRelationship]
    ranking: RankingResult
    complexity: ComplexityAnalysis
    strategy: StagingStrategy
    invariants_checked: bool = False
