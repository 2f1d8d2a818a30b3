"""
Configuration model for splitstage.

The CLI constructs a Config instance and passes it down into the core
orchestration logic so behavior can be adjusted without relying on
global state. Analyzers never see the Config directly; they receive the
immutable AnalysisSettings derived from it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from .settings import DEFAULT_SETTINGS, AnalysisSettings

OUTPUT_FORMATS = ("terminal", "json", "markdown")


@dataclass
class Config:
    """
    Top-level configuration for a splitstage run.

    interactive reviews and stages boundaries one by one; flow does the
    same and commits each staged boundary; commit commits every boundary
    without prompting; auto_stage stages only the first boundary.
    """

    staged: bool = False
    dry_run: bool = False
    auto_stage: bool = False
    interactive: bool = False
    flow: bool = False
    commit: bool = False
    output_format: str = "terminal"
    min_files_per_boundary: int = 1
    max_files_per_boundary: int = 8
    max_boundaries: int = 10
    complexity_threshold: float = 50.0
    validation_threshold: int = 0
    token_budget: Optional[int] = None
    session_timeout: Optional[float] = None
    failure_report: Optional[str] = None
    verbosity: int = 0

    @property
    def reviews(self) -> bool:
        return self.interactive or self.flow

    def analysis_settings(self, base: AnalysisSettings = DEFAULT_SETTINGS) -> AnalysisSettings:
        detection = replace(
            base.detection,
            min_files=self.min_files_per_boundary,
            max_files=self.max_files_per_boundary,
            max_boundaries=self.max_boundaries,
        )
        return replace(base, detection=detection)
