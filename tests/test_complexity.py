from builders import make_change

from splitstage.analysis.complexity import (
    analyze_complexity,
    categorize,
    detect_frameworks,
    estimate_token_usage,
)
from splitstage.analysis.importance import rank_changes
from splitstage.domain import ComplexityMetrics
from splitstage.settings import DEFAULT_SETTINGS

SETTINGS = DEFAULT_SETTINGS.complexity
BUCKETS = DEFAULT_SETTINGS.buckets


def _analyze(changes, token_budget=None):
    ranking = rank_changes(changes, DEFAULT_SETTINGS.importance)
    return analyze_complexity(changes, ranking, SETTINGS, BUCKETS, token_budget=token_budget)


def test_single_readme_edit_is_simple():
    readme = make_change("README.md", added=["A line of prose"] * 5)

    analysis = _analyze([readme])

    assert analysis.score <= 10
    assert analysis.category == "simple"
    assert analysis.warnings == []
    assert analysis.split_suggestion is None
    assert analysis.recommendations == ["Optimal change size for review"]


def test_large_changeset_with_breaking_files_is_complex():
    changes = [make_change(f"data/part_{index}.txt", added=[f"line {n}" for n in range(60)]) for index in range(27)]
    changes += [make_change(f"data/api_{index}.txt", added=[f"line {n}" for n in range(60)]) for index in range(3)]

    analysis = _analyze(changes)

    assert analysis.metrics.file_count == 30
    assert analysis.metrics.total_lines == 1800
    assert analysis.metrics.breaking_changes == 3
    assert analysis.metrics.critical_changes == 0
    assert analysis.score == 64.0
    assert analysis.category == "complex"
    titles = [warning.title for warning in analysis.warnings]
    assert "Large File Count" in titles
    assert "Breaking Changes Detected" in titles
    assert "Large Change Size" in titles
    assert "Low Test Coverage" in titles

    suggestion = analysis.split_suggestion
    assert suggestion is not None
    assert suggestion.commits[0].title == "refactor: breaking changes and API updates"
    assert len(suggestion.commits[0].files) == 3


def test_category_boundaries_are_inclusive():
    assert categorize(0.0, SETTINGS) == "simple"
    assert categorize(25.0, SETTINGS) == "simple"
    assert categorize(25.01, SETTINGS) == "moderate"
    assert categorize(50.0, SETTINGS) == "moderate"
    assert categorize(75.0, SETTINGS) == "complex"
    assert categorize(75.01, SETTINGS) == "very-complex"


def test_score_is_capped_at_one_hundred():
    changes = [
        make_change(f"src/api_{index}.py", added=["import react", "password = secret"] * 100, change_type="deleted")
        for index in range(40)
    ]

    analysis = _analyze(changes)

    assert 0.0 <= analysis.score <= 100.0
    assert analysis.category == "very-complex"


def test_frameworks_are_detected_by_content_markers():
    change = make_change("web/app.js", added=["import React from 'react'", "const app = express()"])
    assert detect_frameworks(change, SETTINGS) == ["React", "Express"]


def test_token_estimate_and_budget_warning():
    metrics = ComplexityMetrics(
        file_count=2,
        total_lines=50,
        critical_changes=5,
        breaking_changes=0,
        test_coverage=0.0,
        frameworks_affected=0,
    )
    # (2 * 100 + 50 * 2) * 1.5
    assert estimate_token_usage(metrics, SETTINGS) == 450

    readme = make_change("README.md", added=["A line of prose"] * 5)
    analysis = _analyze([readme], token_budget=10)
    assert [warning.title for warning in analysis.warnings] == ["Token Budget Exceeded"]
