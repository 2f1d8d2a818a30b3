from dataclasses import replace

from builders import make_boundary, make_change

from splitstage.domain import ComplexityAnalysis, ComplexityMetrics
from splitstage.settings import DEFAULT_SETTINGS
from splitstage.strategy import (
    boundary_risk,
    build_strategy,
    build_title,
    commit_type,
    estimate_time,
    order_boundaries,
    suggest_message,
)

STRATEGY = DEFAULT_SETTINGS.strategy


def _complexity(score=10.0):
    metrics = ComplexityMetrics(
        file_count=1,
        total_lines=1,
        critical_changes=0,
        breaking_changes=0,
        test_coverage=0.0,
        frameworks_affected=0,
    )
    return ComplexityAnalysis(score=score, category="simple", metrics=metrics)


def test_dependencies_are_ordered_first():
    docs = make_boundary("boundary-1", ["README.md"], bucket="doc")
    core = make_boundary("boundary-2", ["src/app.py"], dependencies=["boundary-1"])

    ordered, cyclic = order_boundaries([core, docs])

    assert [boundary.id for boundary in ordered] == ["boundary-1", "boundary-2"]
    assert not cyclic


def test_ready_boundaries_follow_bucket_order():
    core = make_boundary("boundary-1", ["src/app.py"], bucket="core")
    config = make_boundary("boundary-2", ["package.json"], bucket="config")
    docs = make_boundary("boundary-3", ["README.md"], bucket="doc")

    ordered, _ = order_boundaries([docs, core, config])

    assert [boundary.bucket for boundary in ordered] == ["config", "core", "doc"]


def test_cycles_fall_back_to_bucket_order():
    first = make_boundary("boundary-1", ["a.py"], dependencies=["boundary-2"], bucket="test")
    second = make_boundary("boundary-2", ["b.py"], dependencies=["boundary-1"], bucket="core")

    ordered, cyclic = order_boundaries([first, second])

    assert cyclic
    assert [boundary.id for boundary in ordered] == ["boundary-2", "boundary-1"]


def test_commit_type_from_theme_keywords():
    assert commit_type("documentation", STRATEGY) == "docs"
    assert commit_type("testing", STRATEGY) == "test"
    assert commit_type("bug fixes", STRATEGY) == "fix"
    assert commit_type("breaking changes", STRATEGY) == "refactor"
    assert commit_type("authentication", STRATEGY) == "feat"
    assert commit_type("feature development", STRATEGY) == "feat"
    assert commit_type("configuration", STRATEGY) == "chore"


def test_long_titles_are_truncated():
    title = build_title("feat", "x" * 100, 3, STRATEGY)
    assert len(title) == 72
    assert title.endswith("...")
    assert build_title("fix", "bug fixes", 2, STRATEGY) == "fix: bug fixes (2 files)"


def test_long_reasoning_becomes_message_body():
    boundary = make_boundary("boundary-1", ["a.py"])
    assert suggest_message(boundary, STRATEGY).body is None

    boundary.reasoning = "r" * 120
    message = suggest_message(boundary, STRATEGY)
    assert message.body == "r" * 120
    assert message.render() == f"{message.title}\n\n{'r' * 120}"


def test_risk_levels():
    breaking = make_boundary("boundary-1", ["a.py"])
    breaking.files = [make_change("a.py", change_type="deleted", removed=["x = 1"])]
    assert boundary_risk(breaking, None, DEFAULT_SETTINGS.buckets, STRATEGY) == "high"

    busy = make_boundary("boundary-2", ["b.py"])
    busy.estimated_complexity = 5
    assert boundary_risk(busy, None, DEFAULT_SETTINGS.buckets, STRATEGY) == "medium"

    quiet = make_boundary("boundary-3", ["c.py"])
    assert boundary_risk(quiet, None, DEFAULT_SETTINGS.buckets, STRATEGY) == "low"


def test_estimate_time():
    boundary = make_boundary("boundary-1", ["a.py", "b.py", "c.py"])
    boundary.estimated_complexity = 6
    assert estimate_time(boundary) == "4 minutes"


def test_sequential_strategy_with_warnings():
    docs = make_boundary("boundary-2", ["README.md"], dependencies=["boundary-1"], bucket="doc")
    core = make_boundary("boundary-1", ["src/app.py"])

    strategy = build_strategy([docs, core], None, _complexity(score=60.0), DEFAULT_SETTINGS, complexity_threshold=50.0)

    assert strategy.strategy == "sequential"
    assert [commit.boundary.id for commit in strategy.commits] == ["boundary-1", "boundary-2"]
    assert strategy.needs_split
    assert "Some commits depend on others. Stage them in the suggested order." in strategy.warnings
    assert any("exceeds the threshold of 50" in warning for warning in strategy.warnings)


def test_single_multi_file_boundary_means_no_split():
    boundary = make_boundary("boundary-1", ["a.py", "b.py"])

    strategy = build_strategy([boundary], None, _complexity(), DEFAULT_SETTINGS)

    assert strategy.strategy == "parallel"
    assert strategy.overall_risk == "low"
    assert not strategy.needs_split
    assert any("single boundary holds the entire changeset" in warning for warning in strategy.warnings)


def test_many_commits_warning_uses_settings():
    boundaries = [make_boundary(f"boundary-{n}", [f"f{n}.py"]) for n in range(1, 4)]
    settings = replace(DEFAULT_SETTINGS, strategy=replace(STRATEGY, many_commits=2))

    strategy = build_strategy(boundaries, None, _complexity(), settings)

    assert "Large number of commits (3). Consider reviewing the grouping." in strategy.warnings
