import io
import json

from builders import make_change, make_commit

from splitstage.config import Config
from splitstage.planner import analyze_changes
from splitstage.render import (
    diagnose_staging_error,
    render_error_details,
    render_json,
    render_markdown,
    render_summary,
    render_terminal,
)
from splitstage.report import build_failure_report, write_failure_report
from splitstage.session import FailedBoundary, ReviewSession, SessionSummary

TIMESTAMP = "2024-01-01T00:00:00+00:00"


def _plan():
    changes = [
        make_change("src/app.py", added=["from .helpers import x"]),
        make_change("src/helpers.py", added=["VALUE = 42"]),
        make_change("README.md", added=["The helpers module exposes VALUE."]),
    ]
    return analyze_changes(changes, Config())


def test_json_output_shape():
    payload = json.loads(render_json(_plan(), TIMESTAMP))

    assert payload["analysis"] == {
        "overallRisk": "low",
        "recommendedCommits": 2,
        "strategy": "sequential",
        "timestamp": TIMESTAMP,
        "totalFiles": 3,
    }
    first, second = payload["commits"]
    assert first["order"] == 1
    assert first["boundary"]["fileCount"] == 2
    assert first["boundary"]["files"][0] == {
        "changeType": "modified",
        "deletions": 0,
        "insertions": 1,
        "path": "src/app.py",
    }
    assert second["boundary"]["dependencies"] == [first["boundary"]["id"]]
    assert set(first["suggestedMessage"]) == {"title", "type", "body"}
    assert {"risk", "estimatedTime", "rationale"} <= set(first)


def test_terminal_output_lists_boundaries_and_next_steps():
    stream = io.StringIO()
    render_terminal(_plan(), stream)
    output = stream.getvalue()

    assert "Analyzed 3 changed file(s): 2 commit(s) suggested (strategy: sequential" in output
    assert "1. feat: feature development (2 files)" in output
    assert "Depends on: boundary-1" in output
    assert "Run with --interactive" in output


def test_terminal_output_for_degenerate_plans():
    stream = io.StringIO()
    render_terminal(analyze_changes([], Config()), stream)
    assert "No changes found; nothing to split." in stream.getvalue()

    stream = io.StringIO()
    render_terminal(analyze_changes([make_change("src/only.py", added=["x = 1"])], Config()), stream)
    output = stream.getvalue()
    assert "No split needed" in output
    assert "Commit the changes as a single commit" in output


def test_markdown_output_has_sections():
    output = render_markdown(_plan(), TIMESTAMP)

    assert output.startswith("# Commit Boundary Analysis\n")
    assert "## Commits" in output
    assert "### 1. feat: feature development (2 files)" in output
    assert "- `src/app.py` (modified, +1/-0)" in output


def test_diagnosis_for_missing_files():
    causes, actions = diagnose_staging_error("1 file(s) in boundary-1 no longer exist on disk", ["src/a.py"])

    assert causes[0] == "Files were moved or deleted after the analysis ran"
    assert "Skip this boundary and continue with the others" in actions

    stream = io.StringIO()
    render_error_details("index.lock exists", [], stream)
    assert "Another git process holds the index lock" in stream.getvalue()


def test_summary_reports_success_rate_and_failures():
    stream = io.StringIO()
    summary = SessionSummary(total=4, processed=3, failed=1, skipped=0, success_rate=75.0)

    render_summary(summary, [FailedBoundary("boundary-2", "boom", 2)], stream)

    output = stream.getvalue()
    assert "Success rate: 75.0%" in output
    assert "boundary-2 after 2 attempt(s): boom" in output


def test_failure_report_lists_failed_boundaries(tmp_path):
    commits = (make_commit("boundary-1", ["src/a.py"]), make_commit("boundary-2", ["src/b.py"]))
    session = ReviewSession(
        commits=commits,
        processed=("boundary-1",),
        failed=(FailedBoundary("boundary-2", "staged files do not match", 3),),
    )

    report = build_failure_report(session, generated_at=TIMESTAMP)

    assert report["summary"] == {"total": 2, "processed": 1, "failed": 1, "success_rate": 50.0}
    assert report["failed"] == [
        {
            "id": "boundary-2",
            "theme": "feature development",
            "files": ["src/b.py"],
            "error": "staged files do not match",
            "attempts": 3,
            "suggested_message": commits[1].message.render(),
        }
    ]

    output = tmp_path / "reports" / "failures.json"
    write_failure_report(report, str(output))
    assert json.loads(output.read_text()) == report


def test_complex_changesets_include_a_split_suggestion():
    changes = [make_change(f"data/part_{i}.txt", added=["x"] * 60) for i in range(30)]
    plan = analyze_changes(changes, Config())

    payload = json.loads(render_json(plan, TIMESTAMP))
    assert payload["complexity"]["category"] == "complex"
    suggestion = payload["complexity"]["splitSuggestion"]
    assert suggestion["reason"].startswith("Complex change detected")
    assert len(suggestion["commits"][0]["files"]) == 30

    stream = io.StringIO()
    render_terminal(plan, stream)
    assert "Suggested split: Complex change detected" in stream.getvalue()
