"""
Human- and machine-readable output for splitstage.

Analysis results render as a terminal report, a JSON document or a
markdown document. The review loop uses the smaller helpers here to show
boundaries, validation results, staging failures and the final summary.
Everything writes to a caller-supplied stream or returns a string.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence, TextIO, Tuple

from .domain import Change, PlannedCommit, Plan, ValidationIssue
from .session import FailedBoundary, SessionSummary

_CHANGE_LETTERS = {"added": "A", "modified": "M", "deleted": "D", "renamed": "R"}


def _write(stream: TextIO, lines: Sequence[str]) -> None:
    stream.write("\n".join(lines) + "\n")


def _file_line(change: Change) -> str:
    letter = _CHANGE_LETTERS.get(change.change_type, "?")
    path = f"{change.old_path} -> {change.path}" if change.old_path else change.path
    return f"{letter} {path} (+{change.insertions}/-{change.deletions})"


def boundary_lines(commit: PlannedCommit, position: int) -> List[str]:
    boundary = commit.boundary
    lines = [
        f"{position}. {commit.message.title}  [{boundary.id}]",
        (
            f"   Theme: {boundary.theme} | Priority: {boundary.priority} | "
            f"Risk: {commit.risk} | Complexity: {boundary.estimated_complexity}/10 | "
            f"Time: {commit.estimated_time}"
        ),
    ]
    if boundary.dependencies:
        lines.append(f"   Depends on: {', '.join(boundary.dependencies)}")
    lines.append("   Files:")
    lines.extend(f"     {_file_line(change)}" for change in boundary.files)
    lines.append(f"   Rationale: {commit.rationale}")
    return lines


def next_step_hints(plan: Plan) -> List[str]:
    strategy = plan.strategy
    if not strategy.needs_split:
        return ["Commit the changes as a single commit"]
    hints = [
        "Run with --interactive to review and stage boundaries one at a time",
        "Run with --flow to review and commit each boundary",
        "Run with --auto-stage to stage the first boundary now",
    ]
    if strategy.overall_risk == "high":
        hints.append("Run the test suite after each high-risk commit")
    return hints


def render_terminal(plan: Plan, stream: TextIO, show_next_steps: bool = True) -> None:
    strategy = plan.strategy
    complexity = plan.complexity
    lines = [
        f"Analyzed {len(plan.changes)} changed file(s): "
        f"{len(strategy.commits)} commit(s) suggested "
        f"(strategy: {strategy.strategy}, overall risk: {strategy.overall_risk})",
        f"Complexity: {complexity.score:.0f}/100 ({complexity.category})",
    ]

    if not plan.changes:
        lines.append("No changes found; nothing to split.")
        _write(stream, lines)
        return

    if not strategy.needs_split:
        lines.append("No split needed: the changes form a single coherent commit.")

    if strategy.warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(f"  - {warning}" for warning in strategy.warnings)

    for position, commit in enumerate(strategy.commits, start=1):
        lines.append("")
        lines.extend(boundary_lines(commit, position))

    if complexity.recommendations:
        lines.append("")
        lines.append("Recommendations:")
        lines.extend(f"  - {item}" for item in complexity.recommendations)

    suggestion = complexity.split_suggestion
    if suggestion is not None:
        lines.append("")
        lines.append(f"Suggested split: {suggestion.reason}")
        for group in suggestion.commits:
            lines.append(f"  - {group.title}: {len(group.files)} file(s)")

    if show_next_steps:
        lines.append("")
        lines.append("Next steps:")
        lines.extend(f"  - {hint}" for hint in next_step_hints(plan))

    _write(stream, lines)


def _commit_payload(commit: PlannedCommit, order: int) -> Dict[str, Any]:
    boundary = commit.boundary
    return {
        "order": order,
        "boundary": {
            "id": boundary.id,
            "theme": boundary.theme,
            "priority": boundary.priority,
            "estimatedComplexity": boundary.estimated_complexity,
            "dependencies": list(boundary.dependencies),
            "reasoning": boundary.reasoning,
            "fileCount": len(boundary.files),
            "files": [
                {
                    "path": change.path,
                    "insertions": change.insertions,
                    "deletions": change.deletions,
                    "changeType": change.change_type,
                }
                for change in boundary.files
            ],
        },
        "suggestedMessage": {
            "title": commit.message.title,
            "type": commit.message.type,
            "body": commit.message.body,
        },
        "risk": commit.risk,
        "estimatedTime": commit.estimated_time,
        "rationale": commit.rationale,
    }


def _complexity_payload(plan: Plan) -> Dict[str, Any]:
    complexity = plan.complexity
    payload: Dict[str, Any] = {
        "score": complexity.score,
        "category": complexity.category,
        "recommendations": list(complexity.recommendations),
        "splitSuggestion": None,
    }
    suggestion = complexity.split_suggestion
    if suggestion is not None:
        payload["splitSuggestion"] = {
            "reason": suggestion.reason,
            "commits": [
                {"title": group.title, "files": list(group.files), "reasoning": group.reasoning}
                for group in suggestion.commits
            ],
        }
    return payload


def plan_payload(plan: Plan, timestamp: str) -> Dict[str, Any]:
    strategy = plan.strategy
    return {
        "analysis": {
            "totalFiles": len(plan.changes),
            "recommendedCommits": len(strategy.commits),
            "strategy": strategy.strategy,
            "overallRisk": strategy.overall_risk,
            "timestamp": timestamp,
        },
        "warnings": list(strategy.warnings),
        "complexity": _complexity_payload(plan),
        "commits": [_commit_payload(commit, order) for order, commit in enumerate(strategy.commits, start=1)],
    }


def render_json(plan: Plan, timestamp: str) -> str:
    return json.dumps(plan_payload(plan, timestamp), indent=2, sort_keys=True) + "\n"


def render_markdown(plan: Plan, timestamp: str) -> str:
    strategy = plan.strategy
    lines = [
        "# Commit Boundary Analysis",
        "",
        f"- **Total files:** {len(plan.changes)}",
        f"- **Recommended commits:** {len(strategy.commits)}",
        f"- **Strategy:** {strategy.strategy}",
        f"- **Overall risk:** {strategy.overall_risk}",
        f"- **Complexity:** {plan.complexity.score:.0f}/100 ({plan.complexity.category})",
        f"- **Generated:** {timestamp}",
    ]

    if strategy.warnings:
        lines += ["", "## Warnings", ""]
        lines += [f"- {warning}" for warning in strategy.warnings]

    lines += ["", "## Commits"]
    for order, commit in enumerate(strategy.commits, start=1):
        boundary = commit.boundary
        lines += [
            "",
            f"### {order}. {commit.message.title}",
            "",
            f"- **Boundary:** {boundary.id}",
            f"- **Theme:** {boundary.theme}",
            f"- **Priority:** {boundary.priority}",
            f"- **Risk:** {commit.risk}",
            f"- **Estimated time:** {commit.estimated_time}",
            f"- **Dependencies:** {', '.join(boundary.dependencies) or 'none'}",
            "",
            "**Files**",
            "",
        ]
        lines += [
            f"- `{change.path}` ({change.change_type}, +{change.insertions}/-{change.deletions})"
            for change in boundary.files
        ]
        lines += ["", f"**Rationale:** {commit.rationale}"]
        if commit.message.body:
            lines += ["", "```", commit.message.render(), "```"]

    if plan.complexity.recommendations:
        lines += ["", "## Recommendations", ""]
        lines += [f"- {item}" for item in plan.complexity.recommendations]

    return "\n".join(lines) + "\n"


def render_boundary_card(commit: PlannedCommit, index: int, total: int, stream: TextIO) -> None:
    lines = ["", f"Boundary {index + 1} of {total}"]
    lines.extend(boundary_lines(commit, index + 1))
    if commit.message.body:
        lines.append("   Message body:")
        lines.extend(f"     {line}" for line in commit.message.body.splitlines())
    _write(stream, lines)


def render_validation(
    issues: Sequence[ValidationIssue],
    steps: Sequence[str],
    over_threshold: bool,
    stream: TextIO,
) -> None:
    if not issues:
        _write(stream, ["Validation passed: every file is present and tracked."])
        return
    lines = [f"Validation found {len(issues)} issue(s):"]
    lines.extend(f"  - [{issue.kind}] {issue.message}" for issue in issues)
    if steps:
        lines.append("Next steps:")
        lines.extend(f"  - {step}" for step in steps)
    if over_threshold:
        lines.append("Consider skipping this boundary until the issues are resolved.")
    _write(stream, lines)


def diagnose_staging_error(error: str, missing: Sequence[str]) -> Tuple[List[str], List[str]]:
    """
    Return (possible causes, suggested actions) for a staging failure.
    """

    text = error.lower()
    causes: List[str] = []
    actions: List[str] = []

    if missing or "no longer exist" in text or "not found" in text or "did not match" in text:
        causes.append("Files were moved or deleted after the analysis ran")
        causes.append("The working directory changed since the analysis")
        actions.append("Restore the missing files or remove them from this boundary")
        actions.append("Re-run the analysis to pick up the current working tree")

    if "staged" in text or "staging" in text or "do not match" in text:
        causes.append("The index was changed by another git operation")
        causes.append("Files were modified after the boundary analysis")
        actions.append("Run `git reset -q HEAD` to clear the index and retry")

    if "lock" in text:
        causes.append("Another git process holds the index lock")
        actions.append("Wait for other git commands to finish, then remove a stale .git/index.lock")

    if "permission" in text:
        causes.append("Insufficient file system permissions")
        actions.append("Check file and directory permissions")

    if "commit" in text:
        causes.append("git could not create the commit (hooks or user identity)")
        actions.append("Check `git config user.name` and `git config user.email` and any commit hooks")

    causes.append("The repository may be in an unexpected state")
    actions.append("Split the boundary into smaller parts to isolate the issue")
    actions.append("Skip this boundary and continue with the others")
    return causes, actions


def render_failure(error: str, missing: Sequence[str], attempt: int, limit: int, stream: TextIO) -> None:
    lines = [f"Staging failed (attempt {attempt} of {limit}): {error}"]
    if missing:
        lines.append("Missing files:")
        lines.extend(f"  - {path}" for path in missing)
    _write(stream, lines)


def render_error_details(error: str, missing: Sequence[str], stream: TextIO) -> None:
    causes, actions = diagnose_staging_error(error, missing)
    lines = [f"Error: {error}"]
    if missing:
        lines.append("Implicated files:")
        lines.extend(f"  - {path}" for path in missing)
    lines.append("Possible causes:")
    lines.extend(f"  - {cause}" for cause in causes)
    lines.append("Suggested actions:")
    lines.extend(f"  {number}. {action}" for number, action in enumerate(actions, start=1))
    _write(stream, lines)


def render_summary(
    summary: SessionSummary,
    failed: Sequence[FailedBoundary],
    stream: TextIO,
) -> None:
    lines = [
        "",
        "Review summary" + (" (aborted)" if summary.aborted else ""),
        f"  Boundaries: {summary.total}",
        f"  Processed: {summary.processed}",
        f"  Skipped: {summary.skipped}",
        f"  Failed: {summary.failed}",
        f"  Success rate: {summary.success_rate:.1f}%",
    ]
    if failed:
        lines.append("Failed boundaries:")
        lines.extend(f"  - {record.boundary_id} after {record.attempts} attempt(s): {record.error}" for record in failed)
    _write(stream, lines)
