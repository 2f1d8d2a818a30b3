"""
High-level orchestration for splitstage.

The planner is responsible for:
  - obtaining the working-tree (or staged) diff from git,
  - parsing it into Change records,
  - running the analyzers (importance, relationships, complexity),
  - detecting commit boundaries and building the staging strategy, and
  - rendering the result and running the selected staging mode.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional, TextIO

from .analysis.complexity import analyze_complexity
from .analysis.importance import rank_changes
from .analysis.relationships import analyze_relationships
from .apply import StagingExecutor, auto_stage_first
from .boundaries import detect_boundaries
from .config import Config
from .diff_parser import parse_unified_diff
from .domain import Change, Plan
from .edits import EditContext
from .git_adapter import GitStagingGateway, ensure_git_repository, get_working_diff
from .preflight import FileProbe, validate_config
from .render import render_json, render_markdown, render_terminal
from .report import build_failure_report, write_failure_report
from .review import InteractiveDecider, Prompt, SessionRunner, auto_decide, run_review
from .session import ReviewSession
from .settings import AnalysisSettings
from .strategy import build_strategy

LOG = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BOUNDARIES_FAILED = 1


def collect_changes(config: Config, cwd: Optional[str] = None) -> List[Change]:
    """
    Read the diff selected by the configuration and parse it.
    """

    if config.staged:
        LOG.info("Using staged changes as diff source")
    else:
        LOG.info("Using working tree changes as diff source")
    raw = get_working_diff(staged=config.staged, cwd=cwd)
    return parse_unified_diff(raw)


def analyze_changes(
    changes: List[Change],
    config: Config,
    settings: Optional[AnalysisSettings] = None,
) -> Plan:
    """
    Run every analyzer over already-collected changes.

    This is a pure computation: identical changes and configuration give
    an identical plan.
    """

    settings = settings or config.analysis_settings()

    ranking = rank_changes(changes, settings.importance)
    relationships = analyze_relationships(changes, settings.relationships, settings.buckets)
    complexity = analyze_complexity(
        changes,
        ranking,
        settings.complexity,
        settings.buckets,
        token_budget=config.token_budget,
    )
    boundaries = detect_boundaries(changes, relationships, ranking, complexity, settings)
    strategy = build_strategy(
        boundaries,
        ranking,
        complexity,
        settings,
        complexity_threshold=config.complexity_threshold,
    )

    plan = Plan(
        changes=changes,
        relationships=relationships,
        ranking=ranking,
        complexity=complexity,
        strategy=strategy,
    )
    # detect_boundaries has already validated the partition.
    plan.invariants_checked = True

    if not changes:
        LOG.warning("No changes found")
    elif not strategy.needs_split:
        LOG.warning("No split needed: %d file(s) form a single boundary", len(changes))
    return plan


def build_plan(
    config: Config,
    cwd: Optional[str] = None,
    diff_text: Optional[str] = None,
    settings: Optional[AnalysisSettings] = None,
) -> Plan:
    """
    Build the full plan, reading the diff from git unless diff_text is given.
    """

    changes = parse_unified_diff(diff_text) if diff_text is not None else collect_changes(config, cwd)
    return analyze_changes(changes, config, settings)


def render_plan(plan: Plan, config: Config, stream: TextIO, timestamp: Optional[str] = None) -> None:
    timestamp = timestamp or datetime.now(timezone.utc).isoformat()
    if config.output_format == "json":
        stream.write(render_json(plan, timestamp))
    elif config.output_format == "markdown":
        stream.write(render_markdown(plan, timestamp))
    else:
        staging = config.reviews or config.commit or config.auto_stage
        render_terminal(plan, stream, show_next_steps=not staging)


def run_split(
    config: Config,
    stream: Optional[TextIO] = None,
    prompt: Prompt = input,
    cwd: Optional[str] = None,
    gateway: Optional[GitStagingGateway] = None,
) -> int:
    """
    Entry point for the main CLI command.

    Validates the configuration, analyzes the changes, prints the plan and
    then runs the selected staging mode. Returns the process exit code.
    """

    stream = stream or sys.stdout
    LOG.debug("Starting splitstage with config: %s", config)

    validate_config(config)
    settings = config.analysis_settings()
    root = ensure_git_repository(cwd)

    plan = build_plan(config, cwd=root, settings=settings)
    render_plan(plan, config, stream)

    if not plan.strategy.commits:
        return EXIT_OK

    gateway = gateway or GitStagingGateway(root)
    probe = FileProbe(root)
    # Session output must not interleave with a json or markdown document.
    session_stream = stream if config.output_format == "terminal" else sys.stderr

    if config.reviews or config.commit:
        executor = StagingExecutor(gateway, probe, dry_run=config.dry_run)
        context = EditContext(settings=settings, ranking=plan.ranking)
        if config.reviews:
            decide = InteractiveDecider(
                prompt=prompt,
                stream=session_stream,
                commit_on_stage=config.flow,
                timeout=config.session_timeout,
            )
        else:
            decide = auto_decide
        runner = SessionRunner(
            executor,
            context,
            decide,
            stream=session_stream,
            probe=probe,
            tracked=gateway.tracked_files(),
            validation_threshold=config.validation_threshold,
        )
        session = run_review(plan.strategy.commits, runner, commit_on_stage=config.flow or config.commit)
        plan.strategy.commits = list(session.commits)
        return _finish_session(session, config)

    if config.auto_stage:
        boundary = auto_stage_first(plan.strategy, gateway, probe, dry_run=config.dry_run)
        if boundary is not None:
            verb = "Would stage" if config.dry_run else "Staged"
            session_stream.write(f"{verb} {boundary.id}: {', '.join(boundary.file_paths)}\n")
    return EXIT_OK


def _finish_session(session: ReviewSession, config: Config) -> int:
    if not session.failed:
        return EXIT_OK
    if config.failure_report:
        write_failure_report(build_failure_report(session), config.failure_report)
        LOG.warning("Wrote failure report for %d boundaries to %s", len(session.failed), config.failure_report)
    return EXIT_BOUNDARIES_FAILED
