"""
Command-line interface for splitstage.

This module is responsible for argument parsing and delegating to the
high-level orchestration in the planner module.
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from .config import OUTPUT_FORMATS, Config
from .errors import ConfigurationError, SplitStageError
from .logging_utils import configure_logging
from .planner import run_split

EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="splitstage",
        description=(
            "Analyze uncommitted changes, propose a sequence of focused commits "
            "and optionally stage or commit them one boundary at a time."
        ),
    )

    parser.add_argument(
        "--staged",
        action="store_true",
        help="Analyze only staged changes instead of the whole working tree.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Never touch the git index; report what would be staged.",
    )

    modes = parser.add_argument_group("staging modes")
    modes.add_argument(
        "--auto-stage",
        action="store_true",
        help="Stage the first suggested boundary.",
    )
    modes.add_argument(
        "-i",
        "--interactive",
        action="store_true",
        help="Review, edit and stage boundaries one at a time.",
    )
    modes.add_argument(
        "--flow",
        action="store_true",
        help="Like --interactive, but commit each boundary once it is staged.",
    )
    modes.add_argument(
        "--commit",
        action="store_true",
        help="Commit every boundary in order without prompting.",
    )

    parser.add_argument(
        "--format",
        dest="output_format",
        choices=OUTPUT_FORMATS,
        default="terminal",
        help="Output format for the analysis (default: terminal).",
    )
    parser.add_argument("--min-files", type=int, default=1, help="Minimum files per boundary (default: 1).")
    parser.add_argument("--max-files", type=int, default=8, help="Maximum files per boundary (default: 8).")
    parser.add_argument("--max-boundaries", type=int, default=10, help="Maximum number of boundaries (default: 10).")
    parser.add_argument(
        "--complexity-threshold",
        type=float,
        default=50.0,
        help="Warn when the complexity score exceeds this value (default: 50).",
    )
    parser.add_argument(
        "--validation-threshold",
        type=int,
        default=0,
        help="Validation issues tolerated per boundary before skipping is recommended (default: 0).",
    )
    parser.add_argument(
        "--token-budget",
        type=int,
        help="Warn when the estimated review token usage exceeds this budget.",
    )
    parser.add_argument(
        "--timeout",
        dest="session_timeout",
        type=float,
        help="Abort an interactive session after this many seconds.",
    )
    parser.add_argument(
        "--failure-report",
        metavar="PATH",
        help="Write a JSON report of boundaries that failed to stage.",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be specified multiple times).",
    )

    return parser


def config_from_args(args: argparse.Namespace) -> Config:
    return Config(
        staged=args.staged,
        dry_run=args.dry_run,
        auto_stage=args.auto_stage,
        interactive=args.interactive,
        flow=args.flow,
        commit=args.commit,
        output_format=args.output_format,
        min_files_per_boundary=args.min_files,
        max_files_per_boundary=args.max_files,
        max_boundaries=args.max_boundaries,
        complexity_threshold=args.complexity_threshold,
        validation_threshold=args.validation_threshold,
        token_budget=args.token_budget,
        session_timeout=args.session_timeout,
        failure_report=args.failure_report,
        verbosity=args.verbose,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    config = config_from_args(args)

    configure_logging(verbosity=config.verbosity)

    try:
        return run_split(config)
    except KeyboardInterrupt:
        # Graceful shutdown on Ctrl+C
        return EXIT_INTERRUPTED
    except ConfigurationError as exc:
        print(f"splitstage: error: {exc}", file=sys.stderr)
        return EXIT_USAGE
    except SplitStageError as exc:
        print(f"splitstage: error: {exc}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(main())
