"""
Failure reports for boundaries that could not be staged.

When a review ends with failed boundaries the details are persisted as
JSON so the remaining work can be finished by hand.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from .session import ReviewSession


def build_failure_report(session: ReviewSession, generated_at: Optional[str] = None) -> Dict[str, Any]:
    commits = {commit.boundary.id: commit for commit in session.commits}
    summary = session.summary()

    failed = []
    for record in session.failed:
        commit = commits.get(record.boundary_id)
        failed.append(
            {
                "id": record.boundary_id,
                "theme": commit.boundary.theme if commit else None,
                "files": commit.boundary.file_paths if commit else [],
                "error": record.error,
                "attempts": record.attempts,
                "suggested_message": commit.message.render() if commit else None,
            }
        )

    return {
        "generated_at": generated_at or datetime.now(timezone.utc).isoformat(),
        "summary": {
            "total": summary.total,
            "processed": summary.processed,
            "failed": summary.failed,
            "success_rate": summary.success_rate,
        },
        "failed": failed,
    }


def write_failure_report(report: Dict[str, Any], output_path: str) -> None:
    """
    Persist a report as formatted JSON.
    """

    path = Path(output_path)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report, indent=2, sort_keys=True) + "\n")
