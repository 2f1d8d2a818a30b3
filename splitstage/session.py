"""
The interactive review state machine as a pure reducer.

reduce(session, action) returns the next session and the effects the
caller must perform (present a boundary, stage it, apply an edit, show a
menu). The reducer never touches git or the terminal, so every
transition and the retry bound can be tested directly. Driving code
feeds the outcome of each effect back in as an action, for instance
StagingSucceeded or StagingFailedResult after a StageBoundary effect.

States, actions and effects are closed sets of frozen dataclasses. An
action that is not valid in the current state raises
InvalidTransitionError instead of being ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import List, Mapping, Optional, Sequence, Tuple, Union

from .domain import PlannedCommit
from .edits import BoundaryEdit
from .errors import InvalidTransitionError

LOG = logging.getLogger(__name__)

RETRY_LIMIT = 3


# States


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Reviewing:
    """
    Waiting for a decision on boundary `index`.

    last_error is set when the boundary at `index` came back from a failed
    staging attempt through modify-and-retry; skipping it then records a
    failure.
    """

    index: int
    last_error: Optional[str] = None


@dataclass(frozen=True)
class Modifying:
    index: int
    last_error: Optional[str] = None


@dataclass(frozen=True)
class Staging:
    index: int
    attempt: int


@dataclass(frozen=True)
class StagingFailed:
    index: int
    attempt: int
    error: str
    missing: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Completed:
    pass


@dataclass(frozen=True)
class Aborted:
    pass


State = Union[Idle, Reviewing, Modifying, Staging, StagingFailed, Completed, Aborted]


# Actions


@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class AcceptAndStage:
    pass


@dataclass(frozen=True)
class AcceptWithoutStaging:
    pass


@dataclass(frozen=True)
class Modify:
    edit: BoundaryEdit


@dataclass(frozen=True)
class Skip:
    pass


@dataclass(frozen=True)
class Retry:
    pass


@dataclass(frozen=True)
class RunValidation:
    pass


@dataclass(frozen=True)
class RequestDiff:
    pass


@dataclass(frozen=True)
class Abort:
    pass


@dataclass(frozen=True)
class StagingSucceeded:
    commit_sha: Optional[str] = None


@dataclass(frozen=True)
class StagingFailedResult:
    error: str
    missing: Tuple[str, ...] = ()


@dataclass(frozen=True)
class InspectError:
    pass


@dataclass(frozen=True)
class ModifyAndRetry:
    edit: BoundaryEdit


@dataclass(frozen=True)
class EditApplied:
    commits: Tuple[PlannedCommit, ...]


@dataclass(frozen=True)
class EditRejected:
    reason: str


Action = Union[
    Start,
    AcceptAndStage,
    AcceptWithoutStaging,
    Modify,
    Skip,
    Retry,
    RunValidation,
    RequestDiff,
    Abort,
    StagingSucceeded,
    StagingFailedResult,
    InspectError,
    ModifyAndRetry,
    EditApplied,
    EditRejected,
]


# Effects


@dataclass(frozen=True)
class PresentBoundary:
    index: int


@dataclass(frozen=True)
class StageBoundary:
    index: int
    boundary_id: str
    paths: Tuple[str, ...]
    attempt: int
    commit_message: Optional[str] = None


@dataclass(frozen=True)
class ApplyEdit:
    index: int
    edit: BoundaryEdit


@dataclass(frozen=True)
class ValidateBoundary:
    index: int


@dataclass(frozen=True)
class ShowDiff:
    index: int


@dataclass(frozen=True)
class ShowRecoveryMenu:
    index: int
    attempt: int
    error: str
    missing: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ShowErrorDetails:
    index: int
    error: str
    missing: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Notify:
    message: str
    level: str = "info"


@dataclass(frozen=True)
class FailedBoundary:
    boundary_id: str
    error: str
    attempts: int


@dataclass(frozen=True)
class SessionSummary:
    total: int
    processed: int
    failed: int
    skipped: int
    success_rate: float
    aborted: bool = False


@dataclass(frozen=True)
class ShowSummary:
    summary: SessionSummary


Effect = Union[
    PresentBoundary,
    StageBoundary,
    ApplyEdit,
    ValidateBoundary,
    ShowDiff,
    ShowRecoveryMenu,
    ShowErrorDetails,
    Notify,
    ShowSummary,
]


@dataclass(frozen=True)
class ReviewSession:
    """
    Everything the review loop knows, replaced wholesale on each transition.

    attempts counts staging attempts per boundary id across the whole
    session, so an edit followed by another accept cannot reset the
    retry bound. pending_errors holds the last staging error of each
    boundary sent back for modification and not yet settled; it follows
    the boundary id, not its position, through reorders and merges.
    """

    commits: Tuple[PlannedCommit, ...]
    state: State = Idle()
    processed: Tuple[str, ...] = ()
    skipped: Tuple[str, ...] = ()
    failed: Tuple[FailedBoundary, ...] = ()
    attempts: Mapping[str, int] = field(default_factory=dict)
    pending_errors: Mapping[str, str] = field(default_factory=dict)
    commits_made: Tuple[str, ...] = ()
    retry_limit: int = RETRY_LIMIT
    commit_on_stage: bool = False

    @property
    def finished(self) -> bool:
        return isinstance(self.state, (Completed, Aborted))

    def summary(self) -> SessionSummary:
        total = len(self.commits)
        processed = len(self.processed)
        rate = processed / total * 100 if total else 100.0
        return SessionSummary(
            total=total,
            processed=processed,
            failed=len(self.failed),
            skipped=len(self.skipped),
            success_rate=round(rate, 1),
            aborted=isinstance(self.state, Aborted),
        )


def start_session(
    commits: Sequence[PlannedCommit],
    commit_on_stage: bool = False,
    retry_limit: int = RETRY_LIMIT,
) -> ReviewSession:
    return ReviewSession(commits=tuple(commits), commit_on_stage=commit_on_stage, retry_limit=retry_limit)


def _invalid(session: ReviewSession, action: Action) -> InvalidTransitionError:
    return InvalidTransitionError(f"{type(action).__name__} is not valid while {type(session.state).__name__}")


def _reviewing(session: ReviewSession, index: int) -> Reviewing:
    return Reviewing(index, session.pending_errors.get(session.commits[index].boundary.id))


def _settle(session: ReviewSession, boundary_id: str) -> ReviewSession:
    if boundary_id not in session.pending_errors:
        return session
    pending = {key: value for key, value in session.pending_errors.items() if key != boundary_id}
    return replace(session, pending_errors=pending)


def _advance(session: ReviewSession, index: int, effects: List[Effect]) -> Tuple[ReviewSession, List[Effect]]:
    session = _settle(session, session.commits[index].boundary.id)
    following = index + 1
    if following >= len(session.commits):
        session = replace(session, state=Completed())
        effects.append(ShowSummary(session.summary()))
        return session, effects
    session = replace(session, state=_reviewing(session, following))
    effects.append(PresentBoundary(following))
    return session, effects


def _stage(session: ReviewSession, index: int) -> Tuple[ReviewSession, List[Effect]]:
    commit = session.commits[index]
    boundary = commit.boundary
    attempt = session.attempts.get(boundary.id, 0) + 1
    message = commit.message.render() if session.commit_on_stage else None
    effect = StageBoundary(
        index=index,
        boundary_id=boundary.id,
        paths=tuple(boundary.index_paths),
        attempt=attempt,
        commit_message=message,
    )
    return replace(session, state=Staging(index, attempt)), [effect]


def _record_failure(session: ReviewSession, index: int, error: str, attempts: int) -> ReviewSession:
    boundary_id = session.commits[index].boundary.id
    return replace(session, failed=session.failed + (FailedBoundary(boundary_id, error, attempts),))


def _abort(session: ReviewSession) -> Tuple[ReviewSession, List[Effect]]:
    session = replace(session, state=Aborted())
    return session, [Notify("Review aborted; no further boundaries will be staged.", "warning"), ShowSummary(session.summary())]


def reduce(session: ReviewSession, action: Action) -> Tuple[ReviewSession, List[Effect]]:
    """
    Return the session after `action` and the effects to perform, in order.
    """

    state = session.state

    if isinstance(state, Idle):
        if isinstance(action, Start):
            if not session.commits:
                session = replace(session, state=Completed())
                return session, [Notify("No boundaries to review."), ShowSummary(session.summary())]
            return replace(session, state=Reviewing(0)), [PresentBoundary(0)]
        if isinstance(action, Abort):
            return _abort(session)
        raise _invalid(session, action)

    if isinstance(state, Reviewing):
        index = state.index
        boundary_id = session.commits[index].boundary.id
        if isinstance(action, AcceptAndStage):
            return _stage(session, index)
        if isinstance(action, AcceptWithoutStaging):
            session = replace(session, processed=session.processed + (boundary_id,))
            return _advance(session, index, [Notify(f"Accepted {boundary_id} without staging.")])
        if isinstance(action, Modify):
            return replace(session, state=Modifying(index, state.last_error)), [ApplyEdit(index, action.edit)]
        if isinstance(action, Skip):
            if state.last_error is not None:
                attempts = session.attempts.get(boundary_id, 0)
                session = _record_failure(session, index, state.last_error, attempts)
                return _advance(session, index, [Notify(f"Skipped {boundary_id}; recorded as failed.", "warning")])
            session = replace(session, skipped=session.skipped + (boundary_id,))
            return _advance(session, index, [Notify(f"Skipped {boundary_id}.")])
        if isinstance(action, Retry):
            return session, [PresentBoundary(index)]
        if isinstance(action, RunValidation):
            return session, [ValidateBoundary(index)]
        if isinstance(action, RequestDiff):
            return session, [ShowDiff(index)]
        if isinstance(action, Abort):
            return _abort(session)
        raise _invalid(session, action)

    if isinstance(state, Modifying):
        index = state.index
        if isinstance(action, EditApplied):
            if not action.commits:
                raise InvalidTransitionError("an edit cannot remove every boundary")
            session = replace(session, commits=tuple(action.commits))
            session = replace(session, state=_reviewing(session, index))
            return session, [Notify("Boundary updated."), PresentBoundary(index)]
        if isinstance(action, EditRejected):
            session = replace(session, state=_reviewing(session, index))
            return session, [Notify(action.reason, "warning"), PresentBoundary(index)]
        if isinstance(action, Abort):
            return _abort(session)
        raise _invalid(session, action)

    if isinstance(state, Staging):
        index = state.index
        boundary_id = session.commits[index].boundary.id
        attempts = dict(session.attempts)
        attempts[boundary_id] = state.attempt
        session = replace(session, attempts=attempts)
        if isinstance(action, StagingSucceeded):
            session = replace(session, processed=session.processed + (boundary_id,))
            made = session.commits_made + ((action.commit_sha,) if action.commit_sha else ())
            session = replace(session, commits_made=made)
            verb = "Committed" if action.commit_sha else "Staged"
            return _advance(session, index, [Notify(f"{verb} {boundary_id}.")])
        if isinstance(action, StagingFailedResult):
            if state.attempt >= session.retry_limit:
                LOG.warning("Boundary %s failed %d times; marking it failed", boundary_id, state.attempt)
                session = _record_failure(session, index, action.error, state.attempt)
                notice = Notify(
                    f"{boundary_id} failed {state.attempt} times and was marked failed: {action.error}",
                    "error",
                )
                return _advance(session, index, [notice])
            failed = StagingFailed(index, state.attempt, action.error, tuple(action.missing))
            return (
                replace(session, state=failed),
                [ShowRecoveryMenu(index, state.attempt, action.error, tuple(action.missing))],
            )
        raise _invalid(session, action)

    if isinstance(state, StagingFailed):
        index = state.index
        if isinstance(action, Retry):
            return _stage(session, index)
        if isinstance(action, ModifyAndRetry):
            pending = dict(session.pending_errors)
            pending[session.commits[index].boundary.id] = state.error
            session = replace(session, pending_errors=pending, state=Modifying(index, state.error))
            return session, [ApplyEdit(index, action.edit)]
        if isinstance(action, Skip):
            session = _record_failure(session, index, state.error, state.attempt)
            boundary_id = session.commits[index].boundary.id
            return _advance(session, index, [Notify(f"Skipped {boundary_id}; recorded as failed.", "warning")])
        if isinstance(action, InspectError):
            return session, [ShowErrorDetails(index, state.error, state.missing)]
        if isinstance(action, Abort):
            session = _record_failure(session, index, state.error, state.attempt)
            return _abort(session)
        raise _invalid(session, action)

    if isinstance(state, (Completed, Aborted)):
        raise _invalid(session, action)

    raise InvalidTransitionError(f"unknown state {state!r}")
