"""
Interactive review of commit boundaries.

SessionRunner drives the pure reducer in splitstage.session: it performs
each effect (rendering, staging, edits, validation) and asks a decider
for the next user action whenever the session waits on one. The
InteractiveDecider prompts on the terminal; auto_decide accepts every
boundary and skips failures, which is how unattended commit mode runs.

Prompts are strictly sequential. End of input, Ctrl+C at a prompt or an
elapsed session timeout all resolve to abort.
"""

from __future__ import annotations

import logging
import sys
import time
from typing import Callable, Optional, Sequence, Set, TextIO

from .apply import StagingExecutor
from .diff_parser import render_changes_diff
from .domain import PlannedCommit
from .edits import (
    COMMIT_TYPES,
    BoundaryEdit,
    ChangeCommitType,
    EditContext,
    EditMessage,
    MergeBoundaries,
    RegenerateMessage,
    RemoveFiles,
    ReorderBoundary,
    SplitBoundary,
    apply_edit,
)
from .errors import EditError
from .preflight import FileProbe, exceeds_threshold, next_steps, validate_boundary
from .render import (
    render_boundary_card,
    render_error_details,
    render_failure,
    render_summary,
    render_validation,
)
from .session import (
    Abort,
    AcceptAndStage,
    AcceptWithoutStaging,
    Action,
    ApplyEdit,
    EditApplied,
    EditRejected,
    Effect,
    InspectError,
    Modify,
    ModifyAndRetry,
    Notify,
    PresentBoundary,
    RequestDiff,
    Retry,
    ReviewSession,
    Reviewing,
    RunValidation,
    ShowDiff,
    ShowErrorDetails,
    ShowRecoveryMenu,
    ShowSummary,
    Skip,
    StageBoundary,
    StagingFailed,
    Start,
    ValidateBoundary,
    reduce,
    start_session,
)

LOG = logging.getLogger(__name__)

Prompt = Callable[[str], str]
Decider = Callable[[ReviewSession], Action]


class _AbortRequested(Exception):
    """Raised inside the decider when the user can no longer answer."""


class SessionRunner:
    """
    Runs one review pass to completion and returns the final session.
    """

    def __init__(
        self,
        executor: StagingExecutor,
        context: EditContext,
        decide: Decider,
        stream: Optional[TextIO] = None,
        probe: Optional[FileProbe] = None,
        tracked: Optional[Set[str]] = None,
        validation_threshold: int = 0,
    ) -> None:
        self.executor = executor
        self.context = context
        self.decide = decide
        self.stream = stream or sys.stdout
        self.probe = probe or FileProbe()
        self.tracked = tracked
        self.validation_threshold = validation_threshold

    def run(self, session: ReviewSession) -> ReviewSession:
        session, effects = reduce(session, Start())
        while True:
            follow_up: Optional[Action] = None
            for effect in effects:
                result = self._perform(session, effect)
                if result is not None:
                    follow_up = result
            if session.finished:
                return session
            action = follow_up if follow_up is not None else self.decide(session)
            session, effects = reduce(session, action)

    def _perform(self, session: ReviewSession, effect: Effect) -> Optional[Action]:
        if isinstance(effect, PresentBoundary):
            render_boundary_card(session.commits[effect.index], effect.index, len(session.commits), self.stream)
            return None
        if isinstance(effect, StageBoundary):
            return self.executor.execute(effect, session.commits[effect.index].boundary)
        if isinstance(effect, ApplyEdit):
            try:
                commits = apply_edit(session.commits, effect.index, effect.edit, self.context)
            except EditError as exc:
                return EditRejected(str(exc))
            return EditApplied(tuple(commits))
        if isinstance(effect, ValidateBoundary):
            boundary = session.commits[effect.index].boundary
            issues = validate_boundary(boundary, self.probe, self.tracked)
            over = exceeds_threshold(issues, self.validation_threshold)
            if issues:
                LOG.warning("%d validation issue(s) in %s", len(issues), boundary.id)
            render_validation(issues, next_steps(issues), over, self.stream)
            return None
        if isinstance(effect, ShowDiff):
            diff = render_changes_diff(session.commits[effect.index].boundary.files)
            self.stream.write(diff or "(no textual changes)\n")
            return None
        if isinstance(effect, ShowRecoveryMenu):
            render_failure(effect.error, effect.missing, effect.attempt, session.retry_limit, self.stream)
            return None
        if isinstance(effect, ShowErrorDetails):
            render_error_details(effect.error, effect.missing, self.stream)
            return None
        if isinstance(effect, Notify):
            prefix = {"warning": "Warning: ", "error": "Error: "}.get(effect.level, "")
            self.stream.write(f"{prefix}{effect.message}\n")
            return None
        if isinstance(effect, ShowSummary):
            render_summary(effect.summary, session.failed, self.stream)
            return None
        raise TypeError(f"unhandled effect {effect!r}")


def auto_decide(session: ReviewSession) -> Action:
    """
    Accept every boundary and skip the ones that fail to stage.
    """

    if isinstance(session.state, Reviewing):
        return AcceptAndStage()
    if isinstance(session.state, StagingFailed):
        return Skip()
    return Abort()


class InteractiveDecider:
    """
    Prompts the user for the next action.

    prompt receives the prompt text and returns the user's answer; it
    defaults to input(). When timeout is set, a prompt reached after that
    many seconds resolves to abort.
    """

    def __init__(
        self,
        prompt: Prompt = input,
        stream: Optional[TextIO] = None,
        commit_on_stage: bool = False,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.prompt = prompt
        self.stream = stream or sys.stdout
        self.commit_on_stage = commit_on_stage
        self.clock = clock
        self.deadline = clock() + timeout if timeout is not None else None

    def __call__(self, session: ReviewSession) -> Action:
        try:
            if isinstance(session.state, Reviewing):
                return self._review(session)
            if isinstance(session.state, StagingFailed):
                return self._recover(session)
        except _AbortRequested:
            return Abort()
        return Abort()

    def _ask(self, text: str) -> str:
        if self.deadline is not None and self.clock() >= self.deadline:
            self.stream.write("Session timed out.\n")
            raise _AbortRequested()
        try:
            answer = self.prompt(text)
        except (EOFError, KeyboardInterrupt):
            self.stream.write("\n")
            raise _AbortRequested() from None
        if self.deadline is not None and self.clock() >= self.deadline:
            self.stream.write("Session timed out.\n")
            raise _AbortRequested()
        return answer.strip()

    def _review(self, session: ReviewSession) -> Action:
        accept = "accept, stage and commit" if self.commit_on_stage else "accept and stage"
        menu = (
            f"[a] {accept}  [n] accept without staging  [m] modify  [s] skip\n"
            "[r] show again  [v] validate  [d] show diff  [q] abort\n"
            "Choice: "
        )
        while True:
            choice = self._ask(menu).lower()
            if choice == "a":
                return AcceptAndStage()
            if choice == "n":
                return AcceptWithoutStaging()
            if choice == "m":
                edit = self._choose_edit(session)
                if edit is not None:
                    return Modify(edit)
                continue
            if choice == "s":
                return Skip()
            if choice == "r":
                return Retry()
            if choice == "v":
                return RunValidation()
            if choice == "d":
                return RequestDiff()
            if choice == "q":
                return Abort()
            self.stream.write(f"Unknown choice {choice!r}.\n")

    def _recover(self, session: ReviewSession) -> Action:
        state = session.state
        can_retry = state.attempt < session.retry_limit  # type: ignore[union-attr]
        options = ["[m] modify and retry", "[s] skip", "[i] inspect error", "[q] abort"]
        if can_retry:
            options.insert(0, "[r] retry")
        menu = "  ".join(options) + "\nChoice: "
        while True:
            choice = self._ask(menu).lower()
            if choice == "r" and can_retry:
                return Retry()
            if choice == "m":
                edit = self._choose_edit(session)
                if edit is not None:
                    return ModifyAndRetry(edit)
                continue
            if choice == "s":
                return Skip()
            if choice == "i":
                return InspectError()
            if choice == "q":
                return Abort()
            self.stream.write(f"Unknown choice {choice!r}.\n")

    def _choose_edit(self, session: ReviewSession) -> Optional[BoundaryEdit]:
        index = session.state.index  # type: ignore[union-attr]
        commits = session.commits
        boundary = commits[index].boundary
        menu = (
            "[1] split  [2] merge with a later boundary  [3] remove files  [4] move later\n"
            "[5] edit message  [6] change commit type  [7] regenerate message  [b] back\n"
            "Edit: "
        )
        choice = self._ask(menu).lower()

        if choice == "1":
            self._list_files(boundary.file_paths)
            answer = self._ask(f"Split before file number (2-{len(boundary.files)}): ")
            number = _parse_int(answer)
            return SplitBoundary(at=number - 1) if number is not None else self._bad(answer)
        if choice == "2":
            later = [commit.boundary.id for commit in commits[index + 1 :]]
            if not later:
                self.stream.write("There is no later boundary to merge with.\n")
                return None
            answer = self._ask(f"Merge with ({', '.join(later)}): ")
            return MergeBoundaries(other_id=answer) if answer else None
        if choice == "3":
            self._list_files(boundary.file_paths)
            answer = self._ask("File numbers to remove (comma separated): ")
            numbers = [_parse_int(part) for part in answer.split(",") if part.strip()]
            if not numbers or any(n is None or not 1 <= n <= len(boundary.files) for n in numbers):
                return self._bad(answer)
            return RemoveFiles(paths=tuple(boundary.file_paths[n - 1] for n in numbers))  # type: ignore[index]
        if choice == "4":
            answer = self._ask(f"New position ({index + 2}-{len(commits)}): ")
            number = _parse_int(answer)
            return ReorderBoundary(to_index=number - 1) if number is not None else self._bad(answer)
        if choice == "5":
            title = self._ask("New title: ")
            body = self._ask("New body (blank for none): ")
            return EditMessage(title=title, body=body or None)
        if choice == "6":
            answer = self._ask(f"Commit type ({', '.join(COMMIT_TYPES)}): ")
            return ChangeCommitType(commit_type=answer)
        if choice == "7":
            return RegenerateMessage()
        if choice != "b":
            self.stream.write(f"Unknown choice {choice!r}.\n")
        return None

    def _list_files(self, paths: Sequence[str]) -> None:
        self.stream.write("".join(f"  {number}. {path}\n" for number, path in enumerate(paths, start=1)))

    def _bad(self, answer: str) -> None:
        self.stream.write(f"Invalid input {answer!r}.\n")
        return None


def _parse_int(text: str) -> Optional[int]:
    try:
        return int(text.strip())
    except ValueError:
        return None


def run_review(
    commits: Sequence[PlannedCommit],
    runner: SessionRunner,
    commit_on_stage: bool = False,
) -> ReviewSession:
    session = start_session(commits, commit_on_stage=commit_on_stage)
    final = runner.run(session)
    LOG.info(
        "Review finished: %d processed, %d failed of %d",
        len(final.processed),
        len(final.failed),
        len(final.commits),
    )
    return final
