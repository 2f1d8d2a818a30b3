from builders import make_boundary, make_change, make_commit
from fakes import FakeGateway, FakeProbe

from splitstage.apply import StagingExecutor, auto_stage_first, stage_boundary
from splitstage.domain import StagingStrategy
from splitstage.errors import StagingError
from splitstage.session import StageBoundary, StagingFailedResult, StagingSucceeded


def test_stage_boundary_resets_then_adds_exact_paths():
    gateway = FakeGateway()
    gateway.staged = {"leftover.py"}
    boundary = make_boundary("boundary-1", ["src/a.py", "src/b.py"])

    assert stage_boundary(gateway, boundary) is None

    assert gateway.calls == [("reset",), ("add", ("src/a.py", "src/b.py"))]
    assert gateway.staged == {"src/a.py", "src/b.py"}


def test_stage_boundary_includes_both_sides_of_a_rename():
    gateway = FakeGateway()
    boundary = make_boundary("boundary-1", [])
    boundary.files = [make_change("new.py", change_type="renamed", old_path="old.py")]

    stage_boundary(gateway, boundary)

    assert gateway.staged == {"old.py", "new.py"}


def test_stage_boundary_reports_mismatch():
    gateway = FakeGateway(drop=["src/b.py"])
    boundary = make_boundary("boundary-1", ["src/a.py", "src/b.py"])

    try:
        stage_boundary(gateway, boundary)
    except StagingError as exc:
        assert exc.missing == ["src/b.py"]
        assert exc.unexpected == []
        assert "do not match" in str(exc)
    else:
        raise AssertionError("expected StagingError to be raised")


def test_stage_boundary_checks_files_before_touching_the_index():
    gateway = FakeGateway()
    boundary = make_boundary("boundary-1", ["src/a.py", "src/gone.py"])

    try:
        stage_boundary(gateway, boundary, probe=FakeProbe(missing=["src/gone.py"]))
    except StagingError as exc:
        assert exc.missing == ["src/gone.py"]
        assert "no longer exist" in str(exc)
    else:
        raise AssertionError("expected StagingError to be raised")
    assert gateway.calls == []


def test_deleted_files_may_be_missing_on_disk():
    gateway = FakeGateway()
    boundary = make_boundary("boundary-1", [])
    boundary.files = [make_change("gone.py", change_type="deleted", removed=["x = 1"])]

    stage_boundary(gateway, boundary, probe=FakeProbe(missing=["gone.py"]))

    assert gateway.staged == {"gone.py"}


def test_stage_boundary_commits_when_given_a_message():
    gateway = FakeGateway()
    boundary = make_boundary("boundary-1", ["src/a.py"])

    sha = stage_boundary(gateway, boundary, commit_message="feat: add a")

    assert sha == "0" * 39 + "1"
    assert gateway.commits == ["feat: add a"]


def test_commit_failures_become_staging_errors():
    gateway = FakeGateway(fail_commit=True)
    boundary = make_boundary("boundary-1", ["src/a.py"])

    try:
        stage_boundary(gateway, boundary, commit_message="feat: add a")
    except StagingError as exc:
        assert "commit of boundary-1 failed" in str(exc)
    else:
        raise AssertionError("expected StagingError to be raised")


def test_executor_translates_outcomes_into_actions():
    boundary = make_boundary("boundary-1", ["src/a.py"])
    effect = StageBoundary(0, "boundary-1", ("src/a.py",), 1)

    assert StagingExecutor(FakeGateway()).execute(effect, boundary) == StagingSucceeded()

    failed = StagingExecutor(FakeGateway(drop=["src/a.py"])).execute(effect, boundary)
    assert isinstance(failed, StagingFailedResult)
    assert failed.missing == ("src/a.py",)


def test_dry_run_executor_never_touches_the_gateway():
    gateway = FakeGateway()
    boundary = make_boundary("boundary-1", ["src/a.py"])
    effect = StageBoundary(0, "boundary-1", ("src/a.py",), 1)

    assert StagingExecutor(gateway, dry_run=True).execute(effect, boundary) == StagingSucceeded()
    assert gateway.calls == []


def test_auto_stage_first_stages_only_the_first_boundary():
    gateway = FakeGateway()
    strategy = StagingStrategy(
        strategy="parallel",
        commits=[make_commit("boundary-1", ["src/a.py"]), make_commit("boundary-2", ["src/b.py"])],
    )

    boundary = auto_stage_first(strategy, gateway)

    assert boundary.id == "boundary-1"
    assert gateway.staged == {"src/a.py"}
    assert auto_stage_first(StagingStrategy(strategy="parallel", commits=[]), gateway) is None
