from builders import make_boundary, make_change
from fakes import FakeProbe

from splitstage.config import Config
from splitstage.errors import ConfigurationError
from splitstage.preflight import FileProbe, exceeds_threshold, next_steps, validate_boundary, validate_config


def _expect_configuration_error(config, fragment):
    try:
        validate_config(config)
    except ConfigurationError as exc:
        assert fragment in str(exc)
    else:
        raise AssertionError("expected ConfigurationError to be raised")


def test_default_config_is_valid():
    validate_config(Config())
    validate_config(Config(interactive=True, dry_run=True))
    validate_config(Config(commit=True, output_format="json"))


def test_mutually_exclusive_modes_fail_fast():
    _expect_configuration_error(Config(flow=True, commit=True), "--flow and --commit are mutually exclusive")
    _expect_configuration_error(Config(interactive=True, commit=True), "--interactive and --commit")


def test_review_modes_require_terminal_output():
    _expect_configuration_error(Config(interactive=True, output_format="json"), "cannot be combined with --format json")


def test_bounds_are_checked():
    _expect_configuration_error(Config(output_format="xml"), "unknown output format 'xml'")
    _expect_configuration_error(Config(max_boundaries=0), "--max-boundaries must be at least 1")
    _expect_configuration_error(
        Config(min_files_per_boundary=5, max_files_per_boundary=2),
        "--min-files (5) cannot exceed --max-files (2)",
    )
    _expect_configuration_error(Config(session_timeout=0), "--timeout must be a positive number")
    _expect_configuration_error(Config(token_budget=-1), "--token-budget cannot be negative")
    _expect_configuration_error(Config(validation_threshold=-1), "--validation-threshold cannot be negative")


def test_validate_boundary_reports_missing_and_untracked_files():
    boundary = make_boundary("boundary-1", ["src/gone.py", "src/new.py", "src/ok.py"])

    issues = validate_boundary(boundary, FakeProbe(missing=["src/gone.py"]), tracked={"src/ok.py"})

    assert [(issue.path, issue.kind) for issue in issues] == [("src/gone.py", "missing"), ("src/new.py", "untracked")]
    assert next_steps(issues) == [
        "Restore the missing files or remove them from this boundary",
        "Re-run the analysis if files were deleted after it ran",
        "Check that the untracked files are not ignored by .gitignore",
    ]
    assert exceeds_threshold(issues, 1)
    assert not exceeds_threshold(issues, 2)


def test_added_and_deleted_files_are_expected_states():
    boundary = make_boundary("boundary-1", [])
    boundary.files = [
        make_change("src/fresh.py", added=["x = 1"], change_type="added"),
        make_change("src/removed.py", removed=["x = 1"], change_type="deleted"),
    ]

    issues = validate_boundary(boundary, FakeProbe(missing=["src/removed.py"]), tracked={"src/removed.py"})

    assert issues == []


def test_file_probe_checks_relative_to_root(tmp_path):
    (tmp_path / "present.txt").write_text("x\n")
    probe = FileProbe(str(tmp_path))

    assert probe.exists("present.txt")
    assert not probe.exists("absent.txt")
