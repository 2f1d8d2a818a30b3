from builders import make_commit

from splitstage.edits import (
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
from splitstage.errors import EditError
from splitstage.settings import DEFAULT_SETTINGS

CONTEXT = EditContext(settings=DEFAULT_SETTINGS)


def _commits():
    return [
        make_commit("boundary-1", ["src/a.py", "src/b.py", "src/c.py"]),
        make_commit("boundary-2", ["src/d.py"], dependencies=["boundary-1"]),
        make_commit("boundary-3", ["docs/e.md"], dependencies=["boundary-2"]),
    ]


def _ids(commits):
    return [commit.boundary.id for commit in commits]


def _expect_edit_error(commits, index, edit, fragment):
    try:
        apply_edit(commits, index, edit, CONTEXT)
    except EditError as exc:
        assert fragment in str(exc)
    else:
        raise AssertionError("expected EditError to be raised")


def test_split_creates_a_new_boundary_after_the_current_one():
    commits = _commits()

    result = apply_edit(commits, 0, SplitBoundary(at=1), CONTEXT)

    assert _ids(result) == ["boundary-1", "boundary-4", "boundary-2", "boundary-3"]
    assert result[0].boundary.file_paths == ["src/a.py"]
    assert result[1].boundary.file_paths == ["src/b.py", "src/c.py"]
    assert result[0].message.title.endswith("(1 files)")
    # The input list is left untouched.
    assert commits[0].boundary.file_paths == ["src/a.py", "src/b.py", "src/c.py"]


def test_split_position_must_leave_both_parts_non_empty():
    _expect_edit_error(_commits(), 0, SplitBoundary(at=3), "split position")
    _expect_edit_error(_commits(), 1, SplitBoundary(at=1), "split position")


def test_merge_folds_a_later_boundary_and_remaps_dependencies():
    result = apply_edit(_commits(), 0, MergeBoundaries(other_id="boundary-2"), CONTEXT)

    assert _ids(result) == ["boundary-1", "boundary-3"]
    assert result[0].boundary.file_paths == ["src/a.py", "src/b.py", "src/c.py", "src/d.py"]
    assert result[0].boundary.dependencies == []
    assert result[1].boundary.dependencies == ["boundary-1"]


def test_merge_rejects_earlier_or_unknown_boundaries():
    _expect_edit_error(_commits(), 1, MergeBoundaries(other_id="boundary-1"), "not been reviewed")
    _expect_edit_error(_commits(), 0, MergeBoundaries(other_id="boundary-9"), "unknown boundary")


def test_remove_files_moves_them_into_a_following_boundary():
    result = apply_edit(_commits(), 0, RemoveFiles(paths=("src/b.py",)), CONTEXT)

    assert _ids(result) == ["boundary-1", "boundary-4", "boundary-2", "boundary-3"]
    assert result[0].boundary.file_paths == ["src/a.py", "src/c.py"]
    assert result[1].boundary.file_paths == ["src/b.py"]


def test_remove_files_validates_selection():
    _expect_edit_error(_commits(), 0, RemoveFiles(paths=("src/zzz.py",)), "files not in this boundary")
    _expect_edit_error(_commits(), 1, RemoveFiles(paths=("src/d.py",)), "at least one file")


def test_reorder_moves_the_current_boundary_later():
    result = apply_edit(_commits(), 0, ReorderBoundary(to_index=2), CONTEXT)
    assert _ids(result) == ["boundary-2", "boundary-3", "boundary-1"]

    _expect_edit_error(_commits(), 1, ReorderBoundary(to_index=0), "new position")


def test_message_edits():
    commits = _commits()

    edited = apply_edit(commits, 0, EditMessage(title="fix: handle empty input", body="Details"), CONTEXT)
    assert edited[0].message.title == "fix: handle empty input"
    assert edited[0].message.type == "fix"
    assert edited[0].message.render() == "fix: handle empty input\n\nDetails"

    retyped = apply_edit(edited, 0, ChangeCommitType(commit_type="refactor"), CONTEXT)
    assert retyped[0].message.title == "refactor: handle empty input"

    regenerated = apply_edit(retyped, 0, RegenerateMessage(), CONTEXT)
    assert regenerated[0].message == commits[0].message

    _expect_edit_error(commits, 0, EditMessage(title="   "), "cannot be empty")
    _expect_edit_error(commits, 0, ChangeCommitType(commit_type="wip"), "unknown commit type")


def test_out_of_range_index_is_rejected():
    _expect_edit_error(_commits(), 5, RegenerateMessage(), "no boundary at position 6")
