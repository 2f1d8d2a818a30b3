from splitstage.diff_parser import parse_unified_diff, render_changes_diff
from splitstage.errors import DiffParseError


def test_parse_simple_modify():
    raw = """\
diff --git a/foo.py b/foo.py
--- a/foo.py
+++ b/foo.py
@@ -1,2 +1,2 @@
-a = 1
+a = 2
 b = 3
"""
    changes = parse_unified_diff(raw)
    assert len(changes) == 1
    change = changes[0]
    assert change.path == "foo.py"
    assert change.old_path is None
    assert change.change_type == "modified"
    assert not change.is_binary
    assert (change.insertions, change.deletions) == (1, 1)
    assert len(change.hunks) == 1
    kinds = [line.kind for line in change.hunks[0].lines]
    assert kinds == ["removed", "added", "context"]


def test_parse_add_and_delete_files():
    raw = """\
diff --git a/new.txt b/new.txt
new file mode 100644
--- /dev/null
+++ b/new.txt
@@ -0,0 +1,2 @@
+hello
+world
diff --git a/old.txt b/old.txt
deleted file mode 100644
--- a/old.txt
+++ /dev/null
@@ -1,2 +0,0 @@
-bye
-world
"""
    changes = parse_unified_diff(raw)
    assert [change.path for change in changes] == ["new.txt", "old.txt"]
    added, deleted = changes

    assert added.change_type == "added"
    assert added.insertions == 2
    assert added.lines_of("added") == ["hello", "world"]
    assert deleted.change_type == "deleted"
    assert deleted.deletions == 2


def test_parse_rename_without_content_changes():
    raw = """\
diff --git a/lib/old_name.py b/lib/new_name.py
similarity index 100%
rename from lib/old_name.py
rename to lib/new_name.py
"""
    changes = parse_unified_diff(raw)
    assert len(changes) == 1
    change = changes[0]
    assert change.change_type == "renamed"
    assert change.path == "lib/new_name.py"
    assert change.old_path == "lib/old_name.py"
    assert change.paths == ("lib/old_name.py", "lib/new_name.py")
    assert change.total_lines == 0


def test_parse_binary_file_has_no_hunks():
    raw = """\
diff --git a/logo.png b/logo.png
index 1111111..2222222 100644
Binary files a/logo.png and b/logo.png differ
diff --git a/app.py b/app.py
--- a/app.py
+++ b/app.py
@@ -1 +1 @@
-x = 1
+x = 2
"""
    changes = parse_unified_diff(raw)
    assert [change.path for change in changes] == ["logo.png", "app.py"]
    assert changes[0].is_binary
    assert changes[0].hunks == ()


def test_hunk_symbol_and_line_numbers():
    raw = """\
diff --git a/foo.py b/foo.py
--- a/foo.py
+++ b/foo.py
@@ -10,2 +10,3 @@ def foo(bar):
 a = 1
+b = 2
 c = 3
"""
    hunk = parse_unified_diff(raw)[0].hunks[0]
    assert hunk.symbol == "foo"
    assert hunk.start_line == 10
    added = [line for line in hunk.lines if line.kind == "added"][0]
    assert added.new_lineno == 11
    assert added.old_lineno is None


def test_empty_diff_yields_no_changes():
    assert parse_unified_diff("") == []


def test_malformed_hunk_header_raises():
    raw = """\
diff --git a/foo.py b/foo.py
--- a/foo.py
+++ b/foo.py
@@ nonsense @@
+a = 2
"""
    try:
        parse_unified_diff(raw)
    except DiffParseError as exc:
        assert "malformed hunk header" in str(exc)
    else:
        raise AssertionError("expected DiffParseError to be raised")


def test_render_changes_diff_reproduces_hunks():
    raw = """\
diff --git a/foo.py b/foo.py
--- a/foo.py
+++ b/foo.py
@@ -1,3 +1,3 @@
 a = 1
-b = 2
+b = 3
 c = 4
"""
    changes = parse_unified_diff(raw)
    assert render_changes_diff(changes) == raw


def test_render_changes_diff_of_nothing_is_empty():
    assert render_changes_diff([]) == ""
