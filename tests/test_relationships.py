from dataclasses import replace

from builders import make_change

from splitstage.analysis.relationships import analyze_relationships, build_dependency_map
from splitstage.settings import DEFAULT_SETTINGS

SETTINGS = DEFAULT_SETTINGS.relationships
BUCKETS = DEFAULT_SETTINGS.buckets


def test_import_relationship_points_from_importer_to_imported():
    app = make_change("src/app.py", added=["from .helpers import x"])
    helpers = make_change("src/helpers.py", added=["VALUE = 42"])

    relationships = analyze_relationships([app, helpers], SETTINGS, BUCKETS)

    assert len(relationships) == 1
    rel = relationships[0]
    assert (rel.file1, rel.file2, rel.kind) == ("src/app.py", "src/helpers.py", "import")
    assert rel.strength == 0.8
    assert "src/app.py imports helpers" in rel.detail


def test_javascript_require_resolves_relative_path():
    index = make_change("web/index.js", added=["const api = require('./client.js')"])
    client = make_change("web/client.js", added=["module.exports = {}"])

    relationships = analyze_relationships([index, client], SETTINGS, BUCKETS)

    imports = [rel for rel in relationships if rel.kind == "import"]
    assert [(rel.file1, rel.file2) for rel in imports] == [("web/index.js", "web/client.js")]


def test_test_pair_and_shared_symbol_between_test_and_source():
    source = make_change("src/auth.py", added=["def login_user():", "    return None"])
    test = make_change("tests/test_auth.py", added=["assert login_user() is None"])

    relationships = analyze_relationships([source, test], SETTINGS, BUCKETS)
    by_kind = {rel.kind: rel for rel in relationships}

    assert set(by_kind) == {"test_pair", "shared_function"}
    assert (by_kind["test_pair"].file1, by_kind["test_pair"].file2) == ("tests/test_auth.py", "src/auth.py")
    assert by_kind["test_pair"].strength == 0.9
    assert (by_kind["shared_function"].file1, by_kind["shared_function"].file2) == ("src/auth.py", "tests/test_auth.py")
    assert by_kind["shared_function"].strength == 0.6


def test_identical_changed_lines_are_similar_changes():
    first = make_change("one/first.py", added=["logger.info('starting')"])
    second = make_change("two/second.py", added=["logger.info('starting')"])

    relationships = analyze_relationships([first, second], SETTINGS, BUCKETS)

    assert [(rel.kind, rel.strength) for rel in relationships] == [("similar_changes", 0.8)]


def test_configuration_files_are_related():
    settings_file = make_change("config/settings.json")
    compose = make_change("deploy/app.yml")

    relationships = analyze_relationships([settings_file, compose], SETTINGS, BUCKETS)

    assert [rel.kind for rel in relationships] == ["config_related"]


def test_relationships_below_threshold_are_dropped():
    first = make_change("one/first.py", added=["logger.info('starting')"])
    second = make_change("two/second.py", added=["logger.info('starting')"])
    strict = replace(SETTINGS, similarity_threshold=0.9)

    assert analyze_relationships([first, second], strict, BUCKETS) == []


def test_unrelated_files_have_no_relationships():
    first = make_change("src/alpha.py", added=["alpha_value = compute_alpha(1)"])
    second = make_change("docs/guide.md", added=["Some prose about installing."])

    assert analyze_relationships([first, second], SETTINGS, BUCKETS) == []


def test_strengths_stay_within_unit_interval():
    changes = [
        make_change("src/models.py", added=["class UserModel:", "def load_user():", "def save_user():"]),
        make_change("src/views.py", added=["from .models import UserModel", "load_user()", "save_user()", "UserModel()"]),
        make_change("tests/test_models.py", added=["load_user()", "save_user()"]),
    ]

    relationships = analyze_relationships(changes, SETTINGS, BUCKETS)

    assert relationships
    assert all(0.0 <= rel.strength <= 1.0 for rel in relationships)


def test_dependency_map_links_docs_to_mentioned_sources():
    helpers = make_change("src/helpers.py", added=["VALUE = 42"])
    app = make_change("src/app.py", added=["from .helpers import x"])
    readme = make_change("README.md", added=["The helpers module exposes VALUE."])
    changes = [helpers, app, readme]

    relationships = analyze_relationships(changes, SETTINGS, BUCKETS)
    depends = build_dependency_map(changes, relationships, BUCKETS)

    assert depends["src/app.py"] == {"src/helpers.py"}
    assert depends["README.md"] == {"src/helpers.py"}
    assert depends["src/helpers.py"] == set()
