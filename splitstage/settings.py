"""
Heuristic settings for the analyzers.

Every threshold and pattern table the analysis phase uses lives here as
an immutable object that callers pass into each analyzer. Tests build
their own copies with dataclasses.replace to pin a threshold without
touching module state.

Pattern tables are ordered data, evaluated first-match-wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Pattern, Tuple


@dataclass(frozen=True)
class ScorePattern:
    """
    One row of a line-scoring table.
    """

    pattern: Pattern[str]
    weight: float
    category: str
    label: str

    def matches(self, content: str) -> bool:
        return self.pattern.search(content) is not None


def _row(regex: str, weight: float, category: str, label: str, flags: int = 0) -> ScorePattern:
    return ScorePattern(re.compile(regex, flags), weight, category, label)


CRITICAL = 0.9
HIGH = 0.7

DEFAULT_LINE_PATTERNS: Tuple[ScorePattern, ...] = (
    # Exported or public API surface.
    _row(r"^export\s+(default\s+)?(interface|type|class|function|const|enum)\b", CRITICAL, "critical", "exported declaration"),
    _row(r"^public\s+(static\s+)?(abstract\s+)?(class|interface|enum|function)\b", CRITICAL, "critical", "public declaration"),
    _row(r"module\.exports\s*=|^__all__\s*=", CRITICAL, "critical", "module exports"),
    # Routes and endpoints.
    _row(r"@api\b|@endpoint\b", CRITICAL, "critical", "endpoint annotation", re.IGNORECASE),
    _row(r"\b(app|router|bp|api)\.(get|post|put|delete|patch|route)\s*\(", CRITICAL, "critical", "route declaration"),
    # Schema and migrations.
    _row(r"\b(create|alter|drop)\s+table\b", CRITICAL, "critical", "schema statement", re.IGNORECASE),
    _row(r"migration", CRITICAL, "critical", "migration", re.IGNORECASE),
    _row(r"@(Entity|Table)\b", CRITICAL, "critical", "entity mapping"),
    # Security sensitive keywords.
    _row(r"auth|security|permission|\brole\b", CRITICAL, "critical", "security keyword", re.IGNORECASE),
    _row(r"\b(jwt|token|session)s?\b", CRITICAL, "critical", "credential keyword", re.IGNORECASE),
    _row(r"password|secret|\b(api_?)?key\b", CRITICAL, "critical", "secret keyword", re.IGNORECASE),
    # Configuration keywords.
    _row(r"\b(config|env|environment|settings)\b", CRITICAL, "critical", "configuration keyword", re.IGNORECASE),
    # Declarations.
    _row(r"^(async\s+)?def\s+\w+", HIGH, "high", "function declaration"),
    _row(r"\bclass\s+\w+", HIGH, "high", "class declaration"),
    _row(r"\bfunction\s+\w+", HIGH, "high", "function declaration"),
    _row(r"\bconst\s+\w+\s*=\s*(async\s*)?\(", HIGH, "high", "function declaration"),
    # Error handling.
    _row(r"^try\s*[:{]|^except\b|\bcatch\s*\(", HIGH, "high", "error handling"),
    _row(r"\b(raise|throw)\s+", HIGH, "high", "error handling"),
    _row(r"error|exception", HIGH, "high", "error handling", re.IGNORECASE),
    # Async and control flow.
    _row(r"\b(async|await|yield)\b|\bPromise\b", HIGH, "high", "async flow"),
    _row(r"\b(map|filter|reduce)\s*\(", HIGH, "high", "data processing"),
    # Types.
    _row(r"\binterface\s+\w+|\btype\s+\w+\s*=|\bTypedDict\b|\bProtocol\b", HIGH, "high", "type declaration"),
    # External imports.
    _row(r"^from\s+[A-Za-z_][\w.]*\s+import\b|^import\s+[A-Za-z_]", HIGH, "high", "external import"),
    _row(r"\bfrom\s+['\"][^./'\"]|\brequire\(\s*['\"][^./'\"]", HIGH, "high", "external import"),
)

COMMENT_PREFIXES: Tuple[str, ...] = ("#", "//", "/*", "*", "<!--", '"""', "'''", "--")

DEFAULT_FILE_SCORES: Mapping[str, float] = MappingProxyType(
    {
        # Critical files by exact name.
        "package.json": 0.95,
        ".env": 0.95,
        "pyproject.toml": 0.9,
        "tsconfig.json": 0.9,
        "webpack.config.js": 0.9,
        "vite.config.ts": 0.9,
        "setup.py": 0.85,
        "setup.cfg": 0.85,
        "requirements.txt": 0.85,
        "docker-compose.yml": 0.85,
        "Dockerfile": 0.8,
        # Extensions.
        ".ts": 0.8,
        ".tsx": 0.8,
        ".js": 0.75,
        ".jsx": 0.75,
        ".py": 0.75,
        ".java": 0.7,
        ".go": 0.7,
        ".rs": 0.7,
        ".rb": 0.7,
        ".sql": 0.7,
        ".html": 0.6,
        ".yaml": 0.6,
        ".yml": 0.6,
        ".toml": 0.6,
        ".cfg": 0.6,
        ".ini": 0.5,
        ".css": 0.5,
        ".scss": 0.5,
        ".json": 0.4,
        ".md": 0.3,
        ".rst": 0.3,
        ".txt": 0.2,
        ".lock": 0.1,
        ".log": 0.1,
    }
)

DEFAULT_PATH_SCORES: Tuple[Tuple[str, float], ...] = (
    ("src/", 0.8),
    ("lib/", 0.7),
    ("test/", 0.4),
    ("tests/", 0.4),
    ("spec/", 0.4),
    ("docs/", 0.3),
    ("examples/", 0.2),
)


@dataclass(frozen=True)
class BucketSettings:
    """
    Path heuristics shared by the complexity analyzer and the detector.
    """

    test_dirs: Tuple[str, ...] = ("test", "tests", "__tests__", "spec")
    test_name_pattern: Pattern[str] = re.compile(r"(^test_|_test\.|\.(test|spec)\.|^conftest\.py$)")
    doc_suffixes: Tuple[str, ...] = (".md", ".rst", ".adoc")
    doc_markers: Tuple[str, ...] = ("readme", "docs/", "doc/", "changelog", "contributing", "license")
    config_markers: Tuple[str, ...] = (
        "package.json",
        "tsconfig.json",
        "webpack.config",
        "vite.config",
        "jest.config",
        "babel.config",
        "rollup.config",
        ".env",
        "docker-compose",
        "Dockerfile",
        ".github/",
        "pyproject.toml",
        "setup.cfg",
        "setup.py",
        "tox.ini",
        "requirements",
        "Makefile",
    )
    core_markers: Tuple[str, ...] = ("src/",)
    breaking_path_markers: Tuple[str, ...] = ("interface", "api")
    breaking_line_markers: Tuple[str, ...] = ("export", "public")


@dataclass(frozen=True)
class RelationshipSettings:
    import_weight: float = 0.8
    import_threshold: float = 0.3
    test_pair_weight: float = 0.9
    test_pair_threshold: float = 0.7
    similarity_weight: float = 0.8
    similarity_threshold: float = 0.4
    shared_function_weight: float = 0.6
    shared_function_threshold: float = 0.3
    config_weight: float = 0.8
    config_threshold: float = 0.5
    # Added to a signal's weight for every match beyond the first.
    per_match_bonus: float = 0.1
    min_similar_line_length: int = 4
    config_markers: Tuple[str, ...] = (
        "config",
        "settings",
        "constants",
        ".env",
        ".json",
        ".yml",
        ".yaml",
        ".toml",
        ".ini",
        ".cfg",
    )


@dataclass(frozen=True)
class ImportanceSettings:
    file_type_weight: float = 0.3
    change_type_weight: float = 0.2
    content_weight: float = 0.4
    size_weight: float = 0.1
    file_scores: Mapping[str, float] = field(default_factory=lambda: DEFAULT_FILE_SCORES)
    path_scores: Tuple[Tuple[str, float], ...] = DEFAULT_PATH_SCORES
    default_file_score: float = 0.5
    change_type_scores: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType(
            {"deleted": 0.9, "renamed": 0.8, "modified": 0.7, "added": 0.6}
        )
    )
    line_patterns: Tuple[ScorePattern, ...] = DEFAULT_LINE_PATTERNS
    comment_prefixes: Tuple[str, ...] = COMMENT_PREFIXES
    removal_weight: float = 1.2
    statement_score: float = 0.5
    minor_score: float = 0.2
    trivial_score: float = 0.1
    statement_min_length: int = 10
    size_tiers: Tuple[Tuple[int, float], ...] = ((200, 0.8), (50, 0.6), (10, 0.4))
    size_floor: float = 0.2
    category_thresholds: Tuple[Tuple[float, str], ...] = (
        (0.8, "critical"),
        (0.6, "high"),
        (0.4, "medium"),
    )
    line_overhead_chars: int = 10
    file_overhead_chars: int = 50
    chars_per_token: int = 4
    reason_excerpt_length: int = 50


@dataclass(frozen=True)
class ComplexitySettings:
    file_points: float = 30.0
    file_reference: float = 30.0
    line_points: float = 25.0
    line_reference: float = 1500.0
    critical_points: float = 20.0
    critical_reference: float = 15.0
    breaking_points: float = 15.0
    breaking_reference: float = 5.0
    framework_points_each: float = 3.0
    framework_points: float = 10.0
    category_thresholds: Tuple[Tuple[float, str], ...] = (
        (25.0, "simple"),
        (50.0, "moderate"),
        (75.0, "complex"),
    )
    complex_file_count: int = 15
    complex_line_count: int = 500
    critical_warning_count: int = 3
    min_test_ratio: float = 30.0
    test_ratio_min_files: int = 5
    tokens_per_file: int = 100
    tokens_per_line: int = 2
    critical_token_factor: float = 0.1
    frameworks: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
        ("React", ("react", "React")),
        ("Vue", ("vue", "Vue")),
        ("Angular", ("angular", "Angular")),
        ("Express", ("express", "Express")),
        ("Django", ("django", "Django")),
        ("Flask", ("flask", "Flask")),
        ("FastAPI", ("fastapi", "FastAPI")),
        ("Spring", ("springframework", "Spring")),
    )


@dataclass(frozen=True)
class DetectionSettings:
    min_files: int = 1
    max_files: int = 8
    max_boundaries: int = 10
    relationship_threshold: float = 0.5
    isolate_breaking: bool = True
    themes: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
        ("authentication", ("auth", "login", "signin", "jwt", "oauth")),
        ("user interface", ("component", "ui/", "frontend", "style", "css", ".vue", ".jsx", ".tsx", "templates/")),
        ("backend development", ("api/", "route", "endpoint", "controller", "service", "views")),
        ("database", ("model", "schema", "migration", "database", "db")),
        ("security", ("security", "permission", "role", "csrf", "xss")),
        ("performance", ("optimize", "cache", "performance", "lazy", "bundle")),
        ("bug fixes", ("fix", "bug", "patch", "hotfix")),
    )


@dataclass(frozen=True)
class StrategySettings:
    type_keywords: Tuple[Tuple[Tuple[str, ...], str], ...] = (
        (("doc", "readme"), "docs"),
        (("test",), "test"),
        (("fix", "bug"), "fix"),
        (("breaking", "refactor", "clean"), "refactor"),
        (("style", "format"), "style"),
        (("feature", "add", "interface", "backend", "authentication", "database", "security", "performance"), "feat"),
    )
    default_type: str = "chore"
    max_title_length: int = 72
    body_min_reasoning: int = 100
    medium_risk_complexity: int = 5
    many_commits: int = 5


@dataclass(frozen=True)
class AnalysisSettings:
    """
    Bundle of every analyzer's settings.
    """

    buckets: BucketSettings = BucketSettings()
    relationships: RelationshipSettings = RelationshipSettings()
    importance: ImportanceSettings = ImportanceSettings()
    complexity: ComplexitySettings = ComplexitySettings()
    detection: DetectionSettings = DetectionSettings()
    strategy: StrategySettings = StrategySettings()


DEFAULT_SETTINGS = AnalysisSettings()
