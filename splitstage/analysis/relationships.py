"""
Pairwise file relationships derived from diff content.

The analyzer is a pure function of the Change set: it emits zero or more
FileRelationship records per file pair and never touches git or the
filesystem. Strength combines a signal's base weight with the number of
matches behind it and is capped at 1. Records weaker than the signal's
threshold are dropped.

Direction matters for three kinds: for "import" file1 imports file2,
for "shared_function" file1 defines a symbol that file2 references, and
for "test_pair" file1 is the test and file2 its source.
"""

from __future__ import annotations

import logging
import posixpath
import re
from typing import Dict, List, Sequence, Set

from ..domain import Change, FileRelationship
from ..settings import BucketSettings, RelationshipSettings
from .buckets import is_doc_file, is_test_file, tested_stem
from .language_intel import definitions_in, import_targets, module_path, references_in, resolves_to

LOG = logging.getLogger(__name__)

_TRIVIAL_LINE = re.compile(r"^[\s{}()\[\];,]*$")


def _changed_lines(change: Change) -> List[str]:
    return change.lines_of("added") + change.lines_of("removed")


def _all_lines(change: Change) -> List[str]:
    return [line.content for hunk in change.hunks for line in hunk.lines]


def _signature_lines(change: Change, settings: RelationshipSettings) -> Set[str]:
    lines = set()
    for line in _changed_lines(change):
        stripped = line.strip()
        if len(stripped) >= settings.min_similar_line_length and not _TRIVIAL_LINE.match(stripped):
            lines.add(stripped)
    return lines


def _strength(weight: float, matches: int, settings: RelationshipSettings) -> float:
    return min(1.0, weight + settings.per_match_bonus * max(0, matches - 1))


def _source_stem(path: str) -> str:
    return posixpath.basename(module_path(path)).lower()


def _is_config(path: str, settings: RelationshipSettings) -> bool:
    name = posixpath.basename(path).lower()
    return any(marker in name for marker in settings.config_markers)


def analyze_relationships(
    changes: Sequence[Change],
    settings: RelationshipSettings,
    buckets: BucketSettings,
) -> List[FileRelationship]:
    """
    Return every relationship between pairs of changes, in pair order.
    """

    imports = {change.path: import_targets(_all_lines(change)) for change in changes}
    definitions = {change.path: definitions_in(_changed_lines(change)) for change in changes}
    references = {change.path: references_in(_changed_lines(change)) for change in changes}
    signatures = {change.path: _signature_lines(change, settings) for change in changes}

    relationships: List[FileRelationship] = []

    def emit(file1: str, file2: str, kind: str, strength: float, threshold: float, detail: str) -> None:
        if strength >= threshold:
            relationships.append(FileRelationship(file1, file2, kind, round(strength, 4), detail))  # type: ignore[arg-type]

    for index, first in enumerate(changes):
        for second in changes[index + 1 :]:
            a, b = first.path, second.path

            for importer, imported in ((a, b), (b, a)):
                hits = [target for target in imports[importer] if resolves_to(target, imported)]
                if hits:
                    emit(
                        importer,
                        imported,
                        "import",
                        _strength(settings.import_weight, len(hits), settings),
                        settings.import_threshold,
                        f"{importer} imports {hits[0]}",
                    )

            for test, source in ((a, b), (b, a)):
                stem = tested_stem(test, buckets)
                if stem and not is_test_file(source, buckets) and _source_stem(source) == stem:
                    emit(
                        test,
                        source,
                        "test_pair",
                        settings.test_pair_weight,
                        settings.test_pair_threshold,
                        f"{test} tests {source}",
                    )

            shared = signatures[a] & signatures[b]
            if shared:
                overlap = len(shared) / min(len(signatures[a]), len(signatures[b]))
                emit(
                    a,
                    b,
                    "similar_changes",
                    min(1.0, settings.similarity_weight * overlap),
                    settings.similarity_threshold,
                    f"{len(shared)} identical changed lines",
                )

            for definer, user in ((a, b), (b, a)):
                own = set(definitions[user])
                symbols = [name for name in definitions[definer] if name in references[user] and name not in own]
                if symbols:
                    emit(
                        definer,
                        user,
                        "shared_function",
                        _strength(settings.shared_function_weight, len(symbols), settings),
                        settings.shared_function_threshold,
                        "shared symbols: " + ", ".join(symbols),
                    )

            if _is_config(a, settings) and _is_config(b, settings):
                emit(a, b, "config_related", settings.config_weight, settings.config_threshold, "configuration files")

    LOG.debug("Found %d relationships among %d changes", len(relationships), len(changes))
    return relationships


def build_dependency_map(
    changes: Sequence[Change],
    relationships: Sequence[FileRelationship],
    buckets: BucketSettings,
) -> Dict[str, Set[str]]:
    """
    Map each path to the paths it statically depends on.

    Importers depend on what they import, users of a symbol on its
    definer, tests on their source, and documentation on any source file
    whose module name it mentions.
    """

    depends: Dict[str, Set[str]] = {change.path: set() for change in changes}

    for rel in relationships:
        if rel.kind in ("import", "test_pair"):
            depends[rel.file1].add(rel.file2)
        elif rel.kind == "shared_function":
            depends[rel.file2].add(rel.file1)

    sources = [
        change.path
        for change in changes
        if not is_doc_file(change.path, buckets) and not is_test_file(change.path, buckets)
    ]
    for change in changes:
        if not is_doc_file(change.path, buckets):
            continue
        words = set(re.findall(r"[a-z_][a-z0-9_]*", "\n".join(change.lines_of("added")).lower()))
        for source in sources:
            stem = _source_stem(source)
            if len(stem) >= 3 and stem in words:
                depends[change.path].add(source)

    return depends
