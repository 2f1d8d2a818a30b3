"""
Lightweight language-aware helpers for splitstage.

These utilities provide best-effort detection of symbol definitions,
symbol references and import targets so that the
relationship analyzer can connect files without a real parser.
"""

from __future__ import annotations

import posixpath
import re
from typing import Iterable, List, Optional, Set

_EXTENSIONS = {
    ".py": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".go": "go",
    ".java": "java",
    ".rb": "ruby",
    ".rs": "rust",
}

_DEFINITION_PATTERNS = (
    re.compile(r"^\s*(?:async\s+)?def\s+([A-Za-z_]\w*)"),
    re.compile(r"^\s*(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+([A-Za-z_$][\w$]*)"),
    re.compile(r"^\s*(?:export\s+)?(?:async\s+)?function\s*\*?\s*([A-Za-z_$][\w$]*)"),
    re.compile(r"^\s*(?:export\s+)?(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*=\s*(?:async\s*)?(?:\(|function)"),
    re.compile(r"^\s*(?:export\s+)?(?:interface|type|enum)\s+([A-Za-z_$][\w$]*)"),
    re.compile(r"^\s*func\s+(?:\([^)]*\)\s*)?([A-Za-z_]\w*)"),
    re.compile(r"^\s*(?:pub\s+)?fn\s+([A-Za-z_]\w*)"),
)

_IDENTIFIER_RE = re.compile(r"[A-Za-z_$][\w$]*")

_PY_FROM_RE = re.compile(r"^\s*from\s+([.\w]+)\s+import\s+\(?([\w\s,]+)")
_PY_IMPORT_RE = re.compile(r"^\s*import\s+([\w.]+(?:\s*,\s*[\w.]+)*)\s*;?\s*$")
_JS_IMPORT_RES = (
    re.compile(r"\bfrom\s+['\"]([^'\"]+)['\"]"),
    re.compile(r"\brequire\(\s*['\"]([^'\"]+)['\"]\s*\)"),
    re.compile(r"^\s*import\s+['\"]([^'\"]+)['\"]"),
    re.compile(r"\bimport\(\s*['\"]([^'\"]+)['\"]\s*\)"),
)

_PACKAGE_STEMS = ("__init__", "index", "mod")

# Too common to connect two files on their own.
_IGNORED_SYMBOLS = frozenset(
    {
        "main",
        "init",
        "self",
        "this",
        "None",
        "True",
        "False",
        "null",
        "true",
        "false",
        "return",
        "function",
        "const",
        "class",
        "def",
        "new",
        "test",
        "setup",
        "run",
        "get",
        "set",
    }
)


def extract_symbol_name_from_hunk_header(header: str) -> Optional[str]:
    """
    Attempt to extract a symbol name (e.g., function or method) from a
    diff hunk header.

    git prints the enclosing function's line after the closing '@@';
    when that line is a recognizable definition only the name is kept.
    """

    parts = header.split("@@")
    if len(parts) < 3:
        return None
    tail = parts[-1].strip()
    if not tail:
        return None
    names = definitions_in([tail])
    if names:
        return names[0]
    return tail


def definitions_in(lines: Iterable[str]) -> List[str]:
    """
    Return the symbol names defined by the given source lines, in order.
    """

    names: List[str] = []
    for line in lines:
        for pattern in _DEFINITION_PATTERNS:
            match = pattern.match(line)
            if match:
                name = match.group(1)
                if name not in names and _is_meaningful(name):
                    names.append(name)
                break
    return names


def references_in(lines: Iterable[str]) -> Set[str]:
    """
    Return every identifier-like token appearing in the given lines.
    """

    refs: Set[str] = set()
    for line in lines:
        refs.update(token for token in _IDENTIFIER_RE.findall(line) if _is_meaningful(token))
    return refs


def import_targets(lines: Iterable[str]) -> List[str]:
    """
    Return normalized module paths imported by the given lines.

    Targets are slash separated without extensions or leading ./ and ../
    so that "from .auth import x", "require('./auth.js')" and
    "import pkg.auth" all produce a path ending in "auth".
    """

    targets: List[str] = []

    def add(target: str) -> None:
        if target and target not in targets:
            targets.append(target)

    for line in lines:
        match = _PY_FROM_RE.match(line)
        if match:
            module = match.group(1)
            base = _normalize_python_module(module)
            if base:
                add(base)
            for name in match.group(2).split(","):
                name = name.strip().split(" ")[0]
                if name and name != "*":
                    add(f"{base}/{name}" if base else name)
            continue

        match = _PY_IMPORT_RE.match(line)
        if match:
            for module in match.group(1).split(","):
                add(_normalize_python_module(module.strip()))
            continue

        for pattern in _JS_IMPORT_RES:
            for specifier in pattern.findall(line):
                add(_normalize_specifier(specifier))

    return targets


def module_path(path: str) -> str:
    """
    Return a path without its extension, using the directory for
    package entry files such as __init__.py or index.js.
    """

    root, _ = posixpath.splitext(path)
    directory, stem = posixpath.split(root)
    if stem in _PACKAGE_STEMS and directory:
        return directory
    return root


def resolves_to(target: str, path: str) -> bool:
    """
    Return True if the import target plausibly names the file at path.
    """

    if not target:
        return False
    candidate = module_path(path)
    return candidate == target or candidate.endswith("/" + target)


def _normalize_python_module(module: str) -> str:
    return module.lstrip(".").replace(".", "/")


def _normalize_specifier(specifier: str) -> str:
    parts = [part for part in specifier.split("/") if part not in ("", ".", "..")]
    if not parts:
        return ""
    root, ext = posixpath.splitext(parts[-1])
    if ext in _EXTENSIONS:
        parts[-1] = root
    return "/".join(parts)


def _is_meaningful(name: str) -> bool:
    return len(name) >= 3 and name not in _IGNORED_SYMBOLS
