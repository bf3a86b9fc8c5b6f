# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Regex-based symbol and import extraction.

A cheap stand-in for a real parser: good enough to pick identifiers
near the cursor that are worth looking up elsewhere in the project.
"""

import re
from typing import Iterable

_IDENT = r"[a-zA-Z_$][a-zA-Z0-9_$]*"

_BASE_PATTERNS = [
    re.compile(rf"({_IDENT})\s*\("),  # call
    re.compile(rf"\.({_IDENT})"),  # attribute access
    re.compile(rf"({_IDENT})\s*="),  # assignment
    re.compile(rf"(?:class|interface|type|enum)\s+({_IDENT})"),
]

_LANGUAGE_PATTERNS: dict[str, list[re.Pattern[str]]] = {
    "javascript": [
        re.compile(rf"import\s+\{{\s*({_IDENT})"),
        re.compile(rf"import\s+({_IDENT})"),
        re.compile(rf"\{{\s*({_IDENT})\s*\}}"),
        re.compile(rf"const\s+({_IDENT})\s*=.*=>"),
    ],
    "python": [
        re.compile(r"from\s+[\w.]+\s+import\s+([a-zA-Z_][a-zA-Z0-9_]*)"),
        re.compile(r"import\s+([a-zA-Z_][a-zA-Z0-9_]*)"),
        re.compile(r"def\s+([a-zA-Z_][a-zA-Z0-9_]*)"),
    ],
    "java": [
        re.compile(rf"import\s+(?:static\s+)?[\w.]*\.({_IDENT})"),
        re.compile(rf"(?:public|private|protected)\s+(?:static\s+)?(?:\w+\s+)+({_IDENT})\s*\("),
    ],
}
_LANGUAGE_PATTERNS["typescript"] = _LANGUAGE_PATTERNS["javascript"]

_COMMON_KEYWORDS = frozenset(
    {
        "if",
        "else",
        "for",
        "while",
        "do",
        "switch",
        "case",
        "default",
        "break",
        "continue",
        "return",
        "try",
        "catch",
        "finally",
        "throw",
        "new",
        "this",
        "super",
        "null",
        "undefined",
        "true",
        "false",
    }
)

_KEYWORDS: dict[str, frozenset[str]] = {
    "javascript": _COMMON_KEYWORDS
    | {
        "const",
        "let",
        "var",
        "function",
        "class",
        "interface",
        "type",
        "enum",
        "async",
        "await",
        "import",
        "export",
        "from",
        "as",
    },
    "python": _COMMON_KEYWORDS
    | {
        "def",
        "class",
        "import",
        "from",
        "as",
        "with",
        "lambda",
        "and",
        "or",
        "not",
        "in",
        "is",
        "none",
        "self",
        "cls",
        "pass",
        "yield",
        "async",
        "await",
    },
    "java": _COMMON_KEYWORDS
    | {
        "public",
        "private",
        "protected",
        "static",
        "final",
        "abstract",
        "class",
        "interface",
        "extends",
        "implements",
        "package",
        "import",
        "void",
    },
}
_KEYWORDS["typescript"] = _KEYWORDS["javascript"]

# Compared case-insensitively
_BUILTINS: dict[str, frozenset[str]] = {
    "javascript": frozenset(
        {
            "console",
            "window",
            "document",
            "array",
            "object",
            "string",
            "number",
            "boolean",
            "date",
            "math",
            "json",
            "promise",
        }
    ),
    "python": frozenset(
        {
            "print",
            "len",
            "str",
            "int",
            "float",
            "list",
            "dict",
            "set",
            "tuple",
            "range",
            "enumerate",
            "zip",
        }
    ),
    "java": frozenset(
        {"system", "string", "object", "integer", "double", "boolean", "list", "map", "set"}
    ),
}
_BUILTINS["typescript"] = _BUILTINS["javascript"]


def get_symbols_from_text(text: str, language: str) -> list[str]:
    """Extract candidate identifiers from ``text``.

    Returns:
        Unique symbols in first-seen order
    """
    patterns = _BASE_PATTERNS + _LANGUAGE_PATTERNS.get(language, [])
    found: list[tuple[int, str]] = []
    for pattern in patterns:
        for match in pattern.finditer(text):
            symbol = match.group(1)
            if symbol and len(symbol) > 1:
                found.append((match.start(1), symbol))

    seen: set[str] = set()
    ordered: list[str] = []
    for _, symbol in sorted(found):
        if symbol not in seen:
            seen.add(symbol)
            ordered.append(symbol)
    return ordered


def filter_relevant_symbols(symbols: Iterable[str], language: str) -> list[str]:
    """Drop keywords, builtins, and one-character names."""
    keywords = _KEYWORDS.get(language, _COMMON_KEYWORDS)
    builtins = _BUILTINS.get(language, frozenset())
    result = []
    for symbol in symbols:
        lowered = symbol.lower()
        if lowered in keywords or lowered in builtins:
            continue
        if len(symbol) <= 1 or not re.match(r"[a-zA-Z_$]", symbol):
            continue
        result.append(symbol)
    return result


def get_symbols_around_line(
    text: str,
    line: int,
    language: str,
    context_lines: int = 5,
) -> list[str]:
    """Relevant symbols within ``context_lines`` of ``line``.

    Args:
        text: Whole document text
        line: Zero-based cursor line
        language: Language identifier
        context_lines: Lines to include on each side of the cursor

    Returns:
        Filtered symbols in first-seen order
    """
    lines = text.split("\n")
    start = max(0, line - context_lines)
    end = min(len(lines) - 1, line + context_lines)
    window = "\n".join(lines[start : end + 1])
    return filter_relevant_symbols(get_symbols_from_text(window, language), language)


_PY_FROM_IMPORT = re.compile(
    r"^\s*from\s+(\.*[\w.]*)\s+import\s+\(?\s*([\w\s,]+?)\)?\s*$", re.MULTILINE
)
_PY_IMPORT = re.compile(r"^\s*import\s+([\w.]+(?:\s*,\s*[\w.]+)*)", re.MULTILINE)
_JS_IMPORT = re.compile(
    rf"import\s+(?:\{{([^}}]+)\}}|({_IDENT})|\*\s+as\s+({_IDENT}))\s+from\s+['\"`]([^'\"`]+)['\"`]"
)
_JS_REQUIRE = re.compile(
    rf"(?:const|let|var)\s+(?:\{{([^}}]+)\}}|({_IDENT}))\s*=\s*require\s*\(\s*['\"`]([^'\"`]+)['\"`]\s*\)"
)
_JAVA_IMPORT = re.compile(r"^\s*import\s+(?:static\s+)?([\w.]+)\.(\w+|\*)\s*;", re.MULTILINE)


def _split_names(group: str) -> list[str]:
    names = []
    for part in group.split(","):
        name = part.strip().split(" as ")[0].strip()
        if name:
            names.append(name)
    return names


def extract_imports(text: str, language: str) -> list[tuple[str, str]]:
    """Extract ``(module, symbol)`` pairs imported by ``text``.

    For whole-module imports the symbol is the module's last component.
    Unsupported languages yield an empty list.
    """
    imports: list[tuple[str, str]] = []

    if language == "python":
        for match in _PY_FROM_IMPORT.finditer(text):
            module = match.group(1)
            for name in _split_names(match.group(2)):
                imports.append((module, name))
        for match in _PY_IMPORT.finditer(text):
            for module in _split_names(match.group(1)):
                imports.append((module, module.rsplit(".", 1)[-1]))

    elif language in ("javascript", "typescript"):
        for match in _JS_IMPORT.finditer(text):
            named, default, namespace, module = match.groups()
            if named:
                imports.extend((module, name) for name in _split_names(named))
            elif default:
                imports.append((module, default))
            elif namespace:
                imports.append((module, namespace))
        for match in _JS_REQUIRE.finditer(text):
            named, default, module = match.groups()
            if named:
                imports.extend((module, name) for name in _split_names(named))
            elif default:
                imports.append((module, default))

    elif language == "java":
        for match in _JAVA_IMPORT.finditer(text):
            package, name = match.groups()
            if name != "*":
                imports.append((f"{package}.{name}", name))

    return [(module, symbol) for module, symbol in imports if module and symbol]
