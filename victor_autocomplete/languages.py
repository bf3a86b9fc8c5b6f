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

"""Language detection and per-language comment/extension tables."""

from dataclasses import dataclass
from pathlib import PurePath
from typing import Optional

EXTENSION_LANGUAGES: dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".mts": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".py": "python",
    ".pyi": "python",
    ".java": "java",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".cxx": "cpp",
    ".hpp": "cpp",
    ".c": "c",
    ".h": "c",
    ".cs": "csharp",
    ".go": "go",
    ".rs": "rust",
    ".php": "php",
    ".rb": "ruby",
    ".swift": "swift",
    ".kt": "kotlin",
    ".scala": "scala",
    ".sh": "bash",
    ".bash": "bash",
    ".sql": "sql",
    ".html": "html",
    ".css": "css",
    ".scss": "scss",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".xml": "xml",
    ".md": "markdown",
}

# Extensions searched by the workspace source, per language
LANGUAGE_EXTENSIONS: dict[str, tuple[str, ...]] = {
    "javascript": (".js", ".jsx", ".mjs"),
    "typescript": (".ts", ".tsx", ".mts"),
    "python": (".py", ".pyx", ".pyi"),
    "java": (".java",),
    "cpp": (".cpp", ".cc", ".cxx", ".h", ".hpp"),
    "c": (".c", ".h"),
    "csharp": (".cs",),
    "go": (".go",),
    "rust": (".rs",),
    "php": (".php",),
    "ruby": (".rb",),
}
DEFAULT_SEARCH_EXTENSIONS: tuple[str, ...] = (".js", ".ts", ".jsx", ".tsx")

CODE_FILE_EXTENSIONS = frozenset(
    {
        ".js",
        ".ts",
        ".jsx",
        ".tsx",
        ".py",
        ".java",
        ".cpp",
        ".c",
        ".cs",
        ".go",
        ".rs",
        ".php",
        ".rb",
        ".swift",
        ".kt",
        ".scala",
        ".sh",
        ".sql",
        ".html",
        ".css",
        ".scss",
        ".json",
        ".yaml",
        ".yml",
        ".xml",
    }
)


@dataclass(frozen=True)
class CommentStyle:
    """How a language comments out a region of text.

    Line-comment languages set ``line``; block-only languages set
    ``block_open``/``block_close`` and the whole region is wrapped once.
    """

    line: Optional[str] = None
    block_open: Optional[str] = None
    block_close: Optional[str] = None

    @property
    def is_block_only(self) -> bool:
        return self.line is None and self.block_open is not None

    def starters(self) -> tuple[str, ...]:
        """Tokens that begin a comment in this language."""
        tokens = [t for t in (self.line, self.block_open) if t]
        return tuple(tokens)


_SLASH = CommentStyle(line="//", block_open="/*", block_close="*/")
_HASH = CommentStyle(line="#")

COMMENT_STYLES: dict[str, CommentStyle] = {
    "javascript": _SLASH,
    "typescript": _SLASH,
    "java": _SLASH,
    "cpp": _SLASH,
    "c": _SLASH,
    "csharp": _SLASH,
    "go": _SLASH,
    "rust": _SLASH,
    "php": _SLASH,
    "swift": _SLASH,
    "kotlin": _SLASH,
    "scala": _SLASH,
    "python": _HASH,
    "ruby": _HASH,
    "bash": _HASH,
    "yaml": _HASH,
    "sql": CommentStyle(line="--", block_open="/*", block_close="*/"),
    "html": CommentStyle(block_open="<!--", block_close="-->"),
    "xml": CommentStyle(block_open="<!--", block_close="-->"),
    "markdown": CommentStyle(block_open="<!--", block_close="-->"),
    "css": CommentStyle(block_open="/*", block_close="*/"),
    "scss": CommentStyle(block_open="/*", block_close="*/"),
}
DEFAULT_COMMENT_STYLE = _SLASH


def detect_language(filepath: str, content: str = "") -> str:
    """Detect language from file path, falling back to a shebang line.

    Args:
        filepath: Path of the file being edited
        content: File content (only the first line is inspected)

    Returns:
        Language identifier, ``"text"`` when unknown
    """
    ext = PurePath(filepath).suffix.lower()
    if ext in EXTENSION_LANGUAGES:
        return EXTENSION_LANGUAGES[ext]

    if content.startswith("#!"):
        first_line = content.split("\n", 1)[0]
        if "python" in first_line:
            return "python"
        if "node" in first_line:
            return "javascript"
        if "ruby" in first_line:
            return "ruby"
        if "bash" in first_line or "sh" in first_line:
            return "bash"

    return "text"


def get_comment_style(language: str) -> CommentStyle:
    """Comment style for a language (``//`` for unknown languages)."""
    return COMMENT_STYLES.get(language.lower(), DEFAULT_COMMENT_STYLE)


def get_search_extensions(language: str) -> tuple[str, ...]:
    return LANGUAGE_EXTENSIONS.get(language.lower(), DEFAULT_SEARCH_EXTENSIONS)


def is_code_file(filepath: str) -> bool:
    return PurePath(filepath).suffix.lower() in CODE_FILE_EXTENSIONS
