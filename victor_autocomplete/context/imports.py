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

"""Import definition context.

For each symbol near the cursor that the current buffer imports, resolve
the module to a file inside the workspace and return the definition with
a few lines around it. Modules outside the workspace (site-packages,
``node_modules``, build output) are never used.
"""

import asyncio
import logging
import re
import threading
from pathlib import Path, PurePath
from typing import Optional

from cachetools import LRUCache  # type: ignore[import-untyped]

from victor_autocomplete.completion.protocol import CompletionRequest
from victor_autocomplete.context.ignore import is_within_workspace
from victor_autocomplete.context.symbols import extract_imports
from victor_autocomplete.context.types import CodeSnippet, ContextBudget, LineRange, SnippetKind

logger = logging.getLogger(__name__)

CACHE_SIZE = 50
LINES_BEFORE = 2
LINES_AFTER = 10

_JS_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs")
_JAVA_SOURCE_ROOTS = ("", "src/main/java", "src")


def _definition_patterns(symbol: str, language: str) -> list[re.Pattern[str]]:
    name = re.escape(symbol)
    if language == "python":
        return [
            re.compile(rf"^\s*(?:async\s+def|def|class)\s+{name}\b"),
            re.compile(rf"^{name}\s*(?::[^=]*)?="),
        ]
    if language in ("javascript", "typescript"):
        return [
            re.compile(
                r"^\s*(?:export\s+)?(?:default\s+)?(?:declare\s+)?(?:abstract\s+)?(?:async\s+)?"
                rf"(?:function\*?|class|interface|type|enum|const|let|var)\s+{name}\b"
            ),
        ]
    if language == "java":
        return [
            re.compile(rf"\b(?:class|interface|enum|record)\s+{name}\b"),
        ]
    return [re.compile(rf"\b{name}\b")]


class _FileEntry:
    __slots__ = ("mtime", "lines")

    def __init__(self, mtime: float, lines: list[str]):
        self.mtime = mtime
        self.lines = lines


class ImportDefinitionsService:
    """Context source that follows imports into workspace files."""

    kind = SnippetKind.IMPORT

    def __init__(self, workspace_root: Optional[Path] = None, cache_size: int = CACHE_SIZE):
        """Initialize the service.

        Args:
            workspace_root: Project root; nothing is resolved without one
            cache_size: Number of analyzed files kept in the LRU cache
        """
        self._root = Path(workspace_root) if workspace_root else None
        self._cache: LRUCache = LRUCache(maxsize=cache_size)
        self._lock = threading.RLock()

    @property
    def workspace_root(self) -> Optional[Path]:
        return self._root

    async def fetch(
        self,
        request: CompletionRequest,
        symbols: list[str],
        budget: ContextBudget,
    ) -> list[CodeSnippet]:
        if self._root is None or not symbols:
            return []
        return await asyncio.to_thread(self.find_definitions, request, symbols)

    def find_definitions(self, request: CompletionRequest, symbols: list[str]) -> list[CodeSnippet]:
        """Resolve imported ``symbols`` to definition snippets.

        Args:
            request: Document snapshot whose imports are inspected
            symbols: Symbols near the cursor, in relevance order

        Returns:
            One snippet per resolved definition
        """
        imported: dict[str, list[str]] = {}
        for module, name in extract_imports(request.prefix + request.suffix, request.language):
            imported.setdefault(name, []).append(module)

        snippets: list[CodeSnippet] = []
        seen: set[tuple[str, int]] = set()
        for symbol in symbols:
            for module in imported.get(symbol, []):
                path = self._resolve_module(module, symbol, request.filepath, request.language)
                if path is None:
                    continue
                snippet = self._definition_snippet(path, symbol, request.language)
                if snippet is None or snippet.line_range is None:
                    continue
                key = (snippet.filepath, snippet.line_range.start)
                if key in seen:
                    continue
                seen.add(key)
                snippets.append(snippet)
        return snippets

    def invalidate(self, filepath: Optional[str] = None) -> None:
        """Drop cached analysis for one file, or for all files."""
        with self._lock:
            if filepath is None:
                self._cache.clear()
            else:
                self._cache.pop(str(Path(filepath).resolve()), None)

    def _resolve_module(
        self, module: str, symbol: str, current_file: str, language: str
    ) -> Optional[Path]:
        if self._root is None:
            return None
        current_dir = Path(current_file).parent
        candidates: list[Path] = []

        if language == "python":
            dots = len(module) - len(module.lstrip("."))
            parts = [p for p in module.lstrip(".").split(".") if p]
            if dots:
                base = current_dir
                for _ in range(dots - 1):
                    base = base.parent
                bases = [base]
            else:
                bases = [self._root, self._root / "src", current_dir]
            for base in bases:
                target = base.joinpath(*parts) if parts else base
                candidates += [target.with_suffix(".py"), target / "__init__.py"]
                # "from pkg import module"
                candidates.append(target / f"{symbol}.py")

        elif language in ("javascript", "typescript"):
            if not module.startswith("."):
                return None
            target = current_dir / module
            candidates.append(target)
            candidates += [target.with_name(target.name + ext) for ext in _JS_EXTENSIONS]
            candidates += [target / f"index{ext}" for ext in _JS_EXTENSIONS]

        elif language == "java":
            relative = PurePath(*module.split(".")).with_suffix(".java")
            candidates += [self._root / src / relative for src in _JAVA_SOURCE_ROOTS]

        for candidate in candidates:
            if candidate.is_file() and is_within_workspace(candidate, self._root):
                if candidate.resolve() == Path(current_file).resolve():
                    continue
                return candidate
        return None

    def _read_lines(self, path: Path) -> Optional[list[str]]:
        key = str(path.resolve())
        try:
            mtime = path.stat().st_mtime
        except OSError:
            return None

        with self._lock:
            entry = self._cache.get(key)
            if entry is not None and entry.mtime == mtime:
                return entry.lines

        try:
            lines = path.read_text(encoding="utf-8", errors="replace").split("\n")
        except OSError as e:
            logger.debug(f"Failed to read {path}: {e}")
            return None

        with self._lock:
            self._cache[key] = _FileEntry(mtime, lines)
        return lines

    def _definition_snippet(self, path: Path, symbol: str, language: str) -> Optional[CodeSnippet]:
        lines = self._read_lines(path)
        if not lines:
            return None

        patterns = _definition_patterns(symbol, language)
        for i, line in enumerate(lines):
            if any(p.search(line) for p in patterns):
                start = max(0, i - LINES_BEFORE)
                end = min(len(lines) - 1, i + LINES_AFTER)
                return CodeSnippet(
                    filepath=str(path),
                    content="\n".join(lines[start : end + 1]),
                    kind=SnippetKind.IMPORT,
                    line_range=LineRange(start, end),
                    symbols=(symbol,),
                )
        return None
