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

"""Workspace search context.

Scans a bounded number of project files in the current language and
returns windows of code around lines that use symbols near the cursor.
Files in the same directory as the current file are searched first,
then files whose names resemble it.
"""

import asyncio
import logging
import re
import threading
from difflib import SequenceMatcher
from pathlib import Path
from typing import Optional

from cachetools import TTLCache  # type: ignore[import-untyped]

from victor_autocomplete.completion.protocol import CompletionRequest
from victor_autocomplete.context.ignore import iter_workspace_files
from victor_autocomplete.context.symbols import filter_relevant_symbols, get_symbols_from_text
from victor_autocomplete.context.types import CodeSnippet, ContextBudget, LineRange, SnippetKind
from victor_autocomplete.languages import get_comment_style, get_search_extensions

logger = logging.getLogger(__name__)

MAX_FILES_TO_SCAN = 100
MAX_FILE_SIZE = 50_000
CACHE_SIZE = 200
CACHE_TTL_SECONDS = 60.0
LINES_BEFORE = 3
LINES_AFTER = 7


def name_similarity(a: str, b: str) -> float:
    """Similarity ratio of two file stems in [0, 1]."""
    if not a and not b:
        return 1.0
    return SequenceMatcher(None, a, b).ratio()


class WorkspaceContextService:
    """Context source backed by a bounded scan of the project tree."""

    kind = SnippetKind.WORKSPACE

    def __init__(
        self,
        workspace_root: Optional[Path] = None,
        max_files: int = MAX_FILES_TO_SCAN,
        max_file_size: int = MAX_FILE_SIZE,
        cache_size: int = CACHE_SIZE,
        cache_ttl: float = CACHE_TTL_SECONDS,
    ):
        self._root = Path(workspace_root) if workspace_root else None
        self._max_files = max_files
        self._max_file_size = max_file_size
        self._cache: TTLCache = TTLCache(maxsize=cache_size, ttl=cache_ttl)
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
        max_snippets = budget.max_snippets // 4
        if self._root is None or not symbols or max_snippets <= 0:
            return []
        return await asyncio.to_thread(self.search, request, symbols, max_snippets)

    def search(
        self, request: CompletionRequest, symbols: list[str], max_snippets: int
    ) -> list[CodeSnippet]:
        """Find snippets that use ``symbols`` in other workspace files.

        Args:
            request: Document snapshot being completed
            symbols: Symbols near the cursor
            max_snippets: Upper bound on returned snippets

        Returns:
            Snippets in file relevance order
        """
        snippets: list[CodeSnippet] = []
        for path in self.relevant_files(request.filepath, request.language):
            if len(snippets) >= max_snippets:
                break
            snippets.extend(self._snippets_from_file(path, symbols, request.language))
        return snippets[:max_snippets]

    def relevant_files(self, current_filepath: str, language: str) -> list[Path]:
        """Candidate files, same directory first then by name similarity."""
        if self._root is None:
            return []

        extensions = get_search_extensions(language)
        current = Path(current_filepath)
        current_dir = current.parent.resolve() if current.parent != Path() else None
        current_resolved = current.resolve()

        files: list[Path] = []
        seen: set[Path] = set()

        def collect(paths) -> None:
            for path in paths:
                resolved = path.resolve()
                if resolved == current_resolved or resolved in seen:
                    continue
                seen.add(resolved)
                files.append(path)

        if current_dir is not None and current_dir.is_dir():
            try:
                current_dir.relative_to(self._root.resolve())
                same_dir = [
                    p
                    for p in sorted(current_dir.iterdir())
                    if p.is_file() and p.suffix.lower() in extensions
                ]
                collect(same_dir[: self._max_files])
            except ValueError:
                pass

        collect(
            iter_workspace_files(
                self._root,
                extensions,
                max_files=self._max_files,
                max_file_size=self._max_file_size,
            )
        )

        stem = current.stem

        def rank(path: Path) -> tuple[int, float]:
            same = 1 if current_dir is not None and path.parent.resolve() == current_dir else 0
            return (-same, -name_similarity(path.stem, stem))

        return sorted(files, key=rank)

    def invalidate(self, filepath: Optional[str] = None) -> None:
        with self._lock:
            if filepath is None:
                self._cache.clear()
            else:
                self._cache.pop(str(Path(filepath).resolve()), None)

    def _read_file(self, path: Path) -> Optional[str]:
        key = str(path.resolve())
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            if path.stat().st_size > self._max_file_size:
                return None
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug(f"Failed to read {path}: {e}")
            return None

        with self._lock:
            self._cache[key] = content
        return content

    def _snippets_from_file(self, path: Path, symbols: list[str], language: str) -> list[CodeSnippet]:
        content = self._read_file(path)
        if not content:
            return []

        comment_starters = tuple(get_comment_style(language).starters()) + ("//", "#")
        patterns = [re.compile(rf"(?<![\w$]){re.escape(s)}(?![\w$])") for s in symbols]
        lines = content.split("\n")
        snippets = []
        for i, line in enumerate(lines):
            if line.strip().startswith(comment_starters):
                continue
            if not any(p.search(line) for p in patterns):
                continue
            start = max(0, i - LINES_BEFORE)
            end = min(len(lines) - 1, i + LINES_AFTER)
            window = "\n".join(lines[start : end + 1])
            found = filter_relevant_symbols(get_symbols_from_text(window, language), language)
            snippets.append(
                CodeSnippet(
                    filepath=str(path),
                    content=window,
                    kind=SnippetKind.WORKSPACE,
                    line_range=LineRange(start, end),
                    symbols=tuple(found),
                )
            )
        return snippets
