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

"""Recency logs of edited and visited line ranges.

The host editor feeds these trackers from its document-change and
selection events. Each tracker keeps a short, newest-first list of line
ranges and serves them as context snippets for other files.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from victor_autocomplete.completion.protocol import CompletionRequest
from victor_autocomplete.context.symbols import filter_relevant_symbols, get_symbols_from_text
from victor_autocomplete.context.types import CodeSnippet, ContextBudget, LineRange, SnippetKind
from victor_autocomplete.languages import detect_language, is_code_file

logger = logging.getLogger(__name__)

MAX_RANGES = 20
MAX_AGE_SECONDS = 30 * 60
CONTEXT_LINES = 2


@dataclass
class RecentRange:
    """A line range captured from a document, with its text at capture time."""

    filepath: str
    line_range: LineRange
    lines: list[str]
    timestamp: float = field(default_factory=time.time)
    symbols: list[str] = field(default_factory=list)

    @property
    def content(self) -> str:
        return "\n".join(self.lines)


class RecentRangeLog:
    """Newest-first log of line ranges, bounded by count and age.

    Adding a range drops any older range of the same file that overlaps it.
    """

    kind: SnippetKind = SnippetKind.RECENTLY_EDITED

    def __init__(
        self,
        max_ranges: int = MAX_RANGES,
        max_age_seconds: float = MAX_AGE_SECONDS,
        context_lines: int = CONTEXT_LINES,
        clock: Callable[[], float] = time.time,
    ):
        self._max_ranges = max_ranges
        self._max_age = max_age_seconds
        self._context_lines = context_lines
        self._clock = clock
        self._ranges: list[RecentRange] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._ranges)

    def add_range(
        self,
        filepath: str,
        document: Union[str, list[str]],
        start_line: int,
        end_line: int,
        language: Optional[str] = None,
    ) -> Optional[RecentRange]:
        """Capture ``start_line..end_line`` of ``document``, padded by context lines.

        Args:
            filepath: File the range belongs to
            document: Full document text, or its lines
            start_line: First changed line (zero-based)
            end_line: Last changed line (inclusive)
            language: Language identifier (detected from the path if omitted)

        Returns:
            The stored range, or None when the file is not a code file
        """
        if not is_code_file(filepath):
            return None

        lines = document.split("\n") if isinstance(document, str) else list(document)
        if not lines:
            return None

        last_line = len(lines) - 1
        start = max(0, min(start_line, end_line) - self._context_lines)
        end = min(last_line, max(start_line, end_line) + self._context_lines)
        if start > end:
            return None

        captured = lines[start : end + 1]
        language = language or detect_language(filepath)
        symbols = filter_relevant_symbols(
            get_symbols_from_text("\n".join(captured), language), language
        )
        entry = RecentRange(
            filepath=filepath,
            line_range=LineRange(start, end),
            lines=captured,
            timestamp=self._clock(),
            symbols=symbols,
        )

        with self._lock:
            self._ranges = [
                r
                for r in self._ranges
                if r.filepath != filepath or not r.line_range.overlaps(entry.line_range)
            ]
            self._ranges.insert(0, entry)
            del self._ranges[self._max_ranges :]

        logger.debug(f"Tracked {self.kind.value} range {filepath}:{start}-{end}")
        return entry

    def cleanup(self) -> int:
        """Drop ranges older than the maximum age.

        Returns:
            Number of ranges removed
        """
        cutoff = self._clock() - self._max_age
        with self._lock:
            before = len(self._ranges)
            self._ranges = [r for r in self._ranges if r.timestamp > cutoff]
            return before - len(self._ranges)

    def ranges_for_file(self, filepath: str) -> list[RecentRange]:
        with self._lock:
            return [r for r in self._ranges if r.filepath == filepath]

    def get_snippets(self, current_filepath: Optional[str] = None) -> list[CodeSnippet]:
        """Live ranges of other files as snippets, newest first."""
        self.cleanup()
        with self._lock:
            ranges = list(self._ranges)
        return [
            CodeSnippet(
                filepath=r.filepath,
                content=r.content,
                kind=self.kind,
                line_range=r.line_range,
                symbols=tuple(r.symbols),
            )
            for r in ranges
            if r.filepath != current_filepath
        ]

    def clear(self) -> None:
        with self._lock:
            self._ranges.clear()

    async def fetch(
        self,
        request: CompletionRequest,
        symbols: list[str],
        budget: ContextBudget,
    ) -> list[CodeSnippet]:
        return self.get_snippets(request.filepath)


class RecentlyEditedTracker(RecentRangeLog):
    """Recency log fed by document change events."""

    kind = SnippetKind.RECENTLY_EDITED

    def record_edit(
        self,
        filepath: str,
        document: Union[str, list[str]],
        start_line: int,
        end_line: int,
        text_length: int,
        replaced_length: int,
        language: Optional[str] = None,
    ) -> Optional[RecentRange]:
        """Record one content change.

        Single-character edits (typing, backspace) are ignored.

        Args:
            filepath: Edited file
            document: Document text after the change
            start_line: First line of the changed range
            end_line: Last line of the changed range
            text_length: Length of the inserted text
            replaced_length: Length of the replaced text

        Returns:
            The stored range, or None if the edit was ignored
        """
        if text_length <= 1 and replaced_length <= 1:
            return None
        return self.add_range(filepath, document, start_line, end_line, language)


class RecentlyVisitedTracker(RecentRangeLog):
    """Recency log fed by viewport and selection changes."""

    kind = SnippetKind.RECENTLY_VISITED

    def record_visit(
        self,
        filepath: str,
        document: Union[str, list[str]],
        start_line: int,
        end_line: int,
        language: Optional[str] = None,
    ) -> Optional[RecentRange]:
        return self.add_range(filepath, document, start_line, end_line, language)
