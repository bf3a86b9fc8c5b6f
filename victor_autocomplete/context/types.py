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

"""Types shared by the context retrieval sources and the formatter."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol, runtime_checkable

from victor_autocomplete.completion.fim import CHARS_PER_TOKEN
from victor_autocomplete.completion.protocol import CompletionRequest

# Pseudo-filepath used by clipboard snippets
CLIPBOARD_FILEPATH = "clipboard"


class SnippetKind(str, Enum):
    """Origin category of a context snippet."""

    IMPORT = "import"
    RECENTLY_EDITED = "recently-edited"
    RECENTLY_VISITED = "recently-visited"
    WORKSPACE = "workspace"
    CLIPBOARD = "clipboard"


ALL_SOURCES: frozenset[SnippetKind] = frozenset(SnippetKind)


@dataclass(frozen=True)
class LineRange:
    """Inclusive, zero-based line range."""

    start: int
    end: int

    def overlaps(self, other: "LineRange") -> bool:
        return not (self.end < other.start or other.end < self.start)


@dataclass(frozen=True)
class CodeSnippet:
    """A piece of code from somewhere other than the cursor position."""

    filepath: str
    content: str
    kind: SnippetKind
    line_range: Optional[LineRange] = None
    symbols: tuple[str, ...] = ()


@dataclass(frozen=True)
class ContextBudget:
    """Per-request limits on how much context reaches the prompt."""

    max_snippets: int = 5
    max_tokens_per_snippet: int = 200
    enabled_sources: frozenset[SnippetKind] = ALL_SOURCES
    max_candidates_per_source: int = 15

    @property
    def max_chars_per_snippet(self) -> int:
        return self.max_tokens_per_snippet * CHARS_PER_TOKEN

    def is_enabled(self, kind: SnippetKind) -> bool:
        return kind in self.enabled_sources


@dataclass
class ContextPayload:
    """Candidate snippets grouped by source, each in source-yield order."""

    snippets: dict[SnippetKind, list[CodeSnippet]] = field(default_factory=dict)

    def get(self, kind: SnippetKind) -> list[CodeSnippet]:
        return self.snippets.get(kind, [])

    @property
    def total_snippets(self) -> int:
        return sum(len(items) for items in self.snippets.values())

    @property
    def total_length(self) -> int:
        return sum(len(s.content) for items in self.snippets.values() for s in items)

    def is_empty(self) -> bool:
        return self.total_snippets == 0

    def summary(self) -> str:
        """One-line description for debug logging."""
        parts = [f"{kind.value}: {len(self.get(kind))}" for kind in SnippetKind]
        parts.append(f"total length: {self.total_length} chars")
        return ", ".join(parts)


@runtime_checkable
class ContextSource(Protocol):
    """A single, failure-isolated producer of context snippets."""

    @property
    def kind(self) -> SnippetKind:
        """Snippet kind this source produces."""
        ...

    async def fetch(
        self,
        request: CompletionRequest,
        symbols: list[str],
        budget: ContextBudget,
    ) -> list[CodeSnippet]:
        """Produce candidate snippets for the request.

        Args:
            request: Snapshot of the document being completed
            symbols: Relevant symbols near the cursor
            budget: Per-request context budget

        Returns:
            Snippets in relevance order
        """
        ...
