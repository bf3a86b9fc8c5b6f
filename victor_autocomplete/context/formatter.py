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

"""Context ranking and rendering.

Reduces a ``ContextPayload`` to a bounded, deterministic block of
commented-out code that is prepended to the completion prefix:

1. Sources are walked in priority order (recently edited, imports,
   workspace, clipboard, recently visited).
2. Empty snippets, snippets already visible in the prefix, and snippets
   from the current file are dropped.
3. The first snippet per filepath wins; over-long snippets are truncated
   and marked with ``...``.
4. Admission stops at ``max_snippets``.
5. Each snippet renders as ``Path: <relative path>`` plus its content,
   commented out for the target language, followed by a comment naming
   the current file.
"""

import re
from dataclasses import dataclass, replace
from typing import Optional

from victor_autocomplete.context.types import (
    CLIPBOARD_FILEPATH,
    CodeSnippet,
    ContextBudget,
    ContextPayload,
    SnippetKind,
)
from victor_autocomplete.languages import CommentStyle, get_comment_style

TRUNCATION_MARKER = "..."

# Admission order. Recently visited shares the lowest tier with clipboard.
SOURCE_PRIORITY: tuple[SnippetKind, ...] = (
    SnippetKind.RECENTLY_EDITED,
    SnippetKind.IMPORT,
    SnippetKind.WORKSPACE,
    SnippetKind.CLIPBOARD,
    SnippetKind.RECENTLY_VISITED,
)


def get_relative_path(filepath: str) -> str:
    """Last two path segments of ``filepath`` ("clipboard" is kept as is)."""
    if filepath == CLIPBOARD_FILEPATH:
        return CLIPBOARD_FILEPATH
    parts = [p for p in re.split(r"[/\\]", filepath) if p]
    if not parts:
        return filepath
    return "/".join(parts[-2:])


def add_comment_marks(text: str, style: CommentStyle) -> str:
    """Prefix every line of ``text`` with the line-comment marker."""
    mark = style.line or "//"
    return "\n".join(f"{mark} {line}" for line in text.strip().split("\n"))


@dataclass(frozen=True)
class FormattedContext:
    """Admitted snippets and their rendered comment block."""

    snippets: tuple[CodeSnippet, ...]
    text: str

    def __bool__(self) -> bool:
        return bool(self.text)


class ContextFormatter:
    """Deterministic ranker and renderer for context snippets."""

    def __init__(self, budget: Optional[ContextBudget] = None):
        self._budget = budget or ContextBudget()

    @property
    def budget(self) -> ContextBudget:
        return self._budget

    def select(
        self,
        payload: ContextPayload,
        prefix: str,
        filepath: str,
        budget: Optional[ContextBudget] = None,
    ) -> list[CodeSnippet]:
        """Pick the snippets that make it into the prompt, in admission order.

        Args:
            payload: Candidates grouped by source
            prefix: Text before the cursor
            filepath: File being completed
            budget: Overrides the formatter's default budget

        Returns:
            Admitted snippets, truncated where needed
        """
        budget = budget or self._budget
        max_chars = budget.max_chars_per_snippet
        admitted: list[CodeSnippet] = []
        seen_paths: set[str] = set()

        for kind in SOURCE_PRIORITY:
            if len(admitted) >= budget.max_snippets:
                break
            for snippet in payload.get(kind):
                if len(admitted) >= budget.max_snippets:
                    break
                if not self._is_valid(snippet, prefix, filepath):
                    continue
                if snippet.filepath in seen_paths:
                    continue
                if len(snippet.content) > max_chars:
                    truncated = snippet.content[:max_chars] + TRUNCATION_MARKER
                    snippet = replace(snippet, content=truncated)
                admitted.append(snippet)
                seen_paths.add(snippet.filepath)

        return admitted

    def render(self, snippets: list[CodeSnippet], language: str, filepath: str) -> str:
        """Render admitted snippets as a comment block ("" when there are none)."""
        if not snippets:
            return ""

        style = get_comment_style(language)
        bodies = [f"Path: {get_relative_path(s.filepath)}\n{s.content}" for s in snippets]
        current = get_relative_path(filepath)

        if style.is_block_only:
            section = "\n".join(body.strip() for body in bodies)
            return f"{style.block_open}\n{section}\n{current}\n{style.block_close}"

        rendered = "\n".join(add_comment_marks(body, style) for body in bodies)
        return f"{rendered}\n{add_comment_marks(current, style)}"

    def format(
        self,
        payload: ContextPayload,
        prefix: str,
        filepath: str,
        language: str,
        budget: Optional[ContextBudget] = None,
    ) -> FormattedContext:
        snippets = self.select(payload, prefix, filepath, budget)
        return FormattedContext(
            snippets=tuple(snippets),
            text=self.render(snippets, language, filepath),
        )

    def build_prefix(
        self,
        payload: ContextPayload,
        prefix: str,
        filepath: str,
        language: str,
        budget: Optional[ContextBudget] = None,
    ) -> str:
        """Prefix with the rendered context block prepended, if any."""
        formatted = self.format(payload, prefix, filepath, language, budget)
        if not formatted:
            return prefix
        return f"{formatted.text}\n{prefix}"

    @staticmethod
    def _is_valid(snippet: CodeSnippet, prefix: str, filepath: str) -> bool:
        content = snippet.content.strip()
        if not content:
            return False
        if content in prefix:
            return False
        return snippet.filepath != filepath
