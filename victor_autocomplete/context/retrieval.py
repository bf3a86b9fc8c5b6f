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

"""Context retrieval across independent snippet sources.

All enabled sources run concurrently. Each one is bounded by its own
short timeout and isolated from the others: a source that raises or
times out contributes nothing and the rest still count.
"""

import asyncio
import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from victor_autocomplete.completion.cancellation import CancellationSignal, race_cancellation
from victor_autocomplete.completion.fim import CHARS_PER_TOKEN, estimate_tokens
from victor_autocomplete.completion.protocol import CompletionRequest
from victor_autocomplete.context.clipboard import ClipboardReader, ClipboardSource
from victor_autocomplete.context.imports import ImportDefinitionsService
from victor_autocomplete.context.recent import RecentlyEditedTracker, RecentlyVisitedTracker
from victor_autocomplete.context.symbols import get_symbols_around_line
from victor_autocomplete.context.types import (
    CodeSnippet,
    ContextBudget,
    ContextPayload,
    ContextSource,
    SnippetKind,
)
from victor_autocomplete.context.workspace import WorkspaceContextService
from victor_autocomplete.errors import ContextPipelineError

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_TIMEOUT = 0.5


def truncate_to_token_limit(text: str, max_tokens: int) -> str:
    """Cut ``text`` to roughly ``max_tokens``, preferring line boundaries."""
    max_chars = max_tokens * CHARS_PER_TOKEN
    if len(text) <= max_chars:
        return text

    kept: list[str] = []
    length = 0
    for line in text.split("\n"):
        added = len(line) + (1 if kept else 0)
        if length + added > max_chars:
            break
        kept.append(line)
        length += added

    return "\n".join(kept) if kept else text[:max_chars]


def limit_snippets(snippets: list[CodeSnippet], budget: ContextBudget) -> list[CodeSnippet]:
    """Keep the most symbol-rich snippets within the per-source budget.

    Snippets are ordered by matched symbol count (stable for ties), capped
    at ``max_candidates_per_source`` entries and a total token budget, and
    individually truncated on line boundaries.
    """
    limit = budget.max_candidates_per_source
    total_budget = budget.max_tokens_per_snippet * limit
    ordered = sorted(snippets, key=lambda s: len(s.symbols), reverse=True)

    kept: list[CodeSnippet] = []
    total = 0
    for snippet in ordered:
        if len(kept) >= limit:
            break
        tokens = estimate_tokens(snippet.content)
        if total + tokens > total_budget:
            break
        if tokens > budget.max_tokens_per_snippet:
            snippet = replace(
                snippet,
                content=truncate_to_token_limit(snippet.content, budget.max_tokens_per_snippet),
            )
        kept.append(snippet)
        total += min(tokens, budget.max_tokens_per_snippet)
    return kept


def symbols_near_cursor(request: CompletionRequest, context_lines: int = 5) -> list[str]:
    """Relevant symbols within ``context_lines`` of the cursor line."""
    cursor_line = request.prefix.count("\n")
    return get_symbols_around_line(
        request.prefix + request.suffix, cursor_line, request.language, context_lines
    )


class ContextRetrievalService:
    """Gathers candidate snippets from every enabled source.

    Example:
        service = ContextRetrievalService(workspace_root=Path("."))
        service.recently_edited.record_edit("src/a.py", text, 10, 12, 24, 0)
        payload = await service.get_context(request, ContextBudget())
    """

    def __init__(
        self,
        sources: Optional[Sequence[ContextSource]] = None,
        *,
        workspace_root: Optional[Path] = None,
        clipboard_reader: Optional[ClipboardReader] = None,
        source_timeout: float = DEFAULT_SOURCE_TIMEOUT,
    ):
        """Initialize the service.

        Args:
            sources: Explicit sources (one per kind); defaults to the five built-ins
            workspace_root: Project root for import and workspace search
            clipboard_reader: Host callable returning the clipboard text
            source_timeout: Per-source timeout in seconds
        """
        if sources is None:
            sources = [
                ImportDefinitionsService(workspace_root),
                RecentlyEditedTracker(),
                RecentlyVisitedTracker(),
                WorkspaceContextService(workspace_root),
                ClipboardSource(clipboard_reader),
            ]
        self._sources: dict[SnippetKind, ContextSource] = {s.kind: s for s in sources}
        self._source_timeout = source_timeout

    @property
    def source_timeout(self) -> float:
        return self._source_timeout

    @property
    def recently_edited(self) -> Optional[RecentlyEditedTracker]:
        source = self._sources.get(SnippetKind.RECENTLY_EDITED)
        return source if isinstance(source, RecentlyEditedTracker) else None

    @property
    def recently_visited(self) -> Optional[RecentlyVisitedTracker]:
        source = self._sources.get(SnippetKind.RECENTLY_VISITED)
        return source if isinstance(source, RecentlyVisitedTracker) else None

    @property
    def clipboard(self) -> Optional[ClipboardSource]:
        source = self._sources.get(SnippetKind.CLIPBOARD)
        return source if isinstance(source, ClipboardSource) else None

    def get_source(self, kind: SnippetKind) -> Optional[ContextSource]:
        return self._sources.get(kind)

    def reconfigured(
        self,
        workspace_root: Optional[Path] = None,
        source_timeout: float = DEFAULT_SOURCE_TIMEOUT,
    ) -> "ContextRetrievalService":
        """Copy of this service for another workspace root and timeout.

        The built-in import and workspace sources are rebuilt for the new
        root. Every other source (the edit and visit logs, the clipboard
        reader, custom sources) is carried over unchanged.
        """
        sources = dict(self._sources)
        if isinstance(sources.get(SnippetKind.IMPORT), ImportDefinitionsService):
            sources[SnippetKind.IMPORT] = ImportDefinitionsService(workspace_root)
        if isinstance(sources.get(SnippetKind.WORKSPACE), WorkspaceContextService):
            sources[SnippetKind.WORKSPACE] = WorkspaceContextService(workspace_root)
        return ContextRetrievalService(list(sources.values()), source_timeout=source_timeout)

    async def get_context(
        self,
        request: CompletionRequest,
        budget: ContextBudget,
        cancel_signal: Optional[CancellationSignal] = None,
    ) -> ContextPayload:
        """Collect snippets from all enabled sources.

        Args:
            request: Document snapshot being completed
            budget: Context budget and enabled sources
            cancel_signal: Aborts the collection when fired

        Returns:
            Limited snippets per source; empty when cancelled

        Raises:
            ContextPipelineError: If aggregating the source results fails
        """
        try:
            symbols = symbols_near_cursor(request)
            enabled = [s for kind, s in self._sources.items() if budget.is_enabled(kind)]
            if not enabled:
                return ContextPayload()

            gathered = asyncio.gather(
                *(self._run_source(s, request, symbols, budget) for s in enabled)
            )
            if cancel_signal is not None:
                finished, results = await race_cancellation(gathered, cancel_signal)
                if not finished or results is None:
                    logger.debug("Context retrieval cancelled")
                    return ContextPayload()
            else:
                results = await gathered

            payload = ContextPayload(
                {s.kind: limit_snippets(r, budget) for s, r in zip(enabled, results)}
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise ContextPipelineError(f"Context aggregation failed: {e}") from e

        logger.debug(f"Context gathered: {payload.summary()}")
        return payload

    async def _run_source(
        self,
        source: ContextSource,
        request: CompletionRequest,
        symbols: list[str],
        budget: ContextBudget,
    ) -> list[CodeSnippet]:
        try:
            return await asyncio.wait_for(
                source.fetch(request, symbols, budget), timeout=self._source_timeout
            )
        except asyncio.TimeoutError:
            logger.debug(f"Context source {source.kind.value} timed out")
        except Exception as e:
            logger.debug(f"Context source {source.kind.value} failed: {e}")
        return []
