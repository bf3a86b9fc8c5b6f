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

"""Context retrieval for inline completions.

Sources:
- Import definitions resolved inside the workspace
- Recently edited and recently visited line ranges
- Bounded workspace symbol search
- Clipboard text that looks like code

Example usage:
    from victor_autocomplete.context import ContextFormatter, ContextRetrievalService

    service = ContextRetrievalService(workspace_root=Path("."))
    payload = await service.get_context(request, budget)
    prompt_prefix = ContextFormatter(budget).build_prefix(
        payload, request.prefix, request.filepath, request.language
    )
"""

from victor_autocomplete.context.types import (
    CLIPBOARD_FILEPATH,
    CodeSnippet,
    ContextBudget,
    ContextPayload,
    ContextSource,
    LineRange,
    SnippetKind,
)
from victor_autocomplete.context.clipboard import ClipboardSource, looks_like_code
from victor_autocomplete.context.formatter import (
    ContextFormatter,
    FormattedContext,
    add_comment_marks,
    get_relative_path,
)
from victor_autocomplete.context.imports import ImportDefinitionsService
from victor_autocomplete.context.recent import (
    RecentlyEditedTracker,
    RecentlyVisitedTracker,
    RecentRangeLog,
)
from victor_autocomplete.context.retrieval import ContextRetrievalService, limit_snippets
from victor_autocomplete.context.workspace import WorkspaceContextService

__all__ = [
    # Types
    "CLIPBOARD_FILEPATH",
    "CodeSnippet",
    "ContextBudget",
    "ContextPayload",
    "ContextSource",
    "LineRange",
    "SnippetKind",
    # Sources
    "ClipboardSource",
    "ImportDefinitionsService",
    "RecentlyEditedTracker",
    "RecentlyVisitedTracker",
    "RecentRangeLog",
    "WorkspaceContextService",
    "looks_like_code",
    # Retrieval and formatting
    "ContextRetrievalService",
    "ContextFormatter",
    "FormattedContext",
    "add_comment_marks",
    "get_relative_path",
    "limit_snippets",
]
